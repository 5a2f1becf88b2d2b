"""
Quiz Result Parsers
===================

Self-test results are typed as ``acertos/total`` (or ``acertos,total``).
These helpers turn them into counts and percentages. None of them raise on
malformed input: totals degrade to 0, percentages to NaN (left for the
caller to clamp) and clamped values to 0.
"""

import math
import re
from typing import Any, Optional, Tuple

FRACTION_PATTERN = re.compile(r"(\d+)[/,](\d+)")
RESULT_INPUT_PATTERN = re.compile(r"^(\d+)([/,])(\d+)$|^\d+$")
NUMERIC_TEXT_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (builtin round() is banker's)"""
    return int(math.floor(value + 0.5))


def _coerce_number(value: Any) -> float:
    """Lenient numeric coercion: blank strings are 0, garbage is NaN"""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return 0.0
    if not NUMERIC_TEXT_PATTERN.match(text):
        return math.nan
    return float(text)


def parse_fraction(raw: Any) -> Optional[Tuple[int, int]]:
    """(acertos, total) from the first fraction found in ``raw``, else None"""
    if not isinstance(raw, str):
        return None
    match = FRACTION_PATTERN.search(raw)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def parse_fraction_to_percent(raw: Any) -> float:
    """
    "7/10" -> 70. A zero total gives 0. Input without a fraction is coerced
    directly ("85" -> 85.0); non-numeric input gives NaN.
    """
    fraction = parse_fraction(raw)
    if fraction is None:
        return _coerce_number(raw)

    correct, total = fraction
    if total == 0:
        return 0
    return round_half_up(correct / total * 100)


def parse_fraction_total(raw: Any) -> int:
    """Denominator of ``acertos/total``, or 0 when there is no fraction"""
    fraction = parse_fraction(raw)
    return fraction[1] if fraction else 0


def clamp_percent(value: Any) -> float:
    """Strip a trailing '%' and clamp into [0, 100]; non-finite input is 0"""
    if value is None:
        return 0
    text = str(value).strip()
    if text.endswith("%"):
        text = text[:-1].strip()
    number = _coerce_number(text)
    if not math.isfinite(number):
        return 0
    return max(0, min(100, number))


def is_valid_result(raw: Any) -> bool:
    """Accepted form input: ``7/10``, ``7,10`` or a bare number"""
    if raw is None:
        return False
    return bool(RESULT_INPUT_PATTERN.match(str(raw).strip()))
