import re
import unicodedata
from typing import Any, Iterable, List, Union

_COMBINING_MARKS = re.compile("[\u0300-\u036f]")
_TAG_SEPARATORS = re.compile(r"[\s,]+")


def normalize_text(text: Any) -> str:
    """Accent- and case-insensitive key: NFD, marks stripped, trimmed, lowercased"""
    if text is None:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text))
    return _COMBINING_MARKS.sub("", decomposed).strip().lower()


def normalize_hashtags(raw: Union[str, Iterable[str], None]) -> List[str]:
    """Split on whitespace/commas, drop leading '#' and empty entries"""
    if raw is None:
        return []
    if isinstance(raw, str):
        parts = _TAG_SEPARATORS.split(raw)
    else:
        parts = [str(part) for part in raw]
    tags = [part.strip().lstrip("#") for part in parts]
    return [tag for tag in tags if tag]


def display_or_dash(value: Any) -> Any:
    if value is None or value == "" or value == 0:
        return "—"
    return value
