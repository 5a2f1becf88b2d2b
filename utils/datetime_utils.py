import math
import pytz
from datetime import datetime, date, timedelta
from typing import Any, Optional

from config import TIMEZONE

local_tz = pytz.timezone(TIMEZONE)

SECONDS_PER_DAY = 24 * 60 * 60


def ensure_timezone_aware(dt, target_timezone=local_tz):
    """Ensure datetime object is timezone-aware and in the configured zone"""
    if dt is None:
        return None

    if isinstance(dt, str):
        # If it's a string, parse it first
        dt = datetime.fromisoformat(dt.replace("Z", "+00:00"))

    if dt.tzinfo is not None:
        # Already timezone-aware, convert to local zone
        return dt.astimezone(target_timezone)
    else:
        # Timezone-naive, assume it's in target timezone
        return target_timezone.localize(dt)


def now_local():
    """Get current datetime in the configured zone"""
    return datetime.now(local_tz)


def parse_revision_date(value: Any) -> Optional[datetime]:
    """
    Parse whatever storage handed us as a revision date.

    Accepts aware or naive datetimes, dates, ISO strings (``Z`` suffix, offsets
    or a bare ``YYYY-MM-DD``), epoch seconds and ``{"seconds": ...}`` mappings.
    Returns None for anything missing or unparsable.
    """
    if value is None or value == "":
        return None

    if isinstance(value, dict):
        value = value.get("seconds")
        if value is None:
            return None

    if isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return ensure_timezone_aware(value)

    if isinstance(value, date):
        return local_tz.localize(datetime(value.year, value.month, value.day))

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value, local_tz)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        try:
            return ensure_timezone_aware(value.strip())
        except ValueError:
            return None

    return None


def date_portion(value: Any) -> Optional[str]:
    """Calendar date (``YYYY-MM-DD``) of a revision value, or None if absent"""
    if value is None or value == "":
        return None

    if isinstance(value, str):
        # Strings are cut at the time separator, never re-parsed
        return value.split("T")[0] if "T" in value else value

    parsed = parse_revision_date(value)
    return parsed.date().isoformat() if parsed else None


def days_since(value: Any, reference_datetime=None) -> Optional[int]:
    """Whole days elapsed since ``value``; None when the date is unparsable"""
    if reference_datetime is None:
        reference_datetime = now_local()

    parsed = parse_revision_date(value)
    if parsed is None:
        return None

    delta = ensure_timezone_aware(reference_datetime) - parsed
    return math.floor(delta.total_seconds() / SECONDS_PER_DAY)


def to_iso(value: Any) -> Any:
    """Serialize dates for JSON payloads, leaving other values untouched"""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def format_date_br(value: Any) -> str:
    """Format a revision value as dd-mm-aaaa"""
    if value is None or value == "":
        return "—"

    parsed = parse_revision_date(value)
    if parsed is None:
        return str(value)
    return parsed.strftime("%d-%m-%Y")


def trailing_window(today: date, days: int):
    """Dates of the ``days``-long window ending at ``today`` (inclusive), oldest first"""
    start = today - timedelta(days=days - 1)
    return [start + timedelta(days=offset) for offset in range(days)]
