"""Datetime utilities with consistent UTC timezone handling.

All timestamps handled by the analytics engine are timezone-aware and in
UTC. Calendar dates (task due dates, milestone targets, snapshot days) are
plain ``date`` objects keyed as ``YYYY-MM-DD``.
"""

import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

DAY = timedelta(days=1)


def now_utc() -> datetime:
    """Return current datetime in UTC timezone.

    Returns:
        Current datetime with timezone=UTC
    """
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware, assuming UTC if naive.

    Args:
        dt: Datetime to check/convert, or None

    Returns:
        Timezone-aware datetime in UTC, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt


def min_utc() -> datetime:
    """Return datetime.min with UTC timezone for sorting fallbacks."""
    return datetime.min.replace(tzinfo=timezone.utc)


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO string with timezone info."""
    if dt is None:
        return None
    return ensure_aware(dt).isoformat()


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a timestamp leniently.

    Accepts aware or naive datetimes, dates, ISO strings and epoch values in
    milliseconds. Anything that cannot be interpreted yields ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_aware(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def parse_date(value: Any) -> Optional[date]:
    """Parse a calendar date (``YYYY-MM-DD`` or any timestamp) or return None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(timezone.utc).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            try:
                return date.fromisoformat(text)
            except ValueError:
                return None
    parsed = parse_datetime(value)
    return parsed.astimezone(timezone.utc).date() if parsed else None


def day_key(value: date) -> str:
    """Return the ``YYYY-MM-DD`` key for a date."""
    return value.isoformat()


def utc_today(now: Optional[datetime] = None) -> date:
    """Return today's UTC calendar date relative to ``now``."""
    return ensure_aware(now or now_utc()).astimezone(timezone.utc).date()


def start_of_day(value: date) -> datetime:
    """Return UTC midnight for a calendar date."""
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def days_until(deadline: Any, now: Optional[datetime] = None) -> Optional[int]:
    """Whole days left until ``deadline``, rounded up.

    Date-only deadlines are taken as UTC midnight. Returns None when the
    deadline is missing or malformed.
    """
    target = parse_datetime(deadline)
    if target is None:
        return None
    now = ensure_aware(now or now_utc())
    return math.ceil((target - now) / DAY)
