"""Naive wall-clock date/time handling.

Clinic dates and times are local wall-clock values: they are never converted to
or from UTC, so the weekday of a date is exactly the weekday of its calendar part.
"""
import re
from datetime import date

# Calendar part first; an optional time-of-day suffix is ignored, never tz-shifted.
_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:[T ].*)?$")
_STRICT_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")


class WallClockError(ValueError):
    pass


def parse_date(value: str | date | None, strict: bool = False) -> date:
    """Parse a calendar date. strict=True accepts only YYYY-MM-DD."""
    if isinstance(value, date):
        return value
    if not value or not value.strip():
        raise WallClockError("date is required")
    value = value.strip()
    if strict:
        raw = value if _STRICT_DATE_RE.match(value) else None
    else:
        match = _DATE_RE.match(value)
        raw = match.group(1) if match else None
    if raw is None:
        raise WallClockError(f"invalid date: {value!r}")
    try:
        return date.fromisoformat(raw)
    except ValueError as e:
        raise WallClockError(f"invalid date: {value!r}") from e


def parse_time(value: str | None) -> int:
    """HH:MM -> minutes since midnight."""
    match = _TIME_RE.match(value.strip()) if value else None
    if not match:
        raise WallClockError(f"invalid time: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise WallClockError(f"invalid time: {value!r}")
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def day_of_week(d: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return d.isoweekday() % 7
