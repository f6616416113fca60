"""
DateTime utilities for shift arithmetic.

Every instant handled by the engine is a timezone-aware UTC datetime.
The helpers here are pure: they return new values and never mutate
their arguments.
"""
from datetime import datetime, time, timedelta
from typing import Optional, Union

import pytz


# Single reference frame for stored and compared instants
TIMEZONE = pytz.UTC


def utc_now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(TIMEZONE)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are interpreted as already being in UTC.
    """
    if dt.tzinfo is None:
        return TIMEZONE.localize(dt)
    return dt.astimezone(TIMEZONE)


def parse_time_of_day(value: Union[str, time]) -> time:
    """
    Parse an "HH:MM" string into a time object.

    Args:
        value: "HH:MM" (or "HH:MM:SS") string, or a time passed through unchanged

    Returns:
        time object without tzinfo

    Raises:
        ValueError: If the string is not a valid time of day
    """
    if isinstance(value, time):
        return value
    return time.fromisoformat(value.strip())


def format_time_of_day(value: time) -> str:
    """Format a time object as "HH:MM"."""
    return f"{value.hour:02d}:{value.minute:02d}"


def add_days(dt: datetime, days: int) -> datetime:
    """Return dt moved by a whole number of calendar days."""
    return dt + timedelta(days=days)


def at_time_of_day(dt: datetime, tod: time) -> datetime:
    """Return the instant on dt's calendar day at the given time of day."""
    return dt.replace(
        hour=tod.hour,
        minute=tod.minute,
        second=tod.second,
        microsecond=0,
    )


def to_local_frame(instant: datetime, offset_minutes: Optional[int]) -> datetime:
    """
    Shift a UTC instant into the caller's wall-clock frame.

    The offset follows the browser convention (UTC minus local time, in
    minutes), so UTC+5 is -300 and 09:00 UTC becomes 14:00.
    """
    instant = ensure_utc(instant)
    if not offset_minutes:
        return instant
    return instant - timedelta(minutes=offset_minutes)


def from_local_frame(local: datetime, offset_minutes: Optional[int]) -> datetime:
    """Inverse of to_local_frame."""
    if not offset_minutes:
        return local
    return local + timedelta(minutes=offset_minutes)
