"""
Shift resolution for restaurant operating hours.

Maps a restaurant's daily open/close times and a candidate instant to the
concrete shift window that contains it, including shifts that run past
midnight (e.g. 22:00-03:00).
"""
from datetime import datetime, timedelta
from typing import Optional

from core.utils_datetime import (
    add_days,
    at_time_of_day,
    ensure_utc,
    from_local_frame,
    to_local_frame,
)
from domain.models import RestaurantHours, ShiftWindow


def shift_length(hours: RestaurantHours) -> timedelta:
    """
    Length of one shift.

    ``(work_ends - work_starts) mod 24h``, with equal open and close times
    meaning the restaurant never closes.
    """
    start = at_time_of_day(datetime(2000, 1, 1), hours.work_starts)
    end = at_time_of_day(datetime(2000, 1, 1), hours.work_ends)
    if end <= start:
        end = add_days(end, 1)
    return end - start


def _window_starting_on(hours: RestaurantHours, day: datetime) -> ShiftWindow:
    start = at_time_of_day(day, hours.work_starts)
    end = at_time_of_day(day, hours.work_ends)
    if hours.crosses_midnight:
        end = add_days(end, 1)
    return ShiftWindow(start=start, end=end)


def resolve_shift(hours: RestaurantHours, instant: datetime) -> Optional[ShiftWindow]:
    """
    Find the shift window containing an instant.

    Two candidates are checked: the shift opening on the instant's calendar
    day and the one that opened the day before, since an overnight shift
    started yesterday may still be running.

    Args:
        hours: Restaurant operating hours
        instant: Instant to place, in the restaurant's frame

    Returns:
        ShiftWindow with start <= instant < end, or None when closed
    """
    instant = ensure_utc(instant)
    today = _window_starting_on(hours, instant)
    if today.contains(instant):
        return today

    yesterday = _window_starting_on(hours, add_days(instant, -1))
    if yesterday.contains(instant):
        return yesterday

    return None


def resolve_request_shift(
    hours: RestaurantHours,
    requested_at: datetime,
    offset_minutes: Optional[int] = None,
) -> Optional[ShiftWindow]:
    """
    Resolve the shift for a requested instant expressed in UTC.

    The caller's timezone offset moves the instant into the restaurant's
    wall-clock frame before resolution; the resulting window is moved back
    so it compares directly against stored UTC reservation times.
    """
    local = to_local_frame(requested_at, offset_minutes)
    window = resolve_shift(hours, local)
    if window is None:
        return None
    return ShiftWindow(
        start=from_local_frame(window.start, offset_minutes),
        end=from_local_frame(window.end, offset_minutes),
    )
