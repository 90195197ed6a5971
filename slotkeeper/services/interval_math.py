"""
Interval arithmetic on half-open [start, end) instants.

Pure functions; no I/O. Touching endpoints never overlap, so back-to-back
bookings (one ends at 11:00, the next starts at 11:00) are allowed.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from ..core.config import settings
from ..core.exceptions import InvalidIntervalException
from ..core.timezone_utils import ensure_utc


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """True iff [a_start, a_end) and [b_start, b_end) share at least one instant."""
    return a_start < b_end and b_start < a_end


def duration_seconds(start: datetime, end: datetime) -> float:
    seconds = (end - start).total_seconds()
    if seconds <= 0:
        raise InvalidIntervalException(
            "End time must be after start time",
            details={"start": start.isoformat(), "end": end.isoformat()},
        )
    return seconds


def duration_hours(start: datetime, end: datetime) -> float:
    """
    Length of [start, end) in hours.

    Raises:
        InvalidIntervalException: if end is not strictly after start
    """
    return duration_seconds(start, end) / 3600.0


def validate_interval(
    start: datetime,
    end: datetime,
    *,
    min_minutes: Optional[int] = None,
    max_hours: Optional[int] = None,
) -> Tuple[datetime, datetime]:
    """
    Normalise a requested interval to UTC and enforce its length bounds.

    Returns:
        (start, end) as aware UTC datetimes
    """
    start = ensure_utc(start)
    end = ensure_utc(end)
    seconds = duration_seconds(start, end)

    min_minutes = settings.min_booking_minutes if min_minutes is None else min_minutes
    max_hours = settings.max_booking_hours if max_hours is None else max_hours

    if seconds < min_minutes * 60:
        raise InvalidIntervalException(
            f"Bookings must be at least {min_minutes} minutes long",
            details={"duration_minutes": seconds / 60, "min_minutes": min_minutes},
        )
    if end - start > timedelta(hours=max_hours):
        raise InvalidIntervalException(
            f"Bookings cannot be longer than {max_hours} hours",
            details={"duration_hours": seconds / 3600, "max_hours": max_hours},
        )
    return start, end
