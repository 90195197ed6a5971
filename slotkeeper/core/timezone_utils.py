"""
Timezone utilities for the scheduling service.

All instants are handled as aware UTC datetimes internally; provider-local
calendars are derived with pytz when a calendar day matters.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional

import pytz

from .config import settings

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalise a datetime to aware UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def get_timezone(name: Optional[str]) -> pytz.BaseTzInfo:
    """
    Resolve a timezone name, falling back to the configured scheduling timezone.

    Unknown names also fall back rather than failing a request.
    """
    if name:
        try:
            return pytz.timezone(name)
        except pytz.UnknownTimeZoneError:
            pass
    return pytz.timezone(settings.scheduling_timezone)


def to_local(dt: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Convert an instant to wall-clock time in ``tz``."""
    return ensure_utc(dt).astimezone(tz)


def local_date(dt: datetime, tz: pytz.BaseTzInfo) -> date:
    """Calendar day an instant falls on in ``tz``."""
    return to_local(dt, tz).date()


def local_midnight_utc(day: date, tz: pytz.BaseTzInfo) -> datetime:
    """UTC instant of local midnight starting ``day`` in ``tz``."""
    localized = tz.localize(datetime.combine(day, time.min))
    return localized.astimezone(pytz.UTC)


def start_of_week(day: date, week_start: str = "sunday") -> date:
    """
    First day of the week containing ``day``.

    Args:
        day: Any calendar day
        week_start: "sunday" or "monday"
    """
    # date.weekday(): Monday == 0 ... Sunday == 6
    if week_start == "monday":
        offset = day.weekday()
    else:
        offset = (day.weekday() + 1) % 7
    return day - timedelta(days=offset)


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def start_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)
