"""
Unit tests for half-open interval arithmetic and interval validation.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytz

from slotkeeper.core.exceptions import InvalidIntervalException, ValidationException
from slotkeeper.services.interval_math import duration_hours, overlaps, validate_interval

T = datetime(2026, 3, 4, 10, 0, tzinfo=timezone.utc)


def _h(hours: float) -> datetime:
    return T + timedelta(hours=hours)


class TestOverlaps:
    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ((0, 2), (1, 3), True),  # partial overlap
            ((1, 3), (0, 2), True),  # symmetric
            ((0, 4), (1, 2), True),  # containment
            ((1, 2), (0, 4), True),
            ((0, 2), (0, 2), True),  # identical
            ((0, 1), (1, 2), False),  # touching: a ends where b starts
            ((1, 2), (0, 1), False),  # touching the other way
            ((0, 1), (2, 3), False),  # disjoint
        ],
    )
    def test_half_open_overlap(self, a, b, expected):
        assert overlaps(_h(a[0]), _h(a[1]), _h(b[0]), _h(b[1])) is expected

    def test_back_to_back_bookings_do_not_overlap(self):
        first_end = datetime(2026, 3, 4, 11, 0, tzinfo=timezone.utc)
        assert not overlaps(_h(0), first_end, first_end, first_end + timedelta(hours=1))


class TestDurationHours:
    def test_fractional_hours(self):
        assert duration_hours(T, T + timedelta(minutes=100)) == pytest.approx(100 / 60)

    @pytest.mark.parametrize("delta", [timedelta(0), timedelta(minutes=-30)])
    def test_non_positive_interval_rejected(self, delta):
        with pytest.raises(InvalidIntervalException) as exc_info:
            duration_hours(T, T + delta)
        assert exc_info.value.code == "INVALID_INTERVAL"
        assert isinstance(exc_info.value, ValidationException)


class TestValidateInterval:
    def test_normalises_to_utc(self):
        eastern = pytz.timezone("America/New_York")
        start = eastern.localize(datetime(2026, 3, 4, 9, 0))
        end = eastern.localize(datetime(2026, 3, 4, 10, 0))

        start_utc, end_utc = validate_interval(start, end)

        assert start_utc == datetime(2026, 3, 4, 14, 0, tzinfo=timezone.utc)
        assert end_utc.tzinfo == timezone.utc

    def test_naive_values_are_read_as_utc(self):
        start_utc, _ = validate_interval(datetime(2026, 3, 4, 9, 0), datetime(2026, 3, 4, 10, 0))
        assert start_utc == datetime(2026, 3, 4, 9, 0, tzinfo=timezone.utc)

    def test_end_before_start_rejected(self):
        with pytest.raises(InvalidIntervalException):
            validate_interval(_h(2), _h(1))

    def test_too_short_rejected(self):
        with pytest.raises(InvalidIntervalException, match="at least 15 minutes"):
            validate_interval(T, T + timedelta(minutes=10), min_minutes=15)

    def test_too_long_rejected(self):
        with pytest.raises(InvalidIntervalException, match="longer than 24 hours"):
            validate_interval(T, T + timedelta(hours=24, minutes=1), max_hours=24)

    def test_exact_bounds_accepted(self):
        validate_interval(T, T + timedelta(minutes=15), min_minutes=15)
        validate_interval(T, T + timedelta(hours=24), max_hours=24)
