"""
Price snapshot calculation.

Runs exactly once per booking, at creation. Amounts use Decimal and
round-half-up, so 10:00-11:40 at 100/h is 1.75 h and 175.00 on every
platform.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from ..core.exceptions import ValidationException
from .interval_math import duration_hours

QUARTER = Decimal("0.25")
CENTS = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def _to_decimal(value: Number, field: str) -> Decimal:
    try:
        # str() keeps floats like 0.1 from dragging binary noise into the result
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationException(f"{field} is not a number", details={field: str(value)}) from exc
    if not result.is_finite():
        raise ValidationException(f"{field} is not a number", details={field: str(value)})
    return result


def round_to_quarter_hour(raw_hours: Number) -> Decimal:
    """
    Nearest multiple of 0.25, ties away from zero, never negative.

    1h40m (1.6667) -> 1.75, 1h10m (1.1667) -> 1.25, 1h07m30s (1.125) -> 1.25.
    """
    hours = _to_decimal(raw_hours, "hours")
    quarters = (hours * 4).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    rounded = (quarters * QUARTER).quantize(CENTS)
    return max(rounded, Decimal("0.00"))


def compute_total_price(hours: Number, rate: Number) -> Decimal:
    """hours x rate rounded to cents (half-up)."""
    total = _to_decimal(hours, "hours") * _to_decimal(rate, "rate")
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceSnapshot:
    """Immutable pricing fields stored on a booking."""

    rate_snapshot: Decimal
    duration_hours: Decimal
    total_price: Decimal


class PricingCalculator:
    """Computes the price snapshot for a new booking."""

    def snapshot(self, start: datetime, end: datetime, rate: Optional[Number]) -> PriceSnapshot:
        """
        Args:
            start: Interval start (aware)
            end: Interval end (aware), strictly after start
            rate: Provider hourly rate at creation; missing means 0

        Raises:
            InvalidIntervalException: if the interval is empty or reversed
            ValidationException: if the rate is negative or not a number
        """
        rate_value = _to_decimal(rate if rate is not None else 0, "rate")
        if rate_value < 0:
            raise ValidationException("Hourly rate cannot be negative", details={"rate": str(rate_value)})
        rate_value = rate_value.quantize(CENTS, rounding=ROUND_HALF_UP)

        raw_hours = Decimal(str(duration_hours(start, end)))
        hours = round_to_quarter_hour(raw_hours)
        return PriceSnapshot(
            rate_snapshot=rate_value,
            duration_hours=hours,
            total_price=compute_total_price(hours, rate_value),
        )
