"""
Provider earnings reporting.

Sums the price snapshots of completed bookings. A booking counts toward the
window its end time falls in. Windows are half-open [start, end) and are cut
on the provider's local calendar (the provider's timezone, else the
configured scheduling timezone); weeks start on Sunday unless configured
otherwise.
"""

import csv
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
import io
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import EarningsWindow
from ..core.timezone_utils import (
    Clock,
    get_timezone,
    local_date,
    local_midnight_utc,
    start_of_month,
    start_of_next_month,
    start_of_week,
)
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from .base import BaseService
from .provider_directory import PartyDirectory, ProviderDirectory

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class EarningsRow:
    booking_id: str
    requester_id: str
    ended_at: datetime
    hours: Decimal
    rate: Decimal
    amount: Decimal


@dataclass
class EarningsSummary:
    provider_id: str
    window: EarningsWindow
    range_start: Optional[datetime]
    range_end: Optional[datetime]
    jobs: int = 0
    total_hours: Decimal = Decimal("0.00")
    total_earnings: Decimal = Decimal("0.00")
    avg_hourly: Decimal = Decimal("0.00")
    rows: List[EarningsRow] = field(default_factory=list)


class EarningsService(BaseService):
    """Aggregates completed-booking snapshots per reporting window."""

    def __init__(
        self,
        db: Session,
        *,
        booking_repository: Optional[BookingRepository] = None,
        provider_directory: Optional[ProviderDirectory] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock=clock)
        self.booking_repository = booking_repository or RepositoryFactory.create_booking_repository(db)
        self.provider_directory = provider_directory or PartyDirectory(db)

    def window_bounds(
        self, window: EarningsWindow, timezone_name: Optional[str] = None
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        """UTC [start, end) of ``window`` on the given local calendar; (None, None) for all time."""
        window = EarningsWindow(window)
        if window is EarningsWindow.ALL_TIME:
            return None, None

        tz = get_timezone(timezone_name)
        today = local_date(self.now(), tz)

        if window is EarningsWindow.THIS_MONTH:
            first, after = start_of_month(today), start_of_next_month(today)
        else:
            week_start = start_of_week(today, settings.earnings_week_start)
            if window is EarningsWindow.LAST_WEEK:
                week_start -= timedelta(days=7)
            first, after = week_start, week_start + timedelta(days=7)

        return local_midnight_utc(first, tz), local_midnight_utc(after, tz)

    @BaseService.measure_operation("summarize_earnings")
    def summarize(self, provider_id: str, window: EarningsWindow = EarningsWindow.THIS_WEEK) -> EarningsSummary:
        """
        Earnings of ``provider_id`` over ``window``.

        Rows are newest first; avg_hourly is total_earnings / total_hours (0 when no hours).
        """
        window = EarningsWindow(window)
        profile = self.provider_directory.resolve(provider_id)
        start, end = self.window_bounds(window, profile.timezone if profile else None)

        bookings = self.booking_repository.get_completed_for_provider(provider_id, start, end)
        summary = EarningsSummary(provider_id=provider_id, window=window, range_start=start, range_end=end)

        for booking in bookings:
            hours = Decimal(booking.duration_hours)
            amount = Decimal(booking.total_price)
            summary.rows.append(
                EarningsRow(
                    booking_id=booking.id,
                    requester_id=booking.requester_id,
                    ended_at=booking.end_at,
                    hours=hours,
                    rate=Decimal(booking.rate_snapshot),
                    amount=amount,
                )
            )
            summary.jobs += 1
            summary.total_hours += hours
            summary.total_earnings += amount

        if summary.total_hours > 0:
            summary.avg_hourly = (summary.total_earnings / summary.total_hours).quantize(
                CENTS, rounding=ROUND_HALF_UP
            )
        return summary

    def export_csv(self, summary: EarningsSummary) -> str:
        """Rows of ``summary`` as CSV text (Date, Requester, Hours, Rate, Amount)."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(["Date", "Requester", "Hours", "Rate", "Amount"])
        for row in summary.rows:
            writer.writerow(
                [
                    row.ended_at.isoformat(),
                    row.requester_id,
                    f"{row.hours:.2f}",
                    f"{row.rate:.2f}",
                    f"{row.amount:.2f}",
                ]
            )
        return buffer.getvalue()
