# slotkeeper/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for slotkeeper.

Loads the provider's active bookings that could overlap a requested
interval, and takes the database-level provider lock used while a new
booking is checked and inserted.
"""

from datetime import datetime
import logging
from typing import List, Optional, cast

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import BookingStatus
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = [status.value for status in BookingStatus.active()]


class ConflictCheckerRepository(BaseRepository[Booking]):
    """Repository for conflict checking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def get_active_bookings_overlapping(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Active (pending/accepted) bookings of a provider overlapping [start, end).

        Args:
            provider_id: The provider whose calendar is checked
            start: Interval start (UTC)
            end: Interval end (UTC, exclusive)
            exclude_booking_id: Optional booking ID to leave out

        Returns:
            Bookings ordered by start
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.provider_id == provider_id,
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.start_at < end,
                Booking.end_at > start,
            )
            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)

            return cast(List[Booking], query.order_by(Booking.start_at).all())

        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict bookings: {str(e)}") from e

    def lock_provider_schedule(self, provider_id: str) -> bool:
        """
        Take a transaction-scoped advisory lock on the provider's calendar.

        Only PostgreSQL supports this; on other backends the process and Redis
        locks are the only serialisation and this returns False.
        """
        if self.dialect_name != "postgresql":
            return False
        try:
            self.db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                {"key": f"provider-schedule:{provider_id}"},
            )
            return True
        except SQLAlchemyError as e:
            self.logger.error(f"Error taking provider advisory lock: {str(e)}")
            raise RepositoryException(f"Failed to lock provider schedule: {str(e)}") from e
