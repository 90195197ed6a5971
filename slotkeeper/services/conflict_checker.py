# slotkeeper/services/conflict_checker.py
"""
Conflict Checker Service for slotkeeper

Detects overlaps between a requested interval and a provider's active
(pending or accepted) bookings.

Candidates come straight from the stored UTC intervals, so a provider's
timezone (or a later change to it) never affects what counts as a clash.
The database filter and the in-memory check both use half-open overlap.

Callers that go on to insert must hold the provider schedule lock for the
whole check-then-insert sequence (see BookingService.create_booking).
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import SchedulingConflictException
from ..core.timezone_utils import Clock, ensure_utc
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from .base import BaseService
from .interval_math import overlaps

logger = logging.getLogger(__name__)


class ConflictChecker(BaseService):
    """
    Service for checking booking conflicts on a provider's calendar.

    Read-only: it never writes, and it does not lock on its own.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[ConflictCheckerRepository] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional ConflictCheckerRepository instance
            clock: Optional clock override
        """
        super().__init__(db, clock=clock)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)

    @BaseService.measure_operation("find_conflicts")
    def find_conflicts(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Active bookings of ``provider_id`` overlapping [start, end).

        Args:
            provider_id: The provider to check
            start: Requested start (aware)
            end: Requested end (aware)
            exclude_booking_id: Optional booking ID to exclude from check

        Returns:
            List of conflicts with booking details, ordered by start
        """
        start = ensure_utc(start)
        end = ensure_utc(end)
        bookings = self.repository.get_active_bookings_overlapping(
            provider_id, start, end, exclude_booking_id
        )

        conflicts = [
            {
                "booking_id": booking.id,
                "start_at": booking.start_at.isoformat(),
                "end_at": booking.end_at.isoformat(),
                "status": booking.status,
            }
            for booking in bookings
            if overlaps(start, end, booking.start_at, booking.end_at)
        ]

        if conflicts:
            self.logger.warning(
                f"Found {len(conflicts)} booking conflicts for provider {provider_id} "
                f"between {start.isoformat()}-{end.isoformat()}"
            )

        return conflicts

    def has_conflict(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """Simplified boolean check for quick validation."""
        return bool(self.find_conflicts(provider_id, start, end, exclude_booking_id))

    def ensure_slot_available(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        """
        Raise if the slot is taken.

        Raises:
            SchedulingConflictException: listing the conflicting bookings
        """
        conflicts = self.find_conflicts(provider_id, start, end, exclude_booking_id)
        if conflicts:
            prometheus_metrics.inc_scheduling_conflict()
            raise SchedulingConflictException(
                details={"provider_id": provider_id, "conflicts": conflicts}
            )
