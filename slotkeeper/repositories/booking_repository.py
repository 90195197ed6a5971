# slotkeeper/repositories/booking_repository.py
"""
Booking Repository for slotkeeper.

Data access for the booking store. Status changes are written as
compare-and-swap updates (``WHERE status = :expected``) so two concurrent
transitions on the same booking cannot both apply.
"""

from datetime import datetime, timezone
import logging
from typing import Any, List, Optional, Sequence, cast

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import BookingStatus, PartyRole
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

HIDDEN_FLAG_COLUMNS = ("hidden_for_requester", "hidden_for_provider")


def _status_values(statuses: Optional[Sequence[BookingStatus]]) -> Optional[List[str]]:
    if not statuses:
        return None
    return [BookingStatus(s).value for s in statuses]


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    # Party-scoped reads

    def _party_query(self, party_id: str, role: PartyRole, include_hidden: bool = False):
        query = self.db.query(Booking)
        if role is PartyRole.PROVIDER:
            query = query.filter(Booking.provider_id == party_id)
            if not include_hidden:
                query = query.filter(Booking.hidden_for_provider.is_(False))
        else:
            query = query.filter(Booking.requester_id == party_id)
            if not include_hidden:
                query = query.filter(Booking.hidden_for_requester.is_(False))
        return query

    def list_for_party(
        self,
        party_id: str,
        role: PartyRole,
        statuses: Optional[Sequence[BookingStatus]] = None,
        include_hidden: bool = False,
    ) -> List[Booking]:
        """
        Bookings where ``party_id`` plays ``role``, newest start first.

        Rows the party has hidden are left out unless ``include_hidden``.
        """
        try:
            query = self._party_query(party_id, role, include_hidden)
            values = _status_values(statuses)
            if values:
                query = query.filter(Booking.status.in_(values))
            return cast(
                List[Booking], query.order_by(Booking.start_at.desc(), Booking.id.desc()).all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for party {party_id}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}") from e

    def list_upcoming(
        self,
        party_id: str,
        role: PartyRole,
        statuses: Sequence[BookingStatus],
        now: datetime,
        limit: int,
    ) -> List[Booking]:
        """Bookings starting at or after ``now``, soonest first."""
        try:
            query = self._party_query(party_id, role).filter(
                Booking.start_at >= now,
                Booking.status.in_(_status_values(statuses) or []),
            )
            return cast(
                List[Booking],
                query.order_by(Booking.start_at.asc(), Booking.id.asc()).limit(limit).all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing upcoming bookings for party {party_id}: {str(e)}")
            raise RepositoryException(f"Failed to list upcoming bookings: {str(e)}") from e

    def get_completed_for_provider(
        self,
        provider_id: str,
        ended_from: Optional[datetime] = None,
        ended_before: Optional[datetime] = None,
    ) -> List[Booking]:
        """
        Completed bookings of a provider whose end falls in [ended_from, ended_before).

        Either bound may be omitted. Ordered newest end first.
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.provider_id == provider_id,
                Booking.status == BookingStatus.COMPLETED.value,
            )
            if ended_from is not None:
                query = query.filter(Booking.end_at >= ended_from)
            if ended_before is not None:
                query = query.filter(Booking.end_at < ended_before)
            return cast(List[Booking], query.order_by(Booking.end_at.desc()).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting completed bookings for {provider_id}: {str(e)}")
            raise RepositoryException(f"Failed to get completed bookings: {str(e)}") from e

    # Writes

    def transition_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new_status: BookingStatus,
        **stamps: Any,
    ) -> bool:
        """
        Move a booking from ``expected`` to ``new_status`` atomically.

        Returns:
            True if this call applied the change, False if the booking was not
            in ``expected`` any more (another writer won)
        """
        try:
            result = self.db.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status == expected.value)
                .values(
                    status=new_status.value,
                    updated_at=datetime.now(timezone.utc),
                    **stamps,
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1
        except SQLAlchemyError as e:
            self.logger.error(f"Error transitioning booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to update booking status: {str(e)}") from e

    def set_hidden(self, booking_id: str, column: str) -> None:
        """Set one archive flag (``hidden_for_requester`` or ``hidden_for_provider``) only."""
        if column not in HIDDEN_FLAG_COLUMNS:
            raise ValueError(f"Not an archive flag: {column}")
        try:
            self.db.execute(
                update(Booking)
                .where(Booking.id == booking_id)
                .values({column: True})
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error hiding booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to hide booking: {str(e)}") from e

    def update_notes(self, booking_id: str, notes: Optional[str]) -> bool:
        """
        Replace notes while the booking is still live.

        Returns False when the booking reached a terminal status first.
        """
        live = [BookingStatus.PENDING.value, BookingStatus.ACCEPTED.value]
        try:
            result = self.db.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status.in_(live))
                .values(notes=notes, updated_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating notes on booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to update booking notes: {str(e)}") from e

    def reload(self, booking: Booking) -> Booking:
        """Re-read a booking after a bulk UPDATE bypassed the identity map."""
        self.db.refresh(booking)
        return booking
