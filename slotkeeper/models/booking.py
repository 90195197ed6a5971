# slotkeeper/models/booking.py
"""
Booking model.

A booking is a provider commitment over the half-open interval
[start_at, end_at). Bookings are self-contained: the provider's rate and the
computed duration and total are snapshotted at creation and never rewritten,
so later rate changes cannot alter history. Rows are never deleted; each
party archives its own view through the hidden_for_* flags.
"""

from datetime import datetime, timezone
import logging
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    Index,
    Numeric,
    String,
    Text,
)

from ..core.enums import BookingStatus, PartyRole
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    """Slot booked by a requester on a provider's calendar."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, default=generate_ulid)

    requester_id = Column(String(26), nullable=False, index=True)
    provider_id = Column(String(26), nullable=False)

    # Interval (UTC) plus the provider-local day it starts on
    start_at = Column(UTCDateTime, nullable=False)
    end_at = Column(UTCDateTime, nullable=False)
    booking_date = Column(Date, nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    notes = Column(Text, nullable=True)

    # Price snapshot
    rate_snapshot = Column(Numeric(10, 2), nullable=False)
    duration_hours = Column(Numeric(6, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    # Per-party archive flags
    hidden_for_requester = Column(Boolean, nullable=False, default=False)
    hidden_for_provider = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=_utcnow)
    decided_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)
    cancelled_by_id = Column(String(26), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'cancelled', 'completed')",
            name="ck_bookings_status",
        ),
        CheckConstraint("end_at > start_at", name="ck_bookings_time_order"),
        CheckConstraint("rate_snapshot >= 0", name="ck_bookings_rate_non_negative"),
        CheckConstraint("duration_hours >= 0", name="ck_bookings_duration_non_negative"),
        CheckConstraint("total_price >= 0", name="ck_bookings_price_non_negative"),
        Index("ix_bookings_provider_date_status", "provider_id", "booking_date", "status"),
        Index("ix_bookings_provider_status_start", "provider_id", "status", "start_at"),
        Index("ix_bookings_requester_status_end", "requester_id", "status", "end_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Booking {self.id}: requester={self.requester_id}, "
            f"provider={self.provider_id}, {self.start_at}-{self.end_at}, status={self.status}>"
        )

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)

    def role_of(self, party_id: Optional[str]) -> Optional[PartyRole]:
        """Which side of this booking ``party_id`` is on, if any."""
        if party_id is None:
            return None
        if party_id == self.provider_id:
            return PartyRole.PROVIDER
        if party_id == self.requester_id:
            return PartyRole.REQUESTER
        return None

    def is_party(self, party_id: Optional[str]) -> bool:
        return self.role_of(party_id) is not None

    def is_hidden_for(self, party_id: str) -> bool:
        role = self.role_of(party_id)
        if role is PartyRole.PROVIDER:
            return bool(self.hidden_for_provider)
        if role is PartyRole.REQUESTER:
            return bool(self.hidden_for_requester)
        return False
