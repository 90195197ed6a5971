"""Booking domain events."""
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class BookingCreated:
    """Fired after a booking is successfully created."""

    booking_id: str
    requester_id: str
    provider_id: str
    start_at: datetime
    end_at: datetime
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingStatusChanged:
    """Fired after a lifecycle transition commits."""

    booking_id: str
    requester_id: str
    provider_id: str
    previous_status: str
    new_status: str
    actor_id: str  # party that triggered the change
    changed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingHidden:
    """Fired after a party archives a booking from its own view."""

    booking_id: str
    party_id: str
    role: str  # 'requester' or 'provider'

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReviewCreated:
    """Fired after a review is stored."""

    review_id: str
    booking_id: str
    requester_id: str
    provider_id: str
    rating: int
    comment: Optional[str]
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
