# slotkeeper/schemas/booking.py
"""
Booking schemas for slotkeeper.

Request bodies accept the legacy field names older clients still send
(``sitterId`` / ``babysitterId`` for the provider, ``startISO`` / ``startTime``
for the interval) through validation aliases; the services only ever see
``provider_id``, ``start`` and ``end``.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, Field, field_validator

from ..core.enums import BookingDecision, BookingStatus, EarningsWindow, PartyRole
from ..models.booking import Booking
from .base import Money, RequestModel, StandardizedModel

NOTES_MAX_LENGTH = 2000


class BookingCreate(RequestModel):
    """Request a slot on a provider's calendar."""

    provider_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("provider_id", "providerId", "sitterId", "babysitterId"),
        description="Provider whose calendar is booked",
    )
    start: datetime = Field(
        ...,
        validation_alias=AliasChoices("start", "start_at", "startAt", "startISO", "startTime"),
        description="Interval start (ISO 8601; naive values are read as UTC)",
    )
    end: datetime = Field(
        ...,
        validation_alias=AliasChoices("end", "end_at", "endAt", "endISO", "endTime"),
        description="Interval end, exclusive",
    )
    notes: Optional[str] = Field(None, max_length=NOTES_MAX_LENGTH)


class BookingDecisionRequest(RequestModel):
    """Provider decision on a pending request."""

    decision: BookingDecision = Field(..., validation_alias=AliasChoices("decision", "status"))

    @field_validator("decision", mode="before")
    @classmethod
    def _accept_past_tense(cls, value: Any) -> Any:
        # older clients send the resulting status instead of the action
        if isinstance(value, str):
            normalized = value.strip().lower()
            return {"accepted": "accept", "declined": "decline"}.get(normalized, normalized)
        return value


class BookingNotesUpdate(RequestModel):
    notes: Optional[str] = Field(None, max_length=NOTES_MAX_LENGTH)


class BookingResponse(StandardizedModel):
    """A booking as seen by one of its parties."""

    id: str
    requester_id: str
    provider_id: str
    start_at: datetime
    end_at: datetime
    status: BookingStatus
    notes: Optional[str] = None
    rate_snapshot: Money
    duration_hours: Money
    total_price: Money
    created_at: datetime
    decided_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by_id: Optional[str] = None
    completed_at: Optional[datetime] = None
    viewer_role: Optional[PartyRole] = None
    hidden: bool = False

    @classmethod
    def from_booking(cls, booking: Booking, viewer_id: Optional[str] = None) -> "BookingResponse":
        response = cls.model_validate(booking)
        role = booking.role_of(viewer_id)
        return response.model_copy(
            update={
                "viewer_role": role.value if role else None,
                "hidden": booking.is_hidden_for(viewer_id) if viewer_id else False,
            }
        )


class BookingListResponse(StandardizedModel):
    items: List[BookingResponse]
    total: int


class HideBookingResponse(StandardizedModel):
    ok: bool = True
    booking_id: str


class EarningsRowResponse(StandardizedModel):
    booking_id: str
    requester_id: str
    ended_at: datetime
    hours: Money
    rate: Money
    amount: Money


class EarningsSummaryResponse(StandardizedModel):
    provider_id: str
    window: EarningsWindow
    range_start: Optional[datetime] = None
    range_end: Optional[datetime] = None
    jobs: int
    total_hours: Money
    total_earnings: Money
    avg_hourly: Money
    rows: List[EarningsRowResponse]
