"""
Per-party visibility of bookings.

Hiding archives a booking for one party only: it flips that party's flag
and leaves status, the other party's flag, and the row itself untouched.
A booking can be hidden once it is finished (terminal status) or its end
time has passed.
"""

from datetime import datetime

from ..core.enums import PartyRole
from ..core.exceptions import ForbiddenException, NotHideableException
from ..core.timezone_utils import ensure_utc
from ..models.booking import Booking


def is_hideable(booking: Booking, now: datetime) -> bool:
    return booking.status_enum.is_terminal or ensure_utc(now) > booking.end_at


def hidden_flag_for(role: PartyRole) -> str:
    """Column holding the archive flag for ``role``."""
    return "hidden_for_provider" if role is PartyRole.PROVIDER else "hidden_for_requester"


def check_hide(booking: Booking, party_id: str, now: datetime) -> PartyRole:
    """
    Validate a hide request and return the caller's role on the booking.

    Raises:
        ForbiddenException: caller is not a party to the booking
        NotHideableException: booking is still live
    """
    role = booking.role_of(party_id)
    if role is None:
        raise ForbiddenException(
            "Not allowed to hide this booking",
            code="FORBIDDEN",
            details={"booking_id": booking.id},
        )
    if not is_hideable(booking, now):
        raise NotHideableException(booking.id, booking.status)
    return role
