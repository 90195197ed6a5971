# slotkeeper/core/enums.py
"""
Core enums for the scheduling service.

Values are stored verbatim in the database and exposed on the wire,
so they must stay lowercase and stable.
"""

from enum import Enum


class PartyRole(str, Enum):
    """The side a party plays on a booking."""

    REQUESTER = "requester"
    PROVIDER = "provider"


class BookingStatus(str, Enum):
    """Canonical booking status, shared by both parties."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @classmethod
    def active(cls) -> tuple["BookingStatus", ...]:
        """Statuses that hold the provider's calendar."""
        return (cls.PENDING, cls.ACCEPTED)

    @classmethod
    def terminal(cls) -> tuple["BookingStatus", ...]:
        return (cls.DECLINED, cls.CANCELLED, cls.COMPLETED)

    @property
    def is_terminal(self) -> bool:
        return self in BookingStatus.terminal()


class BookingAction(str, Enum):
    """Lifecycle actions a party can take on a booking."""

    ACCEPT = "accept"
    DECLINE = "decline"
    CANCEL = "cancel"
    COMPLETE = "complete"


class BookingDecision(str, Enum):
    """Provider decision on a pending request."""

    ACCEPT = "accept"
    DECLINE = "decline"

    @property
    def action(self) -> BookingAction:
        return BookingAction(self.value)


class EarningsWindow(str, Enum):
    """Reporting windows for provider earnings."""

    THIS_WEEK = "this_week"
    LAST_WEEK = "last_week"
    THIS_MONTH = "this_month"
    ALL_TIME = "all_time"
