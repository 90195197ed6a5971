from .booking_events import BookingCreated, BookingHidden, BookingStatusChanged, ReviewCreated
from .publisher import BookingEventPublisher, get_event_publisher

__all__ = [
    "BookingCreated",
    "BookingEventPublisher",
    "BookingHidden",
    "BookingStatusChanged",
    "ReviewCreated",
    "get_event_publisher",
]
