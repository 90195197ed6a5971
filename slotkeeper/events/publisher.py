"""Event publisher - delivers committed domain events to in-process subscribers."""
from datetime import datetime
import logging
import threading
from typing import Any, Callable, Dict, List, Protocol

logger = logging.getLogger(__name__)


class Event(Protocol):
    """Protocol for event types."""

    def to_dict(self) -> Dict[str, Any]:
        ...


Subscriber = Callable[[str, Dict[str, Any]], None]


class BookingEventPublisher:
    """
    Fan-out of booking events to registered subscribers.

    Services publish only after their transaction commits, so subscribers
    never see a change that was rolled back. A failing subscriber is logged
    and does not affect the others or the request that published.
    """

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, event: Event) -> None:
        """Deliver ``event`` to every subscriber as (event_type, payload)."""
        event_type = type(event).__name__
        payload = event.to_dict()

        # Convert datetime objects to ISO strings so payloads are JSON-ready
        for key, value in payload.items():
            if isinstance(value, datetime):
                payload[key] = value.isoformat()

        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event_type, dict(payload))
            except Exception:
                logger.exception(
                    "booking_event_subscriber_failed",
                    extra={"event_type": event_type, "booking_id": payload.get("booking_id")},
                )


_publisher = BookingEventPublisher()


def get_event_publisher() -> BookingEventPublisher:
    return _publisher
