"""
Post-commit event fan-out.
"""

from datetime import datetime, timezone
import logging

from slotkeeper.events import BookingCreated, BookingEventPublisher, BookingHidden

CREATED = BookingCreated(
    booking_id="b1",
    requester_id="r1",
    provider_id="p1",
    start_at=datetime(2026, 3, 5, 10, 0, tzinfo=timezone.utc),
    end_at=datetime(2026, 3, 5, 11, 0, tzinfo=timezone.utc),
    created_at=datetime(2026, 3, 4, 15, 0, tzinfo=timezone.utc),
)


def test_subscribers_receive_type_and_json_ready_payload():
    publisher = BookingEventPublisher()
    received = []
    publisher.subscribe(lambda event_type, payload: received.append((event_type, payload)))

    publisher.publish(CREATED)

    assert len(received) == 1
    event_type, payload = received[0]
    assert event_type == "BookingCreated"
    assert payload["booking_id"] == "b1"
    assert payload["start_at"] == "2026-03-05T10:00:00+00:00"


def test_failing_subscriber_does_not_stop_others(caplog):
    publisher = BookingEventPublisher()
    received = []

    def _broken(event_type, payload):
        raise RuntimeError("subscriber bug")

    publisher.subscribe(_broken)
    publisher.subscribe(lambda event_type, payload: received.append(event_type))

    with caplog.at_level(logging.ERROR):
        publisher.publish(BookingHidden(booking_id="b1", party_id="r1", role="requester"))

    assert received == ["BookingHidden"]
    assert "booking_event_subscriber_failed" in caplog.text


def test_unsubscribe():
    publisher = BookingEventPublisher()
    received = []
    unsubscribe = publisher.subscribe(lambda event_type, payload: received.append(event_type))

    unsubscribe()
    unsubscribe()  # second call is a no-op
    publisher.publish(CREATED)

    assert received == []


def test_each_subscriber_gets_its_own_payload_copy():
    publisher = BookingEventPublisher()
    seen = []

    def _mutating(event_type, payload):
        payload["booking_id"] = "changed"

    publisher.subscribe(_mutating)
    publisher.subscribe(lambda event_type, payload: seen.append(payload["booking_id"]))
    publisher.publish(CREATED)

    assert seen == ["b1"]
