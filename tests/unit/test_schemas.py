"""
Request schema aliases and response serialisation.
"""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import ValidationError
import pytest

from slotkeeper.core.enums import BookingDecision, BookingStatus
from slotkeeper.models.booking import Booking
from slotkeeper.schemas.booking import BookingCreate, BookingDecisionRequest, BookingResponse
from slotkeeper.schemas.review import ReviewCreate

PROVIDER = "01J00000000000000000000PVA"
REQUESTER = "01J00000000000000000000RQA"


class TestBookingCreateAliases:
    @pytest.mark.parametrize("provider_key", ["provider_id", "providerId", "sitterId", "babysitterId"])
    def test_provider_aliases(self, provider_key):
        body = {provider_key: PROVIDER, "start": "2026-03-05T10:00:00Z", "end": "2026-03-05T11:00:00Z"}
        assert BookingCreate.model_validate(body).provider_id == PROVIDER

    @pytest.mark.parametrize(
        "start_key,end_key",
        [("startAt", "endAt"), ("startISO", "endISO"), ("startTime", "endTime"), ("start_at", "end_at")],
    )
    def test_interval_aliases(self, start_key, end_key):
        body = {
            "providerId": PROVIDER,
            start_key: "2026-03-05T10:00:00Z",
            end_key: "2026-03-05T11:00:00+00:00",
        }
        parsed = BookingCreate.model_validate(body)
        assert parsed.start == datetime(2026, 3, 5, 10, 0, tzinfo=timezone.utc)
        assert parsed.end == datetime(2026, 3, 5, 11, 0, tzinfo=timezone.utc)

    def test_missing_end_rejected(self):
        with pytest.raises(ValidationError):
            BookingCreate.model_validate({"providerId": PROVIDER, "start": "2026-03-05T10:00:00Z"})

    def test_notes_are_stripped_and_extra_keys_ignored(self):
        parsed = BookingCreate.model_validate(
            {
                "providerId": PROVIDER,
                "start": "2026-03-05T10:00:00Z",
                "end": "2026-03-05T11:00:00Z",
                "notes": "  bring snacks  ",
                "legacyField": 1,
            }
        )
        assert parsed.notes == "bring snacks"


class TestDecision:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ({"decision": "accept"}, BookingDecision.ACCEPT),
            ({"decision": "DECLINE"}, BookingDecision.DECLINE),
            ({"status": "accepted"}, BookingDecision.ACCEPT),
            ({"status": "declined"}, BookingDecision.DECLINE),
        ],
    )
    def test_decision_values(self, raw, expected):
        assert BookingDecisionRequest.model_validate(raw).decision is expected

    def test_unknown_decision_rejected(self):
        with pytest.raises(ValidationError):
            BookingDecisionRequest.model_validate({"decision": "maybe"})


def test_review_comment_aliases():
    parsed = ReviewCreate.model_validate({"bookingId": "b", "rating": 5, "text": "great"})
    assert parsed.booking_id == "b"
    assert parsed.comment == "great"


def test_booking_response_for_viewer():
    booking = Booking(
        id="01J00000000000000000000BKA",
        requester_id=REQUESTER,
        provider_id=PROVIDER,
        start_at=datetime(2026, 3, 5, 10, 0, tzinfo=timezone.utc),
        end_at=datetime(2026, 3, 5, 11, 40, tzinfo=timezone.utc),
        status=BookingStatus.PENDING.value,
        rate_snapshot=Decimal("100.00"),
        duration_hours=Decimal("1.75"),
        total_price=Decimal("175.00"),
        hidden_for_requester=True,
        hidden_for_provider=False,
        created_at=datetime(2026, 3, 4, 15, 0, tzinfo=timezone.utc),
    )

    as_requester = BookingResponse.from_booking(booking, REQUESTER).model_dump(mode="json")
    as_provider = BookingResponse.from_booking(booking, PROVIDER).model_dump(mode="json")

    assert as_requester["viewer_role"] == "requester"
    assert as_requester["hidden"] is True
    assert as_provider["viewer_role"] == "provider"
    assert as_provider["hidden"] is False
    assert as_provider["total_price"] == 175.0
    assert as_provider["duration_hours"] == 1.75
    assert as_provider["status"] == "pending"
