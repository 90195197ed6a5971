# tests/routes/test_bookings_routes.py
"""
HTTP surface of /api/v1/bookings.
"""

from datetime import datetime, timedelta, timezone

from slotkeeper.core.enums import BookingStatus
from slotkeeper.core.exceptions import SchedulingContentionException
from slotkeeper.services.booking_service import BookingService

BASE = "/api/v1/bookings"
T = datetime(2026, 3, 5, 10, 0, tzinfo=timezone.utc)
HOUR = timedelta(hours=1)


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class TestCreate:
    def test_create_booking(self, client, auth_headers, requester, provider):
        response = client.post(
            BASE,
            json={
                "provider_id": provider.id,
                "start": T.isoformat(),
                "end": (T + HOUR).isoformat(),
                "notes": "first lesson",
            },
            headers=auth_headers(requester),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["requester_id"] == requester.id
        assert data["provider_id"] == provider.id
        assert data["total_price"] == 100.0
        assert data["rate_snapshot"] == 100.0
        assert data["duration_hours"] == 1.0
        assert data["viewer_role"] == "requester"
        assert data["hidden"] is False
        assert _parse(data["start_at"]) == T

    def test_create_accepts_legacy_field_names(self, client, auth_headers, requester, provider):
        response = client.post(
            BASE,
            json={
                "sitterId": provider.id,
                "startISO": "2026-03-05T10:00:00Z",
                "endISO": "2026-03-05T11:30:00Z",
            },
            headers=auth_headers(requester),
        )

        assert response.status_code == 201
        assert response.json()["total_price"] == 150.0

    def test_missing_identity_is_401(self, client, provider):
        response = client.post(
            BASE,
            json={"provider_id": provider.id, "start": T.isoformat(), "end": (T + HOUR).isoformat()},
        )

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "UNAUTHENTICATED"
        assert body["status"] == 401

    def test_malformed_identity_is_400(self, client, provider):
        response = client.get(BASE, headers={"X-Party-Id": "not-a-ulid"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PARTY_ID"

    def test_body_validation_is_422(self, client, auth_headers, requester):
        response = client.post(BASE, json={"start": T.isoformat()}, headers=auth_headers(requester))

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "validation_error"
        assert body["errors"]

    def test_reversed_interval_is_400(self, client, auth_headers, requester, provider):
        response = client.post(
            BASE,
            json={"provider_id": provider.id, "start": (T + HOUR).isoformat(), "end": T.isoformat()},
            headers=auth_headers(requester),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INTERVAL"

    def test_overlap_is_409_and_retryable(
        self, client, auth_headers, booking_factory, requester, other_requester, provider
    ):
        existing = booking_factory(requester, provider, T, T + HOUR, status=BookingStatus.ACCEPTED)

        response = client.post(
            BASE,
            json={
                "provider_id": provider.id,
                "start": (T + timedelta(minutes=30)).isoformat(),
                "end": (T + 2 * HOUR).isoformat(),
            },
            headers=auth_headers(other_requester),
        )

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "SCHEDULING_CONFLICT"
        assert body["retryable"] is True
        assert body["title"] == "Conflict"
        assert body["instance"] == BASE
        assert body["errors"]["conflicts"][0]["booking_id"] == existing.id

    def test_lock_contention_is_503_with_retry_after(
        self, client, auth_headers, requester, provider, monkeypatch
    ):
        def _busy(self, *args, **kwargs):
            raise SchedulingContentionException(provider.id, 10.0)

        monkeypatch.setattr(BookingService, "create_booking", _busy)

        response = client.post(
            BASE,
            json={"provider_id": provider.id, "start": T.isoformat(), "end": (T + HOUR).isoformat()},
            headers=auth_headers(requester),
        )

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        assert response.json()["code"] == "SCHEDULING_CONTENTION"
        assert response.json()["retryable"] is True


class TestReadAndLifecycle:
    def test_get_booking_for_parties_only(
        self, client, auth_headers, booking_factory, requester, other_requester, provider
    ):
        booking = booking_factory(requester, provider, T, T + HOUR)

        as_provider = client.get(f"{BASE}/{booking.id}", headers=auth_headers(provider))
        assert as_provider.status_code == 200
        assert as_provider.json()["viewer_role"] == "provider"

        as_stranger = client.get(f"{BASE}/{booking.id}", headers=auth_headers(other_requester))
        assert as_stranger.status_code == 404
        assert as_stranger.json()["code"] == "BOOKING_NOT_FOUND"

    def test_invalid_booking_id_in_path(self, client, auth_headers, requester):
        response = client.get(f"{BASE}/nope", headers=auth_headers(requester))
        assert response.status_code == 422

    def test_provider_accepts_with_past_tense_status(
        self, client, auth_headers, booking_factory, requester, provider
    ):
        booking = booking_factory(requester, provider, T, T + HOUR)

        response = client.post(
            f"{BASE}/{booking.id}/decision",
            json={"status": "accepted"},
            headers=auth_headers(provider),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "accepted"
        assert response.json()["decided_at"] is not None

    def test_requester_cannot_decide(self, client, auth_headers, booking_factory, requester, provider):
        booking = booking_factory(requester, provider, T, T + HOUR)

        response = client.post(
            f"{BASE}/{booking.id}/decision",
            json={"decision": "decline"},
            headers=auth_headers(requester),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_unknown_decision_is_422(self, client, auth_headers, booking_factory, requester, provider):
        booking = booking_factory(requester, provider, T, T + HOUR)

        response = client.post(
            f"{BASE}/{booking.id}/decision",
            json={"decision": "maybe"},
            headers=auth_headers(provider),
        )

        assert response.status_code == 422

    def test_cancel(self, client, auth_headers, booking_factory, requester, provider):
        booking = booking_factory(requester, provider, T, T + HOUR, status=BookingStatus.ACCEPTED)

        response = client.post(f"{BASE}/{booking.id}/cancel", headers=auth_headers(requester))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "cancelled"
        assert data["cancelled_by_id"] == requester.id

    def test_complete_too_early_is_422(
        self, client, auth_headers, booking_factory, requester, provider
    ):
        booking = booking_factory(requester, provider, T, T + HOUR, status=BookingStatus.ACCEPTED)

        response = client.post(f"{BASE}/{booking.id}/complete", headers=auth_headers(provider))

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "ILLEGAL_TRANSITION"
        assert body["errors"]["current_status"] == "accepted"
        assert body["retryable"] is False

    def test_complete_after_end(
        self, client, auth_headers, booking_factory, requester, provider, clock
    ):
        booking = booking_factory(requester, provider, T, T + HOUR, status=BookingStatus.ACCEPTED)
        clock.set(T + 2 * HOUR)

        response = client.post(f"{BASE}/{booking.id}/complete", headers=auth_headers(provider))

        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    def test_update_notes(self, client, auth_headers, booking_factory, requester, provider):
        booking = booking_factory(requester, provider, T, T + HOUR)

        response = client.patch(
            f"{BASE}/{booking.id}", json={"notes": "  gate code 1234 "}, headers=auth_headers(provider)
        )

        assert response.status_code == 200
        assert response.json()["notes"] == "gate code 1234"


class TestListsAndHiding:
    def test_list_filters(self, client, auth_headers, booking_factory, requester, provider):
        accepted = booking_factory(
            requester, provider, T + 2 * HOUR, T + 3 * HOUR, status=BookingStatus.ACCEPTED
        )
        booking_factory(requester, provider, T, T + HOUR)

        everything = client.get(BASE, headers=auth_headers(requester)).json()
        assert everything["total"] == 2

        filtered = client.get(
            BASE, params={"status": "accepted", "role": "requester"}, headers=auth_headers(requester)
        ).json()
        assert [item["id"] for item in filtered["items"]] == [accepted.id]

    def test_hide_via_delete_and_post(
        self, client, auth_headers, booking_factory, requester, provider
    ):
        past = booking_factory(
            requester, provider, T - 48 * HOUR, T - 47 * HOUR, status=BookingStatus.COMPLETED
        )

        deleted = client.delete(f"{BASE}/{past.id}", headers=auth_headers(requester))
        assert deleted.status_code == 200
        assert deleted.json() == {"ok": True, "booking_id": past.id}

        hidden_again = client.post(f"{BASE}/{past.id}/hide", headers=auth_headers(requester))
        assert hidden_again.status_code == 200

        assert client.get(BASE, headers=auth_headers(requester)).json()["total"] == 0
        provider_view = client.get(BASE, headers=auth_headers(provider)).json()
        assert provider_view["total"] == 1
        assert provider_view["items"][0]["status"] == "completed"

        detail = client.get(f"{BASE}/{past.id}", headers=auth_headers(requester)).json()
        assert detail["hidden"] is True

    def test_live_booking_cannot_be_hidden(
        self, client, auth_headers, booking_factory, requester, provider
    ):
        booking = booking_factory(requester, provider, T, T + HOUR, status=BookingStatus.ACCEPTED)

        response = client.delete(f"{BASE}/{booking.id}", headers=auth_headers(requester))

        assert response.status_code == 422
        assert response.json()["code"] == "NOT_HIDEABLE"

    def test_upcoming(self, client, auth_headers, booking_factory, requester, provider):
        soon = booking_factory(requester, provider, T, T + HOUR, status=BookingStatus.ACCEPTED)
        booking_factory(requester, provider, T + 2 * HOUR, T + 3 * HOUR)

        response = client.get(f"{BASE}/upcoming", headers=auth_headers(requester))

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["items"]] == [soon.id]

        too_many = client.get(f"{BASE}/upcoming", params={"limit": 51}, headers=auth_headers(requester))
        assert too_many.status_code == 422


class TestEarnings:
    def test_earnings_summary_and_csv(
        self, client, auth_headers, booking_factory, requester, provider
    ):
        done = booking_factory(
            requester,
            provider,
            datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
            datetime(2026, 3, 2, 11, 0, tzinfo=timezone.utc),
            status=BookingStatus.COMPLETED,
        )

        summary = client.get(f"{BASE}/earnings", headers=auth_headers(provider))
        assert summary.status_code == 200
        data = summary.json()
        assert data["window"] == "this_week"
        assert data["jobs"] == 1
        assert data["total_earnings"] == 200.0
        assert data["avg_hourly"] == 100.0
        assert data["rows"][0]["booking_id"] == done.id

        last_week = client.get(
            f"{BASE}/earnings", params={"window": "last_week"}, headers=auth_headers(provider)
        ).json()
        assert last_week["jobs"] == 0

        csv_response = client.get(f"{BASE}/earnings.csv", headers=auth_headers(provider))
        assert csv_response.status_code == 200
        assert csv_response.headers["content-type"].startswith("text/csv")
        assert "earnings-this_week.csv" in csv_response.headers["content-disposition"]
        lines = csv_response.text.splitlines()
        assert lines[0] == "Date,Requester,Hours,Rate,Amount"
        assert lines[1].endswith(",2.00,100.00,200.00")

    def test_unknown_window_is_422(self, client, auth_headers, provider):
        response = client.get(
            f"{BASE}/earnings", params={"window": "fortnight"}, headers=auth_headers(provider)
        )
        assert response.status_code == 422
