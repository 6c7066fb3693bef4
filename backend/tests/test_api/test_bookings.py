"""Tests for booking endpoints."""

import uuid
from datetime import date, timedelta

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _future_dates(offset_start: int = 30, nights: int = 5) -> tuple[str, str]:
    """Return a (start, end) pair safely in the future as ISO strings."""
    start = date.today() + timedelta(days=offset_start)
    end = start + timedelta(days=nights)
    return start.isoformat(), end.isoformat()


async def _book(client: AsyncClient, headers: dict, listing_id, offset: int = 30, nights: int = 5, guests: int = 2):
    start, end = _future_dates(offset, nights)
    return await client.post(
        "/api/v1/bookings",
        json={"listing_id": str(listing_id), "start_date": start, "end_date": end, "num_guests": guests},
        headers=headers,
    )


# ---------------------------------------------------------------------------
# POST /api/v1/bookings
# ---------------------------------------------------------------------------


class TestCreateBooking:
    async def test_create_success(self, client: AsyncClient, guest, guest_headers, listing) -> None:
        start, end = _future_dates(30, 5)
        response = await _book(client, guest_headers, listing.id)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["listing_id"] == str(listing.id)
        assert data["guest_id"] == str(guest.id)
        assert data["host_id"] == str(listing.host_id)
        assert data["start_date"] == start
        assert data["end_date"] == end
        assert data["status"] == "pending"
        assert float(data["total_price"]) == 500.00

    async def test_overlap_returns_409_with_reselect(
        self, client: AsyncClient, guest_headers, other_guest_headers, listing
    ) -> None:
        await _book(client, guest_headers, listing.id, offset=30, nights=5)
        response = await _book(client, other_guest_headers, listing.id, offset=32, nights=5)
        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "message": "Dates conflict with an existing booking",
            "code": "conflict",
            "retry": "reselect",
        }

    async def test_back_to_back_allowed(self, client: AsyncClient, guest_headers, other_guest_headers, listing) -> None:
        first = await _book(client, guest_headers, listing.id, offset=30, nights=5)
        second = await _book(client, other_guest_headers, listing.id, offset=35, nights=3)
        assert first.status_code == 201
        assert second.status_code == 201

    async def test_end_before_start(self, client: AsyncClient, guest_headers, listing) -> None:
        start, end = _future_dates(30, 5)
        response = await client.post(
            "/api/v1/bookings",
            json={"listing_id": str(listing.id), "start_date": end, "end_date": start},
            headers=guest_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_range"

    async def test_past_start(self, client: AsyncClient, guest_headers, listing) -> None:
        response = await _book(client, guest_headers, listing.id, offset=-3, nights=5)
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_range"

    async def test_too_many_guests(self, client: AsyncClient, guest_headers, listing) -> None:
        response = await _book(client, guest_headers, listing.id, guests=10)
        assert response.status_code == 400
        assert response.json()["code"] == "capacity_exceeded"

    async def test_zero_guests_is_validation_error(self, client: AsyncClient, guest_headers, listing) -> None:
        response = await _book(client, guest_headers, listing.id, guests=0)
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    async def test_unknown_listing(self, client: AsyncClient, guest_headers) -> None:
        response = await _book(client, guest_headers, uuid.uuid4())
        assert response.status_code == 404
        assert response.json()["code"] == "listing_not_found"

    async def test_requires_auth(self, client: AsyncClient, listing) -> None:
        response = await _book(client, {}, listing.id)
        assert response.status_code == 401

    async def test_host_cannot_book_own_listing(self, client: AsyncClient, host_headers, listing) -> None:
        response = await _book(client, host_headers, listing.id)
        assert response.status_code == 403


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


class TestReadBookings:
    async def test_my_bookings(self, client: AsyncClient, guest_headers, other_guest_headers, listing) -> None:
        await _book(client, guest_headers, listing.id, offset=30)
        await _book(client, other_guest_headers, listing.id, offset=60)

        response = await client.get("/api/v1/bookings/my-bookings", headers=guest_headers)

        assert response.status_code == 200
        page = response.json()["data"]
        assert page["total"] == 1
        assert len(page["items"]) == 1

    async def test_host_bookings_with_listing_filter(
        self, client: AsyncClient, guest_headers, host_headers, listing
    ) -> None:
        await _book(client, guest_headers, listing.id)
        response = await client.get(
            "/api/v1/bookings/host/bookings", params={"listing_id": str(listing.id)}, headers=host_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["total"] == 1

    async def test_guest_cannot_list_host_bookings(self, client: AsyncClient, guest_headers) -> None:
        response = await client.get("/api/v1/bookings/host/bookings", headers=guest_headers)
        assert response.status_code == 403

    async def test_get_visible_to_parties_only(
        self, client: AsyncClient, guest_headers, host_headers, admin_headers, other_guest_headers, listing
    ) -> None:
        booking_id = (await _book(client, guest_headers, listing.id)).json()["data"]["id"]

        for headers in (guest_headers, host_headers, admin_headers):
            response = await client.get(f"/api/v1/bookings/{booking_id}", headers=headers)
            assert response.status_code == 200

        response = await client.get(f"/api/v1/bookings/{booking_id}", headers=other_guest_headers)
        assert response.status_code == 403

    async def test_get_unknown(self, client: AsyncClient, guest_headers) -> None:
        response = await client.get(f"/api/v1/bookings/{uuid.uuid4()}", headers=guest_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "booking_not_found"


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------


class TestBookingLifecycle:
    async def test_host_confirms_then_completes(self, client: AsyncClient, guest_headers, host_headers, listing):
        booking_id = (await _book(client, guest_headers, listing.id)).json()["data"]["id"]

        confirmed = await client.patch(
            f"/api/v1/bookings/{booking_id}/status",
            json={"status": "confirmed", "host_notes": "Key under the mat"},
            headers=host_headers,
        )
        assert confirmed.status_code == 200
        assert confirmed.json()["data"]["status"] == "confirmed"
        assert confirmed.json()["data"]["host_notes"] == "Key under the mat"

        completed = await client.patch(
            f"/api/v1/bookings/{booking_id}/status", json={"status": "completed"}, headers=host_headers
        )
        assert completed.json()["data"]["status"] == "completed"

    async def test_guest_cannot_use_status_endpoint(self, client: AsyncClient, guest_headers, listing):
        booking_id = (await _book(client, guest_headers, listing.id)).json()["data"]["id"]
        response = await client.patch(
            f"/api/v1/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=guest_headers
        )
        assert response.status_code == 403

    async def test_other_host_cannot_confirm(self, client: AsyncClient, guest_headers, other_host_headers, listing):
        booking_id = (await _book(client, guest_headers, listing.id)).json()["data"]["id"]
        response = await client.patch(
            f"/api/v1/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=other_host_headers
        )
        assert response.status_code == 403

    async def test_guest_cancels_and_dates_reopen(
        self, client: AsyncClient, guest_headers, other_guest_headers, listing
    ):
        booking_id = (await _book(client, guest_headers, listing.id)).json()["data"]["id"]

        response = await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=guest_headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

        retry = await _book(client, other_guest_headers, listing.id)
        assert retry.status_code == 201

    async def test_cancel_twice_is_illegal(self, client: AsyncClient, guest_headers, listing):
        booking_id = (await _book(client, guest_headers, listing.id)).json()["data"]["id"]
        await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=guest_headers)

        response = await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=guest_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "illegal_transition"
        assert "retry" not in response.json()

    async def test_stranger_cannot_cancel(self, client: AsyncClient, guest_headers, other_guest_headers, listing):
        booking_id = (await _book(client, guest_headers, listing.id)).json()["data"]["id"]
        response = await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=other_guest_headers)
        assert response.status_code == 403

    async def test_invalid_status_value(self, client: AsyncClient, guest_headers, host_headers, listing):
        booking_id = (await _book(client, guest_headers, listing.id)).json()["data"]["id"]
        response = await client.patch(
            f"/api/v1/bookings/{booking_id}/status", json={"status": "archived"}, headers=host_headers
        )
        assert response.status_code == 400
