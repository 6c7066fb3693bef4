"""Tests for listing endpoints and the availability check."""

import uuid
from datetime import date, timedelta

from conftest import make_listing
from httpx import AsyncClient

LISTING_BODY = {
    "title": "Stone cottage",
    "description": "Terrace, vineyard views.",
    "location": "Gordes, France",
    "price_per_night": "110.00",
    "max_guests": 3,
}


def _days(n: int) -> str:
    return (date.today() + timedelta(days=n)).isoformat()


class TestCreateListing:
    async def test_host_creates(self, client: AsyncClient, host, host_headers):
        response = await client.post("/api/v1/listings", json=LISTING_BODY, headers=host_headers)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["host_id"] == str(host.id)
        assert data["status"] == "active"
        assert float(data["price_per_night"]) == 110.0

    async def test_guest_forbidden(self, client: AsyncClient, guest_headers):
        response = await client.post("/api/v1/listings", json=LISTING_BODY, headers=guest_headers)
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    async def test_negative_price(self, client: AsyncClient, host_headers):
        response = await client.post(
            "/api/v1/listings", json={**LISTING_BODY, "price_per_night": "-1"}, headers=host_headers
        )
        assert response.status_code == 400


class TestBrowse:
    async def test_public_list_shows_active_only(self, client: AsyncClient, repos, host, listing):
        await make_listing(repos, host, status="inactive")
        response = await client.get("/api/v1/listings")
        assert response.status_code == 200
        page = response.json()["data"]
        assert page["total"] == 1
        assert page["items"][0]["id"] == str(listing.id)

    async def test_host_sees_all_own(self, client: AsyncClient, repos, host, host_headers, other_host, listing):
        await make_listing(repos, host, status="inactive")
        await make_listing(repos, other_host)
        response = await client.get("/api/v1/listings/host/my-listings", headers=host_headers)
        assert response.json()["data"]["total"] == 2

    async def test_get_one(self, client: AsyncClient, listing):
        response = await client.get(f"/api/v1/listings/{listing.id}")
        assert response.status_code == 200
        assert response.json()["data"]["title"] == listing.title

    async def test_get_unknown(self, client: AsyncClient):
        response = await client.get(f"/api/v1/listings/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["code"] == "listing_not_found"

    async def test_malformed_id(self, client: AsyncClient):
        response = await client.get("/api/v1/listings/not-a-uuid")
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"


class TestAvailability:
    async def test_free_then_taken(self, client: AsyncClient, guest_headers, listing):
        params = {"start": _days(20), "end": _days(25)}
        free = await client.get(f"/api/v1/listings/{listing.id}/availability", params=params)
        assert free.status_code == 200
        assert free.json()["data"]["available"] is True

        await client.post(
            "/api/v1/bookings",
            json={"listing_id": str(listing.id), "start_date": _days(22), "end_date": _days(24)},
            headers=guest_headers,
        )

        taken = await client.get(f"/api/v1/listings/{listing.id}/availability", params=params)
        assert taken.json()["data"]["available"] is False
        turnover = await client.get(
            f"/api/v1/listings/{listing.id}/availability", params={"start": _days(24), "end": _days(26)}
        )
        assert turnover.json()["data"]["available"] is True

    async def test_inverted_range(self, client: AsyncClient, listing):
        response = await client.get(
            f"/api/v1/listings/{listing.id}/availability", params={"start": _days(25), "end": _days(20)}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_range"

    async def test_unknown_listing(self, client: AsyncClient):
        response = await client.get(
            f"/api/v1/listings/{uuid.uuid4()}/availability", params={"start": _days(20), "end": _days(25)}
        )
        assert response.status_code == 404

    async def test_booked_dates(self, client: AsyncClient, guest_headers, listing):
        await client.post(
            "/api/v1/bookings",
            json={"listing_id": str(listing.id), "start_date": _days(22), "end_date": _days(24)},
            headers=guest_headers,
        )
        response = await client.get(f"/api/v1/listings/{listing.id}/booked-dates")
        assert response.json()["data"] == [{"start_date": _days(22), "end_date": _days(24)}]


class TestUpdateDelete:
    async def test_owner_updates(self, client: AsyncClient, host_headers, listing):
        response = await client.put(
            f"/api/v1/listings/{listing.id}", json={"max_guests": 6}, headers=host_headers
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["max_guests"] == 6
        assert data["title"] == listing.title

    async def test_other_host_cannot_update(self, client: AsyncClient, other_host_headers, listing):
        response = await client.put(
            f"/api/v1/listings/{listing.id}", json={"title": "Mine now"}, headers=other_host_headers
        )
        assert response.status_code == 403

    async def test_deactivated_listing_refuses_bookings(
        self, client: AsyncClient, host_headers, guest_headers, listing
    ):
        await client.put(f"/api/v1/listings/{listing.id}", json={"status": "inactive"}, headers=host_headers)
        response = await client.post(
            "/api/v1/bookings",
            json={"listing_id": str(listing.id), "start_date": _days(10), "end_date": _days(12)},
            headers=guest_headers,
        )
        assert response.status_code == 404

    async def test_delete_cascades_bookings(self, client: AsyncClient, store, host_headers, guest_headers, listing):
        await client.post(
            "/api/v1/bookings",
            json={"listing_id": str(listing.id), "start_date": _days(10), "end_date": _days(12)},
            headers=guest_headers,
        )
        response = await client.delete(f"/api/v1/listings/{listing.id}", headers=host_headers)
        assert response.status_code == 200
        assert store.bookings == {}
        gone = await client.get(f"/api/v1/listings/{listing.id}")
        assert gone.status_code == 404

    async def test_guest_cannot_delete(self, client: AsyncClient, guest_headers, listing):
        response = await client.delete(f"/api/v1/listings/{listing.id}", headers=guest_headers)
        assert response.status_code == 403
