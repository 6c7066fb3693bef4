"""Tests for review endpoints."""

import uuid
from datetime import date, timedelta

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


def _days(n: int) -> str:
    return (date.today() + timedelta(days=n)).isoformat()


@pytest.fixture
async def stay_id(client: AsyncClient, guest_headers, host_headers, listing) -> str:
    """A booking by ``guest`` that the host has confirmed and completed."""
    response = await client.post(
        "/api/v1/bookings",
        json={"listing_id": str(listing.id), "start_date": _days(5), "end_date": _days(8)},
        headers=guest_headers,
    )
    assert response.status_code == 201, response.text
    booking_id = response.json()["data"]["id"]
    for target in ("confirmed", "completed"):
        response = await client.patch(
            f"/api/v1/bookings/{booking_id}/status", json={"status": target}, headers=host_headers
        )
        assert response.status_code == 200, response.text
    return booking_id


@pytest.fixture
async def review_id(client: AsyncClient, guest_headers, stay_id) -> str:
    response = await client.post(
        "/api/v1/reviews",
        json={"booking_id": stay_id, "rating": 4, "comment": "Great breakfast."},
        headers=guest_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]


class TestCreate:
    async def test_create(self, client: AsyncClient, guest, guest_headers, listing, stay_id):
        response = await client.post(
            "/api/v1/reviews",
            json={
                "booking_id": stay_id,
                "rating": 5,
                "comment": "Would come back.",
                "ratings": {"cleanliness": 5, "location": 4},
            },
            headers=guest_headers,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["listing_id"] == str(listing.id)
        assert data["guest_id"] == str(guest.id)
        assert data["ratings"] == {"cleanliness": 5, "location": 4}
        assert data["is_flagged"] is False

    async def test_duplicate_returns_409(self, client: AsyncClient, guest_headers, stay_id, review_id):
        response = await client.post(
            "/api/v1/reviews",
            json={"booking_id": stay_id, "rating": 2, "comment": "Second thoughts."},
            headers=guest_headers,
        )
        assert response.status_code == 409
        assert response.json()["code"] == "already_reviewed"

    async def test_unfinished_stay_returns_409(self, client: AsyncClient, guest_headers, listing):
        booked = await client.post(
            "/api/v1/bookings",
            json={"listing_id": str(listing.id), "start_date": _days(20), "end_date": _days(22)},
            headers=guest_headers,
        )
        response = await client.post(
            "/api/v1/reviews",
            json={"booking_id": booked.json()["data"]["id"], "rating": 5, "comment": "Soon!"},
            headers=guest_headers,
        )
        assert response.status_code == 409
        assert response.json()["code"] == "stay_not_completed"

    async def test_rating_out_of_range(self, client: AsyncClient, guest_headers, stay_id):
        response = await client.post(
            "/api/v1/reviews",
            json={"booking_id": stay_id, "rating": 6, "comment": "Off the scale."},
            headers=guest_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    async def test_requires_login(self, client: AsyncClient, stay_id):
        response = await client.post(
            "/api/v1/reviews", json={"booking_id": stay_id, "rating": 5, "comment": "Anonymous."}
        )
        assert response.status_code == 401


class TestListingReviews:
    async def test_public_listing(self, client: AsyncClient, listing, review_id):
        response = await client.get(f"/api/v1/reviews/listing/{listing.id}")
        assert response.status_code == 200
        data = response.json()["data"]
        assert [r["id"] for r in data["items"]] == [review_id]
        assert data["total"] == 1
        assert data["average_rating"] == 4.0

    async def test_flagged_hidden_except_for_admins(
        self, client: AsyncClient, other_guest_headers, admin_headers, listing, review_id
    ):
        flagged = await client.post(
            f"/api/v1/reviews/{review_id}/flag", json={"reason": "Advertising"}, headers=other_guest_headers
        )
        assert flagged.status_code == 200
        assert flagged.json()["data"]["is_flagged"] is True

        public = await client.get(f"/api/v1/reviews/listing/{listing.id}")
        moderated = await client.get(f"/api/v1/reviews/listing/{listing.id}", headers=admin_headers)

        assert public.json()["data"]["items"] == []
        assert public.json()["data"]["average_rating"] is None
        assert [r["id"] for r in moderated.json()["data"]["items"]] == [review_id]

    async def test_bad_token_reads_as_anonymous(self, client: AsyncClient, listing, review_id):
        response = await client.get(
            f"/api/v1/reviews/listing/{listing.id}", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 200

    async def test_unknown_listing(self, client: AsyncClient):
        response = await client.get(f"/api/v1/reviews/listing/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["code"] == "listing_not_found"

    async def test_my_reviews(self, client: AsyncClient, guest_headers, other_guest_headers, review_id):
        mine = await client.get("/api/v1/reviews/my-reviews", headers=guest_headers)
        theirs = await client.get("/api/v1/reviews/my-reviews", headers=other_guest_headers)
        assert [r["id"] for r in mine.json()["data"]["items"]] == [review_id]
        assert theirs.json()["data"]["total"] == 0


class TestAuthorAndHost:
    async def test_author_edits(self, client: AsyncClient, guest_headers, review_id):
        response = await client.put(f"/api/v1/reviews/{review_id}", json={"rating": 5}, headers=guest_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["rating"] == 5
        assert data["comment"] == "Great breakfast."

    async def test_other_traveler_cannot_edit(self, client: AsyncClient, other_guest_headers, review_id):
        response = await client.put(f"/api/v1/reviews/{review_id}", json={"rating": 1}, headers=other_guest_headers)
        assert response.status_code == 403

    async def test_author_deletes(self, client: AsyncClient, guest_headers, listing, review_id):
        response = await client.delete(f"/api/v1/reviews/{review_id}", headers=guest_headers)
        assert response.status_code == 200
        listed = await client.get(f"/api/v1/reviews/listing/{listing.id}")
        assert listed.json()["data"]["total"] == 0

    async def test_host_responds(self, client: AsyncClient, host_headers, review_id):
        response = await client.post(
            f"/api/v1/reviews/{review_id}/respond", json={"response": "Come back soon!"}, headers=host_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["host_response"] == "Come back soon!"

    async def test_guest_cannot_respond(self, client: AsyncClient, guest_headers, review_id):
        response = await client.post(
            f"/api/v1/reviews/{review_id}/respond", json={"response": "Me again"}, headers=guest_headers
        )
        assert response.status_code == 403

    async def test_other_host_cannot_respond(self, client: AsyncClient, other_host_headers, review_id):
        response = await client.post(
            f"/api/v1/reviews/{review_id}/respond", json={"response": "Not mine"}, headers=other_host_headers
        )
        assert response.status_code == 403

    async def test_unknown_review(self, client: AsyncClient, guest_headers):
        response = await client.delete(f"/api/v1/reviews/{uuid.uuid4()}", headers=guest_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "review_not_found"
