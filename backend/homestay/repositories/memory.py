"""In-process repositories for single-process deployments and tests.

Records are the same ORM classes the SQL repositories return, kept as
transient instances in dictionaries. Column defaults only fire on a real
INSERT, so ``_stamp`` fills ids and timestamps the way the database would.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any, TypeVar

from homestay.booking.state_machine import ACTIVE_STATUSES
from homestay.errors import AlreadyReviewed
from homestay.models.booking import Booking
from homestay.models.listing import Listing
from homestay.models.review import Review
from homestay.models.user import User
from homestay.repositories.base import Repositories

_T = TypeVar("_T")

_ACTIVE_VALUES = {s.value for s in ACTIVE_STATUSES}


def _stamp(obj: Any) -> None:
    now = datetime.now(timezone.utc)
    if obj.id is None:
        obj.id = uuid.uuid4()
    if obj.created_at is None:
        obj.created_at = now
    obj.updated_at = now


def _page(items: Iterable[_T], predicate: Callable[[_T], bool], skip: int, limit: int) -> tuple[list[_T], int]:
    matched = [item for item in items if predicate(item)]
    matched.sort(key=lambda item: item.created_at, reverse=True)  # type: ignore[attr-defined]
    return matched[skip : skip + limit], len(matched)


class MemoryStore:
    """Shared tables for every repository handed out by :meth:`repositories`."""

    def __init__(self) -> None:
        self.users: dict[uuid.UUID, User] = {}
        self.listings: dict[uuid.UUID, Listing] = {}
        self.bookings: dict[uuid.UUID, Booking] = {}
        self.reviews: dict[uuid.UUID, Review] = {}

    def repositories(self) -> Repositories:
        async def commit() -> None:
            return None

        return Repositories(
            users=MemoryUserRepository(self),
            listings=MemoryListingRepository(self),
            bookings=MemoryBookingRepository(self),
            reviews=MemoryReviewRepository(self),
            commit=commit,
        )


class MemoryUserRepository:
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def get(self, user_id: uuid.UUID) -> User | None:
        return self._store.users.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        return next((u for u in self._store.users.values() if u.email == email), None)

    async def add(self, user: User) -> User:
        if user.is_active is None:
            user.is_active = True
        _stamp(user)
        self._store.users[user.id] = user
        return user

    async def save(self, user: User) -> User:
        _stamp(user)
        self._store.users[user.id] = user
        return user

    async def find(self, *, role: str | None = None, skip: int = 0, limit: int = 20) -> tuple[list[User], int]:
        return _page(
            self._store.users.values(),
            lambda u: role is None or u.role == role,
            skip,
            limit,
        )


class MemoryListingRepository:
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def get(self, listing_id: uuid.UUID) -> Listing | None:
        return self._store.listings.get(listing_id)

    async def add(self, listing: Listing) -> Listing:
        if listing.status is None:
            listing.status = "active"
        _stamp(listing)
        self._store.listings[listing.id] = listing
        return listing

    async def save(self, listing: Listing) -> Listing:
        _stamp(listing)
        self._store.listings[listing.id] = listing
        return listing

    async def delete(self, listing: Listing) -> None:
        self._store.listings.pop(listing.id, None)
        # Mirrors ON DELETE CASCADE on bookings.listing_id and reviews.listing_id.
        for booking_id in [b.id for b in self._store.bookings.values() if b.listing_id == listing.id]:
            del self._store.bookings[booking_id]
        for review_id in [r.id for r in self._store.reviews.values() if r.listing_id == listing.id]:
            del self._store.reviews[review_id]

    async def find(
        self,
        *,
        host_id: uuid.UUID | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Listing], int]:
        return _page(
            self._store.listings.values(),
            lambda item: (host_id is None or item.host_id == host_id) and (status is None or item.status == status),
            skip,
            limit,
        )


class MemoryBookingRepository:
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def get(self, booking_id: uuid.UUID, *, for_update: bool = False) -> Booking | None:
        return self._store.bookings.get(booking_id)

    async def add(self, booking: Booking) -> Booking:
        _stamp(booking)
        self._store.bookings[booking.id] = booking
        return booking

    async def save(self, booking: Booking) -> Booking:
        _stamp(booking)
        self._store.bookings[booking.id] = booking
        return booking

    async def delete(self, booking: Booking) -> None:
        self._store.bookings.pop(booking.id, None)
        for review_id in [r.id for r in self._store.reviews.values() if r.booking_id == booking.id]:
            del self._store.reviews[review_id]

    async def find(
        self,
        *,
        guest_id: uuid.UUID | None = None,
        host_id: uuid.UUID | None = None,
        listing_id: uuid.UUID | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Booking], int]:
        def matches(b: Booking) -> bool:
            return (
                (guest_id is None or b.guest_id == guest_id)
                and (host_id is None or b.host_id == host_id)
                and (listing_id is None or b.listing_id == listing_id)
                and (status is None or b.status == status)
            )

        return _page(self._store.bookings.values(), matches, skip, limit)

    async def list_active_for_listing(self, listing_id: uuid.UUID) -> list[Booking]:
        active = [b for b in self._store.bookings.values() if b.listing_id == listing_id and b.status in _ACTIVE_VALUES]
        return sorted(active, key=lambda b: b.start_date)


class MemoryReviewRepository:
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def get(self, review_id: uuid.UUID) -> Review | None:
        return self._store.reviews.get(review_id)

    async def get_by_booking(self, booking_id: uuid.UUID) -> Review | None:
        return next((r for r in self._store.reviews.values() if r.booking_id == booking_id), None)

    async def add(self, review: Review) -> Review:
        if await self.get_by_booking(review.booking_id) is not None:
            raise AlreadyReviewed()
        if review.is_flagged is None:
            review.is_flagged = False
        _stamp(review)
        self._store.reviews[review.id] = review
        return review

    async def save(self, review: Review) -> Review:
        _stamp(review)
        self._store.reviews[review.id] = review
        return review

    async def delete(self, review: Review) -> None:
        self._store.reviews.pop(review.id, None)

    async def find(
        self,
        *,
        listing_id: uuid.UUID | None = None,
        guest_id: uuid.UUID | None = None,
        include_flagged: bool = True,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Review], int]:
        def matches(r: Review) -> bool:
            return (
                (listing_id is None or r.listing_id == listing_id)
                and (guest_id is None or r.guest_id == guest_id)
                and (include_flagged or not r.is_flagged)
            )

        return _page(self._store.reviews.values(), matches, skip, limit)

    async def average_rating(self, listing_id: uuid.UUID) -> float | None:
        ratings = [r.rating for r in self._store.reviews.values() if r.listing_id == listing_id and not r.is_flagged]
        if not ratings:
            return None
        return sum(ratings) / len(ratings)
