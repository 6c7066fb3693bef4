"""Persistence contracts used by the services.

Two implementations exist: :mod:`homestay.repositories.sql` over an async
SQLAlchemy session, and :mod:`homestay.repositories.memory` for a
single-process deployment. Both hand out the ORM model instances from
:mod:`homestay.models`.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from homestay.models.booking import Booking
from homestay.models.listing import Listing
from homestay.models.review import Review
from homestay.models.user import User


class UserRepository(Protocol):
    async def get(self, user_id: uuid.UUID) -> User | None: ...

    async def get_by_email(self, email: str) -> User | None: ...

    async def add(self, user: User) -> User: ...

    async def save(self, user: User) -> User: ...

    async def find(
        self, *, role: str | None = None, skip: int = 0, limit: int = 20
    ) -> tuple[list[User], int]: ...


class ListingRepository(Protocol):
    async def get(self, listing_id: uuid.UUID) -> Listing | None: ...

    async def add(self, listing: Listing) -> Listing: ...

    async def save(self, listing: Listing) -> Listing: ...

    async def delete(self, listing: Listing) -> None: ...

    async def find(
        self,
        *,
        host_id: uuid.UUID | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Listing], int]: ...


class BookingRepository(Protocol):
    async def get(self, booking_id: uuid.UUID, *, for_update: bool = False) -> Booking | None: ...

    async def add(self, booking: Booking) -> Booking:
        """Insert a new booking.

        Implementations that can see other processes' writes re-check the
        overlap rule here and raise ``Conflict``.
        """
        ...

    async def save(self, booking: Booking) -> Booking: ...

    async def delete(self, booking: Booking) -> None: ...

    async def find(
        self,
        *,
        guest_id: uuid.UUID | None = None,
        host_id: uuid.UUID | None = None,
        listing_id: uuid.UUID | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Booking], int]: ...

    async def list_active_for_listing(self, listing_id: uuid.UUID) -> list[Booking]: ...


class ReviewRepository(Protocol):
    async def get(self, review_id: uuid.UUID) -> Review | None: ...

    async def get_by_booking(self, booking_id: uuid.UUID) -> Review | None: ...

    async def add(self, review: Review) -> Review:
        """Insert a review; raises ``AlreadyReviewed`` if the booking has one."""
        ...

    async def save(self, review: Review) -> Review: ...

    async def delete(self, review: Review) -> None: ...

    async def find(
        self,
        *,
        listing_id: uuid.UUID | None = None,
        guest_id: uuid.UUID | None = None,
        include_flagged: bool = True,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Review], int]: ...

    async def average_rating(self, listing_id: uuid.UUID) -> float | None:
        """Mean rating of the listing's unflagged reviews, ``None`` when there are none."""
        ...


@dataclass
class Repositories:
    """The repositories for one unit of work plus its commit hook."""

    users: UserRepository
    listings: ListingRepository
    bookings: BookingRepository
    reviews: ReviewRepository
    commit: Callable[[], Awaitable[None]]
