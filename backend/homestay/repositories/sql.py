"""Async SQLAlchemy repositories.

Every public coroutine translates driver and connection failures into
``Unavailable``; the original error is logged with its traceback and never
reaches the client.
"""

from __future__ import annotations

import functools
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from homestay.booking.state_machine import ACTIVE_STATUSES
from homestay.errors import AlreadyReviewed, AppError, Conflict, Unavailable
from homestay.models.booking import Booking
from homestay.models.listing import Listing
from homestay.models.review import Review
from homestay.models.user import User
from homestay.repositories.base import Repositories

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_ACTIVE_VALUES = [s.value for s in ACTIVE_STATUSES]


def _storage_errors(func_: Callable[..., Awaitable[_T]]) -> Callable[..., Awaitable[_T]]:
    @functools.wraps(func_)
    async def wrapper(*args: Any, **kwargs: Any) -> _T:
        try:
            return await func_(*args, **kwargs)
        except AppError:
            raise
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("Storage failure in %s", func_.__qualname__)
            raise Unavailable() from exc

    return wrapper


async def _page(db: AsyncSession, model: Any, filters: list, skip: int, limit: int) -> tuple[list, int]:
    count_query = select(func.count()).select_from(model).where(*filters)
    total = (await db.execute(count_query)).scalar_one()

    items_query = select(model).where(*filters).order_by(model.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(items_query)
    return list(result.scalars().all()), total


class SqlUserRepository:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    @_storage_errors
    async def get(self, user_id: uuid.UUID) -> User | None:
        result = await self._db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @_storage_errors
    async def get_by_email(self, email: str) -> User | None:
        result = await self._db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @_storage_errors
    async def add(self, user: User) -> User:
        self._db.add(user)
        await self._db.flush()
        await self._db.refresh(user)
        return user

    @_storage_errors
    async def save(self, user: User) -> User:
        self._db.add(user)
        await self._db.flush()
        await self._db.refresh(user)
        return user

    @_storage_errors
    async def find(self, *, role: str | None = None, skip: int = 0, limit: int = 20) -> tuple[list[User], int]:
        filters = []
        if role is not None:
            filters.append(User.role == role)
        return await _page(self._db, User, filters, skip, limit)


class SqlListingRepository:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    @_storage_errors
    async def get(self, listing_id: uuid.UUID) -> Listing | None:
        result = await self._db.execute(select(Listing).where(Listing.id == listing_id))
        return result.scalar_one_or_none()

    @_storage_errors
    async def add(self, listing: Listing) -> Listing:
        self._db.add(listing)
        await self._db.flush()
        await self._db.refresh(listing)
        return listing

    @_storage_errors
    async def save(self, listing: Listing) -> Listing:
        self._db.add(listing)
        await self._db.flush()
        await self._db.refresh(listing)
        return listing

    @_storage_errors
    async def delete(self, listing: Listing) -> None:
        await self._db.delete(listing)
        await self._db.flush()

    @_storage_errors
    async def find(
        self,
        *,
        host_id: uuid.UUID | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Listing], int]:
        filters = []
        if host_id is not None:
            filters.append(Listing.host_id == host_id)
        if status is not None:
            filters.append(Listing.status == status)
        return await _page(self._db, Listing, filters, skip, limit)


class SqlBookingRepository:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    @_storage_errors
    async def get(self, booking_id: uuid.UUID, *, for_update: bool = False) -> Booking | None:
        query = select(Booking).where(Booking.id == booking_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self._db.execute(query)
        return result.scalar_one_or_none()

    @_storage_errors
    async def add(self, booking: Booking) -> Booking:
        """Insert a booking after re-checking overlap inside the transaction.

        The listing row is locked first, so concurrent inserts for the same
        listing from other processes queue up until this transaction commits.
        """
        await self._db.execute(select(Listing.id).where(Listing.id == booking.listing_id).with_for_update())
        clash = await self._db.execute(
            select(Booking.id)
            .where(
                Booking.listing_id == booking.listing_id,
                Booking.status.in_(_ACTIVE_VALUES),
                Booking.start_date < booking.end_date,
                Booking.end_date > booking.start_date,
            )
            .limit(1)
        )
        if clash.scalar_one_or_none() is not None:
            raise Conflict()

        self._db.add(booking)
        await self._db.flush()
        await self._db.refresh(booking)
        return booking

    @_storage_errors
    async def save(self, booking: Booking) -> Booking:
        self._db.add(booking)
        await self._db.flush()
        await self._db.refresh(booking)
        return booking

    @_storage_errors
    async def delete(self, booking: Booking) -> None:
        await self._db.delete(booking)
        await self._db.flush()

    @_storage_errors
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
        filters = []
        if guest_id is not None:
            filters.append(Booking.guest_id == guest_id)
        if host_id is not None:
            filters.append(Booking.host_id == host_id)
        if listing_id is not None:
            filters.append(Booking.listing_id == listing_id)
        if status is not None:
            filters.append(Booking.status == status)
        return await _page(self._db, Booking, filters, skip, limit)

    @_storage_errors
    async def list_active_for_listing(self, listing_id: uuid.UUID) -> list[Booking]:
        result = await self._db.execute(
            select(Booking)
            .where(Booking.listing_id == listing_id, Booking.status.in_(_ACTIVE_VALUES))
            .order_by(Booking.start_date)
        )
        return list(result.scalars().all())


class SqlReviewRepository:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    @_storage_errors
    async def get(self, review_id: uuid.UUID) -> Review | None:
        result = await self._db.execute(select(Review).where(Review.id == review_id))
        return result.scalar_one_or_none()

    @_storage_errors
    async def get_by_booking(self, booking_id: uuid.UUID) -> Review | None:
        result = await self._db.execute(select(Review).where(Review.booking_id == booking_id))
        return result.scalar_one_or_none()

    @_storage_errors
    async def add(self, review: Review) -> Review:
        self._db.add(review)
        try:
            await self._db.flush()
        except IntegrityError as exc:
            # reviews.booking_id is unique; a concurrent review won the race.
            raise AlreadyReviewed() from exc
        await self._db.refresh(review)
        return review

    @_storage_errors
    async def save(self, review: Review) -> Review:
        self._db.add(review)
        await self._db.flush()
        await self._db.refresh(review)
        return review

    @_storage_errors
    async def delete(self, review: Review) -> None:
        await self._db.delete(review)
        await self._db.flush()

    @_storage_errors
    async def find(
        self,
        *,
        listing_id: uuid.UUID | None = None,
        guest_id: uuid.UUID | None = None,
        include_flagged: bool = True,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Review], int]:
        filters = []
        if listing_id is not None:
            filters.append(Review.listing_id == listing_id)
        if guest_id is not None:
            filters.append(Review.guest_id == guest_id)
        if not include_flagged:
            filters.append(Review.is_flagged.is_(False))
        return await _page(self._db, Review, filters, skip, limit)

    @_storage_errors
    async def average_rating(self, listing_id: uuid.UUID) -> float | None:
        result = await self._db.execute(
            select(func.avg(Review.rating)).where(Review.listing_id == listing_id, Review.is_flagged.is_(False))
        )
        average = result.scalar_one_or_none()
        return float(average) if average is not None else None


def sql_repositories(db: AsyncSession) -> Repositories:
    """Bundle SQL repositories sharing one session (one unit of work)."""

    @_storage_errors
    async def commit() -> None:
        await db.commit()

    return Repositories(
        users=SqlUserRepository(db),
        listings=SqlListingRepository(db),
        bookings=SqlBookingRepository(db),
        reviews=SqlReviewRepository(db),
        commit=commit,
    )
