"""Review service: guests rate completed stays, hosts reply, travelers flag."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from homestay.auth.gate import (
    ADMIN_ROLES,
    CREATE_REVIEW,
    FLAG_REVIEW,
    MANAGE_REVIEW,
    RESPOND_REVIEW,
    Principal,
    authorize,
    has_role,
)
from homestay.booking.state_machine import BookingStatus, parse_status
from homestay.errors import (
    AlreadyReviewed,
    BookingNotFound,
    Forbidden,
    ListingNotFound,
    ReviewNotFound,
    StayNotCompleted,
)
from homestay.models.review import Review
from homestay.repositories.base import Repositories

logger = logging.getLogger(__name__)


class ReviewService:
    def __init__(self, repos: Repositories) -> None:
        self._repos = repos

    async def _get_review(self, review_id: uuid.UUID) -> Review:
        review = await self._repos.reviews.get(review_id)
        if review is None:
            raise ReviewNotFound()
        return review

    async def create_review(
        self,
        principal: Principal,
        booking_id: uuid.UUID,
        rating: int,
        comment: str,
        ratings: dict[str, int] | None = None,
    ) -> Review:
        """Review a completed stay. Only the booking's own guest may do this, once.

        Raises:
            BookingNotFound: No such booking.
            Forbidden: The principal was not the guest on the booking.
            StayNotCompleted: The booking has not reached ``completed``.
            AlreadyReviewed: The booking already has a review.
        """
        authorize(principal, CREATE_REVIEW)
        booking = await self._repos.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound()
        # Admins do not bypass this: a review speaks for the guest who stayed.
        if str(booking.guest_id) != str(principal.id):
            raise Forbidden("Only the guest who stayed can review this booking")
        if parse_status(booking.status) is not BookingStatus.COMPLETED:
            raise StayNotCompleted()
        if await self._repos.reviews.get_by_booking(booking_id) is not None:
            raise AlreadyReviewed()

        review = Review(
            booking_id=booking.id,
            listing_id=booking.listing_id,
            guest_id=booking.guest_id,
            host_id=booking.host_id,
            rating=rating,
            comment=comment,
            ratings=ratings,
        )
        review = await self._repos.reviews.add(review)
        await self._repos.commit()
        logger.info("Guest %s reviewed booking %s (%d stars)", principal.id, booking_id, rating)
        return review

    async def list_listing_reviews(
        self,
        listing_id: uuid.UUID,
        viewer: Principal | None = None,
        *,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Review], int, float | None]:
        """Reviews of a listing, newest first, plus the average rating.

        Flagged reviews are hidden unless the viewer is an administrator.
        The average never counts them.
        """
        if await self._repos.listings.get(listing_id) is None:
            raise ListingNotFound()
        include_flagged = viewer is not None and has_role(viewer, ADMIN_ROLES)
        items, total = await self._repos.reviews.find(
            listing_id=listing_id, include_flagged=include_flagged, skip=skip, limit=limit
        )
        average = await self._repos.reviews.average_rating(listing_id)
        return items, total, average

    async def list_guest_reviews(
        self, guest_id: uuid.UUID, *, skip: int = 0, limit: int = 20
    ) -> tuple[list[Review], int]:
        return await self._repos.reviews.find(guest_id=guest_id, skip=skip, limit=limit)

    async def update_review(self, review_id: uuid.UUID, principal: Principal, data: dict[str, Any]) -> Review:
        """Edit rating, comment or category scores. Author and admins only."""
        review = await self._get_review(review_id)
        authorize(principal, MANAGE_REVIEW, review)
        for field, value in data.items():
            setattr(review, field, value)
        review = await self._repos.reviews.save(review)
        await self._repos.commit()
        return review

    async def delete_review(self, review_id: uuid.UUID, principal: Principal) -> None:
        review = await self._get_review(review_id)
        authorize(principal, MANAGE_REVIEW, review)
        await self._repos.reviews.delete(review)
        await self._repos.commit()
        logger.info("Review %s deleted by %s", review_id, principal.id)

    async def flag_review(self, review_id: uuid.UUID, principal: Principal, reason: str | None = None) -> Review:
        """Report a review for moderation; it disappears from public listings."""
        authorize(principal, FLAG_REVIEW)
        review = await self._get_review(review_id)
        if str(review.guest_id) == str(principal.id):
            raise Forbidden("You cannot flag your own review")
        review.is_flagged = True
        review.flag_reason = reason
        review = await self._repos.reviews.save(review)
        await self._repos.commit()
        logger.info("Review %s flagged by %s", review_id, principal.id)
        return review

    async def respond_to_review(self, review_id: uuid.UUID, principal: Principal, response: str) -> Review:
        """Set the host's public reply, replacing any earlier one."""
        review = await self._get_review(review_id)
        authorize(principal, RESPOND_REVIEW, review)
        review.host_response = response
        review.host_response_at = datetime.now(timezone.utc)
        review = await self._repos.reviews.save(review)
        await self._repos.commit()
        return review
