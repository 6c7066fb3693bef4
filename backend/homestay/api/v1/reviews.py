"""Reviews API router.

Listing reviews are public; everything else needs a signed-in traveler.
Authorship and host ownership are checked by :class:`ReviewService` once
the review is loaded.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status

from homestay.api.deps import get_optional_user, get_review_service, principal_of, require
from homestay.auth.gate import CREATE_REVIEW, FLAG_REVIEW, LIST_OWN_REVIEWS, MANAGE_REVIEW, RESPOND_REVIEW
from homestay.models.user import User
from homestay.schemas.common import Envelope, MessageData, Page
from homestay.schemas.review import (
    ListingReviews,
    ReviewCreate,
    ReviewFlag,
    ReviewReply,
    ReviewResponse,
    ReviewUpdate,
)
from homestay.services.review_service import ReviewService

router = APIRouter(prefix="/api/v1/reviews", tags=["reviews"])


def _ratings(body: ReviewCreate | ReviewUpdate) -> dict[str, int] | None:
    if body.ratings is None:
        return None
    return body.ratings.model_dump(exclude_none=True)


@router.get(
    "/listing/{listing_id}",
    response_model=Envelope[ListingReviews],
    summary="Reviews of a listing",
)
async def list_listing_reviews(
    listing_id: uuid.UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    service: ReviewService = Depends(get_review_service),
    viewer: User | None = Depends(get_optional_user),
) -> Envelope[ListingReviews]:
    """Public. Administrators also see flagged reviews."""
    items, total, average = await service.list_listing_reviews(
        listing_id, principal_of(viewer) if viewer else None, skip=skip, limit=limit
    )
    return Envelope(
        data=ListingReviews(
            items=[ReviewResponse.model_validate(r) for r in items],
            total=total,
            average_rating=average,
        )
    )


@router.post(
    "",
    response_model=Envelope[ReviewResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Review a completed stay",
)
async def create_review(
    body: ReviewCreate,
    service: ReviewService = Depends(get_review_service),
    current_user: User = Depends(require(CREATE_REVIEW)),
) -> Envelope[ReviewResponse]:
    review = await service.create_review(
        principal_of(current_user),
        body.booking_id,
        body.rating,
        body.comment,
        _ratings(body),
    )
    return Envelope(data=ReviewResponse.model_validate(review))


@router.get(
    "/my-reviews",
    response_model=Envelope[Page[ReviewResponse]],
    summary="List the current traveler's reviews",
)
async def list_my_reviews(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    service: ReviewService = Depends(get_review_service),
    current_user: User = Depends(require(LIST_OWN_REVIEWS)),
) -> Envelope[Page[ReviewResponse]]:
    items, total = await service.list_guest_reviews(current_user.id, skip=skip, limit=limit)
    return Envelope(data=Page(items=[ReviewResponse.model_validate(r) for r in items], total=total))


@router.put("/{review_id}", response_model=Envelope[ReviewResponse], summary="Edit a review")
async def update_review(
    review_id: uuid.UUID,
    body: ReviewUpdate,
    service: ReviewService = Depends(get_review_service),
    current_user: User = Depends(require(MANAGE_REVIEW)),
) -> Envelope[ReviewResponse]:
    data = body.model_dump(exclude_unset=True, exclude_none=True, exclude={"ratings"})
    if "ratings" in body.model_fields_set:
        data["ratings"] = _ratings(body)
    review = await service.update_review(review_id, principal_of(current_user), data)
    return Envelope(data=ReviewResponse.model_validate(review))


@router.delete("/{review_id}", response_model=Envelope[MessageData], summary="Delete a review")
async def delete_review(
    review_id: uuid.UUID,
    service: ReviewService = Depends(get_review_service),
    current_user: User = Depends(require(MANAGE_REVIEW)),
) -> Envelope[MessageData]:
    await service.delete_review(review_id, principal_of(current_user))
    return Envelope(data=MessageData(message="Review deleted"))


@router.post("/{review_id}/flag", response_model=Envelope[ReviewResponse], summary="Report a review")
async def flag_review(
    review_id: uuid.UUID,
    body: ReviewFlag,
    service: ReviewService = Depends(get_review_service),
    current_user: User = Depends(require(FLAG_REVIEW)),
) -> Envelope[ReviewResponse]:
    review = await service.flag_review(review_id, principal_of(current_user), body.reason)
    return Envelope(data=ReviewResponse.model_validate(review))


@router.post("/{review_id}/respond", response_model=Envelope[ReviewResponse], summary="Reply to a review (host)")
async def respond_to_review(
    review_id: uuid.UUID,
    body: ReviewReply,
    service: ReviewService = Depends(get_review_service),
    current_user: User = Depends(require(RESPOND_REVIEW)),
) -> Envelope[ReviewResponse]:
    review = await service.respond_to_review(review_id, principal_of(current_user), body.response)
    return Envelope(data=ReviewResponse.model_validate(review))
