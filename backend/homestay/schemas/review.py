"""Pydantic v2 request/response schemas for review endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CategoryRatings(BaseModel):
    """Optional per-category scores, 1 to 5."""

    cleanliness: int | None = Field(None, ge=1, le=5)
    communication: int | None = Field(None, ge=1, le=5)
    check_in: int | None = Field(None, ge=1, le=5)
    accuracy: int | None = Field(None, ge=1, le=5)
    location: int | None = Field(None, ge=1, le=5)
    value: int | None = Field(None, ge=1, le=5)


class ReviewCreate(BaseModel):
    booking_id: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=2000)
    ratings: CategoryRatings | None = None


class ReviewUpdate(BaseModel):
    """Schema for partially updating a review. All fields optional."""

    rating: int | None = Field(None, ge=1, le=5)
    comment: str | None = Field(None, min_length=1, max_length=2000)
    ratings: CategoryRatings | None = None


class ReviewFlag(BaseModel):
    reason: str | None = Field(None, max_length=500)


class ReviewReply(BaseModel):
    response: str = Field(..., min_length=1, max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ReviewResponse(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    listing_id: uuid.UUID
    guest_id: uuid.UUID
    host_id: uuid.UUID
    rating: int
    comment: str
    ratings: dict[str, int] | None = None
    host_response: str | None = None
    host_response_at: datetime | None = None
    is_flagged: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ListingReviews(BaseModel):
    """A page of a listing's reviews with the listing's average rating."""

    items: list[ReviewResponse]
    total: int
    average_rating: float | None = None
