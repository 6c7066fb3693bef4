"""Pydantic v2 request/response schemas for listing endpoints."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ListingCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    location: str | None = Field(None, max_length=255)
    price_per_night: Decimal = Field(..., ge=0)
    max_guests: int = Field(1, ge=1)
    status: str = Field("active", pattern="^(active|inactive)$")


class ListingUpdate(BaseModel):
    """Schema for partially updating a listing. All fields optional."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    location: str | None = Field(None, max_length=255)
    price_per_night: Decimal | None = Field(None, ge=0)
    max_guests: int | None = Field(None, ge=1)
    status: str | None = Field(None, pattern="^(active|inactive)$")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ListingResponse(BaseModel):
    id: uuid.UUID
    host_id: uuid.UUID
    title: str
    description: str | None = None
    location: str | None = None
    price_per_night: Decimal
    max_guests: int
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailabilityResponse(BaseModel):
    listing_id: uuid.UUID
    start_date: date
    end_date: date
    available: bool


class BookedRange(BaseModel):
    """A stay that blocks the calendar; ``end_date`` is the checkout day."""

    start_date: date
    end_date: date
