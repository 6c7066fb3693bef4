"""Pydantic v2 request/response schemas for booking endpoints."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BookingCreate(BaseModel):
    """Schema for a traveler's booking request.

    Date order and past dates are checked by the booking engine, which
    reports them as ``invalid_range``.
    """

    listing_id: uuid.UUID
    start_date: date
    end_date: date
    num_guests: int = Field(1, ge=1)


class BookingStatusUpdate(BaseModel):
    """Host-side status change with optional notes for the guest."""

    status: str = Field(..., pattern="^(pending|confirmed|cancelled|completed)$")
    host_notes: str | None = Field(None, max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BookingResponse(BaseModel):
    id: uuid.UUID
    listing_id: uuid.UUID
    guest_id: uuid.UUID
    host_id: uuid.UUID
    start_date: date
    end_date: date
    num_guests: int
    total_price: Decimal
    status: str
    host_notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
