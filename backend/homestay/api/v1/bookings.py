"""Bookings API router.

Role checks happen in route dependencies (``require``); ownership is checked
by :class:`BookingService` once the booking is loaded. Fixed paths such as
``/my-bookings`` are declared before ``/{booking_id}``.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from homestay.api.deps import get_booking_service, principal_of, require
from homestay.auth.gate import (
    CANCEL_BOOKING,
    CREATE_BOOKING,
    LIST_HOST_BOOKINGS,
    LIST_OWN_BOOKINGS,
    UPDATE_BOOKING_STATUS,
    VIEW_BOOKING,
)
from homestay.booking.dates import DateRange
from homestay.models.user import User
from homestay.schemas.booking import BookingCreate, BookingResponse, BookingStatusUpdate
from homestay.schemas.common import Envelope, Page
from homestay.services.booking_service import BookingService

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


def _page(items: list, total: int) -> Envelope[Page[BookingResponse]]:
    return Envelope(data=Page(items=[BookingResponse.model_validate(b) for b in items], total=total))


@router.post(
    "",
    response_model=Envelope[BookingResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Book a stay",
)
async def create_booking(
    body: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require(CREATE_BOOKING)),
) -> Envelope[BookingResponse]:
    """Create a pending booking for the current user.

    Responds 400 for bad dates or too many guests, 404 for an unknown
    listing, and 409 when the dates overlap another active booking.
    """
    booking = await service.create_booking(
        guest_id=current_user.id,
        listing_id=body.listing_id,
        date_range=DateRange(body.start_date, body.end_date),
        guest_count=body.num_guests,
    )
    return Envelope(data=BookingResponse.model_validate(booking))


@router.get(
    "/my-bookings",
    response_model=Envelope[Page[BookingResponse]],
    summary="List the current traveler's bookings",
)
async def list_my_bookings(
    status_filter: str | None = Query(None, alias="status", description="Filter by booking status"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require(LIST_OWN_BOOKINGS)),
) -> Envelope[Page[BookingResponse]]:
    items, total = await service.list_guest_bookings(current_user.id, status=status_filter, skip=skip, limit=limit)
    return _page(items, total)


@router.get(
    "/host/bookings",
    response_model=Envelope[Page[BookingResponse]],
    summary="List bookings across the current host's listings",
)
async def list_host_bookings(
    listing_id: uuid.UUID | None = Query(None, description="Filter by listing"),
    status_filter: str | None = Query(None, alias="status", description="Filter by booking status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require(LIST_HOST_BOOKINGS)),
) -> Envelope[Page[BookingResponse]]:
    items, total = await service.list_host_bookings(
        current_user.id, listing_id=listing_id, status=status_filter, skip=skip, limit=limit
    )
    return _page(items, total)


@router.get(
    "/{booking_id}",
    response_model=Envelope[BookingResponse],
    summary="Get one booking",
)
async def get_booking(
    booking_id: uuid.UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require(VIEW_BOOKING)),
) -> Envelope[BookingResponse]:
    """Visible to the booking's guest, its host, and admins."""
    booking = await service.get_booking(booking_id, principal_of(current_user))
    return Envelope(data=BookingResponse.model_validate(booking))


@router.patch(
    "/{booking_id}/cancel",
    response_model=Envelope[BookingResponse],
    summary="Cancel a booking",
)
async def cancel_booking(
    booking_id: uuid.UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require(CANCEL_BOOKING)),
) -> Envelope[BookingResponse]:
    booking = await service.cancel_booking(booking_id, current_user.id, current_user.role)
    return Envelope(data=BookingResponse.model_validate(booking))


@router.patch(
    "/{booking_id}/status",
    response_model=Envelope[BookingResponse],
    summary="Change a booking's status (host)",
)
async def update_booking_status(
    booking_id: uuid.UUID,
    body: BookingStatusUpdate,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require(UPDATE_BOOKING_STATUS)),
) -> Envelope[BookingResponse]:
    """Confirm, complete or cancel a booking on one of the host's listings."""
    booking = await service.update_status(
        booking_id,
        body.status,
        actor_id=current_user.id,
        actor_role=current_user.role,
        notes=body.host_notes,
        capability=UPDATE_BOOKING_STATUS,
    )
    return Envelope(data=BookingResponse.model_validate(booking))
