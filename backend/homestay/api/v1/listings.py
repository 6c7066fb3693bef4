"""Listings API router: host-owned CRUD plus the public availability check."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status

from homestay.api.deps import get_booking_service, get_listing_service, principal_of, require
from homestay.auth.dependencies import get_current_user
from homestay.auth.gate import CREATE_LISTING, LIST_HOST_LISTINGS
from homestay.booking.dates import DateRange
from homestay.models.user import User
from homestay.schemas.common import Envelope, MessageData, Page
from homestay.schemas.listing import (
    AvailabilityResponse,
    BookedRange,
    ListingCreate,
    ListingResponse,
    ListingUpdate,
)
from homestay.services.booking_service import BookingService
from homestay.services.listing_service import ListingService

router = APIRouter(prefix="/api/v1/listings", tags=["listings"])


def _page(items: list, total: int) -> Envelope[Page[ListingResponse]]:
    return Envelope(data=Page(items=[ListingResponse.model_validate(x) for x in items], total=total))


@router.post(
    "",
    response_model=Envelope[ListingResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a listing",
)
async def create_listing(
    body: ListingCreate,
    service: ListingService = Depends(get_listing_service),
    current_user: User = Depends(require(CREATE_LISTING)),
) -> Envelope[ListingResponse]:
    listing = await service.create_listing(principal_of(current_user), body.model_dump())
    return Envelope(data=ListingResponse.model_validate(listing))


@router.get(
    "",
    response_model=Envelope[Page[ListingResponse]],
    summary="Browse active listings",
)
async def list_listings(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    service: ListingService = Depends(get_listing_service),
) -> Envelope[Page[ListingResponse]]:
    items, total = await service.list_listings(skip=skip, limit=limit)
    return _page(items, total)


@router.get(
    "/host/my-listings",
    response_model=Envelope[Page[ListingResponse]],
    summary="List the current host's listings",
)
async def list_my_listings(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    service: ListingService = Depends(get_listing_service),
    current_user: User = Depends(require(LIST_HOST_LISTINGS)),
) -> Envelope[Page[ListingResponse]]:
    items, total = await service.list_host_listings(current_user.id, skip=skip, limit=limit)
    return _page(items, total)


@router.get(
    "/{listing_id}",
    response_model=Envelope[ListingResponse],
    summary="Get a listing",
)
async def get_listing(
    listing_id: uuid.UUID,
    service: ListingService = Depends(get_listing_service),
) -> Envelope[ListingResponse]:
    listing = await service.get_listing(listing_id)
    return Envelope(data=ListingResponse.model_validate(listing))


@router.get(
    "/{listing_id}/availability",
    response_model=Envelope[AvailabilityResponse],
    summary="Check whether a date range is free",
)
async def check_availability(
    listing_id: uuid.UUID,
    start: date = Query(..., description="Check-in date"),
    end: date = Query(..., description="Check-out date"),
    service: BookingService = Depends(get_booking_service),
) -> Envelope[AvailabilityResponse]:
    """Read-only check. A positive answer does not hold the dates."""
    available = await service.check_availability(listing_id, DateRange(start, end))
    return Envelope(
        data=AvailabilityResponse(listing_id=listing_id, start_date=start, end_date=end, available=available)
    )


@router.get(
    "/{listing_id}/booked-dates",
    response_model=Envelope[list[BookedRange]],
    summary="Upcoming blocked ranges for a calendar",
)
async def booked_dates(
    listing_id: uuid.UUID,
    service: BookingService = Depends(get_booking_service),
) -> Envelope[list[BookedRange]]:
    ranges = await service.booked_ranges(listing_id)
    return Envelope(data=[BookedRange(start_date=r.start, end_date=r.end) for r in ranges])


@router.put(
    "/{listing_id}",
    response_model=Envelope[ListingResponse],
    summary="Update a listing",
)
async def update_listing(
    listing_id: uuid.UUID,
    body: ListingUpdate,
    service: ListingService = Depends(get_listing_service),
    current_user: User = Depends(get_current_user),
) -> Envelope[ListingResponse]:
    """Partially update a listing. Only its host (or an admin) may do so."""
    listing = await service.update_listing(
        listing_id, principal_of(current_user), body.model_dump(exclude_unset=True)
    )
    return Envelope(data=ListingResponse.model_validate(listing))


@router.delete(
    "/{listing_id}",
    response_model=Envelope[MessageData],
    summary="Delete a listing",
)
async def delete_listing(
    listing_id: uuid.UUID,
    service: ListingService = Depends(get_listing_service),
    current_user: User = Depends(get_current_user),
) -> Envelope[MessageData]:
    """Delete a listing and cascade-delete its bookings."""
    await service.delete_listing(listing_id, principal_of(current_user))
    return Envelope(data=MessageData(message="Listing deleted"))
