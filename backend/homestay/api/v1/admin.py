"""Admin moderation router: users, listings and bookings."""

import uuid

from fastapi import APIRouter, Depends, Query

from homestay.api.deps import (
    get_booking_service,
    get_listing_service,
    get_repositories,
    principal_of,
    require,
)
from homestay.auth.gate import MODERATE
from homestay.models.user import User
from homestay.repositories.base import Repositories
from homestay.schemas.auth import UserResponse, UserStatusUpdate
from homestay.schemas.booking import BookingResponse
from homestay.schemas.common import Envelope, MessageData, Page
from homestay.services import user_service
from homestay.services.booking_service import BookingService
from homestay.services.listing_service import ListingService

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.get("/users", response_model=Envelope[Page[UserResponse]])
async def list_users(
    role: str | None = Query(None, pattern="^(guest|host|admin)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    repos: Repositories = Depends(get_repositories),
    admin: User = Depends(require(MODERATE)),
) -> Envelope[Page[UserResponse]]:
    items, total = await user_service.list_users(repos, principal_of(admin), role=role, skip=skip, limit=limit)
    return Envelope(data=Page(items=[UserResponse.model_validate(u) for u in items], total=total))


@router.patch("/users/{user_id}", response_model=Envelope[UserResponse])
async def set_user_status(
    user_id: uuid.UUID,
    body: UserStatusUpdate,
    repos: Repositories = Depends(get_repositories),
    admin: User = Depends(require(MODERATE)),
) -> Envelope[UserResponse]:
    """Deactivate (or reactivate) an account."""
    user = await user_service.set_user_active(repos, principal_of(admin), user_id, body.is_active)
    return Envelope(data=UserResponse.model_validate(user))


@router.get("/bookings", response_model=Envelope[Page[BookingResponse]])
async def list_all_bookings(
    status_filter: str | None = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    service: BookingService = Depends(get_booking_service),
    admin: User = Depends(require(MODERATE)),
) -> Envelope[Page[BookingResponse]]:
    items, total = await service.list_all_bookings(principal_of(admin), status=status_filter, skip=skip, limit=limit)
    return Envelope(data=Page(items=[BookingResponse.model_validate(b) for b in items], total=total))


@router.delete("/bookings/{booking_id}", response_model=Envelope[MessageData])
async def delete_booking(
    booking_id: uuid.UUID,
    service: BookingService = Depends(get_booking_service),
    admin: User = Depends(require(MODERATE)),
) -> Envelope[MessageData]:
    await service.delete_booking(booking_id, principal_of(admin))
    return Envelope(data=MessageData(message="Booking deleted"))


@router.delete("/listings/{listing_id}", response_model=Envelope[MessageData])
async def delete_listing(
    listing_id: uuid.UUID,
    service: ListingService = Depends(get_listing_service),
    admin: User = Depends(require(MODERATE)),
) -> Envelope[MessageData]:
    await service.delete_listing(listing_id, principal_of(admin))
    return Envelope(data=MessageData(message="Listing deleted"))
