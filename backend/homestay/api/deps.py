"""Shared API dependencies: single import point for all routers.

Re-exports authentication and repository dependencies and builds the
per-request services around the process-wide availability index::

    from homestay.api.deps import get_booking_service, require
"""

from fastapi import Depends

from homestay.auth.dependencies import (
    get_current_user,
    get_optional_user,
    principal_of,
    require,
)
from homestay.booking.availability import AvailabilityIndex
from homestay.repositories.base import Repositories
from homestay.repositories.provider import get_repositories
from homestay.services.booking_service import BookingService
from homestay.services.listing_service import ListingService
from homestay.services.review_service import ReviewService

_availability_index = AvailabilityIndex()


def get_availability_index() -> AvailabilityIndex:
    return _availability_index


def get_booking_service(
    repos: Repositories = Depends(get_repositories),
    index: AvailabilityIndex = Depends(get_availability_index),
) -> BookingService:
    return BookingService(repos, index)


def get_listing_service(
    repos: Repositories = Depends(get_repositories),
    index: AvailabilityIndex = Depends(get_availability_index),
) -> ListingService:
    return ListingService(repos, index)


def get_review_service(repos: Repositories = Depends(get_repositories)) -> ReviewService:
    return ReviewService(repos)


__all__ = [
    "get_availability_index",
    "get_booking_service",
    "get_current_user",
    "get_listing_service",
    "get_optional_user",
    "get_repositories",
    "get_review_service",
    "principal_of",
    "require",
]
