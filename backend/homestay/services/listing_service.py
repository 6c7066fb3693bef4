"""Listing service: host-owned listings, plain CRUD over the repository."""

import logging
import uuid
from typing import Any

from homestay.auth.gate import CREATE_LISTING, MANAGE_LISTING, Principal, authorize
from homestay.booking.availability import AvailabilityIndex
from homestay.errors import ListingNotFound
from homestay.models.listing import Listing
from homestay.repositories.base import Repositories

logger = logging.getLogger(__name__)


class ListingService:
    def __init__(self, repos: Repositories, index: AvailabilityIndex) -> None:
        self._repos = repos
        self._index = index

    async def get_listing(self, listing_id: uuid.UUID) -> Listing:
        listing = await self._repos.listings.get(listing_id)
        if listing is None:
            raise ListingNotFound()
        return listing

    async def list_listings(self, *, skip: int = 0, limit: int = 20) -> tuple[list[Listing], int]:
        """Active listings, newest first."""
        return await self._repos.listings.find(status="active", skip=skip, limit=limit)

    async def list_host_listings(
        self, host_id: uuid.UUID, *, skip: int = 0, limit: int = 20
    ) -> tuple[list[Listing], int]:
        return await self._repos.listings.find(host_id=host_id, skip=skip, limit=limit)

    async def create_listing(self, principal: Principal, data: dict[str, Any]) -> Listing:
        authorize(principal, CREATE_LISTING)
        listing = Listing(host_id=principal.id, **data)
        listing = await self._repos.listings.add(listing)
        await self._repos.commit()
        logger.info("Host %s created listing %s", principal.id, listing.id)
        return listing

    async def update_listing(self, listing_id: uuid.UUID, principal: Principal, data: dict[str, Any]) -> Listing:
        """Apply a partial update. Existing bookings are not re-validated."""
        listing = await self.get_listing(listing_id)
        authorize(principal, MANAGE_LISTING, listing)
        for field, value in data.items():
            setattr(listing, field, value)
        listing = await self._repos.listings.save(listing)
        await self._repos.commit()
        return listing

    async def delete_listing(self, listing_id: uuid.UUID, principal: Principal) -> None:
        """Delete a listing with its bookings. Owners and admins only."""
        listing = await self.get_listing(listing_id)
        authorize(principal, MANAGE_LISTING, listing)
        # Bookings for this listing are created under the same lock.
        async with self._index.lock(listing_id):
            await self._repos.listings.delete(listing)
            await self._repos.commit()
            self._index.forget_nowait(listing_id)
        logger.info("Listing %s deleted by %s", listing_id, principal.id)
