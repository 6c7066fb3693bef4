"""Booking service: the only writer of bookings and of the availability index.

``check_availability`` is advisory. ``create_booking`` reloads the listing's
active bookings and claims the range in the index under the listing lock,
holding it until the booking is committed, so two travelers who both saw
"available" cannot both end up with a booking: the second one gets
``Conflict``.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import date

from homestay.auth.gate import (
    CANCEL_BOOKING,
    MODERATE,
    VIEW_BOOKING,
    Capability,
    Principal,
    authorize,
    owns_resource,
)
from homestay.booking.availability import AvailabilityIndex, Reservation
from homestay.booking.dates import DateRange, validate
from homestay.booking.state_machine import (
    BookingActor,
    BookingStateMachine,
    BookingStatus,
    parse_status,
)
from homestay.errors import BookingNotFound, CapacityExceeded, Forbidden, ListingNotFound
from homestay.models.booking import Booking
from homestay.models.listing import Listing
from homestay.models.user import ROLE_ADMIN, ROLE_GUEST
from homestay.repositories.base import Repositories

logger = logging.getLogger(__name__)


class BookingService:
    """Creates bookings and drives their status transitions.

    One instance is built per request around that request's repositories;
    the :class:`AvailabilityIndex` is shared by the whole process.
    """

    def __init__(
        self,
        repos: Repositories,
        index: AvailabilityIndex,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._repos = repos
        self._index = index
        self._machine = BookingStateMachine(index)
        self._today = today

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _sync(self, listing_id: uuid.UUID) -> None:
        """Reload the listing's active set from storage. Caller holds the listing lock.

        Another worker may have created, cancelled or deleted bookings since
        this process last looked, so decisions never trust an older copy.
        """
        active = await self._repos.bookings.list_active_for_listing(listing_id)
        self._index.load_nowait(
            listing_id,
            [Reservation(listing_id=b.listing_id, booking_id=b.id, dates=b.date_range) for b in active],
        )

    async def _get_listing(self, listing_id: uuid.UUID) -> Listing:
        listing = await self._repos.listings.get(listing_id)
        if listing is None:
            raise ListingNotFound()
        return listing

    async def _get_booking(self, booking_id: uuid.UUID) -> Booking:
        booking = await self._repos.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound()
        return booking

    @staticmethod
    def _resolve_actor(booking: Booking, principal: Principal) -> BookingActor:
        """Work out whether the principal is this booking's guest, host, or an admin."""
        if principal.role == ROLE_ADMIN:
            return BookingActor.ADMIN
        if owns_resource(principal, booking, "host_id"):
            return BookingActor.HOST
        if owns_resource(principal, booking, "guest_id"):
            return BookingActor.GUEST
        raise Forbidden("Access denied. You can only access your own bookings.")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def check_availability(self, listing_id: uuid.UUID, date_range: DateRange) -> bool:
        """Return whether the listing is free for ``date_range``. Does not reserve."""
        validate(date_range, today=self._today())
        await self._get_listing(listing_id)
        async with self._index.lock(listing_id):
            await self._sync(listing_id)
            return self._index.is_available(listing_id, date_range)

    async def booked_ranges(self, listing_id: uuid.UUID) -> list[DateRange]:
        """Active ranges on a listing that have not ended yet, for calendars."""
        await self._get_listing(listing_id)
        async with self._index.lock(listing_id):
            await self._sync(listing_id)
            reservations = self._index.reservations(listing_id)
        today = self._today()
        return [r.dates for r in reservations if r.dates.end > today]

    async def get_booking(self, booking_id: uuid.UUID, principal: Principal) -> Booking:
        booking = await self._get_booking(booking_id)
        authorize(principal, VIEW_BOOKING, booking)
        return booking

    async def list_guest_bookings(
        self,
        guest_id: uuid.UUID,
        *,
        status: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Booking], int]:
        return await self._repos.bookings.find(guest_id=guest_id, status=status, skip=skip, limit=limit)

    async def list_host_bookings(
        self,
        host_id: uuid.UUID,
        *,
        listing_id: uuid.UUID | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Booking], int]:
        return await self._repos.bookings.find(
            host_id=host_id, listing_id=listing_id, status=status, skip=skip, limit=limit
        )

    async def list_all_bookings(
        self,
        principal: Principal,
        *,
        status: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Booking], int]:
        authorize(principal, MODERATE)
        return await self._repos.bookings.find(status=status, skip=skip, limit=limit)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_booking(
        self,
        guest_id: uuid.UUID,
        listing_id: uuid.UUID,
        date_range: DateRange,
        guest_count: int,
    ) -> Booking:
        """Reserve ``date_range`` on a listing and record a pending booking.

        Raises:
            InvalidRange: The stay starts in the past.
            ListingNotFound: No such listing, or it is not accepting bookings.
            Forbidden: The guest is the listing's host.
            CapacityExceeded: ``guest_count`` is outside ``1..max_guests``.
            Conflict: The range overlaps an active booking.
        """
        validate(date_range, today=self._today())

        # The listing lock is held until the booking is committed, so a
        # concurrent request (or a listing delete) sees either all of it or
        # none of it.
        async with self._index.lock(listing_id):
            listing = await self._get_listing(listing_id)
            if listing.status != "active":
                raise ListingNotFound("Listing is not accepting bookings")
            if str(listing.host_id) == str(guest_id):
                raise Forbidden("Hosts cannot book their own listing")
            if guest_count < 1 or guest_count > listing.max_guests:
                raise CapacityExceeded(f"This listing accepts at most {listing.max_guests} guests")

            await self._sync(listing_id)
            booking_id = uuid.uuid4()
            self._index.reserve_nowait(listing_id, booking_id, date_range)

            booking = Booking(
                id=booking_id,
                listing_id=listing.id,
                guest_id=guest_id,
                host_id=listing.host_id,
                start_date=date_range.start,
                end_date=date_range.end,
                num_guests=guest_count,
                total_price=listing.price_per_night * date_range.nights,
                status=BookingStatus.PENDING.value,
            )
            try:
                booking = await self._repos.bookings.add(booking)
                await self._repos.commit()
            except Exception:
                self._index.release_nowait(listing_id, booking_id)
                raise

        logger.info(
            "Created booking %s on listing %s for %s (%d nights)",
            booking.id,
            listing_id,
            date_range,
            date_range.nights,
        )
        return booking

    async def update_status(
        self,
        booking_id: uuid.UUID,
        target_status: str | BookingStatus,
        actor_id: uuid.UUID,
        actor_role: str,
        notes: str | None = None,
        capability: Capability | None = None,
    ) -> Booking:
        """Move a booking to ``target_status`` on behalf of ``actor_id``.

        The actor's part is resolved against this booking (its guest, its
        host, or an admin), not from the global role alone. Endpoints pass
        their ``capability`` so its role and ownership fields are enforced
        against the loaded booking as well.

        Raises:
            BookingNotFound: No such booking.
            Forbidden: The actor is unrelated to the booking, fails
                ``capability``, may not make this transition, or is a guest
                trying to leave notes.
            IllegalTransition: The target is not reachable from the current status.
            Conflict: Confirming a booking whose range is no longer free.
        """
        principal = Principal(id=actor_id, role=actor_role)
        target = parse_status(target_status)
        booking = await self._get_booking(booking_id)
        if capability is not None:
            authorize(principal, capability, booking)
        actor = self._resolve_actor(booking, principal)

        async def persist(b: Booking) -> Booking:
            if notes is not None:
                b.host_notes = notes
            b = await self._repos.bookings.save(b)
            await self._repos.commit()
            return b

        listing_id = booking.listing_id
        async with self._index.lock(listing_id):
            # Re-read under the lock so a concurrent transition is seen.
            booking = await self._repos.bookings.get(booking_id, for_update=True)
            if booking is None:
                raise BookingNotFound()
            self._machine.check(parse_status(booking.status), target, actor)
            if notes is not None and actor is BookingActor.GUEST:
                raise Forbidden("Only the host can add notes to a booking")
            await self._sync(listing_id)
            return await self._machine.transition(booking, target, actor, persist)

    async def cancel_booking(
        self,
        booking_id: uuid.UUID,
        actor_id: uuid.UUID,
        actor_role: str = ROLE_GUEST,
    ) -> Booking:
        """Cancel a booking. The actor must be its guest or host (admins bypass)."""
        return await self.update_status(
            booking_id,
            BookingStatus.CANCELLED,
            actor_id,
            actor_role,
            capability=CANCEL_BOOKING,
        )

    async def delete_booking(self, booking_id: uuid.UUID, principal: Principal) -> None:
        """Remove a booking record outright (admin moderation) and free its dates."""
        authorize(principal, MODERATE)
        booking = await self._get_booking(booking_id)
        listing_id = booking.listing_id
        async with self._index.lock(listing_id):
            await self._repos.bookings.delete(booking)
            await self._repos.commit()
            self._index.release_nowait(listing_id, booking_id)
        logger.info("Admin %s deleted booking %s", principal.id, booking_id)
