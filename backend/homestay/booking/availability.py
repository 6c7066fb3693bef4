"""Per-listing index of active reservations.

The index decides whether a listing is free for a date range. Each listing
keeps its reservations sorted by start date. Because active reservations
never overlap, their end dates are sorted as well, so an overlap check only
has to look at the reservations just before the insertion point of the
requested end date.

All mutations for a listing happen under that listing's ``asyncio.Lock``.
``reserve`` and ``release`` take the lock themselves; the ``*_nowait``
variants are for callers that already hold ``lock(listing_id)`` while doing
more work around the mutation (see ``BookingService.update_status``).
Listings are independent, so there is no cross-listing lock.

Other processes may write the same bookings table, so the booking service
replaces a listing's set with the persisted one (``load_nowait``) under the
lock before every decision.
"""

from __future__ import annotations

import asyncio
import bisect
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from homestay.booking.dates import DateRange
from homestay.errors import Conflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reservation:
    """A claimed date range for one booking on one listing."""

    listing_id: uuid.UUID
    booking_id: uuid.UUID
    dates: DateRange


@dataclass
class _ListingSlots:
    starts: list[date] = field(default_factory=list)
    reservations: list[Reservation] = field(default_factory=list)

    def conflicts(self, dates: DateRange, exclude: uuid.UUID | None = None) -> list[Reservation]:
        # Everything at or after ``hi`` starts on/after dates.end and cannot overlap.
        hi = bisect.bisect_left(self.starts, dates.end)
        found = []
        for i in range(hi - 1, -1, -1):
            reservation = self.reservations[i]
            if reservation.dates.end <= dates.start:
                break
            if reservation.booking_id != exclude:
                found.append(reservation)
        found.reverse()
        return found

    def insert(self, reservation: Reservation) -> None:
        i = bisect.bisect_right(self.starts, reservation.dates.start)
        self.starts.insert(i, reservation.dates.start)
        self.reservations.insert(i, reservation)

    def remove(self, booking_id: uuid.UUID) -> Reservation | None:
        for i, reservation in enumerate(self.reservations):
            if reservation.booking_id == booking_id:
                del self.starts[i]
                del self.reservations[i]
                return reservation
        return None


class AvailabilityIndex:
    """In-process availability store with a mutex per listing."""

    def __init__(self) -> None:
        self._slots: dict[uuid.UUID, _ListingSlots] = {}
        self._locks: dict[uuid.UUID, asyncio.Lock] = {}

    def lock(self, listing_id: uuid.UUID) -> asyncio.Lock:
        """Return the lock guarding ``listing_id``'s active set."""
        lock = self._locks.get(listing_id)
        if lock is None:
            lock = self._locks[listing_id] = asyncio.Lock()
        return lock

    def load_nowait(self, listing_id: uuid.UUID, reservations: Iterable[Reservation]) -> None:
        """Replace a listing's active set with ``reservations``. The caller must hold the listing lock.

        Overlapping entries are kept and logged; they can only come from
        storage written outside this service.
        """
        slots = _ListingSlots()
        for reservation in sorted(reservations, key=lambda r: r.dates.start):
            if slots.conflicts(reservation.dates):
                logger.warning(
                    "Persisted booking %s overlaps another active booking on listing %s",
                    reservation.booking_id,
                    listing_id,
                )
            slots.insert(reservation)
        self._slots[listing_id] = slots
        logger.debug("Loaded %d active reservations for listing %s", len(slots.reservations), listing_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def conflicts(
        self,
        listing_id: uuid.UUID,
        dates: DateRange,
        exclude: uuid.UUID | None = None,
    ) -> list[Reservation]:
        slots = self._slots.get(listing_id)
        if slots is None:
            return []
        return slots.conflicts(dates, exclude=exclude)

    def is_available(
        self,
        listing_id: uuid.UUID,
        dates: DateRange,
        exclude: uuid.UUID | None = None,
    ) -> bool:
        """True iff no active reservation on the listing overlaps ``dates``."""
        return not self.conflicts(listing_id, dates, exclude=exclude)

    def reservations(self, listing_id: uuid.UUID) -> list[Reservation]:
        """Active reservations for a listing, ordered by start date."""
        slots = self._slots.get(listing_id)
        return list(slots.reservations) if slots else []

    def get(self, listing_id: uuid.UUID, booking_id: uuid.UUID) -> Reservation | None:
        for reservation in self.reservations(listing_id):
            if reservation.booking_id == booking_id:
                return reservation
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def reserve_nowait(
        self,
        listing_id: uuid.UUID,
        booking_id: uuid.UUID,
        dates: DateRange,
    ) -> Reservation:
        """Claim ``dates`` for ``booking_id``. The caller must hold the listing lock.

        Re-reserving an existing booking moves it to the new range.

        Raises:
            Conflict: If another active reservation overlaps ``dates``.
        """
        slots = self._slots.setdefault(listing_id, _ListingSlots())
        clashing = slots.conflicts(dates, exclude=booking_id)
        if clashing:
            logger.info(
                "Reservation conflict on listing %s: %s overlaps booking %s",
                listing_id,
                dates,
                clashing[0].booking_id,
            )
            raise Conflict()
        slots.remove(booking_id)
        reservation = Reservation(listing_id=listing_id, booking_id=booking_id, dates=dates)
        slots.insert(reservation)
        return reservation

    def release_nowait(self, listing_id: uuid.UUID, booking_id: uuid.UUID) -> bool:
        """Drop a booking's range. The caller must hold the listing lock.

        Returns False when the booking held no reservation.
        """
        slots = self._slots.get(listing_id)
        if slots is None:
            return False
        return slots.remove(booking_id) is not None

    async def reserve(
        self,
        listing_id: uuid.UUID,
        booking_id: uuid.UUID,
        dates: DateRange,
    ) -> Reservation:
        """Atomically re-check overlap and insert under the listing lock."""
        async with self.lock(listing_id):
            return self.reserve_nowait(listing_id, booking_id, dates)

    async def release(self, listing_id: uuid.UUID, booking_id: uuid.UUID) -> bool:
        async with self.lock(listing_id):
            return self.release_nowait(listing_id, booking_id)

    def forget_nowait(self, listing_id: uuid.UUID) -> None:
        """Discard a deleted listing's set. The caller must hold the listing lock."""
        self._slots.pop(listing_id, None)
