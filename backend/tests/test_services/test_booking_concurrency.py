"""Concurrent booking attempts: exactly one winner per contested range."""

import asyncio
import dataclasses
from datetime import date

import pytest
from conftest import TODAY, make_listing, make_user

from homestay.auth.gate import Principal
from homestay.booking.dates import DateRange
from homestay.errors import Conflict, ListingNotFound
from homestay.models.booking import Booking
from homestay.models.user import ROLE_GUEST
from homestay.repositories.base import Repositories
from homestay.repositories.memory import MemoryBookingRepository
from homestay.services.booking_service import BookingService
from homestay.services.listing_service import ListingService


class SlowBookingRepository(MemoryBookingRepository):
    """Yields to the event loop on every write, like a real database round trip."""

    async def add(self, booking: Booking) -> Booking:
        await asyncio.sleep(0)
        return await super().add(booking)

    async def save(self, booking: Booking) -> Booking:
        await asyncio.sleep(0)
        return await super().save(booking)


@pytest.fixture
def slow_service(store, repos: Repositories, index) -> BookingService:
    slow = dataclasses.replace(repos, bookings=SlowBookingRepository(store))
    return BookingService(slow, index, today=lambda: TODAY)


async def test_parallel_identical_requests_one_wins(slow_service: BookingService, repos, store, listing):
    guests = [await make_user(repos, ROLE_GUEST) for _ in range(8)]
    dates = DateRange(date(2024, 1, 10), date(2024, 1, 15))

    results = await asyncio.gather(
        *(slow_service.create_booking(g.id, listing.id, dates, 1) for g in guests),
        return_exceptions=True,
    )

    created = [r for r in results if isinstance(r, Booking)]
    conflicts = [r for r in results if isinstance(r, Conflict)]
    assert len(created) == 1
    assert len(conflicts) == len(guests) - 1
    assert len(store.bookings) == 1


async def test_parallel_disjoint_requests_all_win(slow_service: BookingService, repos, listing):
    guests = [await make_user(repos, ROLE_GUEST) for _ in range(5)]
    ranges = [DateRange(date(2024, 2, 1 + 3 * i), date(2024, 2, 4 + 3 * i)) for i in range(5)]

    results = await asyncio.gather(
        *(slow_service.create_booking(g.id, listing.id, r, 1) for g, r in zip(guests, ranges)),
    )

    assert {b.date_range for b in results} == set(ranges)


async def test_listings_do_not_block_each_other(slow_service: BookingService, repos, host, listing):
    other = await make_listing(repos, host)
    guest = await make_user(repos, ROLE_GUEST)
    dates = DateRange(date(2024, 3, 1), date(2024, 3, 5))

    a, b = await asyncio.gather(
        slow_service.create_booking(guest.id, listing.id, dates, 1),
        slow_service.create_booking(guest.id, other.id, dates, 1),
    )

    assert a.listing_id != b.listing_id


async def test_cancel_racing_confirm_leaves_consistent_state(
    slow_service: BookingService, index, store, guest, host, listing
):
    booking = await slow_service.create_booking(guest.id, listing.id, DateRange(date(2024, 4, 1), date(2024, 4, 3)), 1)

    results = await asyncio.gather(
        slow_service.update_status(booking.id, "confirmed", host.id, host.role),
        slow_service.cancel_booking(booking.id, guest.id, guest.role),
        return_exceptions=True,
    )

    final = store.bookings[booking.id].status
    # The lock serialises the two: either confirm-then-cancel or cancel-then-(illegal) confirm.
    assert final == "cancelled"
    assert not any(isinstance(r, Conflict) for r in results)
    assert index.get(listing.id, booking.id) is None


async def test_listing_delete_racing_create_leaves_no_orphan(
    slow_service: BookingService, repos, store, index, guest, host, listing
):
    listings = ListingService(repos, index)
    dates = DateRange(date(2024, 5, 1), date(2024, 5, 4))

    results = await asyncio.gather(
        slow_service.create_booking(guest.id, listing.id, dates, 1),
        listings.delete_listing(listing.id, Principal(id=host.id, role=host.role)),
        return_exceptions=True,
    )

    assert not any(isinstance(r, Exception) and not isinstance(r, ListingNotFound) for r in results)
    assert listing.id not in store.listings
    assert all(b.listing_id in store.listings for b in store.bookings.values())
    assert index.reservations(listing.id) == []
