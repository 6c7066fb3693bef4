"""Seed the database with demo accounts, listings, bookings and a review.

Bookings go through :class:`BookingService`, so the seeded data obeys the
same overlap and status rules as live traffic.

Run from the ``backend`` directory:
    python -m scripts.seed_data
"""

import asyncio
import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import delete

from homestay.auth.gate import Principal
from homestay.auth.passwords import hash_password
from homestay.booking.availability import AvailabilityIndex
from homestay.booking.dates import DateRange
from homestay.booking.state_machine import BookingStatus
from homestay.database import async_session_factory, create_tables, engine
from homestay.models.booking import Booking
from homestay.models.listing import Listing
from homestay.models.review import Review
from homestay.models.user import User
from homestay.repositories.sql import sql_repositories
from homestay.services.booking_service import BookingService
from homestay.services.review_service import ReviewService

logger = logging.getLogger("seed")

DEMO_PASSWORD = "demo12345"

USERS = [
    {"email": "admin@homestay-demo.com", "name": "Site Admin", "role": "admin"},
    {"email": "wayan@homestay-demo.com", "name": "Wayan Sudarsana", "role": "host"},
    {"email": "ines@homestay-demo.com", "name": "Ines Moreau", "role": "host"},
    {"email": "tom@homestay-demo.com", "name": "Tom Becker", "role": "guest"},
    {"email": "aiko@homestay-demo.com", "name": "Aiko Tanaka", "role": "guest"},
]

LISTINGS = [
    {
        "host": "wayan@homestay-demo.com",
        "title": "Rice-field bungalow near Ubud",
        "description": "Two-bedroom family homestay with breakfast and scooter rental.",
        "location": "Ubud, Bali",
        "price_per_night": Decimal("45.00"),
        "max_guests": 4,
    },
    {
        "host": "wayan@homestay-demo.com",
        "title": "Garden room with shared kitchen",
        "description": "Quiet room at the back of the family compound.",
        "location": "Ubud, Bali",
        "price_per_night": Decimal("25.00"),
        "max_guests": 2,
    },
    {
        "host": "ines@homestay-demo.com",
        "title": "Stone cottage in the Luberon",
        "description": "Self-contained cottage with terrace, vineyard views.",
        "location": "Gordes, France",
        "price_per_night": Decimal("110.00"),
        "max_guests": 3,
    },
]


async def seed() -> None:
    await create_tables()

    async with async_session_factory() as db:
        for model in (Review, Booking, Listing, User):
            await db.execute(delete(model))
        await db.commit()

        repos = sql_repositories(db)
        users: dict[str, User] = {}
        for row in USERS:
            user = User(hashed_password=hash_password(DEMO_PASSWORD), is_active=True, **row)
            users[row["email"]] = await repos.users.add(user)

        listings: list[Listing] = []
        for row in LISTINGS:
            data = dict(row)
            host = users[data.pop("host")]
            listings.append(await repos.listings.add(Listing(host_id=host.id, status="active", **data)))
        await repos.commit()

        service = BookingService(repos, AvailabilityIndex())
        start = date.today() + timedelta(days=14)
        tom = users["tom@homestay-demo.com"]
        aiko = users["aiko@homestay-demo.com"]
        wayan = users["wayan@homestay-demo.com"]

        first = await service.create_booking(tom.id, listings[0].id, DateRange(start, start + timedelta(days=4)), 2)
        await service.update_status(
            first.id, BookingStatus.CONFIRMED, wayan.id, wayan.role, notes="Airport pickup arranged"
        )
        # Back-to-back stay: checkout and check-in on the same day do not clash.
        await service.create_booking(
            aiko.id, listings[0].id, DateRange(start + timedelta(days=4), start + timedelta(days=7)), 1
        )
        third = await service.create_booking(tom.id, listings[2].id, DateRange(start, start + timedelta(days=2)), 2)
        await service.cancel_booking(third.id, tom.id, tom.role)

        # A finished stay in the garden room, reviewed and answered.
        past = await service.create_booking(aiko.id, listings[1].id, DateRange(start, start + timedelta(days=2)), 1)
        await service.update_status(past.id, BookingStatus.CONFIRMED, wayan.id, wayan.role)
        await service.update_status(past.id, BookingStatus.COMPLETED, wayan.id, wayan.role)
        reviews = ReviewService(repos)
        review = await reviews.create_review(
            Principal(id=aiko.id, role=aiko.role), past.id, 5, "Peaceful room and a wonderful family."
        )
        await reviews.respond_to_review(review.id, Principal(id=wayan.id, role=wayan.role), "Terima kasih, Aiko!")

    await engine.dispose()
    logger.info("Seeded %d users, %d listings", len(USERS), len(LISTINGS))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(seed())
