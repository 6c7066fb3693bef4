"""Shared test configuration and fixtures.

Tests run against the in-memory repositories and a fresh availability index
per test, so no database is needed. SQL repository tests live under
``test_repositories`` and are marked ``postgres``.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from homestay.api.deps import get_availability_index, get_repositories
from homestay.auth.jwt import create_token_pair
from homestay.auth.passwords import hash_password
from homestay.booking.availability import AvailabilityIndex
from homestay.main import app
from homestay.models.listing import Listing
from homestay.models.user import ROLE_ADMIN, ROLE_GUEST, ROLE_HOST, User
from homestay.repositories.base import Repositories
from homestay.repositories.memory import MemoryStore
from homestay.services.booking_service import BookingService

TEST_PASSWORD = "testpass123"
# bcrypt is deliberately slow; hash once for every fixture user.
_PASSWORD_HASH = hash_password(TEST_PASSWORD)

# Service tests pin "today" so example dates stay in the future.
TODAY = date(2024, 1, 1)


# ---------------------------------------------------------------------------
# Storage and engine
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def repos(store: MemoryStore) -> Repositories:
    return store.repositories()


@pytest.fixture
def index() -> AvailabilityIndex:
    return AvailabilityIndex()


@pytest.fixture
def service(repos: Repositories, index: AvailabilityIndex) -> BookingService:
    """A booking service whose calendar is pinned to ``TODAY``."""
    return BookingService(repos, index, today=lambda: TODAY)


@pytest_asyncio.fixture
async def client(store: MemoryStore, index: AvailabilityIndex) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to this test's store and index."""

    async def override_get_repositories() -> Repositories:
        return store.repositories()

    app.dependency_overrides[get_repositories] = override_get_repositories
    app.dependency_overrides[get_availability_index] = lambda: index

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def make_user(repos: Repositories, role: str, *, name: str | None = None, is_active: bool = True) -> User:
    unique = uuid.uuid4().hex[:8]
    user = User(
        email=f"{role}-{unique}@test.com",
        hashed_password=_PASSWORD_HASH,
        name=name or f"Test {role.title()}",
        role=role,
        is_active=is_active,
    )
    return await repos.users.add(user)


def headers_for(user: User) -> dict[str, str]:
    """Return Authorization headers for ``user``."""
    tokens = create_token_pair(str(user.id), user.role)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest_asyncio.fixture
async def guest(repos: Repositories) -> User:
    return await make_user(repos, ROLE_GUEST, name="Tom Guest")


@pytest_asyncio.fixture
async def other_guest(repos: Repositories) -> User:
    return await make_user(repos, ROLE_GUEST, name="Aiko Guest")


@pytest_asyncio.fixture
async def host(repos: Repositories) -> User:
    return await make_user(repos, ROLE_HOST, name="Wayan Host")


@pytest_asyncio.fixture
async def other_host(repos: Repositories) -> User:
    return await make_user(repos, ROLE_HOST, name="Ines Host")


@pytest_asyncio.fixture
async def admin(repos: Repositories) -> User:
    return await make_user(repos, ROLE_ADMIN, name="Site Admin")


@pytest.fixture
def guest_headers(guest: User) -> dict[str, str]:
    return headers_for(guest)


@pytest.fixture
def other_guest_headers(other_guest: User) -> dict[str, str]:
    return headers_for(other_guest)


@pytest.fixture
def host_headers(host: User) -> dict[str, str]:
    return headers_for(host)


@pytest.fixture
def other_host_headers(other_host: User) -> dict[str, str]:
    return headers_for(other_host)


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return headers_for(admin)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


async def make_listing(
    repos: Repositories,
    host: User,
    *,
    price: str = "100.00",
    max_guests: int = 4,
    status: str = "active",
) -> Listing:
    listing = Listing(
        host_id=host.id,
        title="Rice-field bungalow",
        description="A test homestay for automated tests.",
        location="Ubud, Bali",
        price_per_night=Decimal(price),
        max_guests=max_guests,
        status=status,
    )
    return await repos.listings.add(listing)


@pytest_asyncio.fixture
async def listing(repos: Repositories, host: User) -> Listing:
    """An active listing owned by ``host``: 100.00 a night, up to 4 guests."""
    return await make_listing(repos, host)
