"""Repository contracts and their SQL / in-memory implementations."""

from homestay.repositories.base import (
    BookingRepository,
    ListingRepository,
    Repositories,
    ReviewRepository,
    UserRepository,
)
from homestay.repositories.memory import MemoryStore
from homestay.repositories.sql import sql_repositories

__all__ = [
    "BookingRepository",
    "ListingRepository",
    "MemoryStore",
    "Repositories",
    "ReviewRepository",
    "UserRepository",
    "sql_repositories",
]
