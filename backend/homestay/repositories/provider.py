"""FastAPI dependency that hands each request its repositories."""

from collections.abc import AsyncIterator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from homestay.config import settings
from homestay.database import get_db
from homestay.repositories.base import Repositories
from homestay.repositories.memory import MemoryStore
from homestay.repositories.sql import sql_repositories

# Process-wide tables for storage_backend == "memory".
memory_store = MemoryStore()


async def get_repositories(db: AsyncSession = Depends(get_db)) -> AsyncIterator[Repositories]:
    """Yield repositories bound to this request's unit of work.

    Usage::

        @router.get("/things")
        async def things(repos: Repositories = Depends(get_repositories)):
            ...
    """
    if settings.storage_backend == "memory":
        yield memory_store.repositories()
    else:
        yield sql_repositories(db)
