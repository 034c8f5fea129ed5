from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from simulados.core.config import settings
from simulados.storage.base import Storage


@asynccontextmanager
async def open_storage() -> AsyncIterator[Storage]:
    """The adapter selected by STORAGE_BACKEND, scoped to one unit of work."""
    if settings.STORAGE_BACKEND == "firestore":
        from simulados.core.firebase import get_firestore_client
        from simulados.storage.firestore import FirestoreStorage

        yield FirestoreStorage(get_firestore_client())
        return

    from simulados.core.database import AsyncSessionLocal
    from simulados.storage.sql import SqlStorage

    async with AsyncSessionLocal() as session:
        yield SqlStorage(session)


async def get_storage() -> AsyncGenerator[Storage, None]:
    async with open_storage() as storage:
        yield storage
