"""User store selection.

The backend is chosen once at startup. With ``auto`` the database is tried
first and the in-memory store is used only if it cannot be initialized.
"""

import logging

from sentechain.config import Settings
from sentechain.storage.base import UserStore
from sentechain.storage.database import init_db
from sentechain.storage.memory import MemoryUserStore
from sentechain.storage.sql import SqlUserStore

logger = logging.getLogger(__name__)

BACKENDS = ("auto", "database", "memory")


async def create_user_store(settings: Settings) -> UserStore:
    """Build the user store selected by ``settings.storage_backend``.

    Raises:
        ValueError: Unknown backend name
        Exception: Database initialization errors when ``database`` is forced
    """
    backend = settings.storage_backend.lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown storage backend '{settings.storage_backend}'. Use one of {BACKENDS}")

    if backend == "memory":
        logger.info("Using in-memory user storage")
        return MemoryUserStore()

    if backend == "database":
        await init_db()
        store = SqlUserStore()
        await store.ping()
        logger.info("Using database user storage")
        return store

    try:
        await init_db()
        store = SqlUserStore()
        await store.ping()
    except Exception as e:
        logger.warning(f"Database unavailable ({e}); falling back to in-memory user storage")
        return MemoryUserStore()

    logger.info("Using database user storage")
    return store
