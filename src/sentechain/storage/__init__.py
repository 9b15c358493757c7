"""User storage backends."""

from sentechain.storage.base import DuplicateUserError, StorageError, UserRecord, UserStore
from sentechain.storage.database import close_db, init_db
from sentechain.storage.factory import create_user_store
from sentechain.storage.memory import MemoryUserStore
from sentechain.storage.sql import SqlUserStore

__all__ = [
    "DuplicateUserError",
    "StorageError",
    "UserRecord",
    "UserStore",
    "MemoryUserStore",
    "SqlUserStore",
    "create_user_store",
    "close_db",
    "init_db",
]
