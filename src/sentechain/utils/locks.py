"""Concurrency control for login and registration.

Provides per-identifier locking so two simultaneous first logins for the
same email or phone cannot both register a user.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

logger = logging.getLogger(__name__)

# Global lock registry: identifier -> asyncio.Lock
_identifier_locks: dict[str, asyncio.Lock] = {}
# Holders plus waiters per identifier; a lock is dropped when this reaches 0
_lock_users: dict[str, int] = {}


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


def get_identifier_lock(key: str) -> asyncio.Lock:
    """Get or create the lock for an identifier.

    Args:
        key: Normalized identifier (e.g. "email:alice@example.com")

    Returns:
        asyncio.Lock for the identifier
    """
    lock = _identifier_locks.get(key)
    if lock is None:
        lock = _identifier_locks[key] = asyncio.Lock()
    return lock


@asynccontextmanager
async def identifier_lock(
    key: str,
    timeout: Optional[float] = 30.0,
    operation: str = "login",
):
    """Hold the identifier's lock for the duration of the block.

    Args:
        key: Normalized identifier
        timeout: Maximum time to wait for lock (None = wait forever)
        operation: Description for logging

    Raises:
        LockTimeoutError: If the lock is not acquired in time

    Example:
        async with identifier_lock("email:alice@example.com"):
            user = await store.get_by_email(...)
    """
    lock = get_identifier_lock(key)
    _lock_users[key] = _lock_users.get(key, 0) + 1

    try:
        try:
            if timeout:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            else:
                await lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(f"Lock timeout for {key} after {timeout}s: {operation}")
            raise LockTimeoutError(f"Could not acquire lock for {key} within {timeout}s")

        logger.debug(f"Lock acquired for {key}: {operation}")
        try:
            yield
        finally:
            lock.release()
            logger.debug(f"Lock released for {key}: {operation}")
    finally:
        _release_user(key, lock)


def _release_user(key: str, lock: asyncio.Lock) -> None:
    remaining = _lock_users.get(key, 1) - 1
    if remaining > 0:
        _lock_users[key] = remaining
        return
    _lock_users.pop(key, None)
    if _identifier_locks.get(key) is lock and not lock.locked():
        del _identifier_locks[key]


def clear_identifier_locks() -> None:
    """Clear all identifier locks (useful for testing)."""
    _identifier_locks.clear()
    _lock_users.clear()
