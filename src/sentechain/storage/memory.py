"""In-memory user store.

Used when no database is configured or reachable. Contents are lost on
restart.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sentechain.storage.base import DuplicateUserError, UserRecord, UserStore

logger = logging.getLogger(__name__)


class MemoryUserStore(UserStore):
    """Dict-backed user store, insertion ordered."""

    def __init__(self):
        self._users: dict[str, UserRecord] = {}
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "memory"

    def __len__(self) -> int:
        return len(self._users)

    def _find(self, predicate) -> Optional[UserRecord]:
        for user in self._users.values():
            if predicate(user):
                return user
        return None

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        return self._find(lambda u: u.email == email)

    async def get_by_phone(self, phone: str) -> Optional[UserRecord]:
        return self._find(lambda u: u.phone == phone)

    async def get_by_wallet(self, wallet_address: str) -> Optional[UserRecord]:
        target = wallet_address.lower()
        return self._find(lambda u: u.wallet_address.lower() == target)

    async def get_by_username(self, username: str) -> Optional[UserRecord]:
        return self._find(lambda u: u.username == username)

    async def create(
        self,
        username: str,
        wallet_address: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> UserRecord:
        async with self._lock:
            for user in self._users.values():
                if (
                    user.username == username
                    or user.wallet_address.lower() == wallet_address.lower()
                    or (email is not None and user.email == email)
                    or (phone is not None and user.phone == phone)
                ):
                    raise DuplicateUserError(f"User already exists: {username}")

            now = datetime.now(timezone.utc)
            user = UserRecord(
                id=uuid.uuid4().hex,
                username=username,
                wallet_address=wallet_address,
                email=email,
                phone=phone,
                created_at=now,
                last_login=now,
            )
            self._users[user.id] = user

        logger.info(f"Created in-memory user {username} ({wallet_address})")
        return user

    async def touch_login(self, user_id: str) -> Optional[UserRecord]:
        user = self._users.get(user_id)
        if user is not None:
            user.last_login = datetime.now(timezone.utc)
        return user

    async def search(self, query: str, limit: int = 10) -> list[UserRecord]:
        needle = query.lower()
        matches = [
            u for u in self._users.values()
            if needle in u.username.lower() or needle in u.wallet_address.lower()
        ]
        return matches[:limit]

    def clear(self) -> None:
        self._users.clear()
