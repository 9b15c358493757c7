"""User storage interface shared by the SQL and in-memory backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class StorageError(Exception):
    """Raised when the storage backend fails."""

    pass


class DuplicateUserError(StorageError):
    """A user with the same identifier, username or address already exists."""

    pass


@dataclass
class UserRecord:
    """Registered user."""

    id: str
    username: str
    wallet_address: str
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class UserStore(ABC):
    """Abstract user store.

    Lookups by wallet address are case-insensitive. ``search`` matches a
    case-insensitive substring of the username or wallet address.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for diagnostics."""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    async def get_by_phone(self, phone: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    async def get_by_wallet(self, wallet_address: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    async def create(
        self,
        username: str,
        wallet_address: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> UserRecord:
        """Insert a new user.

        Raises:
            DuplicateUserError: If a unique field collides
        """
        pass

    @abstractmethod
    async def touch_login(self, user_id: str) -> Optional[UserRecord]:
        """Record a login and return the updated user."""
        pass

    @abstractmethod
    async def search(self, query: str, limit: int = 10) -> list[UserRecord]:
        pass

    async def ping(self) -> bool:
        """Check the backend is reachable."""
        return True

    async def close(self) -> None:
        """Release backend resources."""
        pass

    async def get_by_identifier(self, kind: str, value: str) -> Optional[UserRecord]:
        """Look up by a normalized ``email`` or ``phone`` identifier."""
        if kind == "email":
            return await self.get_by_email(value)
        return await self.get_by_phone(value)
