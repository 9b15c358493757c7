"""Identifier login, profile lookup and user search.

Login is register-or-return: the first login for an identifier creates the
user with a derived wallet address; later logins return the same user.

SECURITY: wallet keys are derived from the identifier (and the server's
derivation secret). The backend never stores a key, but anyone with the
secret can rebuild one, so the secret must be protected like a key.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from sentechain.auth.derivation import derive_address
from sentechain.auth.identifiers import Identifier, parse_identifier
from sentechain.auth.tokens import create_token
from sentechain.config import Settings
from sentechain.storage.base import DuplicateUserError, UserRecord, UserStore
from sentechain.utils.locks import identifier_lock

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10
MAX_USERNAME_ATTEMPTS = 1000
MAX_REGISTER_ATTEMPTS = 5


class SearchQueryRequired(ValueError):
    """Search was called with an empty query."""

    def __init__(self):
        super().__init__("Search query is required")


@dataclass
class LoginResult:
    """Outcome of a login."""

    user: UserRecord
    token: str
    is_new_user: bool


def base_username(identifier: Identifier) -> str:
    """Username stem: email local part, or ``user`` + last 4 phone digits."""
    if identifier.is_email:
        stem = re.sub(r"[^a-z0-9_.]", "", identifier.value.split("@", 1)[0])
        return stem or "user"
    return f"user{identifier.value[-4:]}"


class AuthService:
    """Business logic behind the auth endpoints."""

    def __init__(self, store: UserStore, settings: Settings):
        self.store = store
        self.settings = settings

    def _log_security_event(self, event: str, address: str) -> None:
        short = address[:10] + "..." if len(address) > 10 else address
        logger.info(f"AUTH: {event} | Address: {short} | Storage: {self.store.name}")

    async def _unique_username(self, stem: str) -> str:
        if await self.store.get_by_username(stem) is None:
            return stem
        for suffix in range(1, MAX_USERNAME_ATTEMPTS):
            candidate = f"{stem}{suffix}"
            if await self.store.get_by_username(candidate) is None:
                return candidate
        raise DuplicateUserError(f"No free username for {stem}")

    async def _register(self, identifier: Identifier) -> tuple[UserRecord, bool]:
        """Create the user, picking another username if a concurrent login took it.

        Returns:
            (user, created). ``created`` is False when another process
            registered the same identifier first.

        Raises:
            DuplicateUserError: Every attempt collided
        """
        address = derive_address(identifier.value, self.settings.derivation_secret or None)
        for attempt in range(1, MAX_REGISTER_ATTEMPTS + 1):
            username = await self._unique_username(base_username(identifier))
            try:
                user = await self.store.create(
                    username=username,
                    wallet_address=address,
                    email=identifier.value if identifier.is_email else None,
                    phone=None if identifier.is_email else identifier.value,
                )
                return user, True
            except DuplicateUserError as e:
                existing = await self.store.get_by_identifier(identifier.kind, identifier.value)
                if existing is not None:
                    return existing, False
                logger.warning(f"Registration collided on {username} (attempt {attempt}): {e}")
        raise DuplicateUserError(f"Could not register {identifier.kind} after {MAX_REGISTER_ATTEMPTS} attempts")

    def _issue_token(self, user: UserRecord) -> str:
        return create_token(
            user.id,
            user.wallet_address,
            self.settings.jwt_secret,
            expire_days=self.settings.jwt_expire_days,
        )

    async def login(self, raw_identifier: str) -> LoginResult:
        """Log in or register by email/phone.

        Raises:
            InvalidIdentifier: Empty or malformed identifier
            DuplicateUserError: No free username after repeated collisions
            StorageError: Storage backend failure
        """
        identifier = parse_identifier(raw_identifier)

        async with identifier_lock(f"{identifier.kind}:{identifier.value}"):
            user = await self.store.get_by_identifier(identifier.kind, identifier.value)
            if user is not None:
                user = await self.store.touch_login(user.id) or user
                self._log_security_event("login", user.wallet_address)
                return LoginResult(user=user, token=self._issue_token(user), is_new_user=False)

            user, created = await self._register(identifier)
            if not created:
                user = await self.store.touch_login(user.id) or user

        self._log_security_event("register" if created else "login", user.wallet_address)
        return LoginResult(user=user, token=self._issue_token(user), is_new_user=created)

    async def get_profile(self, wallet_address: str) -> Optional[UserRecord]:
        """Look up a user by wallet address (case-insensitive)."""
        return await self.store.get_by_wallet(wallet_address)

    async def search(self, query: Optional[str]) -> list[UserRecord]:
        """Find users whose username or address contains ``query``.

        Raises:
            SearchQueryRequired: Empty query
        """
        query = (query or "").strip()
        if not query:
            raise SearchQueryRequired()
        return await self.store.search(query, limit=SEARCH_LIMIT)
