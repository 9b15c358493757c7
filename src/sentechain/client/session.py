"""Logged-in user session persistence."""

import logging
from dataclasses import dataclass
from typing import Optional

from sentechain.auth.tokens import is_token_expired
from sentechain.client.local_storage import TOKEN_KEY, USER_KEY, LocalStorage

logger = logging.getLogger(__name__)


@dataclass
class UserSession:
    """The user record and auth token kept on the device."""

    id: str
    username: str
    wallet_address: str
    token: str
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_login(cls, response: dict) -> "UserSession":
        """Build from a ``/api/auth/login`` response body."""
        user = response["user"]
        return cls(
            id=user["id"],
            username=user["username"],
            wallet_address=user["walletAddress"],
            email=user.get("email"),
            phone=user.get("phone"),
            token=response["token"],
        )

    def user_dict(self) -> dict:
        """User record in the stored (camelCase) shape."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "phone": self.phone,
            "walletAddress": self.wallet_address,
        }


class SessionStore:
    """Saves, restores and clears the session in local storage."""

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def save(self, session: UserSession) -> None:
        self.storage.set_json(USER_KEY, session.user_dict())
        self.storage.set_item(TOKEN_KEY, session.token)
        logger.info(f"Session saved for {session.username}")

    def load(self) -> Optional[UserSession]:
        """Restore the session.

        Returns:
            The session, or None if absent, corrupt or the token expired
        """
        user = self.storage.get_json(USER_KEY)
        token = self.storage.get_item(TOKEN_KEY)
        if not user or not token:
            return None

        try:
            session = UserSession(
                id=user["id"],
                username=user["username"],
                wallet_address=user["walletAddress"],
                email=user.get("email"),
                phone=user.get("phone"),
                token=token,
            )
        except (KeyError, TypeError):
            logger.warning("Stored session is incomplete; ignoring it")
            return None

        if is_token_expired(token):
            logger.info(f"Stored session for {session.username} has expired")
            return None
        return session

    def clear(self) -> None:
        """Log out locally. The token is not revoked server-side."""
        self.storage.remove_item(USER_KEY)
        self.storage.remove_item(TOKEN_KEY)
