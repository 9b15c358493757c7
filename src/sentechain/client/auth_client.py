"""HTTP client for the auth backend."""

import logging
from typing import Optional

import httpx

from sentechain.client.session import UserSession
from sentechain.config import Settings
from sentechain.wallet.errors import AuthError

logger = logging.getLogger(__name__)


class AuthClient:
    """Calls ``/api/auth/*`` and raises AuthError with the server's message."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Backend URL, e.g. http://localhost:5000
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use ASGI or mock transports)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthClient":
        return cls(settings.backend_url)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _unwrap(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400:
            message = data.get("error") if isinstance(data, dict) else None
            raise AuthError(message or f"Request failed ({response.status_code})", response.status_code)
        return data

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Auth backend unreachable at {self.base_url}: {e}")
            raise AuthError(f"Could not reach the server: {e}") from e
        return self._unwrap(response)

    async def login(self, identifier: str) -> tuple[UserSession, bool]:
        """Log in or register.

        Returns:
            (session, is_new_user)
        """
        data = await self._request("POST", "/api/auth/login", json={"identifier": identifier})
        session = UserSession.from_login(data)
        logger.info(f"Logged in as {session.username} (new={data.get('isNewUser')})")
        return session, bool(data.get("isNewUser"))

    async def profile(self, wallet_address: str) -> dict:
        data = await self._request("GET", f"/api/auth/profile/{wallet_address}")
        return data["user"]

    async def search(self, query: str) -> list[dict]:
        data = await self._request("GET", "/api/auth/search", params={"query": query})
        return data.get("users", [])
