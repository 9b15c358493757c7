"""Backend services."""

from sentechain.services.auth_service import AuthService, LoginResult, SearchQueryRequired

__all__ = ["AuthService", "LoginResult", "SearchQueryRequired"]
