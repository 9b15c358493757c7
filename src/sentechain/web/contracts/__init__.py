"""Pydantic contracts for the HTTP API."""

from sentechain.web.contracts.auth import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    SearchResponse,
    UserProfile,
    UserPublic,
    UserSummary,
)

__all__ = [
    "ErrorResponse",
    "LoginRequest",
    "LoginResponse",
    "ProfileResponse",
    "SearchResponse",
    "UserProfile",
    "UserPublic",
    "UserSummary",
]
