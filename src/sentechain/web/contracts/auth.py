"""Request/response contracts for the auth API.

Field names on the wire are camelCase (``walletAddress``, ``isNewUser``) to
match what the wallet frontend reads; Python attributes are snake_case.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from sentechain.storage.base import UserRecord


class LoginRequest(BaseModel):
    """Login or register with an email address or phone number."""

    identifier: Optional[str] = Field(default="", description="Email or phone number")


class UserPublic(BaseModel):
    """User as returned to its owner after login."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    email: Optional[str] = None
    phone: Optional[str] = None
    wallet_address: str = Field(..., alias="walletAddress")

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserPublic":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            phone=user.phone,
            wallet_address=user.wallet_address,
        )


class UserProfile(UserPublic):
    """Public profile including registration time."""

    created_at: Optional[str] = Field(None, alias="createdAt")

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserProfile":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            phone=user.phone,
            wallet_address=user.wallet_address,
            created_at=user.created_at.isoformat() if user.created_at else None,
        )


class UserSummary(BaseModel):
    """Search hit: enough to pick a transfer recipient."""

    model_config = ConfigDict(populate_by_name=True)

    username: str
    wallet_address: str = Field(..., alias="walletAddress")


class LoginResponse(BaseModel):
    """Response after a successful login."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    is_new_user: bool = Field(..., alias="isNewUser")
    token: str
    user: UserPublic


class ProfileResponse(BaseModel):
    success: bool = True
    user: UserProfile


class SearchResponse(BaseModel):
    success: bool = True
    users: list[UserSummary] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""

    error: str
