"""Auth API endpoints: identifier login, profile and user search."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from sentechain.auth.identifiers import InvalidIdentifier
from sentechain.config import get_settings
from sentechain.services.auth_service import AuthService, SearchQueryRequired
from sentechain.storage.base import DuplicateUserError, UserStore
from sentechain.storage.factory import create_user_store
from sentechain.utils.locks import LockTimeoutError
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

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

ERROR_RESPONSE = {"model": ErrorResponse}


async def get_user_store(request: Request) -> UserStore:
    """User store selected at startup (created on first use if missing)."""
    store = getattr(request.app.state, "user_store", None)
    if store is None:
        store = await create_user_store(get_settings())
        request.app.state.user_store = store
    return store


async def get_auth_service(store: UserStore = Depends(get_user_store)) -> AuthService:
    return AuthService(store, get_settings())


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_by_alias=True,
    responses={400: ERROR_RESPONSE, 503: ERROR_RESPONSE},
)
async def login(
    request: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Log in with an email or phone number, registering on first use."""
    try:
        result = await service.login(request.identifier or "")
    except InvalidIdentifier as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LockTimeoutError as e:
        logger.warning(f"Login lock timeout: {e}")
        raise HTTPException(status_code=503, detail="Login busy, please retry")
    except DuplicateUserError as e:
        logger.warning(f"Login registration collided: {e}")
        raise HTTPException(status_code=503, detail="Login busy, please retry")

    return LoginResponse(
        is_new_user=result.is_new_user,
        token=result.token,
        user=UserPublic.from_record(result.user),
    )


@router.get(
    "/profile/{wallet_address}",
    response_model=ProfileResponse,
    response_model_by_alias=True,
    responses={404: ERROR_RESPONSE},
)
async def get_profile(
    wallet_address: str,
    service: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    """Get a user's public profile by wallet address."""
    user = await service.get_profile(wallet_address)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return ProfileResponse(user=UserProfile.from_record(user))


@router.get(
    "/search",
    response_model=SearchResponse,
    response_model_by_alias=True,
    responses={400: ERROR_RESPONSE},
)
async def search_users(
    query: str = Query(default=""),
    service: AuthService = Depends(get_auth_service),
) -> SearchResponse:
    """Search users by username or wallet address."""
    try:
        users = await service.search(query)
    except SearchQueryRequired as e:
        raise HTTPException(status_code=400, detail=str(e))

    return SearchResponse(
        users=[UserSummary(username=u.username, wallet_address=u.wallet_address) for u in users]
    )
