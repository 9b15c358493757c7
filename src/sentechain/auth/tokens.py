"""JWT issuing and verification."""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


def create_token(user_id: str, wallet_address: str, secret: str, expire_days: int = 30) -> str:
    """Issue a signed token carrying the user id and wallet address."""
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "walletAddress": wallet_address,
        "iat": now,
        "exp": now + timedelta(days=expire_days),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> Optional[dict]:
    """Verify a token and return its payload, or None if invalid or expired."""
    try:
        return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.debug("Token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        return None


def token_expiry(token: str) -> Optional[int]:
    """Read the ``exp`` claim without verifying the signature.

    The wallet client does not hold the signing secret; it only needs to
    know whether a stored token is still worth presenting.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None
    exp = claims.get("exp")
    return int(exp) if exp is not None else None


def is_token_expired(token: str, now: Optional[float] = None) -> bool:
    """True if the token is malformed or past its expiry."""
    exp = token_expiry(token)
    if exp is None:
        return True
    return exp <= (now if now is not None else time.time())
