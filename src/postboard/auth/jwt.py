"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (15min), used for API calls
- Refresh token: long-lived (7 days), used only to get a new pair

The two kinds are signed with different secrets and carry a "type"
claim, so one can never be accepted in place of the other. Every token
also gets a random "jti" — two pairs minted for the same user in the
same second must still be distinguishable for refresh rotation to work.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from postboard.config import settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Raised when token creation/verification fails."""


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _encode(
    user_id: str, email: str, token_type: str, expires: timedelta, secret: str
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "type": token_type,
        "iat": now,
        "exp": now + expires,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_access_token(
    user_id: str,
    email: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token."""
    return _encode(
        user_id,
        email,
        ACCESS,
        timedelta(minutes=expires_minutes or settings.access_token_expire_minutes),
        settings.jwt_access_secret,
    )


def create_refresh_token(
    user_id: str,
    email: str,
    expires_days: Optional[int] = None,
) -> str:
    """Create a JWT refresh token."""
    return _encode(
        user_id,
        email,
        REFRESH,
        timedelta(days=expires_days or settings.refresh_token_expire_days),
        settings.jwt_refresh_secret,
    )


def create_token_pair(user_id: str, email: str) -> TokenPair:
    """Mint a fresh access/refresh pair for a user."""
    return TokenPair(
        access_token=create_access_token(user_id, email),
        refresh_token=create_refresh_token(user_id, email),
    )


def _verify(token: str, secret: str, token_type: str) -> dict:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    if payload.get("type") != token_type:
        raise TokenError(f"Wrong token type, expected {token_type}")
    return payload


def verify_access_token(token: str) -> dict:
    """Verify and decode an access token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    return _verify(token, settings.jwt_access_secret, ACCESS)


def verify_refresh_token(token: str) -> dict:
    """Verify and decode a refresh token (signature and expiry only).

    The stored-hash comparison lives in AuthService.refresh — this
    function alone does not make a refresh token usable.
    """
    return _verify(token, settings.jwt_refresh_secret, REFRESH)
