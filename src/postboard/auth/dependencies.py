"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current identity from the request.

Access tokens are verified statelessly — signature and expiry only,
no database lookup. A consequence: logging out (which clears the
stored refresh-token hash) does not revoke access tokens already
issued; they stay valid until they expire.
"""

import uuid
from typing import Optional

from fastapi import Depends, Header

from postboard.auth.jwt import TokenError, verify_access_token
from postboard.errors import UnauthorizedError


class CurrentIdentity:
    """Represents the authenticated user making the request.

    Learn: Built purely from the access token claims. Services receive
    user_id and compare it against resource owners.
    """

    def __init__(self, user_id: uuid.UUID, email: Optional[str] = None):
        self.user_id = user_id
        self.email = email


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no auth).

    Learn: This is the "soft" auth dependency. A malformed or expired
    token still fails with 401; only a missing header yields None.
    """
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:]
        return _authenticate_jwt(token)

    return None


async def get_current_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no auth)."""
    if not identity:
        raise UnauthorizedError("Authentication required")
    return identity


def _authenticate_jwt(token: str) -> CurrentIdentity:
    """Authenticate via access token."""
    try:
        payload = verify_access_token(token)
        return CurrentIdentity(
            user_id=uuid.UUID(payload["sub"]),
            email=payload.get("email"),
        )
    except TokenError as e:
        raise UnauthorizedError(str(e))
    except ValueError:
        raise UnauthorizedError("Invalid token subject")
