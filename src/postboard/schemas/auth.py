"""Pydantic schemas for registration, login, and token exchange.

Learn: UserRead deliberately has no password or token-hash fields —
response_model filtering guarantees they never leave the server.
"""

import uuid

from pydantic import Field

from postboard.schemas.base import ApiModel, RequestModel


class RegisterRequest(RequestModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=100)


class LoginRequest(RequestModel):
    email: str
    password: str


class RefreshRequest(RequestModel):
    refresh_token: str = Field(..., min_length=1)


class UserRead(ApiModel):
    id: uuid.UUID
    email: str
    name: str


class TokenResponse(ApiModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(TokenResponse):
    """Register/login response: the user plus a fresh token pair."""
    user: UserRead
