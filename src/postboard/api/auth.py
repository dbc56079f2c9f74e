"""Auth API — registration, login, token refresh, logout.

Learn: Routes for the session lifecycle:
- POST /auth/register → create account, returns user + token pair
- POST /auth/login → email/password → user + token pair
- POST /auth/refresh → current refresh token → new pair (old one dies)
- POST /auth/logout → clears the stored refresh token (needs access token)
- GET /auth/me → current user info
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.auth.dependencies import CurrentIdentity, get_current_user
from postboard.db.engine import get_db
from postboard.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserRead,
)
from postboard.schemas.base import MessageResponse
from postboard.services.auth_service import AuthResult, AuthService
from postboard.services.notifier import Notifier, get_notifier

router = APIRouter(prefix="/auth")


def _svc(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> AuthService:
    return AuthService(db, notifier)


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        user=UserRead.model_validate(result.user),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(_svc)):
    """Create a new user account and log it in."""
    result = await svc.register(
        email=body.email, password=body.password, name=body.name
    )
    return _auth_response(result)


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    """Login with email and password → JWT tokens."""
    result = await svc.login(email=body.email, password=body.password)
    return _auth_response(result)


# ─── Refresh ────────────────────────────────────────────


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, svc: AuthService = Depends(_svc)):
    """Exchange a refresh token for a new access + refresh pair."""
    tokens = await svc.refresh(body.refresh_token)
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


# ─── Logout ─────────────────────────────────────────────


@router.post("/logout", response_model=MessageResponse)
async def logout(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    """Invalidate the refresh token. Access tokens expire on their own."""
    return await svc.logout(identity.user_id)


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    """Get the current authenticated user's info."""
    return await svc.get_profile(identity.user_id)
