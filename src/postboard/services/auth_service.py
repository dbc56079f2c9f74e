"""Auth service — registration, login, refresh rotation, logout.

Learn: Session state lives in one column, users.refresh_token_hash:

  register/login → new pair issued, hash of the refresh token stored
  refresh        → presented token must match the stored hash; a new
                   pair is issued and the hash overwritten (rotation —
                   the token just used is dead from this point on)
  logout         → hash cleared; no refresh token works any more

Access tokens never touch this column. They are verified statelessly
in auth/dependencies.py and stay valid until they expire, even after
logout.

bcrypt is CPU-bound (~50ms at cost 10), so hashing and verification
run in a worker thread to keep the event loop free.
"""

import asyncio
import uuid
from dataclasses import dataclass
from functools import lru_cache

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.auth.jwt import TokenError, TokenPair, create_token_pair, verify_refresh_token
from postboard.auth.password import (
    hash_password,
    hash_refresh_token,
    verify_password,
    verify_refresh_token_hash,
)
from postboard.db.errors import translate_storage_errors
from postboard.db.models import User
from postboard.errors import ConflictError, NotFoundError, UnauthorizedError
from postboard.services.notifier import Notifier

logger = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"
EMAIL_TAKEN = "Email already exists"


@dataclass
class AuthResult:
    user: User
    tokens: TokenPair


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    # Compared against when the email is unknown, so both login failure
    # paths spend the same bcrypt time.
    return hash_password("postboard-timing-equalizer")


class AuthService:
    """Business logic for account sessions."""

    def __init__(self, db: AsyncSession, notifier: Notifier):
        self.db = db
        self.notifier = notifier

    async def _get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    def _issue_tokens(self, user: User) -> TokenPair:
        """Mint a pair and store the refresh token's hash on the user."""
        tokens = create_token_pair(str(user.id), user.email)
        user.refresh_token_hash = hash_refresh_token(tokens.refresh_token)
        return tokens

    # ─── Register ───────────────────────────────────────

    async def register(self, email: str, password: str, name: str) -> AuthResult:
        """Create an account and log it in.

        Learn: The existence check gives a friendly 409 in the common
        case; the unique index on users.email still catches a concurrent
        duplicate, which translate_storage_errors turns into the same 409
        with the same message.
        """
        with translate_storage_errors(conflict_message=EMAIL_TAKEN):
            if await self._get_by_email(email):
                raise ConflictError(EMAIL_TAKEN)

            password_hash = await asyncio.to_thread(hash_password, password)
            user = User(email=email, name=name, password_hash=password_hash)
            self.db.add(user)
            await self.db.flush()  # assigns user.id

            tokens = self._issue_tokens(user)
            await self.db.commit()

        logger.info("auth.registered", user_id=str(user.id))
        self.notifier.welcome(user.email, user.name)
        return AuthResult(user=user, tokens=tokens)

    # ─── Login ──────────────────────────────────────────

    async def login(self, email: str, password: str) -> AuthResult:
        """Email/password → new token pair.

        Unknown email and wrong password raise the same error with the
        same message, so the response never reveals which accounts exist.
        """
        user = await self._get_by_email(email)
        if user:
            password_hash = user.password_hash
        else:
            password_hash = await asyncio.to_thread(_dummy_password_hash)
        valid = await asyncio.to_thread(verify_password, password, password_hash)
        if not user or not valid:
            logger.info("auth.login_failed")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        with translate_storage_errors():
            tokens = self._issue_tokens(user)
            await self.db.commit()

        logger.info("auth.login", user_id=str(user.id))
        return AuthResult(user=user, tokens=tokens)

    # ─── Refresh ────────────────────────────────────────

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange the current refresh token for a new pair (rotation).

        Every failure — bad signature, expiry, wrong token type, unknown
        user, logged-out user, stale token — is the same 401.
        """
        try:
            payload = verify_refresh_token(refresh_token)
            user_id = uuid.UUID(payload["sub"])
        except (TokenError, ValueError) as e:
            logger.info("auth.refresh_rejected", reason=str(e))
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        user = await self.db.get(User, user_id)
        if not user or not verify_refresh_token_hash(
            refresh_token, user.refresh_token_hash
        ):
            logger.info("auth.refresh_rejected", reason="hash_mismatch")
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        with translate_storage_errors():
            tokens = self._issue_tokens(user)
            await self.db.commit()

        logger.info("auth.refreshed", user_id=str(user.id))
        return tokens

    # ─── Logout ─────────────────────────────────────────

    async def logout(self, user_id: uuid.UUID) -> dict:
        """Clear the stored refresh hash. Access tokens are unaffected."""
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        with translate_storage_errors():
            user.refresh_token_hash = None
            await self.db.commit()

        logger.info("auth.logout", user_id=str(user_id))
        return {"message": "Logged out successfully"}

    # ─── Profile ────────────────────────────────────────

    async def get_profile(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user
