"""Password and refresh-token hashing utilities.

Learn: Uses bcrypt for password hashing. bcrypt automatically handles
salting and is resistant to rainbow table attacks. The work factor
(rounds=10 by default) keeps interactive login fast while making
offline guessing expensive.

Refresh tokens are hashed with SHA-256 instead. bcrypt only looks at
the first 72 bytes of its input, and for a JWT those bytes are the
header plus the start of the payload — identical for every token a
user ever gets. A full-length digest is required for rotation.
"""

import hashlib
import secrets

import bcrypt

from postboard.config import settings


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Learn: bcrypt includes a random salt automatically and produces
    hashes starting with "$2b$". Passwords are truncated to 72 bytes
    (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


def hash_refresh_token(token: str) -> str:
    """One-way digest of a refresh token for storage."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def verify_refresh_token_hash(token: str, token_hash: str | None) -> bool:
    """Constant-time comparison of a presented token against the stored digest."""
    if not token_hash:
        return False
    return secrets.compare_digest(hash_refresh_token(token), token_hash)
