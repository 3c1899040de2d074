"""Password hashing, session tokens, and opaque single-use credentials."""

import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from useradmin.core.config import settings

# Bcrypt cost factor.
BCRYPT_ROUNDS = 12

# Bytes of randomness in password reset and CSRF tokens.
RESET_TOKEN_BYTES = 32
CSRF_TOKEN_BYTES = 32


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt only accepts 72 bytes.
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_session_token(user_id: str) -> str:
    """
    Create a signed session token carrying only the user id.

    Roles are not embedded; authorization re-reads membership on every request.
    """
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
    }
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.encode(
        payload,
        secret,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_session_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a session token; return payload (sub, exp, iat).
    Raises jwt.PyJWTError on invalid or expired token.
    """
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.decode(
        token,
        secret,
        algorithms=[settings.JWT_ALGORITHM],
    )


def generate_reset_token() -> str:
    """Return a new URL-safe password reset token (shown once, stored only as a digest)."""
    return secrets.token_urlsafe(RESET_TOKEN_BYTES)


def digest_token(token: str) -> str:
    """SHA-256 hex digest used to store and look up opaque tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_csrf_token() -> str:
    return secrets.token_urlsafe(CSRF_TOKEN_BYTES)


def tokens_match(expected: str | None, submitted: str | None) -> bool:
    """Constant-time comparison; empty values never match."""
    if not expected or not submitted:
        return False
    return hmac.compare_digest(expected, submitted)
