"""Password reset: issue single-use reset credentials and redeem them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from useradmin.core.security import digest_token, generate_reset_token
from useradmin.models import PasswordResetToken, User
from useradmin.services.errors import (
    NotFound,
    PasswordMismatch,
    StoreFailure,
    ValidationFailure,
)
from useradmin.services.store import AccountStore

if TYPE_CHECKING:
    from useradmin.core.config import Settings

logger = logging.getLogger(__name__)

MSG_INVALID_EMAIL = "Invalid user email."
MSG_INVALID_TOKEN = "Invalid token."


@dataclass(frozen=True)
class ResetIssued:
    """A freshly issued reset credential. The raw token exists only here and in the mail."""

    user: User
    token: str
    link: str


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_reset_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/reset-password?{urlencode({'token': token})}"


def request_reset(session: Session, email: str, settings: Settings) -> ResetIssued | None:
    """
    Issue a reset credential for the account with this email.

    Unknown email raises NotFound("Invalid user email.") when
    RESET_REVEAL_UNKNOWN_EMAIL is on; otherwise returns None so the caller can
    answer exactly as it does for a known address.
    """
    store = AccountStore(session)
    user = store.find_by_email(email)
    if user is None:
        logger.info("Password reset requested for unknown email")
        if settings.RESET_REVEAL_UNKNOWN_EMAIL:
            raise NotFound(MSG_INVALID_EMAIL)
        return None

    token = generate_reset_token()
    now = datetime.now(timezone.utc)
    session.add(
        PasswordResetToken(
            user_id=user.id,
            token_digest=digest_token(token),
            created_at=now,
            expires_at=now + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
        )
    )
    session.commit()
    logger.info("Password reset token issued: user_id=%s", user.id)
    return ResetIssued(user=user, token=token, link=build_reset_link(settings.PUBLIC_BASE_URL, token))


def redeem(
    session: Session,
    token: str,
    email: str,
    password: str,
    confirm_password: str,
) -> User:
    """
    Set a new password using a reset credential.

    Order of checks: confirmation match, account lookup, password policy, then
    the credential itself (unknown, expired, consumed, or issued for another
    user are all "Invalid token."). On success every outstanding credential of
    the user is consumed together with the password change.
    """
    if password != confirm_password:
        raise PasswordMismatch()

    store = AccountStore(session)
    user = store.find_by_email(email)
    if user is None:
        raise NotFound(MSG_INVALID_EMAIL)

    policy = store.validate_password(user, password)
    if not policy:
        raise ValidationFailure(list(policy.errors))

    now = datetime.now(timezone.utc)
    credential = None
    if token:
        credential = session.scalars(
            select(PasswordResetToken).where(PasswordResetToken.token_digest == digest_token(token))
        ).first()
    if (
        credential is None
        or credential.user_id != user.id
        or credential.consumed_at is not None
        or _as_utc(credential.expires_at) <= now
    ):
        logger.info("Password reset rejected: invalid token for user_id=%s", user.id)
        raise StoreFailure([MSG_INVALID_TOKEN])

    result = store.set_password(user, password)
    if not result:
        session.rollback()
        raise StoreFailure(list(result.errors))
    session.execute(
        update(PasswordResetToken)
        .where(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.consumed_at.is_(None),
        )
        .values(consumed_at=now)
    )
    user.updated_at = now.replace(second=0, microsecond=0)
    session.commit()
    logger.info("Password reset completed: user_id=%s", user.id)
    return user
