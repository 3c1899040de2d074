"""ORM model for single-use password reset credentials."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from useradmin.models.base import Base, utc_minute


class PasswordResetToken(Base):
    """
    Reset credential bound to one user. Only the SHA-256 digest of the token is stored.

    consumed_at is set when the token is redeemed (or superseded by another redemption).
    """

    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_digest = Column(String(64), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_minute)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)
