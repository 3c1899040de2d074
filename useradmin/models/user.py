"""ORM model for user accounts."""

from sqlalchemy import Column, DateTime, Index, String, func

from useradmin.models.base import Base, new_id, utc_minute


class User(Base):
    """
    User account: profile fields and credential hash.

    Role memberships live in the user_roles table and are always queried fresh
    (see AccountStore.roles_of). Timestamps are stored at minute resolution.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(256), nullable=False, unique=True, index=True)
    first_name = Column(String(256), nullable=False, default="")
    last_name = Column(String(256), nullable=False, default="")
    email = Column(String(256), nullable=False, unique=True, index=True)
    phone_number = Column(String(64), nullable=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_minute)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_minute)

    # Usernames and emails are unique regardless of case.
    __table_args__ = (
        Index("ix_users_username_lower", func.lower(username), unique=True),
        Index("ix_users_email_lower", func.lower(email), unique=True),
    )
