"""ORM model for persisted one-way system markers (e.g. bootstrap completed)."""

from sqlalchemy import Column, DateTime, String

from useradmin.models.base import Base, utc_minute


class SystemFlag(Base):
    """A named marker; its presence means the flag is set. Flags are never cleared."""

    __tablename__ = "system_flags"

    name = Column(String(64), primary_key=True)
    set_at = Column(DateTime(timezone=True), nullable=False, default=utc_minute)
