"""SQLAlchemy declarative Base and shared model helpers."""

import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


def new_id() -> str:
    """Opaque, stable identifier for users and roles."""
    return str(uuid.uuid4())


def utc_minute() -> datetime:
    """Current UTC time truncated to the minute (record timestamps skip seconds)."""
    return datetime.now(timezone.utc).replace(second=0, microsecond=0)
