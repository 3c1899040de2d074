"""Core app configuration, database and security primitives."""

from useradmin.core.config import get_settings, settings
from useradmin.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
