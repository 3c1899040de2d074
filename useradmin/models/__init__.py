"""SQLAlchemy ORM models."""

from useradmin.models.base import Base
from useradmin.models.reset_token import PasswordResetToken
from useradmin.models.role import Role, user_roles
from useradmin.models.system_flag import SystemFlag
from useradmin.models.user import User

__all__ = ["Base", "PasswordResetToken", "Role", "SystemFlag", "User", "user_roles"]
