"""Pydantic request/response schemas."""

from useradmin.schemas.auth import CurrentUser, LoginRequest, LoginResponse
from useradmin.schemas.errors import ErrorResponse, FormErrorResponse
from useradmin.schemas.health import HealthResponse
from useradmin.schemas.roles import RoleMembersResponse, RolesResponse
from useradmin.schemas.users import UserCreate, UserOut, UserUpdate

__all__ = [
    "CurrentUser",
    "ErrorResponse",
    "FormErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "RoleMembersResponse",
    "RolesResponse",
    "UserCreate",
    "UserOut",
    "UserUpdate",
]
