"""Request/response schemas for user administration endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

SortOrder = Literal[
    "username",
    "username_desc",
    "name",
    "name_desc",
    "email",
    "email_desc",
    "created",
    "created_desc",
]


class UserCreate(BaseModel):
    """
    New user form. Fields are loosely typed on purpose: validation happens in the
    account service so failures come back as one error list with the input echoed.
    """

    username: str = Field(default="", max_length=256, description="Unique login name")
    first_name: str = Field(default="", max_length=256)
    last_name: str = Field(default="", max_length=256)
    email: str = Field(default="", max_length=256, description="Unique email address")
    phone_number: str | None = Field(default=None, max_length=64, description="Digits only")
    password: str | None = Field(default=None, max_length=1024)
    roles: list[str] = Field(default_factory=list, description="Role names to grant")


class UserUpdate(BaseModel):
    """Edit form. roles=None leaves memberships untouched; a list is the full desired selection."""

    username: str = Field(default="", max_length=256)
    first_name: str = Field(default="", max_length=256)
    last_name: str = Field(default="", max_length=256)
    email: str = Field(default="", max_length=256)
    phone_number: str | None = Field(default=None, max_length=64)
    password: str | None = Field(
        default=None,
        max_length=1024,
        description="New password; omit or leave empty to keep the current one",
    )
    roles: list[str] | None = Field(default=None)


class UserOut(BaseModel):
    """User profile as returned by the API (never includes the password hash)."""

    model_config = {"from_attributes": True}

    id: str
    username: str
    first_name: str
    last_name: str
    email: str
    phone_number: str | None = None
    created_at: datetime
    updated_at: datetime
    roles: list[str] = Field(default_factory=list)


class UserActions(BaseModel):
    """Which controls the current actor may use for this user."""

    can_edit: bool
    can_delete: bool
    editable_roles: list[str] = Field(default_factory=list)


class UserDetailResponse(BaseModel):
    user: UserOut
    actions: UserActions


class UserListItem(UserOut):
    can_edit: bool = False
    can_delete: bool = False


class UsersPageResponse(BaseModel):
    """One page of the filtered, sorted user list."""

    items: list[UserListItem]
    total: int = Field(description="Users matching search and role filters")
    page: int
    page_size: int
    pages: int
    sort: SortOrder
    search: str | None = None
    roles: list[str] = Field(default_factory=list, description="Active role filter")


class RoleOption(BaseModel):
    """One role checkbox on a user form."""

    id: str
    name: str
    selected: bool = False
    editable: bool = False


class UserEditFormResponse(BaseModel):
    user: UserOut
    roles: list[RoleOption]


class UserCreateFormResponse(BaseModel):
    roles: list[RoleOption]
