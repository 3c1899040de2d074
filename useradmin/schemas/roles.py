"""Request/response schemas for role membership endpoints."""

from pydantic import BaseModel, Field


class RoleSummary(BaseModel):
    id: str
    name: str
    members: list[str] = Field(default_factory=list, description="Member usernames")
    members_truncated: bool = False
    editable: bool = False


class RolesResponse(BaseModel):
    roles: list[RoleSummary]


class RoleMemberRef(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    username: str
    email: str


class RoleMembersResponse(BaseModel):
    """Members and non-members of one role, for the assign/revoke page."""

    id: str
    name: str
    editable: bool
    members: list[RoleMemberRef]
    non_members: list[RoleMemberRef]


class RoleMembersUpdate(BaseModel):
    """User ids to add to and remove from the role. Unknown ids are skipped."""

    add_ids: list[str] = Field(default_factory=list)
    delete_ids: list[str] = Field(default_factory=list)
