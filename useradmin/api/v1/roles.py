"""Role membership endpoints: overview, members of one role, assign/revoke."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from useradmin.api.v1.auth import get_current_actor
from useradmin.core.database import get_db
from useradmin.schemas.roles import (
    RoleMemberRef,
    RoleMembersResponse,
    RoleMembersUpdate,
    RolesResponse,
    RoleSummary,
)
from useradmin.services import accounts
from useradmin.services.authorization import Actor

router = APIRouter()


def _members_response(db: Session, actor: Actor, role_id: str) -> RoleMembersResponse:
    role, members, non_members, editable = accounts.role_members(db, actor, role_id)
    return RoleMembersResponse(
        id=role.id,
        name=role.name,
        editable=editable,
        members=[RoleMemberRef.model_validate(u) for u in members],
        non_members=[RoleMemberRef.model_validate(u) for u in non_members],
    )


@router.get("", response_model=RolesResponse)
def list_roles(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> RolesResponse:
    """Every role with its member usernames; long member lists are truncated."""
    overview = accounts.role_overview(db, actor)
    return RolesResponse(
        roles=[
            RoleSummary(
                id=role.id,
                name=role.name,
                members=names,
                members_truncated=truncated,
                editable=editable,
            )
            for role, names, truncated, editable in overview
        ]
    )


@router.get("/{role_id}", response_model=RoleMembersResponse)
def get_role(
    role_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> RoleMembersResponse:
    return _members_response(db, actor, role_id)


@router.post("/{role_id}/members", response_model=RoleMembersResponse)
def update_role_members(
    role_id: str,
    body: RoleMembersUpdate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> RoleMembersResponse:
    """Grant the role to `add_ids` and revoke it from `delete_ids` in one transaction."""
    accounts.update_role_members(db, actor, role_id, body.add_ids, body.delete_ids)
    return _members_response(db, actor, role_id)
