"""User administration endpoints: list, details, create, edit and delete."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from useradmin.api.v1.auth import get_current_actor
from useradmin.core.config import Settings, get_settings
from useradmin.core.database import get_db
from useradmin.models import User
from useradmin.schemas.users import (
    RoleOption,
    SortOrder,
    UserActions,
    UserCreate,
    UserCreateFormResponse,
    UserDetailResponse,
    UserEditFormResponse,
    UserListItem,
    UserOut,
    UsersPageResponse,
    UserUpdate,
)
from useradmin.services import accounts
from useradmin.services.authorization import (
    Actor,
    Operation,
    Subject,
    can_delete_user,
    can_edit_user,
    editable_roles,
    require,
    selectable_roles_on_create,
)
from useradmin.services.store import AccountStore

router = APIRouter()


def _user_out(user: User, roles: set[str] | frozenset[str]) -> UserOut:
    return UserOut(
        id=user.id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        phone_number=user.phone_number,
        created_at=user.created_at,
        updated_at=user.updated_at,
        roles=sorted(roles),
    )


def _detail(db: Session, actor: Actor, user: User, roles: set[str] | frozenset[str]) -> UserDetailResponse:
    all_roles = [r.name for r in AccountStore(db).all_roles()]
    target = Subject.of(user.id, roles)
    return UserDetailResponse(
        user=_user_out(user, roles),
        actions=UserActions(**accounts.user_actions(actor, target, all_roles)),
    )


@router.get("", response_model=UsersPageResponse)
def list_users(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    search: str | None = None,
    roles: Annotated[list[str], Query()] = [],
    sort: SortOrder = "username",
    page: int = 1,
) -> UsersPageResponse:
    """
    Search, filter by role, sort and paginate users.

    `roles` may be repeated; a user matches if it holds any of them. Each row
    carries the current user's can_edit / can_delete hints.
    """
    result = accounts.list_users(
        db,
        search=search,
        roles=roles,
        sort=sort,
        page=page,
        page_size=settings.USERS_PAGE_SIZE,
    )
    items = []
    for user, user_roles in result.items:
        target = Subject.of(user.id, user_roles)
        items.append(
            UserListItem(
                **_user_out(user, user_roles).model_dump(),
                can_edit=can_edit_user(actor, target),
                can_delete=can_delete_user(actor, target),
            )
        )
    return UsersPageResponse(
        items=items,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        pages=result.pages,
        sort=sort,
        search=search,
        roles=roles,
    )


@router.get("/new", response_model=UserCreateFormResponse)
def new_user_form(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> UserCreateFormResponse:
    """Roles the current user may select when creating a user."""
    require(actor, Operation.CREATE_USER)
    all_roles = AccountStore(db).all_roles()
    selectable = selectable_roles_on_create(actor, [r.name for r in all_roles])
    return UserCreateFormResponse(
        roles=[
            RoleOption(id=r.id, name=r.name, selected=False, editable=r.name in selectable)
            for r in all_roles
        ]
    )


@router.post("", response_model=UserDetailResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> UserDetailResponse:
    user, roles = accounts.create_user(db, actor, body)
    return _detail(db, actor, user, roles)


@router.get("/me", response_model=UserDetailResponse)
def my_profile(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> UserDetailResponse:
    user, target = accounts.get_user(db, actor, actor.id)
    return _detail(db, actor, user, target.roles)


@router.get("/{user_id}", response_model=UserDetailResponse)
def get_user(
    user_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> UserDetailResponse:
    user, target = accounts.get_user(db, actor, user_id)
    return _detail(db, actor, user, target.roles)


@router.get("/{user_id}/edit", response_model=UserEditFormResponse)
def edit_user_form(
    user_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> UserEditFormResponse:
    """Profile plus every role row, flagged selected (held now) and editable (by this user)."""
    user, target = accounts.get_user(db, actor, user_id)
    require(actor, Operation.EDIT_USER, target)
    all_roles = AccountStore(db).all_roles()
    editable = editable_roles(actor, target, [r.name for r in all_roles])
    return UserEditFormResponse(
        user=_user_out(user, target.roles),
        roles=[
            RoleOption(
                id=r.id,
                name=r.name,
                selected=r.name in target.roles,
                editable=r.name in editable,
            )
            for r in all_roles
        ],
    )


@router.put("/{user_id}", response_model=UserDetailResponse)
def update_user(
    user_id: str,
    body: UserUpdate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> UserDetailResponse:
    """
    Update profile fields, optionally the password, and role rows the current
    user may edit. Omit `roles` to leave memberships unchanged.
    """
    user, roles = accounts.update_user(db, actor, user_id, body)
    return _detail(db, actor, user, roles)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    accounts.delete_user(db, actor, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
