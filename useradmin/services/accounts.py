"""
Account lifecycle: create, update, delete and list users, and edit role memberships.

Every operation takes an explicit Actor (the caller's id and current roles),
re-checks the authorization predicate against the target's current roles
before touching the store, and commits once at the end. Store errors roll the
whole operation back and surface as StoreFailure.
"""

import logging
import math
import re
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from useradmin.models import Role, User, user_roles
from useradmin.models.base import new_id, utc_minute
from useradmin.schemas.users import UserCreate, UserUpdate
from useradmin.services.authorization import (
    Actor,
    Operation,
    Subject,
    can_delete_user,
    can_edit_user,
    can_manage_role,
    editable_roles,
    require,
    selectable_roles_on_create,
)
from useradmin.services.errors import (
    NotFound,
    PermissionDenied,
    StoreFailure,
    Unauthenticated,
    ValidationFailure,
)
from useradmin.services.store import AccountStore

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+@([a-zA-Z0-9-]+\.)+[a-zA-Z]{2,6}$")
PHONE_PATTERN = re.compile(r"^[0-9]+$")

# Role list pages show at most this many member names per role.
MAX_LISTED_MEMBERS = 400

DEFAULT_SORT = "username"

MSG_USER_NOT_FOUND = "No user was found."
MSG_ROLE_NOT_FOUND = "No role was found."
MSG_CONFLICT = "The user could not be saved because it conflicts with an existing user."
MSG_MEMBERSHIP_CONFLICT = "The role membership changed while saving. Please try again."


@dataclass(frozen=True)
class RoleDiff:
    """Membership changes needed to move from the current to the desired role set."""

    to_add: frozenset[str] = field(default_factory=frozenset)
    to_remove: frozenset[str] = field(default_factory=frozenset)

    def __bool__(self) -> bool:
        return bool(self.to_add or self.to_remove)


@dataclass
class UserPage:
    items: list[tuple[User, set[str]]]
    total: int
    page: int
    page_size: int
    pages: int


def validate_profile(username: str, email: str, phone_number: str | None) -> list[str]:
    """Field-level checks for user forms; returns every problem found."""
    errors: list[str] = []
    if not username or not username.strip():
        errors.append("The Username field is required.")
    if not email or not email.strip():
        errors.append("The Email field is required.")
    elif not EMAIL_PATTERN.match(email.strip()):
        errors.append("The email is not valid.")
    if phone_number and not PHONE_PATTERN.match(phone_number.strip()):
        errors.append("The phone number can only be in numbers.")
    return errors


def plan_role_changes(current: set[str] | frozenset[str], desired: set[str] | frozenset[str]) -> RoleDiff:
    return RoleDiff(
        to_add=frozenset(desired) - frozenset(current),
        to_remove=frozenset(current) - frozenset(desired),
    )


def apply_role_diff(store: AccountStore, user: User, diff: RoleDiff) -> list[str]:
    """
    Apply grants then revocations; returns the collected store errors.

    Each step is idempotent, so applying the same diff again after a failure
    converges on the desired set.
    """
    errors: list[str] = []
    for role_name in sorted(diff.to_add):
        result = store.add_role(user, role_name)
        errors.extend(result.errors)
    for role_name in sorted(diff.to_remove):
        result = store.remove_role(user, role_name)
        errors.extend(result.errors)
    return errors


def resolve_actor(session: Session, user_id: str | None) -> tuple[User, Actor]:
    """Load the session user and its current roles; a vanished user is unauthenticated."""
    store = AccountStore(session)
    user = store.find_by_id(user_id)
    if user is None:
        raise Unauthenticated("User not found")
    return user, Subject.of(user.id, store.roles_of(user))


def _load_target(store: AccountStore, user_id: str) -> tuple[User, Subject]:
    user = store.find_by_id(user_id)
    if user is None:
        raise NotFound(MSG_USER_NOT_FOUND)
    return user, Subject.of(user.id, store.roles_of(user))


def _unknown_role_errors(requested: set[str], known: set[str]) -> list[str]:
    return [f"Role {name} does not exist." for name in sorted(requested - known)]


def _commit(session: Session, rejected_input: dict | None = None) -> None:
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise StoreFailure([MSG_CONFLICT], rejected_input) from e


def get_user(session: Session, actor: Actor, user_id: str) -> tuple[User, Subject]:
    """Return the target user and its roles if the actor may view it."""
    store = AccountStore(session)
    user, target = _load_target(store, user_id)
    require(actor, Operation.VIEW_USER, target)
    return user, target


def user_actions(actor: Actor, target: Subject, all_roles: list[str]) -> dict:
    """Presentation hints for one user, from the same predicates that enforce mutations."""
    return {
        "can_edit": can_edit_user(actor, target),
        "can_delete": can_delete_user(actor, target),
        "editable_roles": sorted(editable_roles(actor, target, all_roles)),
    }


def create_user(session: Session, actor: Actor, data: UserCreate) -> tuple[User, set[str]]:
    """
    Create a user and grant the selected roles in one transaction.

    Raises PermissionDenied if the actor may not create users or grant a selected
    role, ValidationFailure / StoreFailure (with the rejected input, password
    removed) when the form or the store rejects the data.
    """
    require(actor, Operation.CREATE_USER)
    store = AccountStore(session)
    rejected_input = data.model_dump(exclude={"password"})

    known_roles = {role.name for role in store.all_roles()}
    requested = set(data.roles)
    errors = validate_profile(data.username, data.email, data.phone_number)
    if not data.password:
        errors.append("The password field is required.")
    errors.extend(_unknown_role_errors(requested, known_roles))
    if errors:
        raise ValidationFailure(errors, rejected_input)
    if requested - selectable_roles_on_create(actor, known_roles):
        raise PermissionDenied()

    now = utc_minute()
    user = User(
        id=new_id(),
        username=data.username.strip(),
        first_name=(data.first_name or "").strip(),
        last_name=(data.last_name or "").strip(),
        email=data.email.strip(),
        phone_number=(data.phone_number or "").strip() or None,
        created_at=now,
        updated_at=now,
    )
    try:
        result = store.create(user, data.password)
        if not result:
            raise StoreFailure(list(result.errors), rejected_input)
        role_errors = apply_role_diff(store, user, plan_role_changes(set(), requested))
        if role_errors:
            raise StoreFailure(role_errors, rejected_input)
    except StoreFailure:
        session.rollback()
        raise
    except IntegrityError as e:
        # A concurrent write took the username or email after validation.
        session.rollback()
        raise StoreFailure([MSG_CONFLICT], rejected_input) from e
    _commit(session, rejected_input)
    logger.info(
        "User created: id=%s username=%s roles=%s by=%s",
        user.id,
        user.username,
        sorted(requested),
        actor.id,
    )
    return user, requested


def update_user(
    session: Session, actor: Actor, user_id: str, data: UserUpdate
) -> tuple[User, set[str]]:
    """
    Update profile fields, optionally the password, and role memberships.

    The submitted role list is the full desired selection for the rows the actor
    may edit; rows it may not edit keep their current state, and trying to grant
    one of them is PermissionDenied. A rejected password aborts the whole update.
    """
    store = AccountStore(session)
    user, target = _load_target(store, user_id)
    require(actor, Operation.EDIT_USER, target)
    rejected_input = {"id": user.id, **data.model_dump(exclude={"password"})}

    errors = validate_profile(data.username, data.email, data.phone_number)
    if data.password:
        errors.extend(store.validate_password(user, data.password).errors)

    diff = RoleDiff()
    if data.roles is not None:
        known_roles = {role.name for role in store.all_roles()}
        requested = set(data.roles)
        errors.extend(_unknown_role_errors(requested, known_roles))
        if not errors:
            editable = editable_roles(actor, target, known_roles)
            if (requested - target.roles) - editable:
                raise PermissionDenied()
            desired = (target.roles - editable) | (requested & editable)
            diff = plan_role_changes(target.roles, desired)
    if errors:
        raise ValidationFailure(errors, rejected_input)

    try:
        user.username = data.username.strip()
        user.first_name = (data.first_name or "").strip()
        user.last_name = (data.last_name or "").strip()
        user.email = data.email.strip()
        user.phone_number = (data.phone_number or "").strip() or None
        user.updated_at = utc_minute()
        result = store.update(user)
        if not result:
            raise StoreFailure(list(result.errors), rejected_input)
        if data.password:
            user.password_hash = store.hash_password(user, data.password)
        role_errors = apply_role_diff(store, user, diff)
        if role_errors:
            raise StoreFailure(role_errors, rejected_input)
    except StoreFailure:
        session.rollback()
        raise
    except IntegrityError as e:
        # A concurrent write took the username or email after validation.
        session.rollback()
        raise StoreFailure([MSG_CONFLICT], rejected_input) from e
    _commit(session, rejected_input)

    roles = set((target.roles | diff.to_add) - diff.to_remove)
    logger.info(
        "User updated: id=%s by=%s password_changed=%s roles_added=%s roles_removed=%s",
        user.id,
        actor.id,
        bool(data.password),
        sorted(diff.to_add),
        sorted(diff.to_remove),
    )
    return user, roles


def delete_user(session: Session, actor: Actor, user_id: str) -> None:
    """Delete a user after re-checking the delete predicate against current roles."""
    store = AccountStore(session)
    user, target = _load_target(store, user_id)
    require(actor, Operation.DELETE_USER, target)
    result = store.delete(user)
    if not result:
        session.rollback()
        raise StoreFailure(list(result.errors))
    _commit(session)
    logger.info("User deleted: id=%s username=%s by=%s", target.id, user.username, actor.id)


def _order_by(sort: str) -> tuple:
    """Total ordering for each sort key: primary column(s), then username, then id."""
    orderings = {
        "username": (User.username.asc(),),
        "username_desc": (User.username.desc(),),
        "name": (User.first_name.asc(), User.last_name.asc()),
        "name_desc": (User.first_name.desc(), User.last_name.desc()),
        "email": (User.email.asc(),),
        "email_desc": (User.email.desc(),),
        "created": (User.created_at.asc(),),
        "created_desc": (User.created_at.desc(),),
    }
    primary = orderings.get(sort, orderings[DEFAULT_SORT])
    return (*primary, User.username.asc(), User.id.asc())


def list_users(
    session: Session,
    search: str | None = None,
    roles: list[str] | None = None,
    sort: str = DEFAULT_SORT,
    page: int = 1,
    page_size: int = 10,
) -> UserPage:
    """
    Search, role-filter, sort and paginate users.

    Search and role filters are part of the query, so they apply to the full
    user set before LIMIT/OFFSET picks the page.
    """
    store = AccountStore(session)
    query = store.all_users()
    if search and search.strip():
        term = search.strip().lower()
        query = query.where(
            func.lower(User.username).contains(term, autoescape=True)
            | func.lower(User.first_name).contains(term, autoescape=True)
            | func.lower(User.last_name).contains(term, autoescape=True)
            | func.lower(User.email).contains(term, autoescape=True)
        )
    if roles:
        members = (
            select(user_roles.c.user_id)
            .join(Role, Role.id == user_roles.c.role_id)
            .where(Role.name.in_(roles))
        )
        query = query.where(User.id.in_(members))

    total = session.scalar(select(func.count()).select_from(query.subquery())) or 0
    pages = max(1, math.ceil(total / page_size))
    # Out-of-range pages show the nearest existing page.
    page = min(max(1, page), pages)
    users = list(
        session.scalars(
            query.order_by(*_order_by(sort)).offset((page - 1) * page_size).limit(page_size)
        )
    )
    memberships = store.roles_for_users([u.id for u in users])
    return UserPage(
        items=[(u, memberships.get(u.id, set())) for u in users],
        total=total,
        page=page,
        page_size=page_size,
        pages=pages,
    )


# ── role membership pages ────────────────────────────────────────────────────


def role_overview(session: Session, actor: Actor) -> list[tuple[Role, list[str], bool, bool]]:
    """Each role with member usernames (capped), truncation flag and whether the actor may edit it."""
    require(actor, Operation.VIEW_ROLES)
    store = AccountStore(session)
    overview = []
    for role in store.all_roles():
        names = [u.username for u in store.members_of(role)]
        truncated = len(names) > MAX_LISTED_MEMBERS
        overview.append(
            (role, names[:MAX_LISTED_MEMBERS], truncated, can_manage_role(actor, role.name))
        )
    return overview


def role_members(session: Session, actor: Actor, role_id: str) -> tuple[Role, list[User], list[User], bool]:
    """Members and non-members of one role."""
    require(actor, Operation.VIEW_ROLES)
    store = AccountStore(session)
    role = store.find_role(role_id)
    if role is None:
        raise NotFound(MSG_ROLE_NOT_FOUND)
    members = store.members_of(role)
    member_ids = {u.id for u in members}
    non_members = [
        u
        for u in session.scalars(store.all_users().order_by(User.username, User.id))
        if u.id not in member_ids
    ]
    return role, members, non_members, can_manage_role(actor, role.name)


def update_role_members(
    session: Session,
    actor: Actor,
    role_id: str,
    add_ids: list[str],
    delete_ids: list[str],
) -> Role:
    """Grant the role to add_ids and revoke it from delete_ids in one transaction."""
    store = AccountStore(session)
    role = store.find_role(role_id)
    if role is None:
        raise NotFound(MSG_ROLE_NOT_FOUND)
    require(actor, Operation.MANAGE_ROLE, role_name=role.name)

    # The role was resolved above, so add_role and remove_role cannot report a missing role.
    added = [u.id for u in map(store.find_by_id, add_ids) if u is not None]
    removed = [u.id for u in map(store.find_by_id, delete_ids) if u is not None]
    try:
        for user_id in added:
            store.add_role(store.find_by_id(user_id), role.name)
        for user_id in removed:
            store.remove_role(store.find_by_id(user_id), role.name)
    except IntegrityError as e:
        # A concurrent request granted the same membership first.
        session.rollback()
        raise StoreFailure([MSG_MEMBERSHIP_CONFLICT]) from e
    _commit(session)
    logger.info(
        "Role membership changed: role=%s added=%s removed=%s by=%s",
        role.name,
        added,
        removed,
        actor.id,
    )
    return role
