"""
Role-precedence authorization: who may view, create, edit or delete whom.

SuperAdmin has unconditional authority. Admin authority is bounded to targets
holding at most LimitedAdmin (or no role). LimitedAdmin and unassigned users are
limited to their own profile. Every function here is pure: callers pass the
actor's and target's *current* role sets, read fresh for the request.

The same predicates drive presentation hints (which controls to show) and
enforcement (which mutations to accept).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from useradmin.services.errors import PermissionDenied

SUPER_ADMIN = "SuperAdmin"
ADMIN = "Admin"
LIMITED_ADMIN = "LimitedAdmin"

# Descending precedence.
ROLE_TIERS: tuple[str, ...] = (SUPER_ADMIN, ADMIN, LIMITED_ADMIN)

_ADMIN_BOUNDED_TARGET_ROLES = frozenset({LIMITED_ADMIN})


class Operation(str, Enum):
    VIEW_ROLES = "view_roles"
    MANAGE_ROLE = "manage_role"
    CREATE_USER = "create_user"
    VIEW_USER = "view_user"
    EDIT_USER = "edit_user"
    DELETE_USER = "delete_user"


@dataclass(frozen=True)
class Subject:
    """A user as seen by the decision function: id plus current role names."""

    id: str
    roles: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, user_id: str, roles: Iterable[str]) -> "Subject":
        return cls(id=str(user_id), roles=frozenset(roles))


# The authenticated user making a request.
Actor = Subject


def _is_super_admin(subject: Subject) -> bool:
    return SUPER_ADMIN in subject.roles


def _is_admin(subject: Subject) -> bool:
    return ADMIN in subject.roles


def _within_admin_bound(target: Subject) -> bool:
    """True if target holds at most LimitedAdmin (an empty role set included)."""
    return target.roles <= _ADMIN_BOUNDED_TARGET_ROLES


def can_view_roles(actor: Actor) -> bool:
    """Role list and role membership pages: any of the three tiers."""
    return bool(actor.roles & set(ROLE_TIERS))


def can_manage_role(actor: Actor, role_name: str) -> bool:
    """Assign/revoke a role: SuperAdmin for any role, Admin for LimitedAdmin only."""
    if _is_super_admin(actor):
        return True
    return _is_admin(actor) and role_name == LIMITED_ADMIN


def can_create_user(actor: Actor) -> bool:
    return _is_super_admin(actor) or _is_admin(actor)


def can_view_user(actor: Actor, target: Subject) -> bool:
    """Own profile always; SuperAdmin any profile; Admin profiles within its bound."""
    if target.id == actor.id:
        return True
    if _is_super_admin(actor):
        return True
    return _is_admin(actor) and _within_admin_bound(target)


def can_edit_user(actor: Actor, target: Subject) -> bool:
    """Editing uses exactly the view predicate."""
    return can_view_user(actor, target)


def can_delete_user(actor: Actor, target: Subject) -> bool:
    if _is_super_admin(actor):
        return True
    return _is_admin(actor) and _within_admin_bound(target)


def editable_roles(actor: Actor, target: Subject, all_roles: Iterable[str]) -> frozenset[str]:
    """
    Role rows the actor may toggle on the target's edit form.

    SuperAdmin: every row. Admin editing a target within its bound: the
    LimitedAdmin row only. Anyone else (including an Admin editing itself): none.
    """
    names = frozenset(all_roles)
    if _is_super_admin(actor):
        return names
    if _is_admin(actor) and _within_admin_bound(target):
        return names & {LIMITED_ADMIN}
    return frozenset()


def selectable_roles_on_create(actor: Actor, all_roles: Iterable[str]) -> frozenset[str]:
    """Roles a new user may be given by this actor."""
    names = frozenset(all_roles)
    if _is_super_admin(actor):
        return names
    if _is_admin(actor):
        return names & {LIMITED_ADMIN}
    return frozenset()


def is_permitted(
    actor: Actor,
    operation: Operation,
    target: Subject | None = None,
    role_name: str | None = None,
) -> bool:
    """
    Single entry point for (actor, operation, target) decisions.

    Target-scoped operations without a target, and MANAGE_ROLE without a role
    name, are denied.
    """
    if operation is Operation.VIEW_ROLES:
        return can_view_roles(actor)
    if operation is Operation.CREATE_USER:
        return can_create_user(actor)
    if operation is Operation.MANAGE_ROLE:
        return role_name is not None and can_manage_role(actor, role_name)
    if target is None:
        return False
    if operation is Operation.VIEW_USER:
        return can_view_user(actor, target)
    if operation is Operation.EDIT_USER:
        return can_edit_user(actor, target)
    if operation is Operation.DELETE_USER:
        return can_delete_user(actor, target)
    return False


def require(
    actor: Actor,
    operation: Operation,
    target: Subject | None = None,
    role_name: str | None = None,
) -> None:
    """Raise PermissionDenied unless is_permitted(...) holds."""
    if not is_permitted(actor, operation, target=target, role_name=role_name):
        raise PermissionDenied()
