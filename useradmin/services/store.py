"""
Account and role store: user/role persistence, credential hashing, membership queries.

Mutating methods return a StoreResult (success or a non-empty list of
human-readable errors) and only flush; the calling service owns the
transaction and decides when to commit or roll back.
"""

import logging
import string
from dataclasses import dataclass, field

from sqlalchemy import Select, delete, func, select
from sqlalchemy.orm import Session

from useradmin.core.security import hash_password, verify_password
from useradmin.models import PasswordResetToken, Role, User, user_roles
from useradmin.services.authorization import SUPER_ADMIN
from useradmin.services.password_policy import validate_password

logger = logging.getLogger(__name__)

USERNAME_ALLOWED_CHARS = frozenset(string.ascii_letters + string.digits + "-._@+")


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a store mutation: success, or the list of reasons it failed."""

    succeeded: bool
    errors: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls) -> "StoreResult":
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: str) -> "StoreResult":
        return cls(succeeded=False, errors=tuple(errors))

    def __bool__(self) -> bool:
        return self.succeeded


class AccountStore:
    """SQLAlchemy-backed user and role store bound to one request session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # ── users ────────────────────────────────────────────────────────────────

    def find_by_id(self, user_id: str | None) -> User | None:
        if not user_id:
            return None
        return self.session.get(User, str(user_id))

    def find_by_email(self, email: str | None) -> User | None:
        if not email or not email.strip():
            return None
        return self.session.scalars(
            select(User).where(func.lower(User.email) == email.strip().lower())
        ).first()

    def find_by_username(self, username: str | None) -> User | None:
        if not username:
            return None
        return self.session.scalars(
            select(User).where(func.lower(User.username) == username.lower())
        ).first()

    def all_users(self) -> Select[tuple[User]]:
        """Base query over every user; callers compose filters, ordering and paging."""
        return select(User)

    def _validate_user(self, user: User) -> list[str]:
        # Pending edits on user must not be flushed by the uniqueness lookups.
        with self.session.no_autoflush:
            return self._user_errors(user)

    def _user_errors(self, user: User) -> list[str]:
        errors: list[str] = []
        username = user.username or ""
        if not username or any(ch not in USERNAME_ALLOWED_CHARS for ch in username):
            errors.append(
                f"Username '{username}' is invalid, can only contain letters or digits."
            )
        else:
            existing = self.find_by_username(username)
            if existing is not None and existing.id != user.id:
                errors.append(f"Username '{username}' is already taken.")
        email = user.email or ""
        if not email.strip():
            errors.append(f"Email '{email}' is invalid.")
        else:
            existing = self.find_by_email(email)
            if existing is not None and existing.id != user.id:
                errors.append(f"Email '{email}' is already taken.")
        return errors

    def validate_password(self, user: User, password: str) -> StoreResult:
        errors = validate_password(password)
        return StoreResult.failed(*errors) if errors else StoreResult.success()

    def hash_password(self, user: User, password: str) -> str:
        return hash_password(password)

    def check_password(self, user: User, password: str) -> bool:
        return verify_password(password, user.password_hash)

    def create(self, user: User, password: str) -> StoreResult:
        """Validate, hash the password and stage the new user."""
        errors = self._validate_user(user)
        errors.extend(validate_password(password))
        if errors:
            return StoreResult.failed(*errors)
        user.password_hash = self.hash_password(user, password)
        self.session.add(user)
        self.session.flush()
        return StoreResult.success()

    def update(self, user: User) -> StoreResult:
        errors = self._validate_user(user)
        if errors:
            return StoreResult.failed(*errors)
        self.session.flush()
        return StoreResult.success()

    def set_password(self, user: User, password: str) -> StoreResult:
        result = self.validate_password(user, password)
        if not result:
            return result
        user.password_hash = self.hash_password(user, password)
        self.session.flush()
        return StoreResult.success()

    def delete(self, user: User) -> StoreResult:
        self.session.execute(
            delete(PasswordResetToken).where(PasswordResetToken.user_id == user.id)
        )
        self.session.execute(delete(user_roles).where(user_roles.c.user_id == user.id))
        self.session.delete(user)
        self.session.flush()
        return StoreResult.success()

    # ── memberships ──────────────────────────────────────────────────────────

    def roles_of(self, user: User) -> set[str]:
        """Current role names of user, read from the database (never cached)."""
        rows = self.session.scalars(
            select(Role.name)
            .join(user_roles, user_roles.c.role_id == Role.id)
            .where(user_roles.c.user_id == user.id)
        )
        return set(rows)

    def roles_for_users(self, user_ids: list[str]) -> dict[str, set[str]]:
        """Current role names for several users in one query (users without roles map to empty sets)."""
        memberships: dict[str, set[str]] = {user_id: set() for user_id in user_ids}
        if not user_ids:
            return memberships
        rows = self.session.execute(
            select(user_roles.c.user_id, Role.name)
            .join(Role, Role.id == user_roles.c.role_id)
            .where(user_roles.c.user_id.in_(user_ids))
        )
        for user_id, role_name in rows:
            memberships.setdefault(user_id, set()).add(role_name)
        return memberships

    def is_in_role(self, user: User, role_name: str) -> bool:
        return role_name in self.roles_of(user)

    def add_role(self, user: User, role_name: str) -> StoreResult:
        """Grant role_name to user. Granting a held role is a no-op."""
        role = self.find_role_by_name(role_name)
        if role is None:
            return StoreResult.failed(f"Role {role_name} does not exist.")
        if self.is_in_role(user, role_name):
            return StoreResult.success()
        self.session.execute(user_roles.insert().values(user_id=user.id, role_id=role.id))
        self.session.flush()
        return StoreResult.success()

    def remove_role(self, user: User, role_name: str) -> StoreResult:
        """Revoke role_name from user. Revoking an absent role is a no-op."""
        role = self.find_role_by_name(role_name)
        if role is None:
            return StoreResult.failed(f"Role {role_name} does not exist.")
        self.session.execute(
            delete(user_roles).where(
                user_roles.c.user_id == user.id,
                user_roles.c.role_id == role.id,
            )
        )
        self.session.flush()
        return StoreResult.success()

    def members_of(self, role: Role) -> list[User]:
        return list(
            self.session.scalars(
                select(User)
                .join(user_roles, user_roles.c.user_id == User.id)
                .where(user_roles.c.role_id == role.id)
                .order_by(User.username, User.id)
            )
        )

    def any_super_admin(self) -> bool:
        count = self.session.scalar(
            select(func.count())
            .select_from(user_roles)
            .join(Role, Role.id == user_roles.c.role_id)
            .where(Role.name == SUPER_ADMIN)
        )
        return bool(count)

    # ── roles ────────────────────────────────────────────────────────────────

    def role_exists(self, name: str) -> bool:
        return self.find_role_by_name(name) is not None

    def create_role(self, name: str) -> StoreResult:
        if not name or not name.strip():
            return StoreResult.failed("Role name cannot be empty.")
        if self.role_exists(name):
            return StoreResult.failed(f"Role name '{name}' is already taken.")
        self.session.add(Role(name=name))
        self.session.flush()
        return StoreResult.success()

    def find_role(self, role_id: str | None) -> Role | None:
        if not role_id:
            return None
        return self.session.get(Role, str(role_id))

    def find_role_by_name(self, name: str) -> Role | None:
        return self.session.scalars(select(Role).where(Role.name == name)).first()

    def all_roles(self) -> list[Role]:
        return list(self.session.scalars(select(Role).order_by(Role.name)))
