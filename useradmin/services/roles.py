"""Role registry: idempotent seeding of the three tiers and the one-time SuperAdmin bootstrap."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from useradmin.models import SystemFlag, User
from useradmin.models.base import new_id, utc_minute
from useradmin.services.accounts import validate_profile
from useradmin.services.authorization import ROLE_TIERS, SUPER_ADMIN
from useradmin.services.errors import BootstrapUnavailable, StoreFailure, ValidationFailure
from useradmin.services.store import AccountStore

logger = logging.getLogger(__name__)

BOOTSTRAP_FLAG = "superadmin_bootstrapped"


def ensure_role_exists(store: AccountStore, name: str) -> None:
    """Create role `name` if absent. Never reports an error for an existing role."""
    if store.role_exists(name):
        return
    result = store.create_role(name)
    if not result:
        raise StoreFailure(list(result.errors))
    logger.info("Created role %s", name)


def ensure_default_roles(store: AccountStore) -> None:
    for name in ROLE_TIERS:
        ensure_role_exists(store, name)


def bootstrap_available(session: Session) -> bool:
    """True until the bootstrap marker is set or any SuperAdmin holder exists."""
    if session.get(SystemFlag, BOOTSTRAP_FLAG) is not None:
        return False
    return not AccountStore(session).any_super_admin()


def bootstrap_superadmin(
    session: Session,
    username: str,
    email: str,
    password: str,
) -> User:
    """
    Seed the three roles, create the first user and grant it SuperAdmin.

    Usable at most once per deployment: afterwards (or as soon as any SuperAdmin
    exists) it raises BootstrapUnavailable. The persisted marker keeps it closed
    even if every SuperAdmin is later deleted.
    """
    if not bootstrap_available(session):
        raise BootstrapUnavailable()

    rejected_input = {"username": username, "email": email}
    errors = validate_profile(username=username, email=email, phone_number=None)
    if not password:
        errors.append("The password field is required.")
    if errors:
        raise ValidationFailure(errors, rejected_input)

    store = AccountStore(session)
    try:
        ensure_default_roles(store)
        now = utc_minute()
        user = User(
            id=new_id(),
            username=username.strip(),
            email=email.strip(),
            first_name="",
            last_name="",
            created_at=now,
            updated_at=now,
        )
        result = store.create(user, password)
        if not result:
            raise StoreFailure(list(result.errors), rejected_input)
        result = store.add_role(user, SUPER_ADMIN)
        if not result:
            raise StoreFailure(list(result.errors), rejected_input)
        session.add(SystemFlag(name=BOOTSTRAP_FLAG))
        session.commit()
    except StoreFailure:
        session.rollback()
        raise
    except IntegrityError as e:
        # A concurrent bootstrap won the race for the marker row.
        session.rollback()
        raise BootstrapUnavailable() from e

    logger.warning("Bootstrap completed: created SuperAdmin username=%s id=%s", user.username, user.id)
    return user
