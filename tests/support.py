"""Shared builders for tests: in-memory database, roles and users."""

from collections.abc import Iterable

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from useradmin.core.security import hash_password
from useradmin.models import Base, User, user_roles
from useradmin.models.base import new_id, utc_minute
from useradmin.services.authorization import Subject
from useradmin.services.roles import ensure_default_roles
from useradmin.services.store import AccountStore

# Satisfies the password policy (no "123").
GOOD_PASSWORD = "Sunshine!42"


def make_session() -> Session:
    """Fresh in-memory SQLite database with every table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


def seed_roles(session: Session) -> None:
    ensure_default_roles(AccountStore(session))
    session.commit()


def add_user(
    session: Session,
    username: str,
    roles: Iterable[str] = (),
    email: str | None = None,
    password: str | None = None,
    first_name: str = "",
    last_name: str = "",
) -> User:
    """
    Insert a user directly (bypassing validation) and grant roles.

    Hashing is skipped unless a password is given, which keeps bulk fixtures fast.
    """
    now = utc_minute()
    user = User(
        id=new_id(),
        username=username,
        email=email or f"{username}@example.com",
        first_name=first_name,
        last_name=last_name,
        password_hash=hash_password(password) if password else "!",
        created_at=now,
        updated_at=now,
    )
    session.add(user)
    session.flush()
    store = AccountStore(session)
    for role_name in roles:
        role = store.find_role_by_name(role_name)
        session.execute(user_roles.insert().values(user_id=user.id, role_id=role.id))
    session.commit()
    return user


def subject(session: Session, user: User) -> Subject:
    return Subject.of(user.id, AccountStore(session).roles_of(user))
