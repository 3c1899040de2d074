"""ORM models for roles and the user/role association."""

from sqlalchemy import Column, ForeignKey, String, Table

from useradmin.models.base import Base, new_id

user_roles = Table(
    "user_roles",
    Base.metadata,
    Column(
        "user_id",
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "role_id",
        String(36),
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Role(Base):
    """
    Permission tier. Exactly three names exist: SuperAdmin, Admin, LimitedAdmin.

    Created once at bootstrap; never renamed or deleted.
    """

    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(64), nullable=False, unique=True, index=True)
