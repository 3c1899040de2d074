"""One-time SuperAdmin bootstrap. Closed (404) once the first SuperAdmin exists."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from useradmin.core.database import get_db
from useradmin.schemas.setup import BootstrapRequest, BootstrapStatus
from useradmin.schemas.users import UserOut
from useradmin.services.authorization import SUPER_ADMIN
from useradmin.services.roles import bootstrap_available, bootstrap_superadmin

router = APIRouter()


@router.get("/status", response_model=BootstrapStatus)
def get_status(db: Annotated[Session, Depends(get_db)]) -> BootstrapStatus:
    return BootstrapStatus(available=bootstrap_available(db))


@router.post("/superadmin", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_superadmin(
    body: BootstrapRequest,
    db: Annotated[Session, Depends(get_db)],
) -> UserOut:
    """Seed the roles and create the first SuperAdmin. Unauthenticated, usable once."""
    user = bootstrap_superadmin(db, body.username, body.email, body.password)
    return UserOut(
        id=user.id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        phone_number=user.phone_number,
        created_at=user.created_at,
        updated_at=user.updated_at,
        roles=[SUPER_ADMIN],
    )
