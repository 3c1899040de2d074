"""Health check: database connectivity and pending first-run setup."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from useradmin.core.config import settings
from useradmin.core.database import check_db_connected, get_db
from useradmin.schemas.health import HealthResponse
from useradmin.services.roles import bootstrap_available

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(db: Annotated[Session, Depends(get_db)]) -> HealthResponse:
    """
    Return service health and database connectivity.
    bootstrap_required tells operators the SuperAdmin setup has not been run yet.
    """
    if not check_db_connected(db):
        return HealthResponse(environment=settings.APP_ENV, database="disconnected")
    return HealthResponse(
        environment=settings.APP_ENV,
        database="connected",
        bootstrap_required=bootstrap_available(db),
    )
