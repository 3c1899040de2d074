"""Translate account service errors into JSON responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from useradmin.schemas.errors import ErrorResponse, FormErrorResponse
from useradmin.services.errors import (
    ACCESS_DENIED_MESSAGE,
    AccountError,
    BootstrapUnavailable,
    NotFound,
    PasswordMismatch,
    PermissionDenied,
    StoreFailure,
    Unauthenticated,
    ValidationFailure,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, exc: AccountError, headers: dict[str, str] | None = None) -> JSONResponse:
    body = ErrorResponse(detail=exc.message, errors=exc.errors)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def _form_error(exc: ValidationFailure | StoreFailure) -> JSONResponse:
    body = FormErrorResponse(detail=exc.message, errors=exc.errors, input=exc.rejected_input)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body.model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register one handler per service error; routes never format errors themselves."""

    @app.exception_handler(ValidationFailure)
    async def validation_failure(request: Request, exc: ValidationFailure) -> JSONResponse:
        return _form_error(exc)

    @app.exception_handler(StoreFailure)
    async def store_failure(request: Request, exc: StoreFailure) -> JSONResponse:
        logger.info("Store rejected %s %s: %s", request.method, request.url.path, exc.errors)
        return _form_error(exc)

    @app.exception_handler(PermissionDenied)
    async def permission_denied(request: Request, exc: PermissionDenied) -> JSONResponse:
        # Same body for every denial.
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content=ErrorResponse(detail=ACCESS_DENIED_MESSAGE).model_dump(),
        )

    @app.exception_handler(NotFound)
    async def not_found(request: Request, exc: NotFound) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(BootstrapUnavailable)
    async def bootstrap_unavailable(request: Request, exc: BootstrapUnavailable) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(PasswordMismatch)
    async def password_mismatch(request: Request, exc: PasswordMismatch) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, exc)

    @app.exception_handler(Unauthenticated)
    async def unauthenticated(request: Request, exc: Unauthenticated) -> JSONResponse:
        return _error(
            status.HTTP_401_UNAUTHORIZED,
            exc,
            headers={"WWW-Authenticate": "Bearer"},
        )
