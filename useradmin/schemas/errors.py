"""Error response bodies produced by the exception handlers."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    detail: str
    errors: list[str] = Field(default_factory=list)


class FormErrorResponse(ErrorResponse):
    """Rejected form: the error list plus the submitted values (password removed)."""

    input: dict[str, Any] = Field(default_factory=dict)
