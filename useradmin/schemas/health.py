"""Schemas for the health check response."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Service status, database reachability and whether first-run setup is pending."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Current app environment (dev or prod)")
    database: Literal["connected", "disconnected"] = Field(
        description="Result of a trivial query against the configured database",
    )
    bootstrap_required: bool | None = Field(
        default=None,
        description="True while no SuperAdmin exists; None when the database is unreachable",
    )
