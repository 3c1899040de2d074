"""Schemas for the one-time SuperAdmin bootstrap."""

from pydantic import BaseModel, Field


class BootstrapRequest(BaseModel):
    username: str = Field(default="", max_length=256)
    email: str = Field(default="", max_length=256)
    password: str = Field(default="", max_length=1024)


class BootstrapStatus(BaseModel):
    available: bool = Field(description="True until the first SuperAdmin has been created")
