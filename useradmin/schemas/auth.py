"""Request/response schemas for login, logout and password reset."""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str = Field(default="", max_length=256, description="Account email")
    password: str = Field(default="", max_length=1024, description="Password")


class LoginResponse(BaseModel):
    """Session token returned after successful login (also set as an HttpOnly cookie)."""

    access_token: str = Field(..., description="Signed session token")
    token_type: str = Field(default="bearer", description="Token type")
    csrf_token: str = Field(..., description="Echo in X-CSRF-Token for cookie-authenticated writes")
    has_roles: bool = Field(..., description="Whether the user holds any role")


class CurrentUser(BaseModel):
    """Authenticated user with the roles held at request time."""

    id: str
    username: str
    email: str
    roles: list[str]


class PasswordResetRequest(BaseModel):
    email: str = Field(default="", max_length=256)


class PasswordResetConfirm(BaseModel):
    token: str = Field(default="", max_length=512)
    email: str = Field(default="", max_length=256)
    password: str = Field(default="", max_length=1024)
    confirm_password: str = Field(default="", max_length=1024)


class MessageResponse(BaseModel):
    message: str
