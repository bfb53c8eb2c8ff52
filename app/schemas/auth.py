"""Request/response schemas for auth and user endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.user import Role


class RegisterRequest(BaseModel):
    """New account details."""

    email: str = Field(..., min_length=3, max_length=255, description="Email (login identity)")
    password: str = Field(..., max_length=128, description="Password (strength policy applies)")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("email must be a valid email address")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str = Field(..., min_length=1, max_length=255, description="Email")
    # No length limits here: every bad password is a counted failed attempt (401).
    password: str = Field(..., description="Password")


class TokenClaims(BaseModel):
    """Decoded, verified payload of an access token."""

    user_id: int
    email: str
    role: Role
    iat: int | None = None
    exp: int | None = None
    jti: str | None = None


class UserView(BaseModel):
    """Sanitized user: everything except the password hash."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    email: str
    name: str
    role: Role
    login_attempts: int = Field(alias="loginAttempts")
    locked: bool
    created_at: datetime | None = Field(default=None, alias="createdAt")


class RegisterResponse(BaseModel):
    """Response for POST /auth/register."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["success"] = "success"
    message: str = "User registered successfully"
    user_id: int = Field(alias="userId")


class LoginResponse(BaseModel):
    """JWT access token and sanitized user returned after successful login."""

    status: Literal["success"] = "success"
    token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user: UserView


class TokenResponse(BaseModel):
    """New JWT access token returned by POST /auth/refresh."""

    status: Literal["success"] = "success"
    token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    status: Literal["success"] = "success"
    message: str


class ProfileResponse(BaseModel):
    """Response for GET /users/profile."""

    status: Literal["success"] = "success"
    user: UserView


class UsersListResponse(BaseModel):
    """Response for GET /users/admin/users (admin only)."""

    status: Literal["success"] = "success"
    count: int
    users: list[UserView]
