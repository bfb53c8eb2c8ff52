"""Pydantic request/response schemas."""

from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    TokenClaims,
    TokenResponse,
    UsersListResponse,
    UserView,
)
from app.schemas.health import HealthResponse

__all__ = [
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "ProfileResponse",
    "RegisterRequest",
    "RegisterResponse",
    "TokenClaims",
    "TokenResponse",
    "UserView",
    "UsersListResponse",
]
