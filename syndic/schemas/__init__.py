"""Pydantic schemas module."""
from .auth import (
    AuthUser,
    CapabilitiesResponse,
    LoginRequest,
    LoginResult,
    PasswordChangeRequest,
    ProfileUpdate,
    RegisterRequest,
    RoleUpdate,
    StoredSession,
    TokenClaims,
    UserCreate,
    UserResponse,
    UserStats,
)
from .common import (
    ErrorResponse,
    HealthResponse,
    SuccessResponse,
)

__all__ = [
    # Auth
    "AuthUser",
    "CapabilitiesResponse",
    "LoginRequest",
    "LoginResult",
    "PasswordChangeRequest",
    "ProfileUpdate",
    "RegisterRequest",
    "RoleUpdate",
    "StoredSession",
    "TokenClaims",
    "UserCreate",
    "UserResponse",
    "UserStats",
    # Common
    "ErrorResponse",
    "HealthResponse",
    "SuccessResponse",
]
