"""Authentication schemas."""
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from ..models.enums import Role, UserStatus
from .common import BaseSchema


class AuthUser(BaseSchema):
    """Public user view handed to the presentation layer."""

    id: uuid.UUID = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="User email address")
    role: Role = Field(..., description="User role")
    avatar: Optional[str] = Field(None, description="Avatar URL")


class LoginRequest(BaseSchema):
    """Login request schema."""

    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=1, description="User password")


class LoginResult(BaseSchema):
    """Successful login: the public user view plus its session token."""

    token: str = Field(..., description="Signed session token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: AuthUser = Field(..., description="Authenticated user")


class TokenClaims(BaseSchema):
    """Decoded session token payload."""

    id: uuid.UUID
    email: str
    role: Role
    issued_at: datetime
    expires_at: datetime
    jti: str


class StoredSession(BaseSchema):
    """What the client session store keeps between runs."""

    token: str
    user: AuthUser


class RegisterRequest(BaseSchema):
    """Self-registration request; the account starts out PENDING."""

    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=8, max_length=72, description="User password")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    phone: Optional[str] = Field(None, max_length=50, description="Phone number")
    role: Role = Field(default=Role.OWNER, description="Requested role")


class UserCreate(BaseSchema):
    """Administrative user creation schema."""

    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=8, max_length=72, description="User password")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    phone: Optional[str] = Field(None, max_length=50, description="Phone number")
    avatar: Optional[str] = Field(None, description="Avatar URL")
    role: Role = Field(default=Role.OWNER, description="User role")
    status: UserStatus = Field(default=UserStatus.ACTIVE, description="Account status")


class ProfileUpdate(BaseSchema):
    """Profile update schema; only display metadata is editable."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    avatar: Optional[str] = Field(None)


class RoleUpdate(BaseSchema):
    """Role change request."""

    role: Role


class UserResponse(BaseSchema):
    """Administrative user view."""

    id: uuid.UUID = Field(..., description="User ID")
    email: str = Field(..., description="User email")
    name: str = Field(..., description="Display name")
    phone: Optional[str] = Field(None, description="Phone number")
    avatar: Optional[str] = Field(None, description="Avatar URL")
    role: Role = Field(..., description="User role")
    status: UserStatus = Field(..., description="Account status")
    last_login: Optional[datetime] = Field(None, description="Last login time")
    created_at: Optional[datetime] = Field(None, description="Account creation time")


class UserStats(BaseSchema):
    """Headline counters for the users page."""

    total: int
    active: int
    pending: int
    owners: int


class PasswordChangeRequest(BaseSchema):
    """Password change request schema."""

    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., min_length=8, max_length=72, description="New password")


class CapabilitiesResponse(BaseSchema):
    """Capabilities and dashboard routes open to the current user."""

    role: Role
    capabilities: List[str]
    routes: List[str]
