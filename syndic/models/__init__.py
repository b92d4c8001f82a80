"""Database models module."""
from .base import Base
from .enums import Role, UserStatus
from .user import User

__all__ = [
    "Base",
    "Role",
    "User",
    "UserStatus",
]
