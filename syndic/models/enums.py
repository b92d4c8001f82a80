"""Closed enumerations shared by every layer that branches on them."""
import enum


class Role(str, enum.Enum):
    """User role; determines authorization scope."""

    ADMIN = "ADMIN"
    OWNER = "OWNER"
    TENANT = "TENANT"
    ACCOUNTANT = "ACCOUNTANT"
    SERVICE_PROVIDER = "SERVICE_PROVIDER"


class UserStatus(str, enum.Enum):
    """Account status; only ACTIVE accounts may authenticate."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"
