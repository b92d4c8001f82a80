"""Services module."""
from .credential_store import (
    CredentialStore,
    GuardedCredentialStore,
    InMemoryCredentialStore,
    SQLAlchemyCredentialStore,
)
from .users import UserService

__all__ = [
    "CredentialStore",
    "GuardedCredentialStore",
    "InMemoryCredentialStore",
    "SQLAlchemyCredentialStore",
    "UserService",
]
