"""Request-scoped dependencies: stores, services and bearer authentication."""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..database import get_session_factory
from ..schemas.auth import AuthUser
from ..services.credential_store import CredentialStore, SQLAlchemyCredentialStore
from ..services.users import UserService
from .auth import Authenticator
from .exceptions import AuthorizationError, InvalidToken
from .logging import SecurityLogger
from .passwords import PasswordHasher
from .policy import Capability, can_access
from .tokens import RevocationList, TokenIssuer

# Security scheme
security = HTTPBearer(auto_error=False)

# Process-wide instances; the signing secret is read once here.
password_hasher = PasswordHasher()
token_issuer = TokenIssuer(revocations=RevocationList())


def get_credential_store() -> CredentialStore:
    """Credential store backed by the application database."""
    return SQLAlchemyCredentialStore(get_session_factory())


def get_authenticator(
    store: CredentialStore = Depends(get_credential_store)
) -> Authenticator:
    return Authenticator(store, hasher=password_hasher, tokens=token_issuer)


def get_user_service(
    store: CredentialStore = Depends(get_credential_store)
) -> UserService:
    return UserService(store, hasher=password_hasher)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    if credentials is None or not credentials.credentials:
        raise InvalidToken("Not authenticated", details={"reason": "missing"})
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_bearer_token),
    authenticator: Authenticator = Depends(get_authenticator)
) -> AuthUser:
    """Get current authenticated user.

    The token is verified and the account re-checked on every request.
    """
    return await authenticator.resolve(token)


def require_capability(capability: Capability):
    """Dependency to require a capability from the policy table."""
    async def check_capability(
        request: Request,
        current_user: AuthUser = Depends(get_current_user)
    ) -> AuthUser:
        if not can_access(current_user.role, capability):
            SecurityLogger.log_unauthorized_access(
                capability=capability.value,
                user_id=str(current_user.id),
                role=current_user.role.value,
                path=str(request.url.path),
            )
            raise AuthorizationError(details={"capability": capability.value})
        return current_user

    return check_capability


# Common capability checkers
users_manager_required = require_capability(Capability.MANAGE_USERS)
