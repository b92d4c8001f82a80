"""Authentication core: credential checks, token resolution and registration."""
import uuid
from typing import Optional

from ..models.enums import Role, UserStatus
from ..models.user import User
from ..schemas.auth import AuthUser, LoginResult, RegisterRequest
from ..services.credential_store import (
    CredentialStore,
    GuardedCredentialStore,
    normalize_email,
)
from .exceptions import InvalidCredentials, InvalidToken, NotFoundError, ValidationError
from .logging import AuditLogger, SecurityLogger
from .passwords import PasswordHasher
from .tokens import Clock, TokenIssuer, utc_clock

# Roles a visitor may ask for when signing up; the rest are granted by an admin.
SELF_REGISTER_ROLES = frozenset({Role.OWNER, Role.TENANT, Role.SERVICE_PROVIDER})


def to_auth_user(user: User) -> AuthUser:
    """Public view of a user record; never carries the password hash."""
    return AuthUser.model_validate(user)


class Authenticator:
    """Stateless authentication against the credential store."""

    def __init__(
        self,
        store: CredentialStore,
        hasher: Optional[PasswordHasher] = None,
        tokens: Optional[TokenIssuer] = None,
        clock: Clock = utc_clock,
    ):
        if not isinstance(store, GuardedCredentialStore):
            store = GuardedCredentialStore(store)
        self.store = store
        self.hasher = hasher or PasswordHasher()
        self.tokens = tokens or TokenIssuer()
        self._clock = clock

    async def authenticate(self, email: str, password: str) -> LoginResult:
        """Check credentials, issue a token and record the login.

        Every rejection raises the same InvalidCredentials, and nothing is
        written to the store unless the login succeeds.
        """
        email = normalize_email(email)
        user = await self.store.find_by_email(email)

        if user is None:
            # Same bcrypt cost as a real check so timing does not leak existence.
            await self.hasher.burn_async(password)
            SecurityLogger.log_login_attempt(email, success=False, failure_reason="unknown_email")
            raise InvalidCredentials()

        if user.status != UserStatus.ACTIVE:
            await self.hasher.burn_async(password)
            SecurityLogger.log_login_attempt(
                email, success=False, user_id=str(user.id),
                failure_reason=f"status_{user.status.value.lower()}"
            )
            raise InvalidCredentials()

        if not await self.hasher.verify_async(password, user.password_hash):
            SecurityLogger.log_login_attempt(
                email, success=False, user_id=str(user.id), failure_reason="bad_password"
            )
            raise InvalidCredentials()

        token = self.tokens.issue(user)
        await self.store.update_last_login(user.id, self._clock())
        SecurityLogger.log_login_attempt(email, success=True, user_id=str(user.id))

        return LoginResult(
            token=token,
            expires_in=self.tokens.expires_in,
            user=to_auth_user(user),
        )

    async def resolve(self, token: str) -> AuthUser:
        """Verify ``token`` and re-check the live account behind it.

        Raises:
            InvalidToken: the token fails verification, or its user no
                longer exists or is not ACTIVE.
        """
        claims = self.tokens.verify(token)
        user = await self.store.find_by_id(claims.id)
        if user is None or user.status != UserStatus.ACTIVE:
            SecurityLogger.log_token_rejected(reason="account_inactive", user_id=str(claims.id))
            raise InvalidToken("Account is no longer active", details={"reason": "account"})
        return to_auth_user(user)

    async def register(self, request: RegisterRequest) -> AuthUser:
        """Self-registration; the account waits in PENDING for an admin."""
        if request.role not in SELF_REGISTER_ROLES:
            raise ValidationError(
                "Role cannot be requested at registration",
                details={"role": request.role.value},
            )

        user = await self.store.create_user({
            "email": request.email,
            "password_hash": await self.hasher.hash_async(request.password),
            "name": request.name,
            "phone": request.phone,
            "role": request.role,
            "status": UserStatus.PENDING,
        })
        AuditLogger.log_user_created(
            str(user.id), user.email, user.role.value, user.status.value
        )
        return to_auth_user(user)

    async def change_password(
        self,
        user_id: uuid.UUID,
        current_password: str,
        new_password: str
    ) -> None:
        """Replace a user's password after checking the current one."""
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        if not await self.hasher.verify_async(current_password, user.password_hash):
            raise InvalidCredentials("Current password is incorrect")

        new_hash = await self.hasher.hash_async(new_password)
        await self.store.update_user(user_id, password_hash=new_hash)
        AuditLogger.log_password_changed(str(user_id))
