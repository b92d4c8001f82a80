"""User administration service."""
import uuid
from typing import Dict, List, Optional, Tuple, Union

from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..core.logging import AuditLogger
from ..core.passwords import PasswordHasher
from ..core.policy import Capability, can_access, ensure_access
from ..models.enums import Role, UserStatus
from ..models.user import User
from ..schemas.auth import AuthUser, ProfileUpdate, UserCreate, UserStats
from .credential_store import CredentialStore, GuardedCredentialStore

ALL = "all"

# Administrative status transitions: action -> (from, to).
STATUS_TRANSITIONS: Dict[str, Tuple[UserStatus, UserStatus]] = {
    "approve": (UserStatus.PENDING, UserStatus.ACTIVE),
    "reject": (UserStatus.PENDING, UserStatus.INACTIVE),
    "deactivate": (UserStatus.ACTIVE, UserStatus.INACTIVE),
    "reactivate": (UserStatus.INACTIVE, UserStatus.ACTIVE),
}


def filter_users(
    users: List[User],
    search: Optional[str] = None,
    role: Union[Role, str, None] = None,
    status: Union[UserStatus, str, None] = None,
) -> List[User]:
    """Search by name, email or phone and filter by role/status.

    ``"all"`` or ``None`` disables a filter. Results are ordered by name.
    """
    term = (search or "").strip().lower()
    role = None if role in (None, ALL) else Role(role)
    status = None if status in (None, ALL) else UserStatus(status)

    def matches(user: User) -> bool:
        if term:
            haystack = (user.name, user.email, user.phone or "")
            if not any(term in value.lower() for value in haystack):
                return False
        if role is not None and user.role != role:
            return False
        if status is not None and user.status != status:
            return False
        return True

    return sorted((u for u in users if matches(u)), key=lambda u: u.name.lower())


def compute_stats(users: List[User]) -> UserStats:
    return UserStats(
        total=len(users),
        active=sum(1 for u in users if u.status == UserStatus.ACTIVE),
        pending=sum(1 for u in users if u.status == UserStatus.PENDING),
        owners=sum(1 for u in users if u.role == Role.OWNER),
    )


class UserService:
    """Administrative operations over user accounts."""

    def __init__(self, store: CredentialStore, hasher: Optional[PasswordHasher] = None):
        if not isinstance(store, GuardedCredentialStore):
            store = GuardedCredentialStore(store)
        self.store = store
        self.hasher = hasher or PasswordHasher()

    async def list_users(
        self,
        actor: AuthUser,
        search: Optional[str] = None,
        role: Union[Role, str, None] = None,
        status: Union[UserStatus, str, None] = None,
    ) -> List[User]:
        ensure_access(actor, Capability.MANAGE_USERS)
        return filter_users(await self.store.list_users(), search, role, status)

    async def stats(self, actor: AuthUser) -> UserStats:
        ensure_access(actor, Capability.MANAGE_USERS)
        return compute_stats(await self.store.list_users())

    async def create_user(self, actor: AuthUser, data: UserCreate) -> User:
        ensure_access(actor, Capability.MANAGE_USERS)
        user = await self.store.create_user({
            "email": data.email,
            "password_hash": await self.hasher.hash_async(data.password),
            "name": data.name,
            "phone": data.phone,
            "avatar": data.avatar,
            "role": data.role,
            "status": data.status,
        })
        AuditLogger.log_user_created(
            str(user.id), user.email, user.role.value, user.status.value,
            actor_id=str(actor.id)
        )
        return user

    async def get_user(self, actor: AuthUser, user_id: uuid.UUID) -> User:
        if actor.id != user_id:
            ensure_access(actor, Capability.MANAGE_USERS)
        return await self._require(user_id)

    async def transition(self, actor: AuthUser, user_id: uuid.UUID, action: str) -> User:
        """Apply one of STATUS_TRANSITIONS to a user."""
        ensure_access(actor, Capability.MANAGE_USERS)
        try:
            expected, target = STATUS_TRANSITIONS[action]
        except KeyError:
            raise ValidationError(f"Unknown action: {action}") from None

        if action == "deactivate" and actor.id == user_id:
            raise ValidationError("Administrators cannot deactivate their own account")

        user = await self._require(user_id)
        if user.status != expected:
            raise ValidationError(
                f"Cannot {action} a user who is {user.status.value}",
                details={"status": user.status.value, "action": action},
            )

        updated = await self.store.update_user(user_id, status=target)
        AuditLogger.log_status_changed(
            str(user_id), expected.value, target.value, actor_id=str(actor.id)
        )
        return updated

    async def approve(self, actor: AuthUser, user_id: uuid.UUID) -> User:
        return await self.transition(actor, user_id, "approve")

    async def reject(self, actor: AuthUser, user_id: uuid.UUID) -> User:
        return await self.transition(actor, user_id, "reject")

    async def deactivate(self, actor: AuthUser, user_id: uuid.UUID) -> User:
        return await self.transition(actor, user_id, "deactivate")

    async def reactivate(self, actor: AuthUser, user_id: uuid.UUID) -> User:
        return await self.transition(actor, user_id, "reactivate")

    async def change_role(self, actor: AuthUser, user_id: uuid.UUID, role: Role) -> User:
        ensure_access(actor, Capability.MANAGE_USERS)
        if actor.id == user_id:
            raise ValidationError("Administrators cannot change their own role")

        user = await self._require(user_id)
        old_role = user.role
        if old_role == role:
            return user

        updated = await self.store.update_user(user_id, role=Role(role))
        AuditLogger.log_role_changed(
            str(user_id), old_role.value, Role(role).value, actor_id=str(actor.id)
        )
        return updated

    async def update_profile(
        self,
        actor: AuthUser,
        user_id: uuid.UUID,
        update: ProfileUpdate
    ) -> User:
        """Edit display metadata; allowed to the user themself or an admin."""
        if actor.id != user_id and not can_access(actor.role, Capability.MANAGE_USERS):
            raise AuthorizationError("Cannot edit another user's profile")

        await self._require(user_id)
        fields = update.model_dump(exclude_unset=True)
        if fields.get("name") is None:
            fields.pop("name", None)
        if not fields:
            return await self._require(user_id)
        return await self.store.update_user(user_id, **fields)

    async def _require(self, user_id: uuid.UUID) -> User:
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"user_id": str(user_id)})
        return user
