"""Credential store: persistence of user records behind one interface."""
import asyncio
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import settings
from ..core.exceptions import ConflictError, NotFoundError, StoreTimeout, StoreUnavailable
from ..core.logging import SecurityLogger
from ..models.base import utcnow
from ..models.enums import Role, UserStatus
from ..models.user import User

T = TypeVar("T")

# Columns callers may change through update_user.
MUTABLE_FIELDS = frozenset({"name", "phone", "avatar", "role", "status", "password_hash"})


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore(ABC):
    """Abstract base class for credential stores."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        """Get user by normalized email."""
        pass

    @abstractmethod
    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get user by ID."""
        pass

    @abstractmethod
    async def update_last_login(self, user_id: uuid.UUID, timestamp: datetime) -> None:
        """Record a successful login."""
        pass

    @abstractmethod
    async def create_user(self, fields: Dict[str, Any]) -> User:
        """Insert a new user; raises ConflictError on a duplicate email."""
        pass

    @abstractmethod
    async def update_user(self, user_id: uuid.UUID, **fields: Any) -> User:
        """Update mutable columns; raises NotFoundError for unknown ids."""
        pass

    @abstractmethod
    async def list_users(self) -> List[User]:
        """Return every user record."""
        pass

    async def ping(self) -> bool:
        return True

    @staticmethod
    def _check_fields(fields: Dict[str, Any]) -> None:
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")


class InMemoryCredentialStore(CredentialStore):
    """Dictionary backed store used for fixtures and tests."""

    def __init__(self):
        self._users: Dict[uuid.UUID, User] = {}

    async def find_by_email(self, email: str) -> Optional[User]:
        email = normalize_email(email)
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return self._users.get(user_id)

    async def update_last_login(self, user_id: uuid.UUID, timestamp: datetime) -> None:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        user.last_login = timestamp

    async def create_user(self, fields: Dict[str, Any]) -> User:
        email = normalize_email(fields["email"])
        if await self.find_by_email(email) is not None:
            raise ConflictError("User with this email already exists")

        now = utcnow()
        user = User(
            id=uuid.uuid4(),
            email=email,
            password_hash=fields["password_hash"],
            name=fields["name"],
            phone=fields.get("phone"),
            avatar=fields.get("avatar"),
            role=Role(fields.get("role", Role.TENANT)),
            status=UserStatus(fields.get("status", UserStatus.PENDING)),
            last_login=None,
            created_at=now,
            updated_at=now,
        )
        self._users[user.id] = user
        return user

    async def update_user(self, user_id: uuid.UUID, **fields: Any) -> User:
        self._check_fields(fields)
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_at = utcnow()
        return user

    async def list_users(self) -> List[User]:
        return list(self._users.values())


class SQLAlchemyCredentialStore(CredentialStore):
    """Relational store reached through an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == normalize_email(email))
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        async with self._session() as session:
            return await session.get(User, user_id)

    async def update_last_login(self, user_id: uuid.UUID, timestamp: datetime) -> None:
        async with self._session() as session:
            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")
            user.last_login = timestamp
            await session.commit()

    async def create_user(self, fields: Dict[str, Any]) -> User:
        db_user = User(
            email=normalize_email(fields["email"]),
            password_hash=fields["password_hash"],
            name=fields["name"],
            phone=fields.get("phone"),
            avatar=fields.get("avatar"),
            role=Role(fields.get("role", Role.TENANT)),
            status=UserStatus(fields.get("status", UserStatus.PENDING)),
        )
        async with self._session() as session:
            session.add(db_user)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError("User with this email already exists") from e
            await session.refresh(db_user)
            return db_user

    async def update_user(self, user_id: uuid.UUID, **fields: Any) -> User:
        self._check_fields(fields)
        async with self._session() as session:
            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")
            for key, value in fields.items():
                setattr(user, key, value)
            await session.commit()
            await session.refresh(user)
            return user

    async def list_users(self) -> List[User]:
        async with self._session() as session:
            result = await session.execute(select(User).order_by(User.name))
            return list(result.scalars().all())

    async def ping(self) -> bool:
        try:
            async with self._session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except StoreUnavailable:
            return False

    def _session(self):
        return _GuardedSession(self.session_factory)


class _GuardedSession:
    """Async context manager mapping driver failures to StoreUnavailable."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._factory = session_factory
        self._session: Optional[AsyncSession] = None

    async def __aenter__(self) -> AsyncSession:
        self._session = self._factory()
        return self._session

    async def __aexit__(self, exc_type, exc, tb):
        try:
            if exc is not None:
                await self._session.rollback()
        finally:
            await self._session.close()
        if isinstance(exc, DBAPIError) and not isinstance(exc, IntegrityError):
            raise StoreUnavailable(details={"error": type(exc).__name__}) from exc
        if isinstance(exc, OSError):
            raise StoreUnavailable(details={"error": type(exc).__name__}) from exc
        return False


class GuardedCredentialStore(CredentialStore):
    """Wraps a store with a per-call timeout and bounded retries.

    Idempotent calls that time out are retried with exponential backoff;
    once attempts are exhausted the failure escalates to StoreUnavailable.
    ``create_user`` and ``update_last_login`` are attempted once,
    so a timeout there surfaces as StoreTimeout even if the write landed.
    """

    def __init__(
        self,
        inner: CredentialStore,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        backoff: Optional[float] = None,
    ):
        self.inner = inner
        self.timeout = timeout if timeout is not None else settings.auth.store_timeout_seconds
        self.max_attempts = max_attempts or settings.auth.store_max_attempts
        self.backoff = backoff if backoff is not None else settings.auth.store_retry_backoff_seconds

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self._call("find_by_email", self.inner.find_by_email, email)

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await self._call("find_by_id", self.inner.find_by_id, user_id)

    async def update_last_login(self, user_id: uuid.UUID, timestamp: datetime) -> None:
        await self._once("update_last_login", self.inner.update_last_login(user_id, timestamp))

    async def create_user(self, fields: Dict[str, Any]) -> User:
        return await self._once("create_user", self.inner.create_user(fields))

    async def update_user(self, user_id: uuid.UUID, **fields: Any) -> User:
        return await self._call(
            "update_user", lambda: self.inner.update_user(user_id, **fields)
        )

    async def list_users(self) -> List[User]:
        return await self._call("list_users", self.inner.list_users)

    async def ping(self) -> bool:
        try:
            return await self._once("ping", self.inner.ping())
        except (StoreTimeout, StoreUnavailable):
            return False

    async def _once(self, operation: str, awaitable: Awaitable[T], attempt: int = 1) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except (asyncio.TimeoutError, TimeoutError) as e:
            SecurityLogger.log_store_failure(operation=operation, attempt=attempt, error="timeout")
            raise StoreTimeout(
                details={"operation": operation, "timeout_seconds": self.timeout}
            ) from e

    async def _call(self, operation: str, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, max=max(self.backoff * 8, 0)),
            retry=retry_if_exception_type(StoreTimeout),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._once(
                        operation, func(*args), attempt.retry_state.attempt_number
                    )
        except StoreTimeout as e:
            if self.max_attempts == 1:
                raise
            raise StoreUnavailable(
                details={"operation": operation, "attempts": self.max_attempts}
            ) from e
