"""Test configuration and fixtures."""
import os

# Settings are read once at import time, so the environment goes first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_SECRET_KEY", "test-secret-key")
os.environ.setdefault("AUTH_BCRYPT_ROUNDS", "4")
os.environ.setdefault("AUTH_STORE_RETRY_BACKOFF_SECONDS", "0")
os.environ.setdefault("SESSION_FILE_PATH", "./.pytest-session.json")

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from syndic.core.auth import Authenticator
from syndic.core.passwords import PasswordHasher
from syndic.core.session import AuthService
from syndic.core.session_store import InMemorySessionStore
from syndic.core.tokens import RevocationList, TokenIssuer
from syndic.models.enums import Role, UserStatus
from syndic.services.credential_store import GuardedCredentialStore, InMemoryCredentialStore

TEST_SECRET = "test-secret-key"
PASSWORD = "password"


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, now: datetime = None):
        self.now = now or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


async def add_user(
    store,
    hasher,
    email: str,
    role: Role = Role.OWNER,
    status: UserStatus = UserStatus.ACTIVE,
    password: str = PASSWORD,
    name: str = None,
):
    """Insert a user record with a real bcrypt hash."""
    return await store.create_user({
        "email": email,
        "password_hash": hasher.hash(password),
        "name": name or email.split("@")[0],
        "role": role,
        "status": status,
    })


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def revocations(clock):
    return RevocationList(clock=clock)


@pytest.fixture
def tokens(clock, revocations):
    return TokenIssuer(secret_key=TEST_SECRET, clock=clock, revocations=revocations)


@pytest.fixture
def store():
    return InMemoryCredentialStore()


@pytest.fixture
def authenticator(store, hasher, tokens, clock):
    guarded = GuardedCredentialStore(store, timeout=1.0, max_attempts=3, backoff=0)
    return Authenticator(guarded, hasher=hasher, tokens=tokens, clock=clock)


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def auth_service(authenticator, session_store):
    service = AuthService(authenticator, session_store)
    yield service
    service.close()


@pytest_asyncio.fixture
async def admin_user(store, hasher):
    """Create admin user."""
    return await add_user(store, hasher, "admin@syndic.ma", role=Role.ADMIN, name="Admin")


@pytest_asyncio.fixture
async def owner_user(store, hasher):
    """Create owner user."""
    return await add_user(store, hasher, "fatima.zahra@email.com", role=Role.OWNER, name="Fatima")
