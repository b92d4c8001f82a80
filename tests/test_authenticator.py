"""Tests for the stateless authentication core."""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from syndic.core.auth import Authenticator
from syndic.core.exceptions import (
    ConflictError,
    InvalidCredentials,
    InvalidToken,
    StoreTimeout,
    StoreUnavailable,
    ValidationError,
)
from syndic.models.enums import Role, UserStatus
from syndic.schemas.auth import RegisterRequest
from syndic.services.credential_store import GuardedCredentialStore, InMemoryCredentialStore

from .conftest import PASSWORD, add_user


class CountingStore(InMemoryCredentialStore):
    """Counts last-login writes."""

    def __init__(self):
        super().__init__()
        self.last_login_writes = 0

    async def update_last_login(self, user_id, timestamp):
        self.last_login_writes += 1
        await super().update_last_login(user_id, timestamp)


class SlowStore(InMemoryCredentialStore):
    """Answers lookups only after ``delay`` seconds."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay
        self.lookups = 0

    async def find_by_email(self, email):
        self.lookups += 1
        await asyncio.sleep(self.delay)
        return await super().find_by_email(email)

    async def create_user(self, fields):
        await asyncio.sleep(self.delay)
        return await super().create_user(fields)


@pytest.mark.parametrize("role", list(Role))
async def test_active_user_logs_in_with_role_in_token(authenticator, store, hasher, tokens, role):
    user = await add_user(store, hasher, f"{role.value.lower()}@syndic.ma", role=role)

    result = await authenticator.authenticate(user.email, PASSWORD)

    assert result.user.id == user.id
    assert result.user.role == role
    assert tokens.verify(result.token).role == role
    assert result.token_type == "bearer"
    assert result.expires_in == 7 * 24 * 3600


@pytest.mark.parametrize("status", [UserStatus.INACTIVE, UserStatus.PENDING])
async def test_non_active_user_is_rejected_with_correct_password(authenticator, store, hasher, status):
    user = await add_user(store, hasher, "sleepy@syndic.ma", status=status)

    with pytest.raises(InvalidCredentials):
        await authenticator.authenticate(user.email, PASSWORD)
    assert user.last_login is None


async def test_unknown_email_and_wrong_password_look_the_same(authenticator, admin_user):
    with pytest.raises(InvalidCredentials) as unknown:
        await authenticator.authenticate("nobody@syndic.ma", PASSWORD)
    with pytest.raises(InvalidCredentials) as wrong:
        await authenticator.authenticate(admin_user.email, "wrong")

    assert unknown.value.to_dict() == wrong.value.to_dict()
    assert unknown.value.status_code == wrong.value.status_code == 401


async def test_admin_login_scenario(store, hasher, tokens):
    """Seeded admin logs in; last_login lands within a second of the call."""
    await add_user(store, hasher, "admin@syndic.ma", role=Role.ADMIN)
    authenticator = Authenticator(store, hasher=hasher, tokens=tokens)

    before = datetime.now(timezone.utc)
    result = await authenticator.authenticate("admin@syndic.ma", "password")

    record = await store.find_by_email("admin@syndic.ma")
    assert result.user.role == Role.ADMIN
    assert abs(record.last_login - before) < timedelta(seconds=1)


async def test_wrong_password_scenario_leaves_last_login_unchanged(authenticator, store, admin_user):
    with pytest.raises(InvalidCredentials):
        await authenticator.authenticate("admin@syndic.ma", "wrong")

    record = await store.find_by_email("admin@syndic.ma")
    assert record.last_login is None


async def test_exactly_one_last_login_write_per_success(hasher, tokens, clock):
    store = CountingStore()
    await add_user(store, hasher, "admin@syndic.ma", role=Role.ADMIN)
    authenticator = Authenticator(store, hasher=hasher, tokens=tokens, clock=clock)

    await authenticator.authenticate("admin@syndic.ma", PASSWORD)
    assert store.last_login_writes == 1

    for password in ("wrong", ""):
        with pytest.raises(InvalidCredentials):
            await authenticator.authenticate("admin@syndic.ma", password)
    assert store.last_login_writes == 1


async def test_repeated_logins_issue_fresh_tokens(authenticator, store, admin_user, clock):
    first = await authenticator.authenticate(admin_user.email, PASSWORD)
    clock.advance(minutes=5)
    second = await authenticator.authenticate(admin_user.email, PASSWORD)

    assert first.token != second.token
    assert (await store.find_by_id(admin_user.id)).last_login == clock()


async def test_email_is_normalized(authenticator, admin_user):
    result = await authenticator.authenticate("  Admin@Syndic.MA ", PASSWORD)

    assert result.user.email == "admin@syndic.ma"


async def test_public_view_has_no_password_hash(authenticator, admin_user):
    result = await authenticator.authenticate(admin_user.email, PASSWORD)

    dumped = result.model_dump()
    assert "password_hash" not in dumped["user"]
    assert admin_user.password_hash not in result.model_dump_json()


async def test_resolve_returns_live_user(authenticator, admin_user):
    result = await authenticator.authenticate(admin_user.email, PASSWORD)

    user = await authenticator.resolve(result.token)

    assert user.id == admin_user.id


async def test_resolve_rechecks_account_status(authenticator, store, admin_user):
    result = await authenticator.authenticate(admin_user.email, PASSWORD)
    await store.update_user(admin_user.id, status=UserStatus.INACTIVE)

    with pytest.raises(InvalidToken):
        await authenticator.resolve(result.token)


async def test_resolve_rejects_expired_token(authenticator, admin_user, clock):
    result = await authenticator.authenticate(admin_user.email, PASSWORD)
    clock.advance(days=8)

    with pytest.raises(InvalidToken):
        await authenticator.resolve(result.token)


async def test_register_creates_pending_account(authenticator, store):
    user = await authenticator.register(RegisterRequest(
        email="New.Owner@email.com", password="longenough", name="New Owner"
    ))

    record = await store.find_by_id(user.id)
    assert record.status == UserStatus.PENDING
    assert record.email == "new.owner@email.com"

    with pytest.raises(InvalidCredentials):
        await authenticator.authenticate("new.owner@email.com", "longenough")


async def test_register_refuses_privileged_roles(authenticator):
    with pytest.raises(ValidationError):
        await authenticator.register(RegisterRequest(
            email="sneaky@email.com", password="longenough", name="Sneaky", role=Role.ADMIN
        ))


async def test_register_duplicate_email(authenticator, admin_user):
    with pytest.raises(ConflictError):
        await authenticator.register(RegisterRequest(
            email="admin@syndic.ma", password="longenough", name="Copy"
        ))


async def test_change_password(authenticator, admin_user):
    await authenticator.change_password(admin_user.id, PASSWORD, "new-password-1")

    with pytest.raises(InvalidCredentials):
        await authenticator.authenticate(admin_user.email, PASSWORD)
    result = await authenticator.authenticate(admin_user.email, "new-password-1")
    assert result.user.id == admin_user.id


async def test_change_password_wrong_current(authenticator, admin_user):
    with pytest.raises(InvalidCredentials):
        await authenticator.change_password(admin_user.id, "wrong", "new-password-1")


async def test_store_timeouts_are_retried_then_escalate(hasher, tokens):
    store = SlowStore(delay=0.2)
    guarded = GuardedCredentialStore(store, timeout=0.01, max_attempts=3, backoff=0)
    authenticator = Authenticator(guarded, hasher=hasher, tokens=tokens)

    with pytest.raises(StoreUnavailable) as exc_info:
        await authenticator.authenticate("admin@syndic.ma", PASSWORD)

    assert store.lookups == 3
    assert isinstance(exc_info.value.__cause__, StoreTimeout)


async def test_single_attempt_surfaces_timeout(hasher, tokens):
    store = SlowStore(delay=0.2)
    guarded = GuardedCredentialStore(store, timeout=0.01, max_attempts=1, backoff=0)
    authenticator = Authenticator(guarded, hasher=hasher, tokens=tokens)

    with pytest.raises(StoreTimeout) as exc_info:
        await authenticator.authenticate("admin@syndic.ma", PASSWORD)

    assert store.lookups == 1
    assert exc_info.value.error_code == "TIMEOUT"


async def test_registration_is_not_retried_on_timeout(hasher, tokens):
    store = SlowStore(delay=0.2)
    guarded = GuardedCredentialStore(store, timeout=0.01, max_attempts=3, backoff=0)
    authenticator = Authenticator(guarded, hasher=hasher, tokens=tokens)

    with pytest.raises(StoreTimeout):
        await authenticator.register(RegisterRequest(
            email="slow@email.com", password="longenough", name="Slow"
        ))


async def test_invalid_credentials_are_not_retried(hasher, tokens):
    store = SlowStore(delay=0)
    await add_user(store, hasher, "admin@syndic.ma", role=Role.ADMIN)
    authenticator = Authenticator(store, hasher=hasher, tokens=tokens)

    with pytest.raises(InvalidCredentials):
        await authenticator.authenticate("admin@syndic.ma", "wrong")

    assert store.lookups == 1


class StallingWriteStore(InMemoryCredentialStore):
    """Applies the last-login write, then stalls past the timeout."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay
        self.last_login_writes = 0

    async def update_last_login(self, user_id, timestamp):
        self.last_login_writes += 1
        await super().update_last_login(user_id, timestamp)
        await asyncio.sleep(self.delay)


async def test_last_login_write_is_not_repeated_on_timeout(hasher, tokens, clock):
    store = StallingWriteStore(delay=0.5)
    await add_user(store, hasher, "admin@syndic.ma", role=Role.ADMIN)
    guarded = GuardedCredentialStore(store, timeout=0.05, max_attempts=3, backoff=0)
    authenticator = Authenticator(guarded, hasher=hasher, tokens=tokens, clock=clock)

    with pytest.raises(StoreTimeout):
        await authenticator.authenticate("admin@syndic.ma", PASSWORD)

    assert store.last_login_writes == 1
