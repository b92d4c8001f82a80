"""Tests for the client-side authentication session."""
import pytest
from structlog.testing import capture_logs

from syndic.core.auth import Authenticator
from syndic.core.exceptions import InvalidCredentials, InvalidToken, StoreUnavailable
from syndic.core.session import AuthService, AuthState
from syndic.core.session_store import FileSessionStore, InMemorySessionStore
from syndic.models.enums import Role, UserStatus
from syndic.services.credential_store import GuardedCredentialStore, InMemoryCredentialStore

from .conftest import PASSWORD


class BrokenStore(InMemoryCredentialStore):
    """A store whose lookups always fail."""

    async def find_by_id(self, user_id):
        raise StoreUnavailable(details={"error": "OperationalError"})


async def test_starts_unauthenticated(auth_service):
    assert auth_service.state == AuthState.UNAUTHENTICATED
    assert auth_service.current_user is None
    assert auth_service.is_authenticated is False


async def test_login_stores_session(auth_service, session_store, admin_user):
    user = await auth_service.login("admin@syndic.ma", PASSWORD)

    stored = await session_store.get()
    assert user.role == Role.ADMIN
    assert auth_service.state == AuthState.AUTHENTICATED
    assert auth_service.is_authenticated
    assert auth_service.current_user == user
    assert stored.user == user
    assert stored.token


async def test_failed_login_is_rejected_and_stores_nothing(auth_service, session_store, admin_user):
    with pytest.raises(InvalidCredentials):
        await auth_service.login("admin@syndic.ma", "wrong")

    assert auth_service.state == AuthState.REJECTED
    assert auth_service.current_user is None
    assert await session_store.get() is None


async def test_logout_then_restore_returns_none(auth_service, admin_user):
    await auth_service.login("admin@syndic.ma", PASSWORD)

    await auth_service.logout()

    assert auth_service.state == AuthState.UNAUTHENTICATED
    assert await auth_service.restore_session() is None
    assert auth_service.current_user is None


async def test_logout_revokes_the_token(auth_service, session_store, tokens, admin_user):
    await auth_service.login("admin@syndic.ma", PASSWORD)
    token = (await session_store.get()).token

    await auth_service.logout()

    with pytest.raises(InvalidToken):
        tokens.verify(token)


async def test_logout_without_session_is_harmless(auth_service):
    await auth_service.logout()

    assert auth_service.state == AuthState.UNAUTHENTICATED


async def test_restore_without_stored_session(auth_service):
    assert await auth_service.restore_session() is None
    assert auth_service.state == AuthState.UNAUTHENTICATED


async def test_restore_in_a_new_process(authenticator, session_store, admin_user):
    first = AuthService(authenticator, session_store)
    user = await first.login("admin@syndic.ma", PASSWORD)
    first.close()

    second = AuthService(authenticator, session_store)
    restored = await second.restore_session()

    assert restored == user
    assert second.state == AuthState.AUTHENTICATED
    assert second.is_authenticated


async def test_restore_clears_expired_session(auth_service, session_store, clock, admin_user):
    await auth_service.login("admin@syndic.ma", PASSWORD)
    clock.advance(days=7, seconds=1)

    assert await auth_service.restore_session() is None
    assert await session_store.get() is None
    assert auth_service.state == AuthState.UNAUTHENTICATED


async def test_restore_clears_session_of_deactivated_account(auth_service, session_store, store, admin_user):
    await auth_service.login("admin@syndic.ma", PASSWORD)
    await store.update_user(admin_user.id, status=UserStatus.INACTIVE)

    assert await auth_service.restore_session() is None
    assert await session_store.get() is None


async def test_restore_refreshes_cached_user(auth_service, session_store, store, admin_user):
    await auth_service.login("admin@syndic.ma", PASSWORD)
    await store.update_user(admin_user.id, name="Renamed Admin")

    restored = await auth_service.restore_session()

    assert restored.name == "Renamed Admin"
    assert (await session_store.get()).user.name == "Renamed Admin"


async def test_restore_keeps_session_when_store_is_unreachable(hasher, tokens, clock, admin_user, store):
    session_store = InMemorySessionStore()
    online = AuthService(Authenticator(store, hasher=hasher, tokens=tokens, clock=clock), session_store)
    await online.login("admin@syndic.ma", PASSWORD)

    broken = BrokenStore()
    offline = AuthService(
        Authenticator(
            GuardedCredentialStore(broken, timeout=1.0, max_attempts=2, backoff=0),
            hasher=hasher, tokens=tokens, clock=clock,
        ),
        session_store,
    )

    assert await offline.restore_session() is None
    assert offline.state == AuthState.UNAUTHENTICATED
    assert await session_store.get() is not None


async def test_subscribers_follow_current_user(auth_service, admin_user):
    seen = []
    unsubscribe = auth_service.subscribe(seen.append)

    user = await auth_service.login("admin@syndic.ma", PASSWORD)
    await auth_service.logout()
    unsubscribe()
    await auth_service.login("admin@syndic.ma", PASSWORD)

    assert seen == [user, None]


async def test_concurrent_logins_are_independent(authenticator, store, admin_user):
    first = AuthService(authenticator, InMemorySessionStore())
    second = AuthService(authenticator, InMemorySessionStore())

    await first.login("admin@syndic.ma", PASSWORD)
    await second.login("admin@syndic.ma", PASSWORD)

    first_token = (await first.session_store.get()).token
    second_token = (await second.session_store.get()).token
    assert first_token != second_token
    assert first.is_authenticated and second.is_authenticated


class UnreachableStore(InMemoryCredentialStore):
    """A store that cannot be reached for logins."""

    async def find_by_email(self, email):
        raise StoreUnavailable(details={"error": "OperationalError"})


async def test_unreachable_store_does_not_reject_login(hasher, tokens, clock):
    service = AuthService(
        Authenticator(UnreachableStore(), hasher=hasher, tokens=tokens, clock=clock),
        InMemorySessionStore(),
    )

    with pytest.raises(StoreUnavailable):
        await service.login("admin@syndic.ma", PASSWORD)

    assert service.state == AuthState.UNAUTHENTICATED
    assert service.current_user is None


async def test_restore_from_unreadable_session_file(authenticator, tmp_path):
    path = tmp_path / "session.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    service = AuthService(authenticator, FileSessionStore(str(path)))

    assert await service.restore_session() is None
    assert service.state == AuthState.UNAUTHENTICATED
    assert not path.exists()


async def test_logout_with_expired_token_is_quiet(auth_service, session_store, tokens, clock, admin_user):
    await auth_service.login("admin@syndic.ma", PASSWORD)
    token = (await session_store.get()).token
    clock.advance(days=8)

    with capture_logs() as logs:
        await auth_service.logout()
    assert auth_service.state == AuthState.UNAUTHENTICATED
    assert await session_store.get() is None
    assert not [e for e in logs if e.get("event_type") == "token_rejected"]

    with capture_logs() as logs:
        with pytest.raises(InvalidToken):
            tokens.verify(token)
    assert [e["reason"] for e in logs if e.get("event_type") == "token_rejected"] == ["expired"]
