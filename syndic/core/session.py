"""Client-side authentication session.

``AuthService`` owns the lifecycle of one client's session: it is built at
application start, handed to whatever needs the current user, and closed
at shutdown. It replaces any global "current user" state.
"""
import enum
from typing import Callable, List, Optional

import structlog

from ..schemas.auth import AuthUser
from .auth import Authenticator
from .exceptions import InvalidToken, StoreTimeout, StoreUnavailable
from .logging import SecurityLogger
from .session_store import SessionStore

logger = structlog.get_logger(__name__)

Listener = Callable[[Optional[AuthUser]], None]


class AuthState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
    RESTORING = "restoring"


class AuthService:
    """Login, logout and startup session restore for one client."""

    def __init__(self, authenticator: Authenticator, session_store: SessionStore):
        self.authenticator = authenticator
        self.session_store = session_store
        self._state = AuthState.UNAUTHENTICATED
        self._current_user: Optional[AuthUser] = None
        self._listeners: List[Listener] = []

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._current_user

    @property
    def is_authenticated(self) -> bool:
        return self._current_user is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the new user whenever it changes.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def login(self, email: str, password: str) -> AuthUser:
        """Authenticate and remember the session.

        Errors propagate unchanged; on failure the previously stored
        session, if any, is left as it was.
        """
        previous = self._state
        self._state = AuthState.AUTHENTICATING
        try:
            result = await self.authenticator.authenticate(email, password)
        except Exception as e:
            if previous == AuthState.AUTHENTICATED:
                self._state = previous
            elif isinstance(e, (StoreTimeout, StoreUnavailable)):
                # The credentials were never judged.
                self._state = AuthState.UNAUTHENTICATED
            else:
                self._state = AuthState.REJECTED
            raise

        async with self.session_store.lock:
            await self.session_store.set(result.token, result.user)
        self._state = AuthState.AUTHENTICATED
        self._set_user(result.user)
        return result.user

    async def restore_session(self) -> Optional[AuthUser]:
        """Bring back a stored session at startup.

        The stored token is re-verified and the account re-checked; a
        rejected session is cleared. When the credential store cannot be
        reached the stored session is kept for a later attempt but the
        client starts unauthenticated.
        """
        self._state = AuthState.RESTORING
        async with self.session_store.lock:
            stored = await self.session_store.get()
            if stored is None:
                self._finish_restore(None)
                return None

            try:
                user = await self.authenticator.resolve(stored.token)
            except InvalidToken as e:
                await self.session_store.clear()
                SecurityLogger.log_session_restored(
                    user_id=str(stored.user.id), restored=False,
                    reason=e.details.get("reason", "invalid_token")
                )
                self._finish_restore(None)
                return None
            except (StoreTimeout, StoreUnavailable) as e:
                logger.warning(
                    "Session restore deferred", error_code=e.error_code,
                    user_id=str(stored.user.id)
                )
                self._finish_restore(None)
                return None

            if user != stored.user:
                await self.session_store.set(stored.token, user)

        SecurityLogger.log_session_restored(user_id=str(user.id))
        self._finish_restore(user)
        return user

    async def logout(self) -> None:
        """Clear the stored session unconditionally.

        The token is revoked when the issuer keeps a revocation list;
        otherwise it stays technically valid until it expires.
        """
        async with self.session_store.lock:
            stored = await self.session_store.get()
            await self.session_store.clear()

        if stored is not None:
            try:
                self.authenticator.tokens.revoke(stored.token)
            except InvalidToken:
                # Already expired or revoked.
                pass

        user_id = str(self._current_user.id) if self._current_user else None
        SecurityLogger.log_logout(user_id=user_id)
        self._state = AuthState.UNAUTHENTICATED
        self._set_user(None)

    def close(self) -> None:
        """Drop listeners; the service must not be used afterwards."""
        self._listeners.clear()

    def _finish_restore(self, user: Optional[AuthUser]) -> None:
        self._state = AuthState.AUTHENTICATED if user else AuthState.UNAUTHENTICATED
        self._set_user(user)

    def _set_user(self, user: Optional[AuthUser]) -> None:
        if user == self._current_user:
            return
        self._current_user = user
        for listener in list(self._listeners):
            listener(user)
