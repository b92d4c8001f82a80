"""Client-side holders of the current session token."""
import asyncio
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..schemas.auth import AuthUser, StoredSession

logger = structlog.get_logger(__name__)


class SessionStore(ABC):
    """Single-writer store for the client's token and cached user view.

    ``lock`` is exposed so callers can hold it across a read-modify-write.
    """

    def __init__(self):
        self.lock = asyncio.Lock()

    @abstractmethod
    async def get(self) -> Optional[StoredSession]:
        """Return the stored session, if any."""
        pass

    @abstractmethod
    async def set(self, token: str, user: AuthUser) -> None:
        """Replace the stored session."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Forget the stored session."""
        pass


class InMemorySessionStore(SessionStore):
    """Process-local session store."""

    def __init__(self):
        super().__init__()
        self._session: Optional[StoredSession] = None

    async def get(self) -> Optional[StoredSession]:
        return self._session

    async def set(self, token: str, user: AuthUser) -> None:
        self._session = StoredSession(token=token, user=user)

    async def clear(self) -> None:
        self._session = None


class FileSessionStore(SessionStore):
    """Session store persisted as a small JSON document on disk."""

    def __init__(self, path: Optional[str] = None):
        super().__init__()
        self.path = Path(path or settings.session.file_path)

    async def get(self) -> Optional[StoredSession]:
        return await asyncio.to_thread(self._read)

    async def set(self, token: str, user: AuthUser) -> None:
        session = StoredSession(token=token, user=user)
        await asyncio.to_thread(self._write, session.model_dump_json())

    async def clear(self) -> None:
        await asyncio.to_thread(self._remove)

    def _read(self) -> Optional[StoredSession]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return None
        try:
            return StoredSession.model_validate_json(raw)
        except (UnicodeDecodeError, PydanticValidationError):
            logger.warning("Discarding unreadable session file", path=str(self.path))
            self._remove()
            return None

    def _write(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self.path)

    def _remove(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
