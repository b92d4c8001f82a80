"""Password hashing with bcrypt."""
import asyncio
from typing import Optional

import bcrypt

from ..config import settings
from .exceptions import ValidationError

# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted one-way password hashing with a configurable work factor."""

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or settings.auth.bcrypt_rounds
        self._dummy_hash: Optional[str] = None

    def hash(self, password: str) -> str:
        """Hash password using bcrypt."""
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValidationError(
                "Password is too long",
                details={"max_bytes": MAX_PASSWORD_BYTES},
            )
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(encoded, salt).decode("utf-8")

    def verify(self, password: str, password_hash: Optional[str]) -> bool:
        """Verify password against hash.

        A missing or malformed digest is a mismatch, never an error.
        """
        if not password or not password_hash:
            return False
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(
                encoded,
                password_hash.encode("utf-8")
            )
        except (ValueError, TypeError):
            return False

    def burn(self, password: str) -> None:
        """Spend one verification worth of CPU against a throwaway hash."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("not-a-real-password")
        self.verify(password, self._dummy_hash)

    async def hash_async(self, password: str) -> str:
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, password: str, password_hash: Optional[str]) -> bool:
        return await asyncio.to_thread(self.verify, password, password_hash)

    async def burn_async(self, password: str) -> None:
        await asyncio.to_thread(self.burn, password)
