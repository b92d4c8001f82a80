"""Session token issuing and verification (JWT)."""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from jose import JWTError, jwt

from ..config import settings
from ..models.enums import Role
from ..schemas.auth import TokenClaims
from .exceptions import InvalidToken
from .logging import SecurityLogger

Clock = Callable[[], datetime]


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


class RevocationList:
    """In-memory set of revoked token ids, kept until their natural expiry."""

    def __init__(self, clock: Clock = utc_clock):
        self._clock = clock
        self._revoked: Dict[str, datetime] = {}

    def revoke(self, claims: TokenClaims) -> None:
        self._revoked[claims.jti] = claims.expires_at

    def is_revoked(self, jti: str) -> bool:
        self.prune()
        return jti in self._revoked

    def prune(self) -> None:
        now = self._clock()
        expired = [jti for jti, expires_at in self._revoked.items() if expires_at <= now]
        for jti in expired:
            del self._revoked[jti]

    def __len__(self) -> int:
        return len(self._revoked)


class TokenIssuer:
    """Signs and verifies time-limited session tokens."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_days: Optional[int] = None,
        clock: Clock = utc_clock,
        revocations: Optional[RevocationList] = None,
    ):
        self.secret_key = secret_key or settings.auth.secret_key
        self.algorithm = algorithm or settings.auth.algorithm
        self.lifetime = timedelta(days=expire_days or settings.auth.token_expire_days)
        self.revocations = revocations
        self._clock = clock

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds."""
        return int(self.lifetime.total_seconds())

    def issue(self, user) -> str:
        """Create a signed token for ``user`` (anything with id, email and role)."""
        issued_at = int(self._clock().timestamp())
        to_encode = {
            "sub": str(user.id),
            "email": user.email,
            "role": Role(user.role).value,
            "iat": issued_at,
            "exp": issued_at + self.expires_in,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str, log_rejection: bool = True) -> TokenClaims:
        """Verify and decode a token.

        Raises:
            InvalidToken: bad signature, malformed payload, expiry elapsed
                or revoked token id.
        """
        try:
            return self._verify(token)
        except InvalidToken as e:
            if log_rejection:
                SecurityLogger.log_token_rejected(
                    reason=e.details["reason"], user_id=e.details.get("user_id")
                )
            raise

    def revoke(self, token: str) -> None:
        """Revoke a still-valid token; no-op without a revocation list.

        A token that is already unusable raises InvalidToken without being
        logged as a rejection.
        """
        if self.revocations is None:
            return
        self.revocations.revoke(self.verify(token, log_rejection=False))

    def _verify(self, token: str) -> TokenClaims:
        try:
            # Expiry is checked below against the injected clock.
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise InvalidToken(details={"reason": "signature"}) from e

        try:
            claims = TokenClaims(
                id=uuid.UUID(payload["sub"]),
                email=payload["email"],
                role=Role(payload["role"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
                jti=payload["jti"],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidToken(details={"reason": "malformed"}) from e

        if self._clock() >= claims.expires_at:
            raise InvalidToken(
                "Token has expired",
                details={"reason": "expired", "user_id": str(claims.id)},
            )

        if self.revocations is not None and self.revocations.is_revoked(claims.jti):
            raise InvalidToken(
                "Token has been revoked",
                details={"reason": "revoked", "user_id": str(claims.id)},
            )

        return claims
