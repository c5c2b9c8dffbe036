from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import JWTError, jwt
from passlib.context import CryptContext

JWT_ALG = "HS256"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class TokenError(Exception):
    """Raised when a token cannot be trusted (bad signature, expired, malformed payload)."""


@dataclass(frozen=True)
class TokenClaims:
    subject_id: int
    expires_at: datetime


class Hasher:
    """One-way bcrypt hashing of plaintext passwords."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    # PUBLIC_INTERFACE
    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password using bcrypt."""
        return self._context.hash(plaintext)

    # PUBLIC_INTERFACE
    def matches(self, digest: str, plaintext: str) -> bool:
        """Verify a plaintext password against a stored hash."""
        try:
            return self._context.verify(plaintext, digest)
        except ValueError:
            # Stored value is not a recognizable bcrypt hash.
            return False


class TokenService:
    """
    Issues and verifies signed, time-limited access tokens.

    The `sub` claim is the user's integer ID as a string; `exp` is absolute.
    Tokens are stateless and never revoked before expiry.
    """

    def __init__(self, secret: str, expire_minutes: int = 120):
        self._secret = (secret or "").strip()
        self._expire_minutes = expire_minutes

    def _get_secret(self) -> str:
        if not self._secret:
            raise RuntimeError("Missing JWT_SECRET environment variable.")
        return self._secret

    # PUBLIC_INTERFACE
    def issue(self, subject_id: int) -> str:
        """Create a signed JWT access token for a user ID."""
        now = _utcnow()
        payload: Dict[str, Any] = {
            "sub": str(subject_id),
            "exp": now + timedelta(minutes=self._expire_minutes),
            "iat": now,
        }
        return jwt.encode(payload, self._get_secret(), algorithm=JWT_ALG)

    # PUBLIC_INTERFACE
    def verify(self, token: str) -> TokenClaims:
        """Decode and check a token. Raises TokenError when it cannot be trusted."""
        secret = self._get_secret()
        try:
            payload = jwt.decode(token, secret, algorithms=[JWT_ALG])
        except JWTError as exc:
            raise TokenError(str(exc)) from exc

        sub = payload.get("sub")
        exp = payload.get("exp")
        if not sub or exp is None:
            raise TokenError("Token payload is incomplete")
        try:
            subject_id = int(sub)
        except (TypeError, ValueError) as exc:
            raise TokenError("Token subject is not a user id") from exc
        if subject_id <= 0:
            raise TokenError("Token subject is not a user id")

        return TokenClaims(
            subject_id=subject_id,
            expires_at=datetime.fromtimestamp(int(exp), tz=timezone.utc),
        )
