from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Sequence

import jwt
from passlib.context import CryptContext

from senior_registry.errors import HashingError
from senior_registry.util.time import utcnow


_JWT_ALG = "HS256"
_REQUIRED_CLAIMS = ["sub", "username", "iat", "exp"]


class PasswordHasher:
    """One-way salted password hashing.

    A new salt is drawn on every `hash()` call; `compare()` reads it back out of
    the stored hash. If the primitive itself fails (unknown or corrupt hash),
    `HashingError` is raised rather than reporting a mismatch.
    """

    def __init__(self, schemes: Sequence[str] = ("pbkdf2_sha256",)):
        self._ctx = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("password_blank")
        try:
            return self._ctx.hash(password)
        except Exception as e:
            raise HashingError(f"password_hash_failed: {type(e).__name__}") from e

    def compare(self, password: str, password_hash: str) -> bool:
        if not password or not password_hash:
            return False
        try:
            return bool(self._ctx.verify(password, password_hash))
        except Exception as e:
            raise HashingError(f"password_verify_failed: {type(e).__name__}") from e


@dataclass(frozen=True)
class TokenClaims:
    subject_id: int
    username: str
    issued_at: int
    expires_at: int


class TokenService:
    """Issues and verifies HS256 session tokens.

    Built once at startup with the process-wide secret. Tokens are not stored
    anywhere, so an unexpired token stays valid until its TTL runs out.
    """

    def __init__(
        self,
        *,
        secret: str,
        ttl_seconds: int = 86400,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not secret:
            raise ValueError("jwt_secret_blank")
        self._secret = secret
        self.ttl_seconds = max(1, int(ttl_seconds))
        self._clock = clock or utcnow

    def _now_ts(self) -> int:
        return int(self._clock().timestamp())

    def issue(self, subject_id: int, username: str) -> str:
        now = self._now_ts()
        payload: Dict[str, Any] = {
            "sub": str(subject_id),
            "username": username,
            "iat": now,
            "exp": now + self.ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=_JWT_ALG)

    def verify(self, token: Optional[str]) -> Optional[TokenClaims]:
        """Return the claims of a valid token, or None. Never raises."""
        if not token or not isinstance(token, str):
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_JWT_ALG],
                # Expiry is checked below against our own clock.
                options={"verify_exp": False, "verify_iat": False, "require": _REQUIRED_CLAIMS},
            )
        except (jwt.PyJWTError, ValueError, TypeError):
            return None

        try:
            claims = TokenClaims(
                subject_id=int(payload["sub"]),
                username=str(payload["username"]),
                issued_at=int(payload["iat"]),
                expires_at=int(payload["exp"]),
            )
        except (KeyError, TypeError, ValueError):
            return None

        if self._now_ts() >= claims.expires_at:
            return None
        return claims
