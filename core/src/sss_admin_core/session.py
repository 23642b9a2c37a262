"""Signed, expiring session tokens (HS256 JWT).

There is no server-side session store: a token is valid if and only if its
signature verifies under the deployment secret and ``now < expires_at``.
Expiry is the only way a session ends.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

import jwt

TOKEN_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    id: str
    display_name: str


@dataclass(frozen=True)
class SessionToken:
    value: str
    identity_id: str
    display_name: str
    issued_at: float
    expires_at: float

    def is_valid_at(self, now: float) -> bool:
        return now < self.expires_at


class SessionTokenCodec:
    def __init__(
        self,
        secret: str,
        lifetime_seconds: int,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("session secret must not be empty")
        if lifetime_seconds <= 0:
            raise ValueError("lifetime_seconds must be positive")
        self._secret = secret
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def issue(self, identity: Identity, now: float | None = None) -> SessionToken:
        # NumericDate allows fractions; keeping them makes [issued_at, issued_at + lifetime) exact.
        issued_at = float(self.now() if now is None else now)
        expires_at = issued_at + self.lifetime_seconds
        payload = {
            "sub": identity.id,
            "name": identity.display_name,
            "iat": issued_at,
            "exp": expires_at,
        }
        value = jwt.encode(payload, self._secret, algorithm=TOKEN_ALGORITHM)
        return SessionToken(
            value=value,
            identity_id=identity.id,
            display_name=identity.display_name,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def verify(self, raw: str | None, now: float | None = None) -> SessionToken | None:
        """Return the decoded session, or None for absent, forged, malformed or expired tokens."""

        if not raw:
            return None
        try:
            claims = jwt.decode(
                raw,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options={
                    "require": ["sub", "iat", "exp"],
                    # Expiry is checked below against the caller's clock.
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError:
            return None

        try:
            token = SessionToken(
                value=raw,
                identity_id=str(claims["sub"]),
                display_name=str(claims.get("name") or ""),
                issued_at=float(claims["iat"]),
                expires_at=float(claims["exp"]),
            )
        except (TypeError, ValueError):
            return None

        current = self.now() if now is None else now
        if not token.is_valid_at(current):
            return None
        return token
