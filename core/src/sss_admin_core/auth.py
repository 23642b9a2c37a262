from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Final

from fastapi import Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sss_admin_core.config import AdminIdentityConfig
from sss_admin_core.errors import AuthFailure
from sss_admin_core.session import Identity, SessionToken, SessionTokenCodec

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER: Final[str] = "Authorization"
SESSION_COOKIE: Final[str] = "sss_session"

LOGIN_PATH: Final[str] = "/ui/login"
DASHBOARD_PATH: Final[str] = "/ui/dashboard"
AUTH_API_PREFIX: Final[str] = "/api/auth"
STATIC_PREFIX: Final[str] = "/ui/static"

_bearer_scheme = HTTPBearer(auto_error=False)


def is_exempt_path(path: str) -> bool:
    """Routes the gate never protects.

    /api/auth/* is exempt as a whole: the issuance endpoint must be public, and
    create-device answers 401 JSON itself instead of redirecting.
    """

    if path == LOGIN_PATH:
        return True
    if path == AUTH_API_PREFIX or path.startswith(AUTH_API_PREFIX + "/"):
        return True
    if path.startswith(STATIC_PREFIX + "/"):
        return True
    if path == "/favicon.ico":
        return True
    if path == "/healthz":
        return True
    if path == "/openapi.json":
        return True
    if path.startswith("/docs"):
        return True
    if path.startswith("/redoc"):
        return True
    # Anything that looks like a file (e.g. /robots.txt, /logo.png).
    last_segment = path.rsplit("/", 1)[-1]
    if "." in last_segment:
        return True
    return False


def extract_token_from_request(request: Request) -> str | None:
    """An explicit bearer header wins over the ambient session cookie."""

    auth = request.headers.get(AUTHORIZATION_HEADER)
    prefix = "Bearer "
    if auth and auth.startswith(prefix):
        header_token = auth[len(prefix) :].strip()
        if header_token:
            return header_token

    return request.cookies.get(SESSION_COOKIE) or None


async def session_credential(
    request: Request,
    bearer: HTTPAuthorizationCredentials | None = Security(_bearer_scheme),  # noqa: B008
) -> str | None:
    """Raw session token attached to the request (bearer, else cookie), unverified.

    Verification is left to the handler so that it can answer with its own error shape.
    """

    if bearer is not None and bearer.credentials:
        return bearer.credentials
    return request.cookies.get(SESSION_COOKIE) or None


def _same(provided: str, expected: str) -> bool:
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


class Authenticator:
    """Checks the single configured admin identity and issues session tokens."""

    def __init__(self, identity_config: AdminIdentityConfig, codec: SessionTokenCodec) -> None:
        self._config = identity_config
        self._codec = codec
        self.identity = Identity(
            id=identity_config.identity_id, display_name=identity_config.display_name
        )

    def authenticate(
        self, username: object, password: object, now: float | None = None
    ) -> SessionToken:
        expected_user = self._config.username
        expected_password = self._config.password

        # Fail closed when the deployment has no admin configured.
        if not expected_user or not expected_password:
            raise AuthFailure()
        if not isinstance(username, str) or not isinstance(password, str):
            raise AuthFailure()
        if not username or not password:
            raise AuthFailure()

        # Compare both fields unconditionally so timing does not tell which one was wrong.
        user_ok = _same(username, expected_user)
        password_ok = _same(password, expected_password)
        if not (user_ok and password_ok):
            raise AuthFailure()

        return self._codec.issue(self.identity, now=now)


@dataclass(frozen=True)
class Allow:
    session: SessionToken | None = None


@dataclass(frozen=True)
class DenyRedirect:
    target: str


GateDecision = Allow | DenyRedirect


class RequestGate:
    """Decides, per request, whether a route may run.

    ``authorize`` depends only on (route, token, now): it performs no I/O and
    keeps no state, so it is safe to call on every request.
    """

    def __init__(self, codec: SessionTokenCodec, *, login_path: str = LOGIN_PATH) -> None:
        self._codec = codec
        self.login_path = login_path

    def verify(self, token: str | None, now: float | None = None) -> SessionToken | None:
        return self._codec.verify(token, now=now)

    def authorize(self, route: str, token: str | None, now: float | None = None) -> GateDecision:
        if route == self.login_path or is_exempt_path(route):
            return Allow()

        session = self.verify(token, now=now)
        if session is None:
            # Missing and invalid tokens are indistinguishable to the caller.
            logger.debug("Gate redirecting %s to %s", route, self.login_path)
            return DenyRedirect(target=self.login_path)

        return Allow(session=session)
