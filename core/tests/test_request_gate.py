from __future__ import annotations

import pytest

from sss_admin_core.auth import (
    LOGIN_PATH,
    Allow,
    DenyRedirect,
    RequestGate,
    is_exempt_path,
)
from sss_admin_core.session import Identity, SessionTokenCodec

SECRET = "unit-test-secret-0123456789abcdef0123456789"
T0 = 1_700_000_000
LIFETIME = 600


@pytest.fixture
def codec() -> SessionTokenCodec:
    return SessionTokenCodec(SECRET, lifetime_seconds=LIFETIME)


@pytest.fixture
def gate(codec: SessionTokenCodec) -> RequestGate:
    return RequestGate(codec)


@pytest.mark.parametrize(
    "path",
    [
        "/ui/login",
        "/api/auth",
        "/api/auth/login",
        "/api/auth/create-device",
        "/ui/static/admin.css",
        "/favicon.ico",
        "/robots.txt",
        "/images/logo.png",
        "/healthz",
        "/docs",
        "/redoc",
        "/openapi.json",
    ],
)
def test_exempt_paths(path: str) -> None:
    assert is_exempt_path(path) is True


@pytest.mark.parametrize(
    "path", ["/", "/ui/dashboard", "/ui/devices", "/ui/logout", "/api/authx", "/ui/login/extra"]
)
def test_protected_paths(path: str) -> None:
    assert is_exempt_path(path) is False


def test_login_route_always_allowed(gate: RequestGate) -> None:
    assert gate.authorize(LOGIN_PATH, None, now=T0) == Allow()
    assert gate.authorize(LOGIN_PATH, "garbage", now=T0) == Allow()


@pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
def test_missing_or_invalid_token_redirects(gate: RequestGate, token: str | None) -> None:
    assert gate.authorize("/ui/dashboard", token, now=T0) == DenyRedirect(target=LOGIN_PATH)


def test_valid_token_allows_and_carries_session(
    gate: RequestGate, codec: SessionTokenCodec
) -> None:
    token = codec.issue(Identity(id="1", display_name="Admin"), now=T0)

    decision = gate.authorize("/ui/dashboard", token.value, now=T0 + 1)
    assert isinstance(decision, Allow)
    assert decision.session is not None
    assert decision.session.identity_id == "1"


def test_expired_token_redirects_like_missing_one(
    gate: RequestGate, codec: SessionTokenCodec
) -> None:
    token = codec.issue(Identity(id="1", display_name="Admin"), now=T0)

    expired = gate.authorize("/ui/dashboard", token.value, now=T0 + LIFETIME)
    missing = gate.authorize("/ui/dashboard", None, now=T0 + LIFETIME)
    assert expired == missing == DenyRedirect(target=LOGIN_PATH)


def test_token_signed_elsewhere_redirects(gate: RequestGate) -> None:
    other = SessionTokenCodec("other-secret-0123456789abcdef0123456789", lifetime_seconds=60)
    token = other.issue(Identity(id="1", display_name="Admin"), now=T0)

    assert isinstance(gate.authorize("/ui/dashboard", token.value, now=T0), DenyRedirect)


def test_decision_is_deterministic(gate: RequestGate, codec: SessionTokenCodec) -> None:
    token = codec.issue(Identity(id="1", display_name="Admin"), now=T0)

    first = gate.authorize("/ui/devices", token.value, now=T0 + 5)
    second = gate.authorize("/ui/devices", token.value, now=T0 + 5)
    assert first == second
