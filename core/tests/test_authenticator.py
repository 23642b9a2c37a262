from __future__ import annotations

import pytest

from sss_admin_core.auth import Authenticator
from sss_admin_core.config import AdminIdentityConfig
from sss_admin_core.errors import AuthFailure
from sss_admin_core.session import SessionTokenCodec

SECRET = "unit-test-secret-0123456789abcdef0123456789"
T0 = 1_700_000_000


def _authenticator(
    username: str | None = "admin", password: str | None = "s3cret"
) -> Authenticator:
    codec = SessionTokenCodec(SECRET, lifetime_seconds=8 * 3600)
    return Authenticator(AdminIdentityConfig(username=username, password=password), codec)


def test_exact_credentials_issue_token() -> None:
    token = _authenticator().authenticate("admin", "s3cret", now=T0)

    assert token.identity_id == "1"
    assert token.display_name == "Admin"
    assert token.issued_at == T0
    assert token.expires_at == T0 + 8 * 3600


@pytest.mark.parametrize(
    ("username", "password"),
    [
        ("admin", "wrong"),
        ("wrong", "s3cret"),
        ("Admin", "s3cret"),
        ("admin ", "s3cret"),
        ("admin", "s3cret "),
        ("admin", "s3cre"),
        ("", "s3cret"),
        ("admin", ""),
        ("", ""),
        (None, "s3cret"),
        ("admin", None),
        (123, "s3cret"),
    ],
)
def test_anything_but_exact_match_fails(username: object, password: object) -> None:
    with pytest.raises(AuthFailure) as excinfo:
        _authenticator().authenticate(username, password, now=T0)

    # Same status and message whichever field was wrong.
    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Invalid credentials"


@pytest.mark.parametrize(("username", "password"), [(None, None), ("admin", None), (None, "x")])
def test_unconfigured_admin_fails_closed(username: str | None, password: str | None) -> None:
    authenticator = _authenticator(username=username, password=password)

    with pytest.raises(AuthFailure):
        authenticator.authenticate(username or "", password or "", now=T0)


def test_issued_token_verifies_with_same_codec() -> None:
    codec = SessionTokenCodec(SECRET, lifetime_seconds=60)
    authenticator = Authenticator(AdminIdentityConfig(username="admin", password="pw"), codec)

    token = authenticator.authenticate("admin", "pw", now=T0)
    assert codec.verify(token.value, now=T0 + 59) is not None
    assert codec.verify(token.value, now=T0 + 60) is None
