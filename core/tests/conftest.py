from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

ADMIN_USER = "admin"
ADMIN_PASSWORD = "s3cret-pass"
SESSION_SECRET = "test-session-secret-0123456789abcdef0123456789"
UPSTREAM_BASE_URL = "https://provisioning.test/devices-service"
UPSTREAM_CREATE_URL = UPSTREAM_BASE_URL + "/api/v1/devices/create_device"

CONFIG_ENV_VARS = (
    "SSS_ADMIN_HOME",
    "ADMIN_USER",
    "ADMIN_PASSWORD",
    "SSS_SESSION_SECRET",
    "SSS_SESSION_LIFETIME_SECONDS",
    "SSS_UPSTREAM_BASE_URL",
    "SSS_UPSTREAM_TIMEOUT_SECONDS",
    "SSS_UPSTREAM_CA_BUNDLE",
    "SSS_ADMIN_BIND",
    "SSS_ADMIN_PORT",
)


def device_bundle(**overrides: Any) -> dict[str, Any]:
    body = {
        "device_name": "Sensor-12",
        "mqtt_username": "sensor12",
        "mqtt_password": "p@ss",
        "client_id": "cid-1",
    }
    body.update(overrides)
    return body


class FakeUpstream:
    """Records every request the provisioning client sends and answers via ``responder``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = lambda request: (
            httpx.Response(200, json=device_bundle())
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def payloads(self) -> list[Any]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def admin_env(tmp_path: Path, clean_env: pytest.MonkeyPatch) -> Path:
    clean_env.setenv("SSS_ADMIN_HOME", str(tmp_path))
    clean_env.setenv("ADMIN_USER", ADMIN_USER)
    clean_env.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    clean_env.setenv("SSS_SESSION_SECRET", SESSION_SECRET)
    clean_env.setenv("SSS_UPSTREAM_BASE_URL", UPSTREAM_BASE_URL)
    return tmp_path


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()
