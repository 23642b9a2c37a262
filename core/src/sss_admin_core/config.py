from __future__ import annotations

import json
import logging
import os
import secrets
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from sss_admin_core.home import AdminPaths

logger = logging.getLogger(__name__)

DEFAULT_SESSION_LIFETIME_SECONDS = 8 * 60 * 60

# Environment variable -> (section, field) in AdminConfig.
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "ADMIN_USER": ("admin", "username"),
    "ADMIN_PASSWORD": ("admin", "password"),
    "SSS_SESSION_SECRET": ("session", "secret"),
    "SSS_SESSION_LIFETIME_SECONDS": ("session", "lifetime_seconds"),
    "SSS_UPSTREAM_BASE_URL": ("upstream", "base_url"),
    "SSS_UPSTREAM_TIMEOUT_SECONDS": ("upstream", "timeout_seconds"),
    "SSS_UPSTREAM_CA_BUNDLE": ("upstream", "ca_bundle"),
    "SSS_ADMIN_BIND": ("network", "bind_host"),
    "SSS_ADMIN_PORT": ("network", "port"),
}

# Matched byte-for-byte at login or signing time, so never trimmed.
VERBATIM_ENV_VARS = frozenset({"ADMIN_USER", "ADMIN_PASSWORD", "SSS_SESSION_SECRET"})


class NetworkConfig(BaseModel):
    bind_host: str = Field(default="127.0.0.1")
    port: int = Field(default=8790, ge=1, le=65535)


class AdminIdentityConfig(BaseModel):
    """The single operator allowed to log in.

    Both values must be set for any login to succeed.
    """

    username: str | None = Field(default=None)
    password: str | None = Field(default=None, repr=False)
    identity_id: str = Field(default="1")
    display_name: str = Field(default="Admin")

    @property
    def is_configured(self) -> bool:
        return bool(self.username) and bool(self.password)


class SessionConfig(BaseModel):
    secret: str | None = Field(default=None, repr=False)
    lifetime_seconds: int = Field(
        default=DEFAULT_SESSION_LIFETIME_SECONDS,
        ge=60,
        description="Session token lifetime, counted from login.",
    )
    cookie_secure: bool = Field(
        default=False,
        description="Mark the session cookie Secure (enable when served behind HTTPS).",
    )


class UpstreamConfig(BaseModel):
    """Remote device-provisioning service settings."""

    base_url: str = Field(default="https://media115.lanestel.fr/devices-service")
    create_device_path: str = Field(default="/api/v1/devices/create_device")
    timeout_seconds: float = Field(default=10.0, gt=0)
    ca_bundle: str | None = Field(
        default=None,
        description=(
            "Optional CA bundle path used to verify the upstream certificate. "
            "If omitted, the system trust store is used."
        ),
    )

    @field_validator("base_url")
    @classmethod
    def _require_https(cls, value: str) -> str:
        parsed = urlparse(value.strip())
        if parsed.scheme != "https" or not parsed.netloc:
            raise ValueError("upstream base_url must be an https:// URL")
        return value.strip().rstrip("/")

    @property
    def create_device_url(self) -> str:
        path = self.create_device_path
        if not path.startswith("/"):
            path = "/" + path
        return self.base_url + path


class LoggingConfig(BaseModel):
    max_size_mb: int = Field(
        default=10, ge=1, description="Max size of a log file in MB before rolling."
    )
    backup_count: int = Field(default=5, ge=1, description="Number of log archives to keep.")


class AdminConfig(BaseModel):
    version: str = Field(default="1")
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    admin: AdminIdentityConfig = Field(default_factory=AdminIdentityConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _read_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _apply_env_overrides(raw: dict[str, Any], environ: dict[str, str]) -> dict[str, Any]:
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in raw.items()}
    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None or not value.strip():
            continue
        target = merged.get(section)
        if not isinstance(target, dict):
            target = {}
            merged[section] = target
        target[field] = value if env_name in VERBATIM_ENV_VARS else value.strip()
    return merged


def load_admin_config(paths: AdminPaths, environ: dict[str, str] | None = None) -> AdminConfig:
    """Load config from ${SSS_ADMIN_HOME}/config/admin.json, then the environment.

    - If the file is missing: starts from defaults.
    - Environment variables win over the file.
    - Validation is performed by Pydantic.
    """

    env = os.environ if environ is None else environ

    config_path = paths.admin_config_path
    raw = _read_json(config_path) if config_path.exists() else {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid admin.json format at {config_path}")

    return AdminConfig.model_validate(_apply_env_overrides(raw, env))


def ensure_session_secret(paths: AdminPaths, config: AdminConfig) -> AdminConfig:
    """Ensure a token-signing secret exists.

    If missing, generate one and persist it to admin.json so sessions survive a restart.
    Only the secret is written; values that came from the environment stay out of the file.
    """

    raw = (config.session.secret or "").strip()
    if raw:
        return config

    secret = secrets.token_urlsafe(32)

    config_path = paths.admin_config_path
    on_disk = _read_json(config_path) if config_path.exists() else {}
    session_raw = dict(on_disk.get("session") or {})
    session_raw["secret"] = secret
    on_disk["session"] = session_raw
    paths.config_dir.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(on_disk, indent=2) + "\n", encoding="utf-8")
    logger.info("Generated a new session signing secret in %s", config_path)

    updated_session = config.session.model_copy(update={"secret": secret})
    return config.model_copy(update={"session": updated_session})
