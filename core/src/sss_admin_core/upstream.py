from __future__ import annotations

import logging
import ssl
from typing import Any

import httpx

from sss_admin_core.config import UpstreamConfig
from sss_admin_core.errors import TransportError, UpstreamError

logger = logging.getLogger(__name__)

INVALID_RESPONSE_MESSAGE = "Invalid response from provisioning service"


def build_verify(config: UpstreamConfig) -> ssl.SSLContext | bool:
    """TLS trust policy toward the provisioning service.

    Certificate verification is always on; a CA bundle only changes which roots are trusted.
    """

    raw = (config.ca_bundle or "").strip()
    if raw:
        return ssl.create_default_context(cafile=raw)
    return True


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("error")
        if isinstance(message, str) and message.strip():
            return message
    return f"Request failed with status code {response.status_code}"


def _local_status(upstream_status: int) -> int:
    if 400 <= upstream_status <= 599:
        return upstream_status
    return 502


class UpstreamProvisioningClient:
    """Single-attempt HTTPS client for the remote device-provisioning service."""

    def __init__(
        self,
        config: UpstreamConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = config.create_device_url
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_seconds),
            verify=build_verify(config),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    async def create_device(self, payload: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("Provisioning service timed out: %s", exc)
            raise TransportError(str(exc) or "Request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Provisioning service unreachable: %s", exc)
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                "Provisioning service returned %s: %s", response.status_code, message
            )
            raise UpstreamError(message, status_code=_local_status(response.status_code))

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError(INVALID_RESPONSE_MESSAGE) from exc
        if not isinstance(body, dict):
            raise UpstreamError(INVALID_RESPONSE_MESSAGE)
        return body

    async def aclose(self) -> None:
        await self._client.aclose()
