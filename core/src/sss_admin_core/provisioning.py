from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sss_admin_core.auth import RequestGate
from sss_admin_core.errors import BadRequest, Unauthorized, UpstreamError
from sss_admin_core.upstream import INVALID_RESPONSE_MESSAGE

logger = logging.getLogger(__name__)

MALFORMED_BODY = "Malformed request body"
MISSING_FIELDS = "Missing required fields: device_name and mqtt_username"
INVALID_FIELD_TYPES = "Invalid field types: device_name and mqtt_username must be strings"
EMPTY_FIELDS = "device_name and mqtt_username cannot be empty"


class DeviceCreationRequest(BaseModel):
    """Normalized (trimmed) input; the only data forwarded upstream."""

    device_name: str = Field(min_length=1)
    mqtt_username: str = Field(min_length=1)


class DeviceCreationResult(BaseModel):
    """Credential bundle minted upstream, relayed verbatim."""

    model_config = ConfigDict(extra="allow")

    device_name: str
    mqtt_username: str
    mqtt_password: str
    client_id: str


class ProvisioningUpstream(Protocol):
    async def create_device(self, payload: dict[str, str]) -> dict[str, Any]: ...


def parse_device_request(body: bytes | str | Mapping[str, Any]) -> DeviceCreationRequest:
    if isinstance(body, (bytes, str)):
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise BadRequest(MALFORMED_BODY) from exc
    else:
        data = body

    if not isinstance(data, Mapping):
        raise BadRequest(MALFORMED_BODY)

    device_name = data.get("device_name")
    mqtt_username = data.get("mqtt_username")

    if not device_name or not mqtt_username:
        raise BadRequest(MISSING_FIELDS)
    if not isinstance(device_name, str) or not isinstance(mqtt_username, str):
        raise BadRequest(INVALID_FIELD_TYPES)

    device_name = device_name.strip()
    mqtt_username = mqtt_username.strip()
    if not device_name or not mqtt_username:
        raise BadRequest(EMPTY_FIELDS)

    return DeviceCreationRequest(device_name=device_name, mqtt_username=mqtt_username)


class ProvisioningGateway:
    """Turns an authorized device request into an upstream-issued credential bundle.

    Steps run strictly in order: session check, body parsing, validation and
    trimming, one upstream call, response translation. Nothing reaches the
    upstream service unless every earlier step passed.
    """

    def __init__(self, gate: RequestGate, upstream: ProvisioningUpstream) -> None:
        self._gate = gate
        self._upstream = upstream

    async def create_device(
        self,
        body: bytes | str | Mapping[str, Any],
        token: str | None,
        now: float | None = None,
    ) -> DeviceCreationResult:
        if self._gate.verify(token, now=now) is None:
            raise Unauthorized()

        request = parse_device_request(body)

        raw = await self._upstream.create_device(request.model_dump())

        try:
            result = DeviceCreationResult.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Provisioning service returned an unexpected body shape")
            raise UpstreamError(INVALID_RESPONSE_MESSAGE) from exc

        logger.info(
            "Provisioned device %r for MQTT user %r (client_id=%s)",
            result.device_name,
            result.mqtt_username,
            result.client_id,
        )
        return result
