"""Synchronous client for the admin HTTP API.

Usage::

    with AdminApiClient("http://127.0.0.1:8790") as api:
        api.login("admin", "secret")
        device = api.create_device("Sensor-12", "sensor12")
"""

from __future__ import annotations

from typing import Any

import httpx

from sss_admin_core.provisioning import DeviceCreationResult

DEFAULT_TIMEOUT_SECONDS = 10.0


class AdminApiError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _raise_for_error(response: httpx.Response) -> None:
    if response.is_success:
        return
    message = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        message = body["error"]
    raise AdminApiError(
        message or f"Request failed with status code {response.status_code}",
        status_code=response.status_code,
    )


class AdminApiClient:
    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8790",
        *,
        api_prefix: str = "/api",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )
        self.token: str | None = None

    def __enter__(self) -> AdminApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        try:
            response = self._http.request(
                method, self._prefix + endpoint, headers=self._headers(), **kwargs
            )
        except httpx.HTTPError as exc:
            raise AdminApiError(str(exc) or exc.__class__.__name__) from exc
        _raise_for_error(response)
        if not response.content:
            return None
        return response.json()

    def login(self, username: str, password: str) -> str:
        data = self._request(
            "POST", "/auth/login", json={"username": username, "password": password}
        )
        self.token = data["token"]
        return self.token

    def create_device(self, device_name: str, mqtt_username: str) -> DeviceCreationResult:
        data = self._request(
            "POST",
            "/auth/create-device",
            json={"device_name": device_name, "mqtt_username": mqtt_username},
        )
        return DeviceCreationResult.model_validate(data)

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return self._request("GET", endpoint, params=params)

    def post(self, endpoint: str, data: Any = None) -> Any:
        return self._request("POST", endpoint, json=data)

    def put(self, endpoint: str, data: Any = None) -> Any:
        return self._request("PUT", endpoint, json=data)

    def delete(self, endpoint: str) -> Any:
        return self._request("DELETE", endpoint)
