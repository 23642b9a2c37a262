"""Error taxonomy shared by the auth and provisioning paths.

Every error carries the HTTP status and the message that ends up in the
``{"error": ...}`` response body.
"""

from __future__ import annotations

from typing import ClassVar

EXTERNAL_API_ERROR_PREFIX = "External API error: "


class AdminCoreError(Exception):
    default_status: ClassVar[int] = 500
    default_message: ClassVar[str] = "Internal server error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message if message is not None else self.default_message
        self.status_code = status_code if status_code is not None else self.default_status
        super().__init__(self.message)


class AuthFailure(AdminCoreError):
    """Login rejected. Never says which credential was wrong."""

    default_status = 401
    default_message = "Invalid credentials"


class Unauthorized(AdminCoreError):
    default_status = 401
    default_message = "Unauthorized - Please login first"


class BadRequest(AdminCoreError):
    default_status = 400
    default_message = "Bad request"


class MethodNotAllowed(AdminCoreError):
    default_status = 405
    default_message = "Method not allowed"


class UpstreamError(AdminCoreError):
    """The provisioning service answered with a non-success status."""

    default_status = 502

    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        self.detail = detail
        super().__init__(EXTERNAL_API_ERROR_PREFIX + detail, status_code=status_code)


class TransportError(AdminCoreError):
    """No usable response from the provisioning service (timeout, DNS, TLS, ...)."""

    default_status = 500

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(EXTERNAL_API_ERROR_PREFIX + detail)
