from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from sss_admin_core.api.models import ErrorBody, LoginRequest, LoginResponse
from sss_admin_core.auth import Authenticator, session_credential
from sss_admin_core.errors import AuthFailure, MethodNotAllowed
from sss_admin_core.provisioning import DeviceCreationResult, ProvisioningGateway

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _get_authenticator(request: Request) -> Authenticator:
    authenticator = getattr(request.app.state, "authenticator", None)
    if authenticator is None:
        raise HTTPException(status_code=500, detail="Authenticator not initialized")
    return authenticator


def _get_gateway(request: Request) -> ProvisioningGateway:
    gateway = getattr(request.app.state, "provisioning_gateway", None)
    if gateway is None:
        raise HTTPException(status_code=500, detail="Provisioning gateway not initialized")
    return gateway


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorBody}},
)
async def api_login(request: Request) -> LoginResponse:
    authenticator = _get_authenticator(request)

    # Malformed or incomplete credentials fail exactly like wrong ones.
    try:
        payload = LoginRequest.model_validate_json(await request.body())
    except ValidationError as exc:
        raise AuthFailure() from exc

    session = authenticator.authenticate(payload.username, payload.password)
    return LoginResponse(token=session.value, expires_at=session.expires_at)


@router.post(
    "/create-device",
    response_model=None,
    responses={
        200: {"model": DeviceCreationResult},
        400: {"model": ErrorBody},
        401: {"model": ErrorBody},
        500: {"model": ErrorBody},
    },
)
async def api_create_device(
    request: Request,
    token: str | None = Depends(session_credential),  # noqa: B008
) -> JSONResponse:
    gateway = _get_gateway(request)
    result = await gateway.create_device(await request.body(), token)
    return JSONResponse(status_code=200, content=result.model_dump(mode="json"))


@router.api_route(
    "/create-device",
    methods=["GET", "HEAD", "OPTIONS", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def api_create_device_wrong_method() -> JSONResponse:
    raise MethodNotAllowed()
