from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import APIRouter, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.responses import Response

from sss_admin_core.auth import (
    DASHBOARD_PATH,
    LOGIN_PATH,
    SESSION_COOKIE,
    Authenticator,
    RequestGate,
    extract_token_from_request,
)
from sss_admin_core.errors import AdminCoreError, AuthFailure, Unauthorized
from sss_admin_core.provisioning import ProvisioningGateway

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(prefix="/ui", tags=["ui"])


def _flash_from_request(request: Request) -> dict[str, Any] | None:
    msg = request.query_params.get("msg")
    if not msg:
        return None
    kind = request.query_params.get("kind") or ""
    return {"message": msg, "kind": kind}


def _get_state(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail=f"{name} not initialized")
    return value


def _display_name(request: Request) -> str:
    session = getattr(request.state, "session", None)
    return getattr(session, "display_name", "") or "Admin"


def _render_login(request: Request, *, error: str | None = None, status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "title": "Login • SSS Admin",
            "hide_nav": True,
            "flash": _flash_from_request(request),
            "error": error,
        },
        status_code=status_code,
    )


def _render_dashboard(
    request: Request,
    *,
    device: dict[str, Any] | None = None,
    error: str | None = None,
    form: dict[str, str] | None = None,
    status_code: int = 200,
):
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "title": "Devices • SSS Admin",
            "operator": _display_name(request),
            "flash": _flash_from_request(request),
            "device": device,
            "error": error,
            "form": form or {"device_name": "", "mqtt_username": ""},
        },
        status_code=status_code,
    )


@router.get("/login", response_model=None)
async def ui_login(request: Request) -> Response:
    gate: RequestGate = _get_state(request, "request_gate")
    if gate.verify(extract_token_from_request(request)) is not None:
        return RedirectResponse(url=DASHBOARD_PATH, status_code=302)
    return _render_login(request)


@router.post("/login", response_model=None)
async def ui_login_post(
    request: Request,
    username: str = Form(default=""),
    password: str = Form(default=""),
) -> Response:
    authenticator: Authenticator = _get_state(request, "authenticator")

    try:
        session = authenticator.authenticate(username, password)
    except AuthFailure as exc:
        return _render_login(request, error=exc.message, status_code=exc.status_code)

    config = _get_state(request, "admin_config")
    resp = RedirectResponse(url=f"{DASHBOARD_PATH}?msg=Logged+in&kind=ok", status_code=302)
    resp.set_cookie(
        SESSION_COOKIE,
        session.value,
        httponly=True,
        samesite="lax",
        secure=config.session.cookie_secure,
        max_age=config.session.lifetime_seconds,
    )
    return resp


@router.post("/logout")
async def ui_logout() -> RedirectResponse:
    resp = RedirectResponse(url=f"{LOGIN_PATH}?msg=Logged+out", status_code=302)
    resp.delete_cookie(SESSION_COOKIE)
    return resp


@router.get("/dashboard", response_class=HTMLResponse)
async def ui_dashboard(request: Request) -> HTMLResponse:
    return _render_dashboard(request)


@router.post("/devices", response_model=None)
async def ui_devices_create(
    request: Request,
    device_name: str = Form(default=""),
    mqtt_username: str = Form(default=""),
) -> Response:
    gateway: ProvisioningGateway = _get_state(request, "provisioning_gateway")
    form = {"device_name": device_name, "mqtt_username": mqtt_username}

    try:
        result = await gateway.create_device(form, extract_token_from_request(request))
    except Unauthorized:
        return RedirectResponse(url=LOGIN_PATH, status_code=302)
    except AdminCoreError as exc:
        return _render_dashboard(
            request, error=exc.message, form=form, status_code=exc.status_code
        )

    return _render_dashboard(request, device=result.model_dump(mode="json"))
