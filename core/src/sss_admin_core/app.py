from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.staticfiles import StaticFiles

from sss_admin_core import __version__
from sss_admin_core.api.auth import router as auth_api_router
from sss_admin_core.api.models import error_response
from sss_admin_core.auth import (
    DASHBOARD_PATH,
    Authenticator,
    DenyRedirect,
    RequestGate,
    extract_token_from_request,
    is_exempt_path,
)
from sss_admin_core.config import ensure_session_secret, load_admin_config
from sss_admin_core.errors import AdminCoreError, MethodNotAllowed
from sss_admin_core.home import ensure_admin_layout, resolve_admin_home
from sss_admin_core.provisioning import ProvisioningGateway
from sss_admin_core.session import SessionTokenCodec
from sss_admin_core.ui.router import STATIC_DIR as UI_STATIC_DIR
from sss_admin_core.ui.router import router as ui_router
from sss_admin_core.upstream import UpstreamProvisioningClient

logger = logging.getLogger(__name__)


def create_app(*, upstream_transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    """Build the admin application.

    ``upstream_transport`` replaces the network transport of the provisioning
    client (tests pass an ``httpx.MockTransport``).
    """

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        home = resolve_admin_home()
        paths = ensure_admin_layout(home)
        config = load_admin_config(paths)
        config = ensure_session_secret(paths, config)

        # Configure Logging
        log_path = paths.logs_dir / "admin.log"
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.logging.max_size_mb * 1024 * 1024,
            backupCount=config.logging.backup_count,
            encoding="utf-8",
        )
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        file_handler.setFormatter(formatter)

        root = logging.getLogger()
        root.setLevel(logging.INFO)
        # Avoid adding duplicate handlers if reloaded
        if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
            root.addHandler(file_handler)

        logger.info("SSS Admin starting up")
        logger.info(f"Logs directory: {paths.logs_dir}")
        if not config.admin.is_configured:
            logger.warning("ADMIN_USER/ADMIN_PASSWORD not set; every login will be rejected")
        logger.info(f"Provisioning service: {config.upstream.create_device_url}")

        codec = SessionTokenCodec(
            config.session.secret or "", lifetime_seconds=config.session.lifetime_seconds
        )
        gate = RequestGate(codec)
        upstream = UpstreamProvisioningClient(config.upstream, transport=upstream_transport)

        app.state.admin_home = home
        app.state.admin_paths = paths
        app.state.admin_config = config
        app.state.request_gate = gate
        app.state.authenticator = Authenticator(config.admin, codec)
        app.state.provisioning_gateway = ProvisioningGateway(gate, upstream)

        try:
            yield
        finally:
            await upstream.aclose()

    app = FastAPI(title="SSS Admin", version=__version__, lifespan=_lifespan)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} - {response.status_code}")
        return response

    class _SessionGateMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next) -> Response:
            path = request.url.path
            gate: RequestGate | None = getattr(request.app.state, "request_gate", None)
            if gate is None:
                if is_exempt_path(path):
                    return await call_next(request)
                return error_response(500, "Session gate not initialized")

            decision = gate.authorize(path, extract_token_from_request(request))
            if isinstance(decision, DenyRedirect):
                return RedirectResponse(url=decision.target, status_code=302)

            request.state.session = decision.session
            return await call_next(request)

    app.add_middleware(_SessionGateMiddleware)

    @app.exception_handler(AdminCoreError)
    async def _admin_error_handler(request: Request, exc: AdminCoreError) -> JSONResponse:
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(400, "Request validation failed")

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 405:
            return error_response(405, MethodNotAllowed().message)
        return error_response(
            exc.status_code, exc.detail if isinstance(exc.detail, str) else "HTTP error"
        )

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(500, "Internal server error")

    app.include_router(auth_api_router)

    if UI_STATIC_DIR.is_dir():
        app.mount(
            "/ui/static",
            StaticFiles(directory=str(UI_STATIC_DIR)),
            name="ui-static",
        )
    else:
        logger.warning(
            "UI static directory is missing (%s); /ui/static will not be served",
            UI_STATIC_DIR,
        )
    app.include_router(ui_router)

    @app.get("/")
    async def root() -> RedirectResponse:
        return RedirectResponse(url=DASHBOARD_PATH, status_code=302)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app
