"""FastAPI application: lifespan, error mapping and the service routes."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mcp_project_manager import __version__
from mcp_project_manager.api import auth, github, publish
from mcp_project_manager.api.context import AppContext, build_context, get_app_context
from mcp_project_manager.config import Settings
from mcp_project_manager.errors import ProjectManagerError
from mcp_project_manager.registry.hub import iso_timestamp
from mcp_project_manager.resilience.classifier import format_for_logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "mcp-project-manager"
BYPASS_HEADER = "x-vercel-protection-bypass"
SET_BYPASS_COOKIE_HEADER = "x-vercel-set-bypass-cookie"


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """Build the application.

    With ``context`` given (tests), the lifespan does not open its own HTTP
    client and the supplied adapters are used as-is.
    """
    settings = settings or (context.settings if context else Settings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if context is not None:
            yield
            return
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(30.0, connect=10.0),
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            transport=httpx.AsyncHTTPTransport(retries=3),
        ) as http:
            app.state.context = build_context(settings, http)
            logger.info("%s %s started", SERVICE_NAME, __version__)
            yield

    app = FastAPI(title=SERVICE_NAME, version=__version__, lifespan=lifespan)
    if context is not None:
        app.state.context = context

    _install_error_handlers(app)
    _install_bypass_middleware(app, settings)

    app.include_router(auth.router, prefix="/api/auth")
    app.include_router(github.router, prefix="/api/github")
    app.include_router(publish.router, prefix="/api")

    @app.get("/api/health")
    async def health(ctx: AppContext = Depends(get_app_context)) -> dict[str, object]:
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "timestamp": iso_timestamp(datetime.now(UTC)),
            "uptime": round(ctx.uptime, 3),
        }

    @app.get("/api/check-env")
    async def check_env(ctx: AppContext = Depends(get_app_context)) -> dict[str, object]:
        return environment_report(ctx.settings)

    return app


def environment_report(settings: Settings) -> dict[str, object]:
    """Which secrets are configured. Values are never echoed, only lengths."""
    configured = {
        "APP_ID": settings.app_id,
        "PRIVATE_KEY": settings.private_key,
        "GITHUB_CLIENT_ID": settings.github_client_id,
        "GITHUB_CLIENT_SECRET": settings.github_client_secret,
        "WEBHOOK_SECRET": settings.webhook_secret,
        "KV_REST_API_URL": settings.kv_rest_api_url,
        "KV_REST_API_TOKEN": settings.kv_rest_api_token,
    }
    return {
        "timestamp": iso_timestamp(datetime.now(UTC)),
        "config_status": {
            name: {"present": bool(value), "length": len(value)}
            for name, value in configured.items()
        },
        "oauth_support": {
            "enabled": settings.oauth_configured,
            "status": (
                "OAuth tokens can be obtained"
                if settings.oauth_configured
                else "OAuth setup incomplete"
            ),
        },
        "redis_support": {
            "enabled": settings.kv_configured,
            "status": (
                "Redis storage available"
                if settings.kv_configured
                else "Redis configuration incomplete"
            ),
        },
        "message": "Environment check completed",
    }


# ─── Error mapping ────────────────────────────────────────────


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ProjectManagerError)
    async def project_manager_error(request: Request, exc: ProjectManagerError) -> JSONResponse:
        action = f"{request.method} {request.url.path}"
        if exc.status_code >= 500:
            logger.error(format_for_logging(exc, action), exc_info=not exc.is_operational)
        else:
            logger.info(format_for_logging(exc, action))
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request data", "details": details},
        )


# ─── Deployment protection bypass ────────────────────────────


def _install_bypass_middleware(app: FastAPI, settings: Settings) -> None:
    @app.middleware("http")
    async def automation_bypass(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        secret = settings.automation_bypass_secret
        if not secret:
            return response

        supplied = request.headers.get(BYPASS_HEADER) or request.query_params.get(BYPASS_HEADER)
        wants_cookie = request.headers.get(SET_BYPASS_COOKIE_HEADER) or request.query_params.get(
            SET_BYPASS_COOKIE_HEADER
        )
        if supplied == secret and wants_cookie:
            same_site_none = wants_cookie == "samesitenone"
            response.set_cookie(
                "vercel-protection-bypass",
                "true",
                max_age=3600,
                path="/",
                samesite="none" if same_site_none else "lax",
                secure=same_site_none,
            )
        return response
