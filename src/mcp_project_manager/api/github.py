"""GitHub App routes: installation flow, installation lookups and webhooks."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse

from mcp_project_manager.api.context import AppContext, get_app_context
from mcp_project_manager.api.pages import installation_page
from mcp_project_manager.errors import (
    ConfigurationError,
    GitHubUnauthorizedError,
    ProjectManagerError,
    ValidationError,
)
from mcp_project_manager.events import parse_webhook_event
from mcp_project_manager.github.webhooks import verify_signature
from mcp_project_manager.oauth import OAuthState, build_install_url, new_request_id, now_ms
from mcp_project_manager.resilience.classifier import format_for_logging
from mcp_project_manager.resilience.retry import with_retry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["github"])

POLLING_INTERVAL_SECONDS = 5


def _require_app(ctx: AppContext) -> None:
    if not ctx.settings.app_configured:
        raise ConfigurationError(
            "GitHub App not configured",
            details="Missing APP_ID or PRIVATE_KEY environment variables",
        )


async def _installations_for(ctx: AppContext, login: str) -> list[dict]:
    _require_app(ctx)
    return await with_retry(
        lambda: ctx.app_auth.installations_for(login),
        action="installation listing",
    )


# ─── Installation flow ───────────────────────────────────────


@router.get("/install")
async def install(
    project_name: str = "",
    ctx: AppContext = Depends(get_app_context),
) -> dict[str, object]:
    now = now_ms()
    request_id = new_request_id(now)
    state = OAuthState(
        timestamp=now,
        action="install_app",
        project_name=project_name or "mcp-project",
        request_id=request_id,
    )
    logger.info("Install URL requested (request_id=%s)", request_id)
    return {
        "success": True,
        "install_url": build_install_url(ctx.settings.app_slug, state),
        "request_id": request_id,
        "polling_interval": POLLING_INTERVAL_SECONDS,
        "app_name": ctx.settings.app_slug,
        "message": "Please install the GitHub App to authorize repository creation.",
        "instructions": [
            "1. Open install_url to reach the GitHub App installation page",
            "2. Choose which repositories to grant access to",
            "3. Click 'Install' to complete the process",
            "4. Poll the installation status endpoint until installed is true",
        ],
        "automation": {
            "polling_endpoint": "/api/github/installation-status",
            "polling_parameter": "user",
        },
    }


@router.get("/callback")
async def installation_callback(
    installation_id: str = "",
    setup_action: str = "",
    code: str = "",
    state: str = "",
    ctx: AppContext = Depends(get_app_context),
) -> HTMLResponse:
    if setup_action != "install":
        raise ValidationError(
            "Invalid callback",
            details="Expected GitHub App installation callback with setup_action=install",
        )
    if not installation_id:
        raise ValidationError(
            "Missing installation ID",
            details="GitHub App installation completed but no installation_id received",
        )

    project_name = "mcp-project"
    if state:
        try:
            project_name = OAuthState.decode(state).project_name
        except ValidationError:
            logger.info("Ignoring unparsable state on installation %s", installation_id)

    username = "unknown"
    access_token = ""
    if code:
        try:
            access_token = await ctx.oauth.exchange_code(code, state)
            username = str((await ctx.oauth.fetch_user(access_token))["login"])
        except ProjectManagerError as exc:
            logger.warning(format_for_logging(exc, "installation OAuth exchange"))
            access_token = ""

    try:
        await ctx.app_auth.installation_token(installation_id)
        token_obtained = True
    except ProjectManagerError as exc:
        logger.warning(format_for_logging(exc, "installation token check"))
        token_obtained = False

    if access_token:
        await ctx.grants.save(installation_id, access_token, username)
        logger.info("Stored user grant for installation %s (%s)", installation_id, username)

    return HTMLResponse(
        installation_page(
            installation_id,
            username,
            project_name,
            has_user_token=bool(access_token),
            installation_token_obtained=token_obtained,
        )
    )


# ─── Installation lookups ────────────────────────────────────


@router.get("/installation-status")
async def installation_status(
    user: str = "",
    ctx: AppContext = Depends(get_app_context),
) -> dict[str, object]:
    if not user:
        raise ValidationError(
            "Username required",
            details="GET /api/github/installation-status?user=<username>",
        )
    installations = await _installations_for(ctx, user)
    if not installations:
        return {
            "installed": False,
            "username": user,
            "installations": [],
            "message": f"No GitHub App installations found for user {user}",
            "next_steps": [
                "User needs to install the GitHub App",
                "Use GET /api/github/install to get installation URL",
            ],
        }
    return {
        "installed": True,
        "username": user,
        "installations": [
            {
                "id": str(inst.get("id", "")),
                "account": (inst.get("account") or {}).get("login", "unknown"),
                "account_type": (inst.get("account") or {}).get("type", "unknown"),
                "permissions": sorted(inst.get("permissions") or {}),
                "repository_selection": inst.get("repository_selection"),
                "created_at": inst.get("created_at"),
                "updated_at": inst.get("updated_at"),
                "app_slug": inst.get("app_slug"),
            }
            for inst in installations
        ],
        "message": f"Found {len(installations)} installation(s) for user {user}",
    }


@router.get("/user-installations")
async def user_installations(
    username: str = "",
    ctx: AppContext = Depends(get_app_context),
) -> dict[str, object]:
    if not username:
        raise ValidationError(
            "Username required",
            details="GET /api/github/user-installations?username=<username>",
        )
    installations = await _installations_for(ctx, username)
    formatted = []
    for inst in installations:
        account = inst.get("account") or {}
        formatted.append(
            {
                "id": str(inst.get("id", "")),
                "account": {
                    "login": account.get("login", "unknown"),
                    "type": account.get("type", "unknown"),
                    "avatar_url": account.get("avatar_url"),
                    "html_url": account.get("html_url"),
                },
                "permissions": inst.get("permissions") or {},
                "events": inst.get("events") or [],
                "repository_selection": inst.get("repository_selection") or "selected",
                "created_at": inst.get("created_at"),
                "updated_at": inst.get("updated_at"),
                "suspended_at": inst.get("suspended_at"),
                "app_slug": inst.get("app_slug"),
                "target_type": inst.get("target_type"),
            }
        )
    return {
        "success": True,
        "username": username,
        "installations_count": len(formatted),
        "installations": formatted,
        "message": (
            f"Found {len(formatted)} installation(s) for user {username}"
            if formatted
            else f"No GitHub App installations found for user {username}"
        ),
    }


# ─── Webhooks ────────────────────────────────────────────────


@router.post("/webhooks")
async def webhooks(
    request: Request,
    background_tasks: BackgroundTasks,
    ctx: AppContext = Depends(get_app_context),
) -> JSONResponse:
    body = await request.body()
    signature = request.headers.get("x-hub-signature-256")
    if not verify_signature(ctx.settings.webhook_secret, body, signature):
        raise GitHubUnauthorizedError("Invalid webhook signature")

    name = request.headers.get("x-github-event", "")
    if not name:
        raise ValidationError("Missing X-GitHub-Event header")
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise ValidationError("Invalid JSON payload") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload", details="Expected a JSON object")

    event = parse_webhook_event(name, payload)
    delivery = request.headers.get("x-github-delivery", "")
    logger.info("Webhook %s accepted (delivery %s)", name, delivery or "-")
    background_tasks.add_task(ctx.dispatcher.dispatch, event)
    return JSONResponse(
        status_code=202,
        content={"accepted": True, "event": name, "delivery": delivery},
    )
