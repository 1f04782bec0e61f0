"""OAuth routes: authorize URL, code callback and session status."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from mcp_project_manager.api.context import AppContext, get_app_context
from mcp_project_manager.api.pages import oauth_success_page
from mcp_project_manager.errors import (
    ConfigurationError,
    GitHubUnauthorizedError,
    ValidationError,
)
from mcp_project_manager.oauth import OAuthState, build_authorize_url, now_ms

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

_MISSING_OAUTH_DETAILS = (
    "Please check GITHUB_CLIENT_ID, GITHUB_CLIENT_SECRET and GITHUB_REDIRECT_URI "
    "environment variables"
)


def _require_oauth(ctx: AppContext) -> None:
    if not ctx.settings.oauth_configured:
        raise ConfigurationError(
            "Missing GitHub OAuth configuration", details=_MISSING_OAUTH_DETAILS
        )


@router.get("/authorize")
async def authorize(
    project_name: str = "",
    ctx: AppContext = Depends(get_app_context),
) -> dict[str, object]:
    _require_oauth(ctx)
    state = OAuthState(
        timestamp=now_ms(),
        action="create_repo",
        project_name=project_name or "mcp-project",
    )
    auth_url = build_authorize_url(
        ctx.settings.github_client_id, ctx.settings.github_redirect_uri, state
    )
    return {"success": True, "auth_url": auth_url, "state": state.encode()}


@router.get("/callback")
async def callback(
    request: Request,
    code: str = "",
    state: str = "",
    ctx: AppContext = Depends(get_app_context),
) -> Response:
    if not code or not state:
        raise ValidationError(
            "Missing required parameters",
            details="Both code and state parameters are required",
        )
    oauth_state = OAuthState.decode(state)
    if oauth_state.is_expired(now_ms()):
        raise ValidationError("State parameter expired", details="Please restart the OAuth flow")
    _require_oauth(ctx)

    access_token = await ctx.oauth.exchange_code(code)
    user = await ctx.oauth.fetch_user(access_token)
    session = await ctx.sessions.create(
        access_token,
        str(user["login"]),
        ip_address=request.client.host if request.client else "",
        user_agent=request.headers.get("user-agent", ""),
    )

    if "application/json" in request.headers.get("accept", ""):
        return JSONResponse(
            {
                "success": True,
                "session_id": session.session_id,
                "username": session.username,
                "expires_at": session.expires_at,
                "project_name": oauth_state.project_name,
            }
        )
    return HTMLResponse(
        oauth_success_page(session.username, session.session_id, session.expires_at)
    )


@router.get("/status")
async def status(request: Request, ctx: AppContext = Depends(get_app_context)) -> dict[str, object]:
    session_id = request.headers.get("session-id") or request.query_params.get("session-id")
    if not session_id:
        raise ValidationError(
            "Missing session ID",
            details="Please provide session-id in headers or query parameters",
        )
    session = await ctx.sessions.get(session_id)
    if session is None:
        raise GitHubUnauthorizedError(
            "Invalid or expired session",
            details="Session not found or has expired. Please re-authenticate.",
        )
    return {
        "authorized": True,
        "session_id": session.session_id,
        "username": session.username,
        "created_at": session.created_at,
        "expires_at": session.expires_at,
        "expires_in": max(0, (session.expires_at - now_ms()) // 1000),
        "message": "Session is valid and active",
    }
