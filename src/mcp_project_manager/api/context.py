"""Shared per-process state for the HTTP application."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

import httpx
from fastapi import Request

from mcp_project_manager.config import Settings
from mcp_project_manager.dispatcher import EventDispatcher
from mcp_project_manager.github.auth import GitHubAppAuth
from mcp_project_manager.oauth import OAuthClient
from mcp_project_manager.registry.hub import HubRegistry
from mcp_project_manager.sessions.base import KeyValueStorePort
from mcp_project_manager.sessions.manager import InstallationGrantStore, SessionManager
from mcp_project_manager.sessions.store import MemoryStore, UpstashStore


@dataclass(frozen=True, slots=True)
class AppContext:
    """Adapters shared by every request, built once in the lifespan."""

    settings: Settings
    http: httpx.AsyncClient
    store: KeyValueStorePort
    sessions: SessionManager
    grants: InstallationGrantStore
    app_auth: GitHubAppAuth
    oauth: OAuthClient
    dispatcher: EventDispatcher
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started_at


def build_context(settings: Settings, http: httpx.AsyncClient) -> AppContext:
    """The composition root: wire adapters from ``settings``."""
    store: KeyValueStorePort
    if settings.kv_configured:
        store = UpstashStore(http, settings.kv_rest_api_url, settings.kv_rest_api_token)
    else:
        store = MemoryStore()

    app_auth = GitHubAppAuth(http, settings)

    async def hub_factory() -> HubRegistry:
        return HubRegistry.from_settings(await app_auth.hub_client(), settings)

    return AppContext(
        settings=settings,
        http=http,
        store=store,
        sessions=SessionManager(store),
        grants=InstallationGrantStore(store),
        app_auth=app_auth,
        oauth=OAuthClient(
            http,
            settings.github_client_id,
            settings.github_client_secret,
            settings.github_redirect_uri,
        ),
        dispatcher=EventDispatcher(
            client_factory=app_auth.installation_client,
            hub_factory=hub_factory,
            settings=settings,
        ),
    )


def get_app_context(request: Request) -> AppContext:
    """FastAPI dependency returning the AppContext stored by the lifespan.

    Raises TypeError if ``app.state.context`` was never populated.
    """
    context = getattr(request.app.state, "context", None)
    if not isinstance(context, AppContext):
        msg = (
            f"Expected AppContext on app.state.context, got {type(context).__name__}. "
            "Was the app built with create_app()?"
        )
        raise TypeError(msg)
    return context
