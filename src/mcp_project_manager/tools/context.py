"""Shared state for the MCP tools: settings, a GitHub reader and the hub."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
from mcp.server.fastmcp import Context, FastMCP

from mcp_project_manager.config import Settings
from mcp_project_manager.github.client import GitHubClient
from mcp_project_manager.registry.hub import HubRegistry


@dataclass(frozen=True, slots=True)
class ToolContext:
    """Read-only adapters shared by every tool invocation."""

    settings: Settings
    github: GitHubClient
    hub: HubRegistry

    @property
    def hub_name(self) -> str:
        return f"{self.settings.hub_owner}/{self.settings.hub_repo}"


@asynccontextmanager
async def tool_lifespan(server: FastMCP) -> AsyncIterator[ToolContext]:
    """``GITHUB_HUB_TOKEN`` lifts anonymous rate limits when set."""
    settings = Settings.from_env()
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(30.0, connect=10.0),
        follow_redirects=True,
        limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        transport=httpx.AsyncHTTPTransport(retries=3),
    ) as http_client:
        github = GitHubClient(http_client, token=settings.hub_token or None)
        yield ToolContext(
            settings=settings,
            github=github,
            hub=HubRegistry.from_settings(github, settings),
        )


def tool_context(ctx: Context) -> ToolContext:
    """The ToolContext that ``tool_lifespan`` yielded for this session.

    Raises:
        TypeError: The server was started with another lifespan.
    """
    state = ctx.request_context.lifespan_context
    if isinstance(state, ToolContext):
        return state
    raise TypeError(
        f"Expected ToolContext from tool_lifespan, got {type(state).__name__}"
    )
