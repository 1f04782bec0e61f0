"""Ports: read-only repository access and GitHub client construction."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol

from mcp_project_manager.models import RepoContent

if TYPE_CHECKING:
    from mcp_project_manager.github.client import GitHubClient


class RepoAccessorPort(Protocol):
    """Port for reading files and directories of a repository at a ref."""

    async def get_content(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: str | None = None,
    ) -> RepoContent | None:
        """Return the file/directory at ``path``, or None when it does not exist."""
        ...


# Builds a client authenticated as the app installation with the given id
InstallationClientFactory = Callable[[int], Awaitable["GitHubClient"]]
