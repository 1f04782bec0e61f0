"""Shared test fixtures."""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from mcp_project_manager.errors import GitHubApiError
from mcp_project_manager.models import ContentKind, RepoContent

FACTORY_PYPROJECT = """\
[project]
name = "weather-mcp"
version = "0.2.0"
description = "MCP server exposing weather forecasts as tools"
keywords = ["mcp", "weather"]
dependencies = ["mcp-factory>=0.1.0", "httpx"]
authors = [{name = "Ada Lovelace"}]
license = {text = "MIT"}
"""

FACTORY_LAYOUT = {
    "pyproject.toml": FACTORY_PYPROJECT,
    "server.py": "from mcp_factory import Server\n",
    "README.md": "# weather-mcp\n",
    "tools/forecast.py": "def forecast(): ...\n",
    "resources/cities.py": "CITIES = []\n",
    "prompts/summary.py": "PROMPT = ''\n",
}


class FakeRepo:
    """In-memory repository with the RepoAccessorPort shape.

    Directories are implied by file paths; ``failing`` paths raise an API
    error instead of returning content.
    """

    def __init__(
        self,
        files: dict[str, str] | None = None,
        *,
        failing: tuple[str, ...] = (),
    ) -> None:
        self.files = dict(files or {})
        self.failing = set(failing)
        self.requests: list[tuple[str, str | None]] = []

    def _children(self, path: str) -> list[str]:
        prefix = f"{path}/" if path else ""
        return sorted(
            {name[len(prefix) :].split("/")[0] for name in self.files if name.startswith(prefix)}
        )

    async def get_content(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> RepoContent | None:
        self.requests.append((path, ref))
        if path in self.failing:
            raise GitHubApiError(f"GitHub API error for {path}")
        if path in self.files:
            return RepoContent(
                path=path, kind=ContentKind.FILE, text=self.files[path], sha=f"sha-{path}"
            )
        children = self._children(path)
        if children:
            return RepoContent(path=path, kind=ContentKind.DIRECTORY, entries=children)
        return None


@pytest.fixture
def factory_repo() -> FakeRepo:
    return FakeRepo(FACTORY_LAYOUT)


@pytest.fixture(scope="session")
def rsa_private_key_pem() -> str:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
