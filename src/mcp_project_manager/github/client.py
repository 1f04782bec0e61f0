"""Async client for the GitHub REST API.

API docs: https://docs.github.com/en/rest
Every non-2xx response is turned into a ProjectManagerError subclass; a 404
on the contents endpoint is reported as ``None`` instead.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

import httpx

from mcp_project_manager.errors import (
    GitHubApiError,
    GitHubUnauthorizedError,
    ProjectNotFoundError,
    RateLimitError,
    RepositoryExistsError,
)
from mcp_project_manager.models import ContentKind, RepoContent
from mcp_project_manager.resilience.classifier import normalize_error

logger = logging.getLogger(__name__)

_API_URL = "https://api.github.com"
_API_VERSION = "2022-11-28"
_USER_AGENT = "mcp-project-manager"
_PAGE_SIZE = 100


@dataclass
class GitHubClient:
    """GitHub REST client bound to one token (installation, user or app JWT)."""

    http: httpx.AsyncClient
    token: str | None = None
    api_url: str = _API_URL

    # ── Contents ─────────────────────────────────────────────────

    async def get_content(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: str | None = None,
    ) -> RepoContent | None:
        """Fetch a file (decoded text + blob sha) or a directory listing.

        Returns None when the path does not exist at ``ref``.
        """
        params = {"ref": ref} if ref else None
        try:
            response = await self._request(
                "GET",
                f"/repos/{owner}/{repo}/contents/{quote(path)}",
                params=params,
            )
        except ProjectNotFoundError:
            return None

        data = _json_body(response)
        if isinstance(data, list):
            return RepoContent(
                path=path,
                kind=ContentKind.DIRECTORY,
                entries=[str(item.get("name", "")) for item in data if isinstance(item, dict)],
            )
        if not isinstance(data, dict):
            raise GitHubApiError(
                f"Unexpected contents response for {owner}/{repo}/{path}",
                context={"type": type(data).__name__},
            )

        text = ""
        raw = data.get("content")
        if raw and data.get("encoding", "base64") == "base64":
            text = base64.b64decode(raw).decode("utf-8", errors="replace")
        return RepoContent(
            path=path,
            kind=ContentKind.FILE,
            text=text,
            sha=str(data.get("sha", "")),
        )

    async def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        text: str,
        message: str,
        *,
        branch: str | None = None,
        sha: str | None = None,
    ) -> dict:
        """Create or update a file. ``sha`` is the blob being replaced, if any."""
        body: dict[str, object] = {
            "message": message,
            "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
        }
        if branch:
            body["branch"] = branch
        if sha:
            body["sha"] = sha
        response = await self._request(
            "PUT", f"/repos/{owner}/{repo}/contents/{quote(path)}", json=body
        )
        return _json_body(response)

    async def push_files(
        self,
        owner: str,
        repo: str,
        files: list[tuple[str, str]],
    ) -> str:
        """Commit ``(path, text)`` pairs to the default branch, one commit each.

        Files that already exist (README or LICENSE from ``auto_init``) are
        overwritten. Returns the branch the files were written to.
        """
        repository = await self.get_repository(owner, repo)
        branch = str(repository.get("default_branch") or "main")
        for path, text in files:
            existing = await self.get_content(owner, repo, path, ref=branch)
            sha = existing.sha if existing is not None and not existing.is_directory else None
            message = f"Update {path}" if sha else f"Add {path}"
            await self.put_file(owner, repo, path, text, message, branch=branch, sha=sha)
        logger.info("Pushed %d files to %s/%s", len(files), owner, repo)
        return branch

    # ── Repositories and refs ────────────────────────────────────

    async def get_repository(self, owner: str, repo: str) -> dict:
        response = await self._request("GET", f"/repos/{owner}/{repo}")
        return _json_body(response)

    async def repository_exists(self, owner: str, repo: str) -> bool:
        try:
            await self.get_repository(owner, repo)
        except ProjectNotFoundError:
            return False
        return True

    async def create_user_repository(
        self,
        name: str,
        *,
        description: str = "",
        private: bool = False,
        auto_init: bool = True,
        gitignore_template: str = "Python",
        license_template: str = "mit",
    ) -> dict:
        """Create a repository owned by the authenticated user."""
        response = await self._request(
            "POST",
            "/user/repos",
            json={
                "name": name,
                "description": description or f"MCP server project: {name}",
                "private": private,
                "auto_init": auto_init,
                "gitignore_template": gitignore_template,
                "license_template": license_template,
            },
        )
        data = _json_body(response)
        logger.info("Repository created: %s", data.get("full_name", name))
        return data

    async def get_branch_sha(self, owner: str, repo: str, branch: str) -> str:
        response = await self._request(
            "GET", f"/repos/{owner}/{repo}/git/ref/heads/{quote(branch)}"
        )
        return str(_json_body(response)["object"]["sha"])

    async def create_branch(self, owner: str, repo: str, branch: str, sha: str) -> None:
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/refs",
            json={"ref": f"refs/heads/{branch}", "sha": sha},
        )

    # ── Pull requests, issues, comments ──────────────────────────

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        *,
        title: str,
        head: str,
        base: str,
        body: str,
    ) -> dict:
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            json={"title": title, "head": head, "base": base, "body": body},
        )
        return _json_body(response)

    async def create_issue(
        self,
        owner: str,
        repo: str,
        *,
        title: str,
        body: str,
        labels: list[str] | None = None,
    ) -> dict:
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues",
            json={"title": title, "body": body, "labels": list(labels or [])},
        )
        return _json_body(response)

    async def create_comment(self, owner: str, repo: str, number: int, body: str) -> dict:
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{number}/comments",
            json={"body": body},
        )
        return _json_body(response)

    # ── Users and app installations ──────────────────────────────

    async def get_authenticated_user(self) -> dict:
        response = await self._request("GET", "/user")
        return _json_body(response)

    async def list_installations(self) -> list[dict]:
        """List every installation of the app. Requires an app JWT as token."""
        installations: list[dict] = []
        page = 1
        while True:
            response = await self._request(
                "GET",
                "/app/installations",
                params={"per_page": _PAGE_SIZE, "page": page},
            )
            batch = _json_body(response)
            installations.extend(batch)
            if len(batch) < _PAGE_SIZE:
                return installations
            page += 1

    async def create_installation_token(self, installation_id: int | str) -> str:
        """Exchange the app JWT for an installation access token."""
        response = await self._request(
            "POST", f"/app/installations/{installation_id}/access_tokens"
        )
        return str(_json_body(response)["token"])

    # ── Transport ────────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": _API_VERSION,
            "User-Agent": _USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, object] | None = None,
        json: dict[str, object] | None = None,
    ) -> httpx.Response:
        try:
            response = await self.http.request(
                method,
                f"{self.api_url}{path}",
                headers=self._headers(),
                params=params,
                json=json,
            )
        except httpx.HTTPError as exc:
            raise normalize_error(exc) from exc

        _raise_for_github_status(response, f"{method} {path}")
        return response


def _raise_for_github_status(response: httpx.Response, action: str) -> None:
    """Translate a non-2xx GitHub response into the error hierarchy."""
    if response.is_success:
        return

    status = response.status_code
    message = _error_message(response)
    context: dict[str, object] = {"action": action, "status": status}

    if status in (403, 429) and (
        response.headers.get("X-RateLimit-Remaining") == "0" or "rate limit" in message.lower()
    ):
        raise RateLimitError(reset_at=_rate_limit_reset(response), context=context)

    if status == 401:
        raise GitHubUnauthorizedError(
            f"GitHub rejected the credentials for {action}: {message}", context=context
        )

    if status == 404:
        raise ProjectNotFoundError(f"Not Found: {action}", context=context)

    if status == 422 and "already exists" in response.text.lower():
        raise RepositoryExistsError(f"Repository already exists: {message}", context=context)

    raise GitHubApiError(f"GitHub API error during {action} ({status}): {message}", context=context)


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        action = f"{response.request.method} {response.request.url.path}"
        raise GitHubApiError(
            f"GitHub returned a non-JSON body for {action}",
            context={"action": action, "status": response.status_code},
        ) from exc


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase


def _rate_limit_reset(response: httpx.Response) -> datetime | None:
    raw = response.headers.get("X-RateLimit-Reset")
    if not raw:
        return None
    try:
        return datetime.fromtimestamp(int(raw), tz=UTC)
    except ValueError:
        return None
