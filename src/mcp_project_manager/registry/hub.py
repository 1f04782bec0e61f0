"""Hub registry updates proposed as pull requests.

Every mutation reads ``registry.json`` from the hub's default branch,
writes the new document on a fresh branch and opens a pull request for
human review. Nothing is committed to the default branch directly.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from mcp_project_manager.config import Settings
from mcp_project_manager.errors import ValidationError
from mcp_project_manager.github.client import GitHubClient
from mcp_project_manager.models import (
    MCPProjectRegistration,
    RegistrationResult,
    RelevanceAssessment,
    ValidationResult,
)
from mcp_project_manager.notifications import hub_pull_request_body, removal_pull_request_body
from mcp_project_manager.registry.entries import (
    RegistryDocument,
    find_entry,
    merge_registration,
    parse_registry,
    remove_by_repository,
    serialize_registry,
)
from mcp_project_manager.resilience.classifier import format_for_logging, normalize_error

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def iso_timestamp(moment: datetime) -> str:
    """``2024-05-01T12:00:00.000Z`` form used by registry entries."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def branch_slug(name: str) -> str:
    return _SLUG_RE.sub("-", name.lower()).strip("-") or "project"


@dataclass
class HubRegistry:
    """Read/propose changes to the hub's registry document."""

    github: GitHubClient
    owner: str
    repo: str
    path: str = "registry.json"
    clock: Callable[[], datetime] = field(default=_utcnow)

    @classmethod
    def from_settings(cls, github: GitHubClient, settings: Settings) -> HubRegistry:
        return cls(
            github=github,
            owner=settings.hub_owner,
            repo=settings.hub_repo,
            path=settings.registry_path,
        )

    async def load(self) -> tuple[RegistryDocument, str]:
        """Return the current document and its blob sha ("" when absent)."""
        content = await self.github.get_content(self.owner, self.repo, self.path)
        if content is None:
            return RegistryDocument(), ""
        if content.is_directory:
            raise ValidationError(f"{self.path} in {self.owner}/{self.repo} is a directory")
        return parse_registry(content.text), content.sha

    async def lookup(self, name: str) -> dict | None:
        document, _ = await self.load()
        return find_entry(document.entries, name)

    async def register(
        self,
        registration: MCPProjectRegistration,
        *,
        validation: ValidationResult | None = None,
        relevance: RelevanceAssessment | None = None,
    ) -> RegistrationResult:
        """Propose adding or updating ``registration``. Never raises."""
        try:
            document, sha = await self.load()
            now = self.clock()
            entries, updated = merge_registration(
                document.entries, registration, iso_timestamp(now)
            )
            verb = "Update" if updated else "Add"
            url = await self._propose(
                document.with_entries(entries),
                sha,
                branch=f"register/{branch_slug(registration.name)}-{int(now.timestamp() * 1000)}",
                message=f"{verb} MCP project: {registration.name}",
                title=f"🚀 {verb} MCP project: {registration.name}",
                body=hub_pull_request_body(registration, validation, relevance, updated=updated),
            )
        except Exception as exc:
            error = normalize_error(exc, "Hub registration failed")
            logger.error(format_for_logging(error, f"registering {registration.name}"))
            return RegistrationResult(success=False, error=str(error))

        logger.info("Registration PR opened for %s: %s", registration.name, url)
        return RegistrationResult(success=True, url=url, updated=updated)

    async def remove(self, repository_url: str) -> RegistrationResult:
        """Propose removing every entry for ``repository_url``. Never raises.

        An unknown repository is a successful no-op.
        """
        try:
            document, sha = await self.load()
            kept, removed = remove_by_repository(document.entries, repository_url)
            if not removed:
                logger.info("Project not found in registry: %s", repository_url)
                return RegistrationResult(success=True)

            names = ", ".join(str(entry.get("name", "")) for entry in removed)
            now = self.clock()
            url = await self._propose(
                document.with_entries(kept),
                sha,
                branch=f"remove/{branch_slug(names)}-{int(now.timestamp() * 1000)}",
                message=f"Remove MCP project: {names}",
                title=f"🗑️ Remove MCP project: {names}",
                body=removal_pull_request_body(repository_url, removed),
            )
        except Exception as exc:
            error = normalize_error(exc, "Hub removal failed")
            logger.error(format_for_logging(error, f"removing {repository_url}"))
            return RegistrationResult(success=False, error=str(error))

        logger.info("Removal PR opened for %s: %s", repository_url, url)
        return RegistrationResult(success=True, url=url, updated=True)

    async def _propose(
        self,
        document: RegistryDocument,
        sha: str,
        *,
        branch: str,
        message: str,
        title: str,
        body: str,
    ) -> str:
        """Branch off the default branch, commit the document, open a PR."""
        repository = await self.github.get_repository(self.owner, self.repo)
        base = str(repository.get("default_branch") or "main")
        tip = await self.github.get_branch_sha(self.owner, self.repo, base)
        await self.github.create_branch(self.owner, self.repo, branch, tip)
        await self.github.put_file(
            self.owner,
            self.repo,
            self.path,
            serialize_registry(document),
            message,
            branch=branch,
            sha=sha or None,
        )
        pull = await self.github.create_pull_request(
            self.owner, self.repo, title=title, head=branch, base=base, body=body
        )
        return str(pull.get("html_url", ""))
