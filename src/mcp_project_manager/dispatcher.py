"""Route webhook events to detection, validation and hub registration.

Each delivery is handled independently. Handlers never raise: failures
are normalized, logged and, for pushes, reported back as an issue.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import assert_never

from mcp_project_manager.config import Settings
from mcp_project_manager.detection.generic import detect_repository
from mcp_project_manager.errors import InstallationNotFoundError, ProjectManagerError
from mcp_project_manager.events import (
    InstallationEvent,
    IssueLabeledEvent,
    IssueOpenedEvent,
    PullRequestOpenedEvent,
    PushEvent,
    ReleasePublishedEvent,
    RepositoryCreatedEvent,
    RepositoryDeletedEvent,
    RepositoryRef,
    UnsupportedEvent,
    WebhookEvent,
)
from mcp_project_manager.github.base import InstallationClientFactory
from mcp_project_manager.github.client import GitHubClient
from mcp_project_manager.models import (
    DetectionResult,
    MCPFactoryProject,
    RegistrationResult,
    ValidationResult,
)
from mcp_project_manager.notifications import (
    IssueDraft,
    error_issue,
    ineligibility_issue,
    pull_request_report,
    registration_issue,
    registration_status_comment,
    validation_failure_issue,
    welcome_issue,
)
from mcp_project_manager.registry.entries import extract_project_info
from mcp_project_manager.registry.hub import HubRegistry
from mcp_project_manager.resilience.classifier import format_for_logging, normalize_error
from mcp_project_manager.validation.eligibility import (
    assess_mcp_relevance,
    ineligibility_reasons,
    validate_registration_data,
)
from mcp_project_manager.validation.validator import (
    validate_for_registration,
    validate_mcp_factory_project,
    validate_project_config,
)

logger = logging.getLogger(__name__)

HubFactory = Callable[[], Awaitable[HubRegistry]]


def validate_detected(
    detection: DetectionResult,
    *,
    for_registration: bool = False,
) -> ValidationResult | None:
    """Validate whatever project the detector attached, if any."""
    project = detection.project
    if project is None:
        return None
    if isinstance(project, MCPFactoryProject):
        if for_registration:
            return validate_for_registration(project)
        return validate_mcp_factory_project(project)
    return validate_project_config(project)


@dataclass
class EventDispatcher:
    """Runs the handler for one webhook event at a time."""

    client_factory: InstallationClientFactory
    hub_factory: HubFactory
    settings: Settings = field(default_factory=Settings)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    @property
    def hub_name(self) -> str:
        return f"{self.settings.hub_owner}/{self.settings.hub_repo}"

    async def dispatch(self, event: WebhookEvent) -> None:
        match event:
            case PushEvent():
                await self._guard("push event processing", event, self.handle_push, report=True)
            case PullRequestOpenedEvent():
                await self._guard("pull request processing", event, self.handle_pull_request)
            case IssueOpenedEvent() | IssueLabeledEvent():
                await self._guard("issue processing", event, self.handle_issue)
            case RepositoryCreatedEvent():
                await self._guard("repository setup", event, self.handle_repository_created)
            case RepositoryDeletedEvent():
                await self._guard("repository removal", event, self.handle_repository_deleted)
            case InstallationEvent():
                logger.info(
                    "Installation %s for %s (%s, id=%s)",
                    event.action,
                    event.account,
                    event.account_type,
                    event.installation_id,
                )
            case ReleasePublishedEvent():
                logger.info("Release %s published for %s", event.tag, event.repository.full_name)
            case UnsupportedEvent():
                logger.debug("Ignoring %s.%s delivery", event.name, event.action)
            case _:
                assert_never(event)

    # ── Handlers ─────────────────────────────────────────────

    async def handle_push(self, event: PushEvent) -> None:
        repo = event.repository
        if not event.is_default_branch:
            logger.debug("Ignoring push to %s in %s", event.ref, repo.full_name)
            return

        logger.info("Push received for %s", repo.full_name)
        github = await self._client(event.installation_id)
        detection = await detect_repository(github, repo.owner, repo.name, event.after or None)
        project = detection.project
        if not detection.is_mcp_project or project is None:
            logger.info("%s is not an MCP project: %s", repo.full_name, detection.reasons)
            return

        if isinstance(project, MCPFactoryProject):
            validation = validate_for_registration(project)
        else:
            validation = validate_project_config(project)
        if not validation.is_valid:
            logger.warning("Validation failed for %s: %s", repo.full_name, validation.errors)
            draft = validation_failure_issue(project.name, detection, validation)
            await self._open_issue(github, repo, draft)
            return

        registration = extract_project_info(project, repo.owner, repo.name)
        reasons = ineligibility_reasons(project, detection.is_mcp_project)
        reasons.extend(validate_registration_data(registration).errors)
        if reasons:
            logger.info("%s is not eligible for auto-registration: %s", repo.full_name, reasons)
            draft = ineligibility_issue(
                registration, detection, validation, reasons, hub=self.hub_name
            )
            await self._open_issue(github, repo, draft)
            return

        relevance = None
        if isinstance(project, MCPFactoryProject):
            relevance = assess_mcp_relevance(project)
        try:
            hub = await self.hub_factory()
        except ProjectManagerError as exc:
            logger.error(format_for_logging(exc, "hub access"))
            result = RegistrationResult(success=False, error=f"Hub access failed: {exc}")
        else:
            result = await hub.register(registration, validation=validation, relevance=relevance)

        draft = registration_issue(registration, result, detection, validation, hub=self.hub_name)
        await self._open_issue(github, repo, draft)

    async def handle_pull_request(self, event: PullRequestOpenedEvent) -> None:
        repo = event.repository
        github = await self._client(event.installation_id)
        detection = await detect_repository(
            github, repo.owner, repo.name, event.head_sha or None
        )
        if detection.project is None:
            logger.info("PR #%d in %s has no project manifest", event.number, repo.full_name)
            return
        report = pull_request_report(detection, validate_detected(detection))
        await github.create_comment(repo.owner, repo.name, event.number, report)

    async def handle_issue(self, event: IssueOpenedEvent | IssueLabeledEvent) -> None:
        if not event.is_registration_request:
            return
        repo = event.repository
        github = await self._client(event.installation_id)
        detection = await detect_repository(github, repo.owner, repo.name)
        validation = validate_detected(detection, for_registration=True)

        entry = None
        if detection.project is not None:
            try:
                hub = await self.hub_factory()
                entry = await hub.lookup(detection.project.name)
            except ProjectManagerError as exc:
                logger.warning(format_for_logging(exc, "registry lookup"))

        comment = registration_status_comment(detection, validation, entry)
        await github.create_comment(repo.owner, repo.name, event.number, comment)

    async def handle_repository_created(self, event: RepositoryCreatedEvent) -> None:
        repo = event.repository
        # New repositories need a moment before their initial commit is readable
        await self.sleep(self.settings.repository_created_delay)
        github = await self._client(event.installation_id)
        detection = await detect_repository(github, repo.owner, repo.name)
        if detection.is_mcp_project:
            await self._open_issue(github, repo, welcome_issue(repo.full_name, detection))

    async def handle_repository_deleted(self, event: RepositoryDeletedEvent) -> None:
        hub = await self.hub_factory()
        result = await hub.remove(event.repository.url)
        if not result.success:
            logger.error("Could not remove %s from the hub: %s", event.repository.url, result.error)

    # ── Plumbing ─────────────────────────────────────────────

    async def _client(self, installation_id: int | None) -> GitHubClient:
        if installation_id is None:
            raise InstallationNotFoundError("Webhook delivery carries no installation id")
        return await self.client_factory(installation_id)

    async def _open_issue(
        self, github: GitHubClient, repo: RepositoryRef, draft: IssueDraft
    ) -> None:
        await github.create_issue(
            repo.owner, repo.name, title=draft.title, body=draft.body, labels=list(draft.labels)
        )

    async def _guard(
        self,
        action: str,
        event: PushEvent
        | PullRequestOpenedEvent
        | IssueOpenedEvent
        | IssueLabeledEvent
        | RepositoryCreatedEvent
        | RepositoryDeletedEvent,
        handler: Callable[..., Awaitable[None]],
        *,
        report: bool = False,
    ) -> None:
        """Run ``handler`` and turn any failure into a log line (and an issue)."""
        try:
            await handler(event)
        except Exception as exc:
            error = normalize_error(exc, f"{action} failed")
            logger.error(
                format_for_logging(error, action),
                exc_info=not error.is_operational,
            )
            if report:
                await self._report(action, error, event.repository, event.installation_id)

    async def _report(
        self,
        action: str,
        error: ProjectManagerError,
        repo: RepositoryRef,
        installation_id: int | None,
    ) -> None:
        try:
            github = await self._client(installation_id)
            await self._open_issue(github, repo, error_issue(action, error.message))
        except Exception as exc:
            failure = normalize_error(exc, "Error report failed")
            logger.error(format_for_logging(failure, "error report issue creation"))
