"""Typed webhook events.

``parse_webhook_event`` turns a GitHub delivery (event name + JSON payload)
into one variant of the closed ``WebhookEvent`` union; deliveries the app
does not act on become ``UnsupportedEvent``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from mcp_project_manager.errors import ValidationError

_REGISTRATION_RE = re.compile(r"regist(?:er|ration)", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class RepositoryRef:
    owner: str
    name: str
    default_branch: str = "main"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def url(self) -> str:
        return f"https://github.com/{self.owner}/{self.name}"


@dataclass(frozen=True, slots=True)
class PushEvent:
    repository: RepositoryRef
    installation_id: int | None
    ref: str
    after: str = ""

    @property
    def is_default_branch(self) -> bool:
        return self.ref == f"refs/heads/{self.repository.default_branch}"


@dataclass(frozen=True, slots=True)
class PullRequestOpenedEvent:
    repository: RepositoryRef
    installation_id: int | None
    number: int
    head_sha: str
    title: str = ""


@dataclass(frozen=True, slots=True)
class IssueOpenedEvent:
    repository: RepositoryRef
    installation_id: int | None
    number: int
    title: str = ""
    body: str = ""
    labels: list[str] = field(default_factory=list)

    @property
    def is_registration_request(self) -> bool:
        return bool(
            _REGISTRATION_RE.search(self.title)
            or _REGISTRATION_RE.search(self.body)
            or any(_REGISTRATION_RE.search(label) for label in self.labels)
        )


@dataclass(frozen=True, slots=True)
class IssueLabeledEvent:
    repository: RepositoryRef
    installation_id: int | None
    number: int
    label: str

    @property
    def is_registration_request(self) -> bool:
        return bool(_REGISTRATION_RE.search(self.label))


@dataclass(frozen=True, slots=True)
class InstallationEvent:
    action: str
    installation_id: int | None
    account: str
    account_type: str = "User"


@dataclass(frozen=True, slots=True)
class RepositoryCreatedEvent:
    repository: RepositoryRef
    installation_id: int | None


@dataclass(frozen=True, slots=True)
class RepositoryDeletedEvent:
    repository: RepositoryRef
    installation_id: int | None


@dataclass(frozen=True, slots=True)
class ReleasePublishedEvent:
    repository: RepositoryRef
    installation_id: int | None
    tag: str


@dataclass(frozen=True, slots=True)
class UnsupportedEvent:
    name: str
    action: str = ""


WebhookEvent = (
    PushEvent
    | PullRequestOpenedEvent
    | IssueOpenedEvent
    | IssueLabeledEvent
    | InstallationEvent
    | RepositoryCreatedEvent
    | RepositoryDeletedEvent
    | ReleasePublishedEvent
    | UnsupportedEvent
)


# ─── Parsing ─────────────────────────────────────────────────


def _repository(payload: dict[str, Any]) -> RepositoryRef:
    repository = payload.get("repository")
    if not isinstance(repository, dict) or not isinstance(repository.get("owner"), dict):
        raise ValidationError("Repository information is missing from payload")
    return RepositoryRef(
        owner=str(repository["owner"].get("login", "")),
        name=str(repository.get("name", "")),
        default_branch=str(repository.get("default_branch") or "main"),
    )


def _installation_id(payload: dict[str, Any]) -> int | None:
    installation = payload.get("installation")
    if isinstance(installation, dict) and installation.get("id") is not None:
        return int(installation["id"])
    return None


def _label_names(labels: object) -> list[str]:
    if not isinstance(labels, list):
        return []
    return [str(label.get("name", "")) for label in labels if isinstance(label, dict)]


def parse_webhook_event(name: str, payload: dict[str, Any]) -> WebhookEvent:
    """Build the typed event for a delivery.

    Raises:
        ValidationError: A supported event is missing the fields it needs.
    """
    action = str(payload.get("action") or "")
    installation_id = _installation_id(payload)

    match (name, action):
        case ("push", _):
            return PushEvent(
                repository=_repository(payload),
                installation_id=installation_id,
                ref=str(payload.get("ref", "")),
                after=str(payload.get("after") or ""),
            )
        case ("pull_request", "opened"):
            pull = payload.get("pull_request") or {}
            return PullRequestOpenedEvent(
                repository=_repository(payload),
                installation_id=installation_id,
                number=int(pull.get("number", 0)),
                head_sha=str((pull.get("head") or {}).get("sha", "")),
                title=str(pull.get("title") or ""),
            )
        case ("issues", "opened"):
            issue = payload.get("issue") or {}
            return IssueOpenedEvent(
                repository=_repository(payload),
                installation_id=installation_id,
                number=int(issue.get("number", 0)),
                title=str(issue.get("title") or ""),
                body=str(issue.get("body") or ""),
                labels=_label_names(issue.get("labels")),
            )
        case ("issues", "labeled"):
            issue = payload.get("issue") or {}
            return IssueLabeledEvent(
                repository=_repository(payload),
                installation_id=installation_id,
                number=int(issue.get("number", 0)),
                label=str((payload.get("label") or {}).get("name", "")),
            )
        case ("installation", "created" | "deleted"):
            account = (payload.get("installation") or {}).get("account") or {}
            return InstallationEvent(
                action=action,
                installation_id=installation_id,
                account=str(account.get("login", "")),
                account_type=str(account.get("type") or "User"),
            )
        case ("repository", "created"):
            return RepositoryCreatedEvent(
                repository=_repository(payload), installation_id=installation_id
            )
        case ("repository", "deleted"):
            return RepositoryDeletedEvent(
                repository=_repository(payload), installation_id=installation_id
            )
        case ("release", "published"):
            return ReleasePublishedEvent(
                repository=_repository(payload),
                installation_id=installation_id,
                tag=str((payload.get("release") or {}).get("tag_name", "")),
            )
        case _:
            return UnsupportedEvent(name=name, action=action)
