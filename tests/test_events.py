"""Tests for webhook payload parsing and signature verification."""

from __future__ import annotations

from typing import Any

import pytest

from mcp_project_manager.errors import ValidationError
from mcp_project_manager.events import (
    InstallationEvent,
    IssueLabeledEvent,
    IssueOpenedEvent,
    PullRequestOpenedEvent,
    PushEvent,
    ReleasePublishedEvent,
    RepositoryCreatedEvent,
    RepositoryDeletedEvent,
    UnsupportedEvent,
    parse_webhook_event,
)
from mcp_project_manager.github.webhooks import sign, verify_signature

REPOSITORY = {"name": "weather-mcp", "owner": {"login": "acme"}, "default_branch": "main"}


def _payload(**fields: Any) -> dict[str, Any]:
    return {"repository": REPOSITORY, "installation": {"id": 42}, **fields}


# ===================================================================
# Parsing
# ===================================================================


class TestParseWebhookEvent:
    def test_push(self):
        event = parse_webhook_event("push", _payload(ref="refs/heads/main", after="abc"))

        assert isinstance(event, PushEvent)
        assert event.installation_id == 42
        assert event.after == "abc"
        assert event.is_default_branch
        assert event.repository.url == "https://github.com/acme/weather-mcp"

    def test_push_to_feature_branch(self):
        event = parse_webhook_event("push", _payload(ref="refs/heads/feature"))
        assert isinstance(event, PushEvent)
        assert not event.is_default_branch

    def test_missing_default_branch_means_main(self):
        payload = _payload(ref="refs/heads/main")
        payload["repository"] = {"name": "x", "owner": {"login": "acme"}}
        event = parse_webhook_event("push", payload)
        assert isinstance(event, PushEvent)
        assert event.is_default_branch

    def test_pull_request_opened(self):
        pull = {"number": 7, "head": {"sha": "deadbeef"}, "title": "Add tools"}
        event = parse_webhook_event("pull_request", _payload(action="opened", pull_request=pull))

        assert isinstance(event, PullRequestOpenedEvent)
        assert event.number == 7
        assert event.head_sha == "deadbeef"

    def test_issue_opened_registration_request(self):
        issue = {"number": 3, "title": "Please register my server", "body": None, "labels": []}
        event = parse_webhook_event("issues", _payload(action="opened", issue=issue))

        assert isinstance(event, IssueOpenedEvent)
        assert event.body == ""
        assert event.is_registration_request

    def test_issue_without_keyword(self):
        issue = {"number": 3, "title": "Bug", "body": "The server crashes on startup"}
        event = parse_webhook_event("issues", _payload(action="opened", issue=issue))

        assert isinstance(event, IssueOpenedEvent)
        assert not event.is_registration_request

    @pytest.mark.parametrize(
        ("title", "body"),
        [
            ("Registering my MCP server in the hub", ""),
            ("Update entry", "Please re-register the project"),
            ("Hub", "Is weather-mcp registered yet?"),
        ],
    )
    def test_registration_word_forms(self, title: str, body: str):
        issue = {"number": 3, "title": title, "body": body}
        event = parse_webhook_event("issues", _payload(action="opened", issue=issue))

        assert isinstance(event, IssueOpenedEvent)
        assert event.is_registration_request

    def test_issue_labeled(self):
        event = parse_webhook_event(
            "issues",
            _payload(action="labeled", issue={"number": 5}, label={"name": "registration"}),
        )
        assert isinstance(event, IssueLabeledEvent)
        assert event.is_registration_request

    def test_installation(self):
        payload = {
            "action": "created",
            "installation": {"id": 9, "account": {"login": "acme", "type": "Organization"}},
        }
        event = parse_webhook_event("installation", payload)

        assert event == InstallationEvent(
            action="created", installation_id=9, account="acme", account_type="Organization"
        )

    def test_repository_lifecycle(self):
        created = parse_webhook_event("repository", _payload(action="created"))
        deleted = parse_webhook_event("repository", _payload(action="deleted"))

        assert isinstance(created, RepositoryCreatedEvent)
        assert isinstance(deleted, RepositoryDeletedEvent)

    def test_release_published(self):
        event = parse_webhook_event(
            "release", _payload(action="published", release={"tag_name": "v1.0.0"})
        )
        assert isinstance(event, ReleasePublishedEvent)
        assert event.tag == "v1.0.0"

    def test_unsupported(self):
        event = parse_webhook_event("star", {"action": "created"})
        assert event == UnsupportedEvent(name="star", action="created")

    def test_unhandled_action_is_unsupported(self):
        event = parse_webhook_event("pull_request", _payload(action="closed"))
        assert isinstance(event, UnsupportedEvent)

    def test_missing_repository(self):
        with pytest.raises(ValidationError, match="Repository information"):
            parse_webhook_event("push", {"ref": "refs/heads/main"})


# ===================================================================
# Signatures
# ===================================================================


class TestSignatures:
    def test_valid_signature(self):
        body = b'{"zen": "Keep it logically awesome."}'
        assert verify_signature("s3cret", body, sign("s3cret", body))

    def test_wrong_secret(self):
        body = b"{}"
        assert not verify_signature("s3cret", body, sign("other", body))

    def test_missing_or_malformed_header(self):
        assert not verify_signature("s3cret", b"{}", None)
        assert not verify_signature("s3cret", b"{}", "sha1=abc")

    def test_empty_secret_disables_verification(self):
        assert verify_signature("", b"{}", None)
