"""Tests for the issue, comment and pull request bodies."""

from __future__ import annotations

from mcp_project_manager.models import (
    DetectionResult,
    ManifestSource,
    MCPFactoryProject,
    MCPProjectRegistration,
    ProjectType,
    RegistrationResult,
    RelevanceAssessment,
    ValidationResult,
)
from mcp_project_manager.notifications import (
    Label,
    error_issue,
    hub_pull_request_body,
    ineligibility_issue,
    pull_request_report,
    registration_issue,
    registration_status_comment,
    registration_summary,
    removal_pull_request_body,
    validation_failure_issue,
    welcome_issue,
)

REGISTRATION = MCPProjectRegistration(
    name="weather-mcp",
    description="Weather MCP server",
    repository="https://github.com/acme/weather-mcp",
    version="1.0.0",
    language="python",
    category="tools",
    tags=["mcp", "weather"],
    factory_version=">=0.1",
)

PROJECT = MCPFactoryProject(
    type=ProjectType.MCP_FACTORY,
    source=ManifestSource.PYPROJECT_TOML,
    name="weather-mcp",
    structure_compliance=5 / 6,
    required_files={"pyproject.toml": True, "server.py": True, "README.md": True},
    required_directories={"tools": True, "resources": True, "prompts": False},
)

DETECTION = DetectionResult(is_mcp_project=True, confidence=0.9333, project=PROJECT)
VALID = ValidationResult(warnings=["Missing prompts/ directory"], score=95)
INVALID = ValidationResult(errors=["Project description is required"], score=75)


class TestFragments:
    def test_registration_summary(self):
        summary = registration_summary(REGISTRATION)

        assert "📦 **weather-mcp** v1.0.0" in summary
        assert "🏷️ Python • Tools (MCP Factory >=0.1)" in summary
        assert "mcp • weather" in summary

    def test_detection_checklist(self):
        body = pull_request_report(DETECTION, VALID)

        assert "- **Confidence**: 93.3%" in body
        assert "- **Structure compliance**: 83%" in body
        assert "- [x] `server.py`" in body
        assert "- [ ] `prompts/`" in body
        assert "- **Score**: 95/100" in body


class TestIssues:
    def test_successful_registration(self):
        result = RegistrationResult(success=True, url="https://github.com/hub/pull/1")
        draft = registration_issue(REGISTRATION, result, DETECTION, VALID)

        assert draft.title == "🎉 MCP Project Registration Submitted: weather-mcp"
        assert "submitted to the MCP Servers Hub" in draft.body
        assert "https://github.com/hub/pull/1" in draft.body
        assert Label.AUTO_REGISTERED in draft.labels

    def test_updated_registration(self):
        result = RegistrationResult(success=True, updated=True)
        draft = registration_issue(REGISTRATION, result, DETECTION, VALID)
        assert "was updated to" in draft.body

    def test_failed_registration_has_manual_steps(self):
        result = RegistrationResult(success=False, error="Reference already exists")
        draft = registration_issue(REGISTRATION, result, DETECTION, VALID, hub="my-org/hub")

        assert draft.title == "⚠️ MCP Project Registration Failed: weather-mcp"
        assert "Reference already exists" in draft.body
        assert "Fork [my-org/hub](https://github.com/my-org/hub)" in draft.body
        assert draft.labels == [Label.MCP_SERVER, Label.MANUAL_REVIEW]

    def test_validation_failure(self):
        draft = validation_failure_issue("weather-mcp", DETECTION, INVALID)

        assert draft.title == "❌ MCP Project Validation Failed: weather-mcp"
        assert "- Project description is required" in draft.body
        assert Label.VALIDATION_FAILED in draft.labels

    def test_ineligibility(self):
        draft = ineligibility_issue(
            REGISTRATION, DETECTION, VALID, ["Project name must be at least 3 characters"]
        )

        assert draft.title == "🔄 MCP Project Needs Manual Review: weather-mcp"
        assert "- Project name must be at least 3 characters" in draft.body

    def test_welcome(self):
        draft = welcome_issue("acme/weather-mcp", DETECTION)

        assert draft.title == "👋 Welcome to MCP Project Manager"
        assert "`acme/weather-mcp`" in draft.body
        assert Label.WELCOME in draft.labels

    def test_error_issue(self):
        draft = error_issue("push event processing", "boom")

        assert draft.title == "🚨 Automation Error: push event processing"
        assert "```\nboom\n```" in draft.body
        assert draft.labels == [Label.BUG, Label.AUTOMATION]

    def test_builders_are_deterministic(self):
        result = RegistrationResult(success=True)
        first = registration_issue(REGISTRATION, result, DETECTION, VALID)
        second = registration_issue(REGISTRATION, result, DETECTION, VALID)
        assert first == second


class TestComments:
    def test_pull_request_report_lists_reasons_when_not_mcp(self):
        detection = DetectionResult(
            is_mcp_project=False, confidence=0.2, reasons=["Missing mcp-factory dependency"]
        )
        body = pull_request_report(detection, None)

        assert "- Missing mcp-factory dependency" in body
        assert "Validation" not in body

    def test_status_listed(self):
        entry = {"name": "weather-mcp", "addedAt": "2024-05-01T12:00:00.000Z"}
        body = registration_status_comment(DETECTION, VALID, entry)
        assert "is listed in the hub registry (changed 2024-05-01T12:00:00.000Z)" in body

    def test_status_pending(self):
        body = registration_status_comment(DETECTION, VALID, None)
        assert "valid but not listed yet" in body

    def test_status_not_listed(self):
        body = registration_status_comment(DETECTION, INVALID, None)
        assert "not listed in the hub registry" in body


class TestHubBodies:
    def test_registration_pull_request(self):
        relevance = RelevanceAssessment(
            is_relevant=True, score=110, reasons=["Depends on mcp-factory"]
        )
        body = hub_pull_request_body(REGISTRATION, VALID, relevance, updated=True)

        assert body.startswith("## 🤖 Update MCP project")
        assert "### 🎯 MCP relevance: 110 (relevant)" in body
        assert body.endswith("_This PR was automatically created by MCP Project Manager_")

    def test_removal_pull_request(self):
        body = removal_pull_request_body(
            "https://github.com/acme/weather-mcp", [{"name": "weather-mcp"}]
        )
        assert "- `weather-mcp`" in body
