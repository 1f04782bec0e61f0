"""Markdown bodies for the issues, comments and pull requests the app writes.

Every builder is a pure function of its arguments, so the same inputs
always render the same text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from mcp_project_manager.models import (
    DetectionResult,
    MCPFactoryProject,
    MCPProjectRegistration,
    RegistrationResult,
    RelevanceAssessment,
    ValidationResult,
)

_FOOTER = "> 🤖 This message was generated automatically by MCP Project Manager"

_LANGUAGE_NAMES = {"python": "Python", "typescript": "TypeScript", "javascript": "JavaScript"}


class Label(StrEnum):
    MCP_SERVER = "mcp-server"
    VALIDATION_PASSED = "validation-passed"
    VALIDATION_FAILED = "validation-failed"
    AUTO_REGISTERED = "auto-registered"
    REGISTRATION_PENDING = "registration-pending"
    MANUAL_REVIEW = "manual-review"
    WELCOME = "welcome"
    BUG = "bug"
    AUTOMATION = "automation"


@dataclass(frozen=True, slots=True)
class IssueDraft:
    title: str
    body: str
    labels: list[str] = field(default_factory=list)


# ─── Fragments ───────────────────────────────────────────────


def _bullets(items: list[str], empty: str = "_None_") -> str:
    if not items:
        return empty
    return "\n".join(f"- {item}" for item in items)


def _checklist(checks: dict[str, bool], suffix: str = "") -> str:
    return "\n".join(f"- [{'x' if ok else ' '}] `{name}{suffix}`" for name, ok in checks.items())


def _detection_section(detection: DetectionResult) -> str:
    lines = [
        "### 🔍 Detection",
        f"- **MCP project**: {'Yes' if detection.is_mcp_project else 'No'}",
        f"- **Confidence**: {detection.confidence_percent:.1f}%",
    ]
    project = detection.project
    if isinstance(project, MCPFactoryProject):
        lines.append(f"- **Structure compliance**: {project.structure_compliance:.0%}")
        lines.append("")
        lines.append("**Required files**")
        lines.append(_checklist(project.required_files))
        lines.append("")
        lines.append("**Required directories**")
        lines.append(_checklist(project.required_directories, "/"))
    return "\n".join(lines)


def _validation_section(validation: ValidationResult) -> str:
    status = "✅ Passed" if validation.is_valid else "❌ Failed"
    return "\n".join(
        [
            "### 📋 Validation",
            f"- **Result**: {status}",
            f"- **Score**: {validation.score}/100",
            "",
            "**Errors**",
            _bullets(validation.errors),
            "",
            "**Warnings**",
            _bullets(validation.warnings),
        ]
    )


def registration_summary(registration: MCPProjectRegistration) -> str:
    language = _LANGUAGE_NAMES.get(registration.language, registration.language.capitalize())
    factory = ""
    if registration.factory_version:
        factory = f" (MCP Factory {registration.factory_version})"
    lines = [
        f"📦 **{registration.name}** v{registration.version}",
        f"📝 {registration.description or '_No description_'}",
        f"🔗 {registration.repository}",
        f"🏷️ {language} • {registration.category.capitalize()}{factory}",
    ]
    if registration.tags:
        lines.append(f"🏷️ {' • '.join(registration.tags)}")
    return "\n".join(lines)


def _manual_registration_steps(registration: MCPProjectRegistration, hub: str) -> str:
    return "\n".join(
        [
            "### 🛠️ Manual registration",
            f"1. Fork [{hub}](https://github.com/{hub})",
            f"2. Add an entry for `{registration.name}` to `registry.json`"
            " (keep the list sorted by name)",
            "3. Open a pull request describing your server",
        ]
    )


# ─── Issues ──────────────────────────────────────────────────


def registration_issue(
    registration: MCPProjectRegistration,
    result: RegistrationResult,
    detection: DetectionResult,
    validation: ValidationResult,
    *,
    hub: str = "ACNet-AI/mcp-servers-hub",
) -> IssueDraft:
    """Issue reporting the outcome of an automatic registration attempt."""
    sections = [registration_summary(registration), "", _detection_section(detection), ""]
    sections.append(_validation_section(validation))
    sections.append("")

    if result.success:
        action = "updated" if result.updated else "submitted"
        sections.append("### ✅ Registration")
        sections.append(f"Your project was {action} to the MCP Servers Hub for review.")
        if result.url:
            sections.append(f"- **Pull request**: {result.url}")
        sections.append("")
        sections.append("**Next steps**: a maintainer reviews the pull request.")
        title = f"🎉 MCP Project Registration Submitted: {registration.name}"
        labels = [Label.MCP_SERVER, Label.AUTO_REGISTERED, Label.REGISTRATION_PENDING]
    else:
        sections.append("### ❌ Registration")
        sections.append("Automatic registration failed:")
        sections.append(f"```\n{result.error or 'Unknown error'}\n```")
        sections.append("")
        sections.append(_manual_registration_steps(registration, hub))
        title = f"⚠️ MCP Project Registration Failed: {registration.name}"
        labels = [Label.MCP_SERVER, Label.MANUAL_REVIEW]

    sections.extend(["", _FOOTER])
    return IssueDraft(title=title, body="\n".join(sections), labels=labels)


def validation_failure_issue(
    name: str,
    detection: DetectionResult,
    validation: ValidationResult,
) -> IssueDraft:
    body = "\n".join(
        [
            f"# ❌ MCP project validation failed for `{name}`",
            "",
            _detection_section(detection),
            "",
            _validation_section(validation),
            "",
            "**Next steps**: fix the errors above and push to the default branch again;"
            " registration is retried automatically.",
            "",
            _FOOTER,
        ]
    )
    return IssueDraft(
        title=f"❌ MCP Project Validation Failed: {name}",
        body=body,
        labels=[Label.MCP_SERVER, Label.VALIDATION_FAILED],
    )


def ineligibility_issue(
    registration: MCPProjectRegistration,
    detection: DetectionResult,
    validation: ValidationResult,
    reasons: list[str],
    *,
    hub: str = "ACNet-AI/mcp-servers-hub",
) -> IssueDraft:
    body = "\n".join(
        [
            "# 🔄 Manual Registration Required",
            "",
            "## Project Information",
            registration_summary(registration),
            "",
            "## Why automatic registration was skipped",
            _bullets(reasons),
            "",
            _detection_section(detection),
            "",
            _validation_section(validation),
            "",
            _manual_registration_steps(registration, hub),
            "",
            _FOOTER,
        ]
    )
    return IssueDraft(
        title=f"🔄 MCP Project Needs Manual Review: {registration.name}",
        body=body,
        labels=[Label.MCP_SERVER, Label.MANUAL_REVIEW],
    )


def welcome_issue(full_name: str, detection: DetectionResult) -> IssueDraft:
    body = "\n".join(
        [
            f"# 👋 Welcome, `{full_name}`!",
            "",
            "MCP Project Manager detected an MCP project in this new repository.",
            "",
            _detection_section(detection),
            "",
            "**What happens next**",
            "- Every push to the default branch is validated automatically",
            "- Valid MCP Factory projects are proposed to the MCP Servers Hub",
            '- Open an issue mentioning "register" to get a status report at any time',
            "",
            _FOOTER,
        ]
    )
    return IssueDraft(
        title="👋 Welcome to MCP Project Manager",
        body=body,
        labels=[Label.MCP_SERVER, Label.WELCOME],
    )


def error_issue(action: str, message: str) -> IssueDraft:
    body = (
        f"An error occurred during {action}:\n\n```\n{message}\n```\n\n"
        "Please check the logs for more details."
    )
    return IssueDraft(
        title=f"🚨 Automation Error: {action}",
        body=body,
        labels=[Label.BUG, Label.AUTOMATION],
    )


# ─── Comments ────────────────────────────────────────────────


def pull_request_report(detection: DetectionResult, validation: ValidationResult | None) -> str:
    """Informational comment for a newly opened pull request."""
    lines = ["## 🔍 MCP Project Manager report", "", _detection_section(detection)]
    if validation is not None:
        lines.extend(["", _validation_section(validation)])
    if not detection.is_mcp_project:
        lines.extend(["", "**Detection notes**", _bullets(detection.reasons)])
    lines.extend(["", "_Registration only happens on pushes to the default branch._"])
    return "\n".join(lines)


def registration_status_comment(
    detection: DetectionResult,
    validation: ValidationResult | None,
    entry: dict | None,
) -> str:
    """Reply to an issue asking about registration."""
    lines = ["## 📊 Registration status", "", _detection_section(detection)]
    if validation is not None:
        lines.extend(["", _validation_section(validation)])
    lines.append("")
    if entry is not None:
        stamp = entry.get("updatedAt") or entry.get("addedAt") or "unknown"
        lines.append(f"✅ `{entry.get('name')}` is listed in the hub registry (changed {stamp}).")
    elif detection.is_mcp_project and validation is not None and validation.is_valid:
        lines.append("🕒 The project is valid but not listed yet. Push to the default branch.")
    else:
        lines.append("❌ The project is not listed in the hub registry.")
    lines.extend(["", _FOOTER])
    return "\n".join(lines)


# ─── Hub pull requests ───────────────────────────────────────


def hub_pull_request_body(
    registration: MCPProjectRegistration,
    validation: ValidationResult | None,
    relevance: RelevanceAssessment | None,
    *,
    updated: bool = False,
) -> str:
    lines = [
        f"## 🤖 {'Update' if updated else 'Register'} MCP project",
        "",
        registration_summary(registration),
        "",
    ]
    if validation is not None:
        lines.append(_validation_section(validation))
        lines.append("")
    if relevance is not None:
        verdict = "relevant" if relevance.is_relevant else "review needed"
        lines.append(f"### 🎯 MCP relevance: {relevance.score} ({verdict})")
        lines.append(_bullets(relevance.reasons))
        lines.append("")
    lines.append("_This PR was automatically created by MCP Project Manager_")
    return "\n".join(lines)


def removal_pull_request_body(repository_url: str, removed: list[dict]) -> str:
    names = [f"`{entry.get('name', '')}`" for entry in removed]
    return "\n".join(
        [
            "## 🗑️ Remove MCP project",
            "",
            f"The repository {repository_url} was deleted. Removing:",
            _bullets(names),
            "",
            "_This PR was automatically created by MCP Project Manager_",
        ]
    )
