"""Auto-registration eligibility, registration data checks and MCP relevance."""

from __future__ import annotations

import re

from mcp_project_manager.models import (
    MCPFactoryProject,
    MCPProjectRegistration,
    ProjectConfig,
    RelevanceAssessment,
    ValidationResult,
)
from mcp_project_manager.validation.validator import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    MCP_TERMS,
    MIN_STRUCTURE_COMPLIANCE,
)

VALID_LANGUAGES = ("python", "typescript", "javascript")
VALID_CATEGORIES = ("server", "tools", "resources", "prompts")

MIN_NAME_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 10
MIN_DIRECTORIES = 2
RELEVANCE_THRESHOLD = 70

_GITHUB_URL_RE = re.compile(r"^https://github\.com/[a-zA-Z0-9_-]+/[a-zA-Z0-9_.-]+$")
_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+(-[\w.-]+)?(\+[\w.-]+)?$")
_GENERIC_DEPENDENCY_MARKERS = ("@modelcontextprotocol", "mcp", "fastapi", "uvicorn")
_GENERIC_KEYWORD_MARKERS = ("mcp", "context", "protocol")


def ineligibility_reasons(project: ProjectConfig, is_mcp_project: bool = False) -> list[str]:
    """Why ``project`` cannot be registered automatically (empty when it can)."""
    if isinstance(project, MCPFactoryProject):
        return _factory_ineligibility(project)
    return _generic_ineligibility(project, is_mcp_project)


def is_eligible_for_auto_registration(project: ProjectConfig, is_mcp_project: bool = False) -> bool:
    return not ineligibility_reasons(project, is_mcp_project)


def _factory_ineligibility(project: MCPFactoryProject) -> list[str]:
    reasons: list[str] = []
    if not project.has_factory_dependency:
        reasons.append("Missing mcp-factory dependency")
    if project.structure_compliance < MIN_STRUCTURE_COMPLIANCE:
        reasons.append(
            f"Structure compliance {project.structure_compliance:.0%} is below "
            f"{MIN_STRUCTURE_COMPLIANCE:.0%}"
        )
    files = project.required_files
    if not files.get("pyproject.toml") or not files.get("server.py"):
        reasons.append("pyproject.toml and server.py are both required")
    directories = sum(bool(present) for present in project.required_directories.values())
    if directories < MIN_DIRECTORIES:
        reasons.append(
            f"At least {MIN_DIRECTORIES} of tools/, resources/ and prompts/ are required"
        )
    reasons.extend(_metadata_ineligibility(project))
    return reasons


def _generic_ineligibility(project: ProjectConfig, is_mcp_project: bool) -> list[str]:
    if not is_mcp_project:
        return ["Repository was not identified as an MCP project"]

    reasons = _metadata_ineligibility(project)
    dependencies = [dep.lower() for dep in project.dependencies]
    if not any(marker in dep for dep in dependencies for marker in _GENERIC_DEPENDENCY_MARKERS):
        reasons.append("No MCP-related dependency declared")

    keyword_hit = any(
        marker in keyword.lower()
        for keyword in project.keywords
        for marker in _GENERIC_KEYWORD_MARKERS
    )
    text_hit = "mcp" in project.description.lower() or "mcp" in project.name.lower()
    if not keyword_hit and not text_hit:
        reasons.append("Name, description or keywords should mention MCP")
    return reasons


def _metadata_ineligibility(project: ProjectConfig) -> list[str]:
    reasons: list[str] = []
    if len(project.name) < MIN_NAME_LENGTH:
        reasons.append(f"Project name must be at least {MIN_NAME_LENGTH} characters")
    if len(project.description) < MIN_DESCRIPTION_LENGTH:
        reasons.append(f"Project description must be at least {MIN_DESCRIPTION_LENGTH} characters")
    return reasons


def validate_registration_data(registration: MCPProjectRegistration) -> ValidationResult:
    """Check a registration entry before it is sent to the hub."""
    errors: list[str] = []

    if not registration.name.strip():
        errors.append("Project name is required")
    elif len(registration.name) > MAX_NAME_LENGTH:
        errors.append(f"Project name must be {MAX_NAME_LENGTH} characters or less")

    if not registration.description.strip():
        errors.append("Project description is required")
    elif len(registration.description) > MAX_DESCRIPTION_LENGTH:
        errors.append(f"Description is too long (max {MAX_DESCRIPTION_LENGTH} characters)")

    if not _GITHUB_URL_RE.match(registration.repository):
        errors.append("Invalid GitHub repository URL")

    if not _SEMVER_RE.match(registration.version):
        errors.append("Invalid version format")

    if registration.language not in VALID_LANGUAGES:
        errors.append(f"Invalid language: {registration.language}")

    if registration.category not in VALID_CATEGORIES:
        errors.append(f"Category must be one of: {', '.join(VALID_CATEGORIES)}")

    return ValidationResult(errors=errors, score=max(0, 100 - 25 * len(errors)))


def assess_mcp_relevance(project: MCPFactoryProject) -> RelevanceAssessment:
    """Points for how clearly a factory project presents itself as MCP."""
    score = 0
    reasons: list[str] = []

    if project.has_factory_dependency:
        score += 60
        reasons.append("Has mcp-factory dependency")

    description = project.description.lower()
    for term in MCP_TERMS:
        if term in description:
            score += 10
            reasons.append(f'Description mentions "{term}"')

    keywords = {keyword.lower() for keyword in project.keywords}
    for term in MCP_TERMS:
        if term in keywords:
            score += 5
            reasons.append(f'Has "{term}" keyword')

    if "mcp" in project.name.lower():
        score += 15
        reasons.append("Project name contains 'mcp'")

    if project.structure_compliance >= 0.9:
        score += 10
        reasons.append("High structure compliance")

    return RelevanceAssessment(
        is_relevant=score >= RELEVANCE_THRESHOLD,
        score=score,
        reasons=reasons,
    )
