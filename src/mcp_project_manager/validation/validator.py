"""Structural validation of detected projects.

Two scoring variants exist: the MCP Factory validator charges 25 points
per error and 5 per warning, the generic manifest validator 25 and 10.
Scores are clamped at 0.
"""

from __future__ import annotations

from mcp_project_manager.models import MCPFactoryProject, ProjectConfig, ValidationResult

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MIN_STRUCTURE_COMPLIANCE = 0.8

# Terms that mark a description or keyword list as MCP-related
MCP_TERMS = ("mcp", "model context protocol", "server", "tool", "resource", "prompt")

_ERROR_PENALTY = 25
_FACTORY_WARNING_PENALTY = 5
_GENERIC_WARNING_PENALTY = 10
_UNRELATED_DESCRIPTION_PENALTY = 10
UNRELATED_DESCRIPTION_WARNING = "Project description should mention MCP or related functionality"


def _score(errors: list[str], warnings: list[str], warning_penalty: int) -> int:
    return max(0, 100 - _ERROR_PENALTY * len(errors) - warning_penalty * len(warnings))


def validate_mcp_factory_project(project: MCPFactoryProject) -> ValidationResult:
    """Check metadata, the factory dependency and the structure checklist."""
    errors: list[str] = []
    warnings: list[str] = []

    if not project.name.strip():
        errors.append("Project name is required")
    elif len(project.name) > MAX_NAME_LENGTH:
        errors.append(f"Project name must be {MAX_NAME_LENGTH} characters or less")

    if not project.description.strip():
        errors.append("Project description is required")
    elif len(project.description) > MAX_DESCRIPTION_LENGTH:
        errors.append(f"Project description must be {MAX_DESCRIPTION_LENGTH} characters or less")

    if not project.version.strip():
        errors.append("Project version is required")

    if not project.has_factory_dependency:
        errors.append("Project must have mcp-factory dependency")

    if project.structure_compliance < MIN_STRUCTURE_COMPLIANCE:
        errors.append("Project structure does not meet MCP Factory standards")
    elif project.structure_compliance < 1.0:
        warnings.append("Project structure is incomplete but acceptable")

    files = project.required_files
    if not files.get("pyproject.toml"):
        errors.append("Missing required file: pyproject.toml")
    if not files.get("server.py"):
        errors.append("Missing required file: server.py")
    if not files.get("README.md"):
        warnings.append("Missing README.md file")

    for directory in ("tools", "resources", "prompts"):
        if not project.required_directories.get(directory):
            warnings.append(f"Missing {directory}/ directory")

    return ValidationResult(
        errors=errors,
        warnings=warnings,
        score=_score(errors, warnings, _FACTORY_WARNING_PENALTY),
    )


def validate_for_registration(project: MCPFactoryProject) -> ValidationResult:
    """Factory validation plus a check that the project talks about MCP.

    The extra check only runs on otherwise valid projects. A description
    counts when it contains a term; keywords must equal one.
    """
    result = validate_mcp_factory_project(project)
    if not result.is_valid:
        return result

    description = project.description.lower()
    keywords = {keyword.lower() for keyword in project.keywords}
    if any(term in description or term in keywords for term in MCP_TERMS):
        return result

    return ValidationResult(
        errors=list(result.errors),
        warnings=[*result.warnings, UNRELATED_DESCRIPTION_WARNING],
        score=max(0, result.score - _UNRELATED_DESCRIPTION_PENALTY),
    )


def validate_project_config(config: ProjectConfig | None) -> ValidationResult:
    """Validate a plain manifest-derived config."""
    if config is None:
        return ValidationResult(errors=["No project configuration found"], score=75)

    errors: list[str] = []
    warnings: list[str] = []

    if not config.name:
        errors.append("Project name is required")
    if not config.version:
        warnings.append("Missing version")
    if not config.description:
        warnings.append("Missing description")
    if not config.keywords:
        warnings.append("Missing keywords")

    return ValidationResult(
        errors=errors,
        warnings=warnings,
        score=_score(errors, warnings, _GENERIC_WARNING_PENALTY),
    )
