"""detect_project and lookup_registry_entry tools."""

from __future__ import annotations

import logging
import re

from mcp.server.fastmcp import Context

from mcp_project_manager.detection.generic import detect_repository
from mcp_project_manager.dispatcher import validate_detected
from mcp_project_manager.errors import ProjectManagerError
from mcp_project_manager.registry.entries import extract_project_info
from mcp_project_manager.resilience.classifier import format_for_logging, normalize_error
from mcp_project_manager.tools.context import tool_context
from mcp_project_manager.validation.eligibility import (
    ineligibility_reasons,
    validate_registration_data,
)

logger = logging.getLogger(__name__)

_REPOSITORY_RE = re.compile(
    r"^(?:https?://github\.com/)?"
    r"(?P<owner>[A-Za-z0-9_.-]+)/(?P<repo>[A-Za-z0-9_.-]+?)(?:\.git)?/?$"
)


def parse_repository(value: str) -> tuple[str, str] | None:
    """Split ``owner/repo`` or a github.com URL into its parts."""
    match = _REPOSITORY_RE.match(value.strip())
    if match is None:
        return None
    return match.group("owner"), match.group("repo")


async def detect_project(
    repository: str,
    ctx: Context,
    ref: str = "",
) -> dict[str, object]:
    """Detect whether a GitHub repository is an MCP server project.

    Runs the MCP Factory detector first and falls back to generic manifest
    detection (pyproject.toml, setup.py, package.json). Detected projects are
    validated and checked for automatic hub registration.

    Args:
        repository: "owner/repo" or a GitHub URL.
        ref: Branch, tag or commit to inspect. Defaults to the default branch.

    Returns:
        Dict with: detection (is_mcp_project, confidence, reasons), project
        metadata, validation (errors, warnings, score), eligible flag with
        reasons, and the registration entry that would be submitted.
    """
    parsed = parse_repository(repository)
    if parsed is None:
        return {
            "success": False,
            "error": f"'{repository}' is not an owner/repo name or GitHub repository URL.",
        }
    owner, repo = parsed

    try:
        tool_ctx = tool_context(ctx)
        detection = await detect_repository(tool_ctx.github, owner, repo, ref or None)
    except ProjectManagerError as exc:
        logger.warning(format_for_logging(exc, "project detection"))
        return {"success": False, "error": exc.message, "code": exc.code.value}
    except Exception as exc:
        await ctx.error(f"Unexpected error in detect_project: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}

    result: dict[str, object] = {
        "success": True,
        "repository": f"{owner}/{repo}",
        "detection": {
            "is_mcp_project": detection.is_mcp_project,
            "confidence": detection.confidence,
            "reasons": list(detection.reasons),
        },
    }
    project = detection.project
    if project is None:
        return result

    registration = extract_project_info(project, owner, repo)
    reasons = ineligibility_reasons(project, detection.is_mcp_project)
    reasons.extend(validate_registration_data(registration).errors)
    validation = validate_detected(detection, for_registration=True)

    result["project"] = {
        "name": project.name,
        "type": project.type.value,
        "source": project.source.value,
        "version": project.version,
        "description": project.description,
        "keywords": list(project.keywords),
    }
    result["validation"] = validation.to_dict() if validation else None
    result["eligible"] = not reasons
    result["ineligibility_reasons"] = reasons
    result["registration"] = registration.to_entry()
    return result


async def lookup_registry_entry(name: str, ctx: Context) -> dict[str, object]:
    """Look up a project in the MCP servers hub registry by exact name.

    Args:
        name: Registered project name (e.g. "weather-mcp").

    Returns:
        Dict with: found, and the registry entry when present.
    """
    try:
        tool_ctx = tool_context(ctx)
        entry = await tool_ctx.hub.lookup(name)
    except Exception as exc:
        error = normalize_error(exc, "Registry lookup failed")
        logger.warning(format_for_logging(error, "registry lookup"))
        return {"success": False, "error": error.message, "code": error.code.value}

    if entry is None:
        return {"success": True, "found": False, "hub": tool_ctx.hub_name, "name": name}
    return {"success": True, "found": True, "hub": tool_ctx.hub_name, "entry": entry}
