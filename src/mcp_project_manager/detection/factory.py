"""MCP Factory project detector.

Scores a repository by its ``mcp-factory`` dependency (0.6) plus the
fraction of the fixed file/directory checklist that is present (0.4).
A repository counts as an MCP Factory project at confidence >= 0.8.
"""

from __future__ import annotations

import asyncio
import logging
import re
import tomllib
from dataclasses import dataclass, field

import yaml

from mcp_project_manager.detection.manifests import (
    first_author,
    license_name,
    load_pyproject,
    project_table,
    string_list,
    string_value,
)
from mcp_project_manager.github.base import RepoAccessorPort
from mcp_project_manager.models import (
    DetectionResult,
    ManifestSource,
    MCPFactoryProject,
    ProjectType,
    RepoContent,
)
from mcp_project_manager.resilience.classifier import format_for_logging, normalize_error

logger = logging.getLogger(__name__)

FACTORY_PACKAGE = "mcp-factory"
REQUIRED_FILES = ("pyproject.toml", "server.py", "README.md")
REQUIRED_DIRECTORIES = ("tools", "resources", "prompts")
OPTIONAL_FILES = ("config.yaml", "CHANGELOG.md", ".env", ".gitignore")

DEPENDENCY_WEIGHT = 0.6
STRUCTURE_WEIGHT = 0.4
MCP_THRESHOLD = 0.8
INCOMPLETE_METADATA_PENALTY = 0.8

_FACTORY_SPEC_RE = re.compile(rf"{re.escape(FACTORY_PACKAGE)}\s*(?:\[[^\]]*\])?\s*([^;]*)")


@dataclass(frozen=True, slots=True)
class StructureCheck:
    """Presence of the MCP Factory checklist items in one repository."""

    compliance: float
    files: dict[str, bool] = field(default_factory=dict)
    directories: dict[str, bool] = field(default_factory=dict)
    reasons: list[str] = field(default_factory=list)


async def fetch_or_none(
    accessor: RepoAccessorPort,
    owner: str,
    repo: str,
    path: str,
    ref: str | None,
) -> RepoContent | None:
    """Fetch a path, treating any API failure as "absent"."""
    try:
        return await accessor.get_content(owner, repo, path, ref)
    except Exception as exc:
        error = normalize_error(exc, f"Could not fetch {path}")
        logger.debug(format_for_logging(error, f"reading {owner}/{repo}"))
        return None


def factory_version(dependency: str) -> str:
    """Version specifier of an ``mcp-factory`` requirement (``>=0.1.0``)."""
    match = _FACTORY_SPEC_RE.search(dependency)
    return match.group(1).strip() if match else ""


async def check_project_structure(
    accessor: RepoAccessorPort,
    owner: str,
    repo: str,
    ref: str | None = None,
) -> StructureCheck:
    """Check required files, required directories and optional files."""
    paths = (*REQUIRED_FILES, *REQUIRED_DIRECTORIES, *OPTIONAL_FILES)
    fetched = await asyncio.gather(
        *(fetch_or_none(accessor, owner, repo, path, ref) for path in paths)
    )
    contents = dict(zip(paths, fetched, strict=True))
    reasons: list[str] = []

    files: dict[str, bool] = {}
    for name in REQUIRED_FILES:
        files[name] = contents[name] is not None
        if files[name]:
            reasons.append(f"Found required file: {name}")
        else:
            reasons.append(f"Missing required file: {name}")

    directories: dict[str, bool] = {}
    for name in REQUIRED_DIRECTORIES:
        content = contents[name]
        directories[name] = content is not None and content.is_directory
        if directories[name]:
            reasons.append(f"Found required directory: {name}/")
        else:
            reasons.append(f"Missing required directory: {name}/")

    # Optional files never change the score
    for name in OPTIONAL_FILES:
        content = contents[name]
        if content is None:
            continue
        reasons.append(f"Found optional file: {name}")
        if name == "config.yaml" and not content.is_directory:
            reasons.extend(_check_factory_config(content.text))

    present = sum(files.values()) + sum(directories.values())
    total = len(REQUIRED_FILES) + len(REQUIRED_DIRECTORIES)
    return StructureCheck(
        compliance=present / total,
        files=files,
        directories=directories,
        reasons=reasons,
    )


def _check_factory_config(text: str) -> list[str]:
    try:
        config = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        return [f"config.yaml could not be parsed: {exc}"]
    if not isinstance(config, dict):
        return ["config.yaml does not contain a mapping"]
    return []


async def detect_mcp_factory_project(
    accessor: RepoAccessorPort,
    owner: str,
    repo: str,
    ref: str | None = None,
) -> DetectionResult:
    """Decide whether ``owner/repo`` at ``ref`` is an MCP Factory project.

    The project metadata is attached whenever the factory dependency is
    present, even below the threshold, so callers can explain the outcome.
    """
    pyproject = await fetch_or_none(accessor, owner, repo, "pyproject.toml", ref)
    if pyproject is None or pyproject.is_directory:
        return DetectionResult(
            is_mcp_project=False,
            confidence=0.0,
            reasons=["pyproject.toml not found - not a Python project"],
        )

    try:
        project = project_table(load_pyproject(pyproject.text))
    except tomllib.TOMLDecodeError:
        project = None
    if project is None:
        return DetectionResult(
            is_mcp_project=False,
            confidence=0.1,
            reasons=["Invalid pyproject.toml format"],
        )

    dependencies = string_list(project.get("dependencies"))
    factory_dependency = next((dep for dep in dependencies if FACTORY_PACKAGE in dep), None)
    if factory_dependency is None:
        return DetectionResult(
            is_mcp_project=False,
            confidence=0.2,
            reasons=["Missing mcp-factory dependency in pyproject.toml"],
        )

    reasons = ["Found mcp-factory dependency"]
    structure = await check_project_structure(accessor, owner, repo, ref)
    confidence = DEPENDENCY_WEIGHT + structure.compliance * STRUCTURE_WEIGHT
    reasons.extend(structure.reasons)

    name = string_value(project.get("name"))
    description = string_value(project.get("description"))
    if not name or not description:
        reasons.append("Missing required project name or description")
        # Penalised before classification.
        confidence *= INCOMPLETE_METADATA_PENALTY

    confidence = round(confidence, 4)
    is_mcp_project = confidence >= MCP_THRESHOLD
    if is_mcp_project:
        reasons.append("High confidence MCP Factory project detected")
    else:
        reasons.append(f"Confidence too low ({confidence * 100:.1f}%) for MCP Factory project")

    detected = MCPFactoryProject(
        type=ProjectType.MCP_FACTORY,
        source=ManifestSource.PYPROJECT_TOML,
        name=name or repo,
        description=description,
        version=string_value(project.get("version")) or "1.0.0",
        keywords=string_list(project.get("keywords")),
        dependencies=dependencies,
        author=first_author(project),
        license=license_name(project),
        has_factory_dependency=True,
        structure_compliance=structure.compliance,
        required_files=structure.files,
        required_directories=structure.directories,
        factory_version=factory_version(factory_dependency),
    )
    logger.info(
        "Factory detection for %s/%s: confidence=%.2f mcp=%s",
        owner,
        repo,
        confidence,
        is_mcp_project,
    )
    return DetectionResult(
        is_mcp_project=is_mcp_project,
        confidence=confidence,
        reasons=reasons,
        project=detected,
    )
