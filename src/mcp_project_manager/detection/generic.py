"""Generic MCP detection for plain Python and Node.js projects.

Unlike the factory detector this one never fetches beyond the manifest
and the root listing; it scores the metadata with fixed point values.
"""

from __future__ import annotations

import logging
import tomllib

from mcp_project_manager.detection.factory import detect_mcp_factory_project, fetch_or_none
from mcp_project_manager.detection.manifests import (
    config_from_package_json,
    config_from_pyproject,
    config_from_setup_py,
    load_pyproject,
    parse_setup_py,
    project_table,
)
from mcp_project_manager.errors import ValidationError
from mcp_project_manager.github.base import RepoAccessorPort
from mcp_project_manager.models import DetectionResult, ProjectConfig

logger = logging.getLogger(__name__)

MCP_THRESHOLD = 0.4

# (points, reason) for each signal; the total is divided by 100
_DEPENDENCY_POINTS = (40, "Has MCP SDK dependency")
_NAME_POINTS = (30, 'Project name contains "mcp"')
_KEYWORD_POINTS = (25, "Keywords contain MCP")
_DESCRIPTION_POINTS = (20, "Description contains MCP-related content")
_SERVER_FILE_POINTS = (15, "Contains server files")
_MCP_FILE_POINTS = (10, "Filename contains MCP")

SERVER_ENTRY_FILES = ("server.py", "main.py", "index.js", "index.ts")
_MCP_DEPENDENCY_MARKERS = ("@modelcontextprotocol", "mcp")
_MCP_KEYWORD_MARKERS = ("mcp", "model-context-protocol")
_MCP_DESCRIPTION_MARKERS = ("mcp", "model context protocol")


async def detect_project_config(
    accessor: RepoAccessorPort,
    owner: str,
    repo: str,
    ref: str | None = None,
) -> ProjectConfig | None:
    """Read the first usable manifest: pyproject.toml, setup.py, package.json.

    Returns None when the repository has none of them.

    Raises:
        ValidationError: pyproject.toml exists but is not valid TOML.
    """
    pyproject = await fetch_or_none(accessor, owner, repo, "pyproject.toml", ref)
    if pyproject is not None and not pyproject.is_directory:
        try:
            project = project_table(load_pyproject(pyproject.text))
        except tomllib.TOMLDecodeError as exc:
            raise ValidationError(
                "Invalid project configuration",
                details=str(exc),
                context={"repository": f"{owner}/{repo}"},
            ) from exc
        if project is not None:
            return config_from_pyproject(project, repo)

    setup_py = await fetch_or_none(accessor, owner, repo, "setup.py", ref)
    if setup_py is not None and not setup_py.is_directory:
        fields = parse_setup_py(setup_py.text)
        config = config_from_setup_py(fields) if fields else None
        if config is not None:
            return config

    package_json = await fetch_or_none(accessor, owner, repo, "package.json", ref)
    if package_json is not None and not package_json.is_directory:
        try:
            return config_from_package_json(package_json.text)
        except ValueError:
            logger.warning("Malformed package.json in %s/%s", owner, repo)

    return None


def detect_mcp_project(
    config: ProjectConfig,
    file_paths: list[str] | None = None,
) -> DetectionResult:
    """Score a manifest-derived config for MCP signals on the 0..1 scale."""
    paths = file_paths or []
    hits: list[tuple[int, str]] = []

    dependencies = [dep.lower() for dep in config.dependencies]
    if any(marker in dep for dep in dependencies for marker in _MCP_DEPENDENCY_MARKERS):
        hits.append(_DEPENDENCY_POINTS)
    if "mcp" in config.name.lower():
        hits.append(_NAME_POINTS)
    if any(marker in kw.lower() for kw in config.keywords for marker in _MCP_KEYWORD_MARKERS):
        hits.append(_KEYWORD_POINTS)
    description = config.description.lower()
    if any(marker in description for marker in _MCP_DESCRIPTION_MARKERS):
        hits.append(_DESCRIPTION_POINTS)
    if any(path in SERVER_ENTRY_FILES for path in paths):
        hits.append(_SERVER_FILE_POINTS)
    if any(marker in path.lower() for path in paths for marker in _MCP_KEYWORD_MARKERS):
        hits.append(_MCP_FILE_POINTS)

    confidence = min(sum(points for points, _ in hits), 100) / 100
    return DetectionResult(
        is_mcp_project=confidence >= MCP_THRESHOLD,
        confidence=confidence,
        reasons=[reason for _, reason in hits],
        project=config,
    )


async def detect_repository(
    accessor: RepoAccessorPort,
    owner: str,
    repo: str,
    ref: str | None = None,
) -> DetectionResult:
    """Run the factory detector, falling back to the generic one.

    The factory result wins whenever it found the ``mcp-factory``
    dependency; otherwise the manifest is scored generically.
    """
    factory = await detect_mcp_factory_project(accessor, owner, repo, ref)
    if factory.project is not None:
        return factory

    config = await detect_project_config(accessor, owner, repo, ref)
    if config is None:
        return factory

    root = await fetch_or_none(accessor, owner, repo, "", ref)
    paths = root.entries if root is not None and root.is_directory else []
    result = detect_mcp_project(config, paths)
    logger.info(
        "Generic detection for %s/%s: confidence=%.2f mcp=%s",
        owner,
        repo,
        result.confidence,
        result.is_mcp_project,
    )
    return result
