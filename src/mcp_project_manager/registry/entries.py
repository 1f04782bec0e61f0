"""Registry document handling: build, merge, remove and serialize entries.

The hub's ``registry.json`` is a JSON array sorted by ``name``. Older hub
revisions wrapped the array as ``{"projects": [...]}``; that shape is read
and written back unchanged.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace

from mcp_project_manager.errors import ValidationError
from mcp_project_manager.models import (
    MCPFactoryProject,
    MCPProjectRegistration,
    ProjectConfig,
    ProjectType,
)

_TYPESCRIPT_MARKERS = ("typescript", "@types/", "ts-", "react")

# Checked in order; the first category whose terms match wins
_CATEGORY_TERMS: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("server", ("server",), "server"),
    ("tools", ("tools", "tool"), "tool"),
    ("resources", ("resources", "resource"), "resource"),
    ("prompts", ("prompts", "prompt"), "prompt"),
)


# ─── Registration extraction ─────────────────────────────────


def repository_url(owner: str, repo: str) -> str:
    return f"https://github.com/{owner}/{repo}"


def detect_language(project: ProjectConfig) -> str:
    if project.type in (ProjectType.PYTHON, ProjectType.MCP_FACTORY):
        return "python"
    if any(marker in dep for dep in project.dependencies for marker in _TYPESCRIPT_MARKERS):
        return "typescript"
    return "javascript"


def extract_category(project: ProjectConfig) -> str:
    """Pick a hub category from keywords, then description, then name."""
    keywords = {keyword.lower() for keyword in project.keywords}
    description = project.description.lower()
    for category, keyword_terms, description_term in _CATEGORY_TERMS:
        if keywords.intersection(keyword_terms) or description_term in description:
            return category

    if not isinstance(project, MCPFactoryProject):
        name = project.name.lower()
        for category, _, term in _CATEGORY_TERMS[1:]:
            if term in name:
                return category
    return "server"


def extract_project_info(project: ProjectConfig, owner: str, repo: str) -> MCPProjectRegistration:
    """Build the hub registration entry for a detected project."""
    return MCPProjectRegistration(
        name=project.name or repo,
        description=project.description,
        repository=repository_url(owner, repo),
        version=project.version or "1.0.0",
        language=detect_language(project),
        category=extract_category(project),
        tags=list(project.keywords),
        factory_version=project.factory_version if isinstance(project, MCPFactoryProject) else "",
    )


# ─── Registry document ───────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RegistryDocument:
    """Parsed registry. ``wrapper`` holds the legacy object minus ``projects``."""

    entries: list[dict] = field(default_factory=list)
    wrapper: dict | None = None

    def with_entries(self, entries: list[dict]) -> RegistryDocument:
        return replace(self, entries=entries)


def parse_registry(text: str) -> RegistryDocument:
    """Parse registry.json text. An empty file is an empty registry.

    Raises:
        ValidationError: The text is not JSON, or not an array or
            ``{"projects": [...]}`` object.
    """
    if not text.strip():
        return RegistryDocument()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError("registry.json is not valid JSON", details=str(exc)) from exc

    if isinstance(data, list):
        return RegistryDocument(entries=[entry for entry in data if isinstance(entry, dict)])
    if isinstance(data, dict):
        projects = data.get("projects", [])
        if isinstance(projects, list):
            wrapper = {key: value for key, value in data.items() if key != "projects"}
            return RegistryDocument(
                entries=[entry for entry in projects if isinstance(entry, dict)],
                wrapper=wrapper,
            )
    raise ValidationError("registry.json must contain a JSON array of projects")


def _sort_key(entry: dict) -> tuple[str, str]:
    name = str(entry.get("name", ""))
    return name.casefold(), name


def sort_entries(entries: list[dict]) -> list[dict]:
    return sorted(entries, key=_sort_key)


def serialize_registry(document: RegistryDocument) -> str:
    """Sorted, 2-space indented JSON with a trailing newline."""
    entries = sort_entries(document.entries)
    if document.wrapper is None:
        payload: object = entries
    else:
        payload = {**document.wrapper, "projects": entries}
        if "total_projects" in document.wrapper:
            payload["total_projects"] = len(entries)
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def find_entry(entries: list[dict], name: str) -> dict | None:
    return next((entry for entry in entries if entry.get("name") == name), None)


def merge_registration(
    entries: list[dict],
    registration: MCPProjectRegistration,
    timestamp: str,
) -> tuple[list[dict], bool]:
    """Insert or update ``registration`` by name.

    Returns the new sorted entry list and whether an existing entry was
    updated. Existing fields not present on the registration survive.
    """
    fields = registration.to_entry()
    merged: list[dict] = []
    updated = False
    for entry in entries:
        if not updated and entry.get("name") == registration.name:
            merged.append({**entry, **fields, "updatedAt": timestamp})
            updated = True
        else:
            merged.append(entry)
    if not updated:
        merged.append({**fields, "addedAt": timestamp})
    return sort_entries(merged), updated


def remove_by_repository(entries: list[dict], url: str) -> tuple[list[dict], list[dict]]:
    """Split ``entries`` into (kept, removed) by repository URL."""
    kept = [entry for entry in entries if entry.get("repository") != url]
    removed = [entry for entry in entries if entry.get("repository") == url]
    return kept, removed
