"""Manifest parsers: pyproject.toml, setup.py and package.json.

Each parser turns raw manifest text into a ProjectConfig. Parsing is
forgiving about optional fields (wrong types are dropped, not fatal).
"""

from __future__ import annotations

import json
import re
import tomllib

from mcp_project_manager.models import ManifestSource, ProjectConfig, ProjectType

_SETUP_CALL_RE = re.compile(r"setup\s*\((.*)\)", re.DOTALL)


def string_list(value: object) -> list[str]:
    """Keep only the string items of a list-like manifest field."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def string_value(value: object) -> str:
    return value if isinstance(value, str) else ""


# ─── pyproject.toml ──────────────────────────────────────────


def load_pyproject(text: str) -> dict:
    """Parse pyproject.toml text. Raises tomllib.TOMLDecodeError when malformed."""
    return tomllib.loads(text)


def project_table(pyproject: dict) -> dict | None:
    """Return the PEP 621 ``[project]`` table, if any."""
    table = pyproject.get("project")
    return table if isinstance(table, dict) else None


def first_author(project: dict) -> str:
    authors = project.get("authors")
    if isinstance(authors, list) and authors and isinstance(authors[0], dict):
        return string_value(authors[0].get("name"))
    return ""


def license_name(project: dict) -> str:
    """``license`` is either a string or a ``{text = ...}`` table."""
    value = project.get("license")
    if isinstance(value, dict):
        return string_value(value.get("text"))
    return string_value(value)


def config_from_pyproject(project: dict, repo: str) -> ProjectConfig:
    return ProjectConfig(
        type=ProjectType.PYTHON,
        source=ManifestSource.PYPROJECT_TOML,
        name=string_value(project.get("name")) or repo,
        description=string_value(project.get("description")),
        version=string_value(project.get("version")),
        keywords=string_list(project.get("keywords")),
        dependencies=string_list(project.get("dependencies")),
        author=first_author(project),
        license=license_name(project),
    )


# ─── setup.py ────────────────────────────────────────────────


def parse_setup_py(text: str) -> dict[str, object] | None:
    """Extract literal ``setup()`` keyword arguments with regular expressions.

    Only quoted string values and flat lists of quoted strings are
    recognised; anything computed at runtime is invisible here.
    """
    match = _SETUP_CALL_RE.search(text)
    if match is None:
        return None
    body = match.group(1)

    def field(name: str) -> str:
        found = re.search(rf"\b{name}\s*=\s*['\"](.*?)['\"]", body, re.IGNORECASE)
        return found.group(1) if found else ""

    def list_field(name: str) -> list[str]:
        found = re.search(rf"\b{name}\s*=\s*\[(.*?)\]", body, re.IGNORECASE | re.DOTALL)
        if found is None:
            return []
        items = (item.strip().strip("'\"") for item in found.group(1).split(","))
        return [item for item in items if item]

    return {
        "name": field("name"),
        "version": field("version"),
        "description": field("description"),
        "author": field("author"),
        "license": field("license"),
        "url": field("url"),
        "install_requires": list_field("install_requires"),
        "keywords": list_field("keywords"),
    }


def config_from_setup_py(fields: dict[str, object]) -> ProjectConfig | None:
    """Build a config from parsed setup() fields; None without a name."""
    name = string_value(fields.get("name"))
    if not name:
        return None
    return ProjectConfig(
        type=ProjectType.PYTHON,
        source=ManifestSource.SETUP_PY,
        name=name,
        description=string_value(fields.get("description")),
        version=string_value(fields.get("version")),
        keywords=string_list(fields.get("keywords")),
        dependencies=string_list(fields.get("install_requires")),
        author=string_value(fields.get("author")),
        license=string_value(fields.get("license")),
    )


# ─── package.json ────────────────────────────────────────────


def config_from_package_json(text: str) -> ProjectConfig:
    """Build a config from package.json text. Raises ValueError on bad JSON."""
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("package.json must contain a JSON object")

    dependencies: dict[str, object] = {}
    for section in ("dependencies", "devDependencies"):
        declared = data.get(section)
        if isinstance(declared, dict):
            dependencies.update(declared)

    author = data.get("author")
    if isinstance(author, dict):
        author = author.get("name")

    return ProjectConfig(
        type=ProjectType.NODEJS,
        source=ManifestSource.PACKAGE_JSON,
        name=string_value(data.get("name")),
        description=string_value(data.get("description")),
        version=string_value(data.get("version")),
        keywords=string_list(data.get("keywords")),
        dependencies=list(dependencies),
        author=string_value(author),
        license=string_value(data.get("license")),
    )
