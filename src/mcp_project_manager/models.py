"""Domain models for mcp-project-manager. All frozen dataclasses -- no mutation after creation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

# ─── Enumerations ─────────────────────────────────────────────


class ProjectType(StrEnum):
    NODEJS = "nodejs"
    PYTHON = "python"
    MCP_FACTORY = "mcp-factory"


class ManifestSource(StrEnum):
    PACKAGE_JSON = "package.json"
    PYPROJECT_TOML = "pyproject.toml"
    SETUP_PY = "setup.py"


class ContentKind(StrEnum):
    FILE = "file"
    DIRECTORY = "dir"


# Manifest files each project type may be parsed from
_SOURCES_BY_TYPE: dict[ProjectType, frozenset[ManifestSource]] = {
    ProjectType.NODEJS: frozenset({ManifestSource.PACKAGE_JSON}),
    ProjectType.PYTHON: frozenset({ManifestSource.PYPROJECT_TOML, ManifestSource.SETUP_PY}),
    ProjectType.MCP_FACTORY: frozenset({ManifestSource.PYPROJECT_TOML}),
}


# ─── Repository Models ────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RepoContent:
    """A file or directory fetched through the GitHub contents API."""

    path: str
    kind: ContentKind
    text: str = ""
    sha: str = ""
    entries: list[str] = field(default_factory=list)

    @property
    def is_directory(self) -> bool:
        return self.kind == ContentKind.DIRECTORY


# ─── Project Models ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """Project metadata read from a single manifest file.

    ``type`` and ``source`` must agree: Node.js projects come from
    package.json, Python projects from pyproject.toml or setup.py, and
    MCP Factory projects from pyproject.toml.
    """

    type: ProjectType
    source: ManifestSource
    name: str = ""
    description: str = ""
    version: str = ""
    keywords: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    author: str = ""
    license: str = ""

    def __post_init__(self) -> None:
        if self.source not in _SOURCES_BY_TYPE[self.type]:
            msg = f"A {self.type.value} project cannot be read from {self.source.value}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class MCPFactoryProject(ProjectConfig):
    """A project generated with the MCP Factory scaffolding."""

    has_factory_dependency: bool = False
    structure_compliance: float = 0.0
    required_files: dict[str, bool] = field(default_factory=dict)
    required_directories: dict[str, bool] = field(default_factory=dict)
    factory_version: str = ""


@dataclass(frozen=True, slots=True)
class DetectionResult:
    """Outcome of running a detector against a repository.

    ``confidence`` is always on the 0..1 scale; it is converted to a
    percentage only when rendered.
    """

    is_mcp_project: bool
    confidence: float
    reasons: list[str] = field(default_factory=list)
    project: ProjectConfig | None = None

    @property
    def confidence_percent(self) -> float:
        return round(self.confidence * 100, 1)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    score: int = 100

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, object]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "score": self.score,
        }


# ─── Registry Models ──────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class MCPProjectRegistration:
    """An entry of the hub's registry.json."""

    name: str
    description: str
    repository: str
    version: str
    language: str
    category: str = "server"
    tags: list[str] = field(default_factory=list)
    factory_version: str = ""

    def to_entry(self) -> dict[str, object]:
        """Registry JSON fields (timestamps are stamped by the merge)."""
        return {
            "name": self.name,
            "description": self.description,
            "repository": self.repository,
            "version": self.version,
            "language": self.language,
            "category": self.category,
            "tags": list(self.tags),
        }


@dataclass(frozen=True, slots=True)
class RegistrationResult:
    success: bool
    url: str = ""
    error: str = ""
    updated: bool = False


@dataclass(frozen=True, slots=True)
class RelevanceAssessment:
    is_relevant: bool
    score: int
    reasons: list[str] = field(default_factory=list)


# ─── Session Models ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Session:
    """An authenticated OAuth session. Timestamps are epoch milliseconds."""

    session_id: str
    access_token: str
    username: str
    created_at: int
    expires_at: int
    ip_address: str = ""
    user_agent: str = ""


@dataclass(frozen=True, slots=True)
class InstallationGrant:
    """User token captured while the GitHub App was being installed."""

    installation_id: str
    access_token: str
    username: str
    created_at: int
    expires_at: int
