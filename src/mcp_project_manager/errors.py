"""Exception hierarchy for mcp-project-manager.

All exceptions inherit from ProjectManagerError (single catch point).
Each carries an ErrorCode, an HTTP status code for the API surface and an
``is_operational`` flag (expected failure vs. programming error).
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum


class ErrorCode(StrEnum):
    # GitHub API
    GITHUB_API_ERROR = "GITHUB_API_ERROR"
    GITHUB_RATE_LIMIT = "GITHUB_RATE_LIMIT"
    GITHUB_UNAUTHORIZED = "GITHUB_UNAUTHORIZED"

    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_PROJECT_STRUCTURE = "INVALID_PROJECT_STRUCTURE"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"

    # Business logic
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    REPOSITORY_EXISTS = "REPOSITORY_EXISTS"
    INSTALLATION_NOT_FOUND = "INSTALLATION_NOT_FOUND"

    # System
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"


class ProjectManagerError(Exception):
    """Base exception for all mcp-project-manager errors."""

    default_code = ErrorCode.INTERNAL_ERROR
    default_status = 500

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        status_code: int | None = None,
        is_operational: bool = True,
        details: object = "",
        context: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.status_code = status_code or self.default_status
        self.is_operational = is_operational
        self.details = details
        self.context = context or {}

    def to_dict(self) -> dict[str, object]:
        """Body for JSON error responses."""
        return {"error": self.message, "details": self.details, "code": self.code.value}


class GitHubApiError(ProjectManagerError):
    """Unexpected response from the GitHub REST API."""

    default_code = ErrorCode.GITHUB_API_ERROR


class RateLimitError(ProjectManagerError):
    """GitHub API rate limit exhausted."""

    default_code = ErrorCode.GITHUB_RATE_LIMIT
    default_status = 429

    def __init__(
        self,
        message: str = "GitHub API rate limit exceeded",
        *,
        reset_at: datetime | None = None,
        **kwargs: object,
    ) -> None:
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
        self.reset_at = reset_at
        if reset_at is not None:
            self.context.setdefault("reset_at", reset_at.isoformat())


class GitHubUnauthorizedError(ProjectManagerError):
    """Credentials were rejected by GitHub."""

    default_code = ErrorCode.GITHUB_UNAUTHORIZED
    default_status = 401


class ValidationError(ProjectManagerError):
    """Request or project data failed validation."""

    default_code = ErrorCode.VALIDATION_ERROR
    default_status = 400


class InvalidProjectStructureError(ProjectManagerError):
    """Repository does not follow the MCP Factory layout."""

    default_code = ErrorCode.INVALID_PROJECT_STRUCTURE
    default_status = 422


class ProjectNotFoundError(ProjectManagerError):
    """Repository, file or registry entry does not exist."""

    default_code = ErrorCode.PROJECT_NOT_FOUND
    default_status = 404


class RepositoryExistsError(ProjectManagerError):
    """A repository with the requested name already exists."""

    default_code = ErrorCode.REPOSITORY_EXISTS
    default_status = 409


class InstallationNotFoundError(ProjectManagerError):
    """The GitHub App is not installed on the requested account."""

    default_code = ErrorCode.INSTALLATION_NOT_FOUND
    default_status = 404


class NetworkError(ProjectManagerError):
    """Connection to a remote service failed."""

    default_code = ErrorCode.NETWORK_ERROR
    default_status = 503


class RequestTimeoutError(ProjectManagerError):
    """A remote service did not answer in time."""

    default_code = ErrorCode.TIMEOUT_ERROR
    default_status = 408


class ConfigurationError(ProjectManagerError):
    """Required settings are missing or malformed."""

    default_code = ErrorCode.INVALID_CONFIGURATION
