"""Normalize arbitrary exceptions into the ProjectManagerError hierarchy."""

from __future__ import annotations

import json

import httpx

from mcp_project_manager.errors import (
    ErrorCode,
    GitHubUnauthorizedError,
    NetworkError,
    ProjectManagerError,
    ProjectNotFoundError,
    RateLimitError,
    RequestTimeoutError,
)

_RETRYABLE = frozenset(
    {ErrorCode.GITHUB_RATE_LIMIT, ErrorCode.NETWORK_ERROR, ErrorCode.TIMEOUT_ERROR}
)


def normalize_error(
    error: BaseException,
    fallback_message: str = "An unexpected error occurred",
) -> ProjectManagerError:
    """Map any exception to a ProjectManagerError.

    Known error types pass through unchanged. httpx transport failures are
    mapped by type; everything else is classified by sniffing the message
    for the phrases GitHub and the network stack use.

    Args:
        error: The exception raised by an adapter or handler.
        fallback_message: Message used when the exception carries none.

    Returns:
        A ProjectManagerError with code, status and operational flag set.
    """
    if isinstance(error, ProjectManagerError):
        return error

    if isinstance(error, httpx.TimeoutException):
        return RequestTimeoutError("Request timeout", context={"original_error": str(error)})
    if isinstance(error, httpx.TransportError):
        return NetworkError(
            "Network connection failed", context={"original_error": str(error)}
        )

    text = str(error)
    lower = text.lower()

    # ── GitHub API phrases ───────────────────────────────────
    if "rate limit" in lower:
        return RateLimitError()

    if "not found" in lower:
        return ProjectNotFoundError(text)

    if _matches_any(lower, ("unauthorized", "bad credentials")):
        return GitHubUnauthorizedError(text)

    # ── Network ──────────────────────────────────────────────
    if _matches_any(lower, ("enotfound", "econnrefused", "connection refused")):
        return NetworkError("Network connection failed")

    # ── Timeout ──────────────────────────────────────────────
    if _matches_any(lower, ("timeout", "timed out")):
        return RequestTimeoutError("Request timeout")

    if text:
        return ProjectManagerError(text, context={"original_error": type(error).__name__})

    return ProjectManagerError(
        fallback_message,
        is_operational=False,
        context={"original_error": repr(error)},
    )


def is_retryable(error: ProjectManagerError) -> bool:
    """Return True for rate-limit, network and timeout errors."""
    return error.code in _RETRYABLE


def format_for_logging(error: ProjectManagerError, action: str) -> str:
    """Render a one-line log message: ``[CODE] action failed: message | Context: {...}``."""
    line = f"[{error.code.value}] {action} failed: {error.message}"
    if error.context:
        line += f" | Context: {json.dumps(error.context, default=str, sort_keys=True)}"
    return line


# ─── Helpers ─────────────────────────────────────────────────


def _matches_any(text: str, patterns: tuple[str, ...]) -> bool:
    """Return True if any pattern appears in text."""
    return any(p in text for p in patterns)
