"""Bounded retry with exponential backoff for retryable GitHub failures."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TypeVar

from mcp_project_manager.errors import ErrorCode, ProjectManagerError, RateLimitError
from mcp_project_manager.resilience.classifier import is_retryable, normalize_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Backoff ceiling in seconds
MAX_BACKOFF_SECONDS = 60.0


def retry_delay(error: ProjectManagerError, attempt: int) -> float:
    """Seconds to wait before the next attempt.

    Rate-limit errors wait until the reset time GitHub reported, when known.
    Everything else backs off exponentially (2, 4, 8, ... capped at 60s).
    """
    if error.code == ErrorCode.GITHUB_RATE_LIMIT and isinstance(error, RateLimitError):
        if error.reset_at is not None:
            remaining = (error.reset_at - datetime.now(tz=UTC)).total_seconds()
            return max(0.0, remaining)
    return min(float(2**attempt), MAX_BACKOFF_SECONDS)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    should_retry: Callable[[ProjectManagerError], bool] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    action: str = "operation",
) -> T:
    """Run an async operation, retrying retryable failures.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt.
        max_attempts: Total attempts including the first one.
        should_retry: Override for the default retryable-code check.
        sleep: Injected for tests.
        action: Label used in log messages.

    Returns:
        The operation's result.

    Raises:
        ProjectManagerError: The normalized error of the last attempt, or of
            the first non-retryable failure.
    """
    check = should_retry or is_retryable
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            error = normalize_error(exc)
            if attempt >= max_attempts or not check(error):
                if error is exc:
                    raise
                raise error from exc

            delay = retry_delay(error, attempt)
            logger.warning(
                "%s failed with %s (attempt %d/%d), retrying in %.1fs",
                action,
                error.code.value,
                attempt,
                max_attempts,
                delay,
            )
            if delay > 0:
                await sleep(delay)
            attempt += 1
