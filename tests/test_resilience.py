"""Tests for error normalization and the retry loop."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import httpx
import pytest

from mcp_project_manager.errors import (
    ErrorCode,
    GitHubApiError,
    NetworkError,
    ProjectManagerError,
    RateLimitError,
    ValidationError,
)
from mcp_project_manager.resilience.classifier import (
    format_for_logging,
    is_retryable,
    normalize_error,
)
from mcp_project_manager.resilience.retry import retry_delay, with_retry


class TestNormalizeError:
    def test_known_errors_pass_through(self):
        error = ValidationError("bad")
        assert normalize_error(error) is error

    def test_httpx_timeout(self):
        error = normalize_error(httpx.ReadTimeout("slow"))
        assert error.code == ErrorCode.TIMEOUT_ERROR
        assert error.status_code == 408

    def test_httpx_transport_error(self):
        error = normalize_error(httpx.ConnectError("refused"))
        assert error.code == ErrorCode.NETWORK_ERROR
        assert error.status_code == 503

    @pytest.mark.parametrize(
        ("message", "code"),
        [
            ("API rate limit exceeded for installation", ErrorCode.GITHUB_RATE_LIMIT),
            ("Not Found", ErrorCode.PROJECT_NOT_FOUND),
            ("Bad credentials", ErrorCode.GITHUB_UNAUTHORIZED),
            ("getaddrinfo ENOTFOUND api.github.com", ErrorCode.NETWORK_ERROR),
            ("operation timed out", ErrorCode.TIMEOUT_ERROR),
        ],
    )
    def test_message_classification(self, message: str, code: ErrorCode):
        assert normalize_error(RuntimeError(message)).code == code

    def test_unknown_message_keeps_text(self):
        error = normalize_error(RuntimeError("something odd"))

        assert error.code == ErrorCode.INTERNAL_ERROR
        assert error.message == "something odd"
        assert error.is_operational is True

    def test_empty_message_is_not_operational(self):
        error = normalize_error(RuntimeError(), "fallback text")

        assert error.message == "fallback text"
        assert error.is_operational is False

    def test_to_dict(self):
        error = ValidationError("Invalid state parameter", details="must be JSON")
        assert error.to_dict() == {
            "error": "Invalid state parameter",
            "details": "must be JSON",
            "code": "VALIDATION_ERROR",
        }


class TestFormatting:
    def test_with_context(self):
        error = GitHubApiError("boom", context={"repo": "a/b"})
        assert format_for_logging(error, "push") == (
            '[GITHUB_API_ERROR] push failed: boom | Context: {"repo": "a/b"}'
        )

    def test_without_context(self):
        assert format_for_logging(ValidationError("bad"), "x") == (
            "[VALIDATION_ERROR] x failed: bad"
        )

    def test_retryable_codes(self):
        assert is_retryable(RateLimitError())
        assert is_retryable(NetworkError("down"))
        assert not is_retryable(ValidationError("bad"))


class TestRetryDelay:
    def test_exponential_backoff_capped(self):
        error = NetworkError("down")
        assert retry_delay(error, 1) == 2.0
        assert retry_delay(error, 3) == 8.0
        assert retry_delay(error, 10) == 60.0

    def test_rate_limit_waits_for_reset(self):
        reset = datetime.now(tz=UTC) + timedelta(seconds=30)
        delay = retry_delay(RateLimitError(reset_at=reset), 1)
        assert 25 < delay <= 30

    def test_rate_limit_in_the_past_does_not_wait(self):
        reset = datetime.now(tz=UTC) - timedelta(seconds=30)
        assert retry_delay(RateLimitError(reset_at=reset), 1) == 0.0


class TestWithRetry:
    async def test_retries_then_succeeds(self):
        operation = AsyncMock(side_effect=[NetworkError("down"), "ok"])
        sleep = AsyncMock()

        assert await with_retry(operation, sleep=sleep) == "ok"
        assert operation.await_count == 2
        sleep.assert_awaited_once_with(2.0)

    async def test_non_retryable_fails_immediately(self):
        operation = AsyncMock(side_effect=ValidationError("bad"))
        sleep = AsyncMock()

        with pytest.raises(ValidationError):
            await with_retry(operation, sleep=sleep)
        assert operation.await_count == 1
        sleep.assert_not_awaited()

    async def test_gives_up_after_max_attempts(self):
        operation = AsyncMock(side_effect=httpx.ConnectError("refused"))
        sleep = AsyncMock()

        with pytest.raises(NetworkError) as exc_info:
            await with_retry(operation, max_attempts=3, sleep=sleep)
        assert operation.await_count == 3
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_custom_predicate(self):
        operation = AsyncMock(side_effect=[ValidationError("flaky"), 7])

        result = await with_retry(
            operation,
            should_retry=lambda error: isinstance(error, ProjectManagerError),
            sleep=AsyncMock(),
        )
        assert result == 7
