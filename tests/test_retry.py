"""
Tests for the retry executor.

Tests for:
- Retryability classification (status codes, rate limit, network errors, error kinds)
- Backoff schedule and cap
- Budget exhaustion and non-retryable short-circuit
"""
import logging
from unittest.mock import AsyncMock

import pytest

from posterkit.app.errors import ErrorKind, PipelineError
from posterkit.app.retry import RetryConfig, execute, is_retryable


def flaky(failures, result="ok"):
    """Operation factory that raises each of ``failures`` in turn, then returns ``result``."""
    calls = {"count": 0}
    pending = list(failures)

    async def operation():
        calls["count"] += 1
        if pending:
            raise pending.pop(0)
        return result

    return operation, calls


# ===========================================================================
# CLASSIFICATION
# ===========================================================================

class TestIsRetryable:
    """Tests for is_retryable."""

    @pytest.mark.parametrize("message", [
        "AI provider returned 429: slow down",
        "upstream 500 internal error",
        "502 Bad Gateway",
        "HTTP 503",
        "504 gateway timeout",
    ])
    def test_retryable_status_codes(self, message):
        assert is_retryable(Exception(message))

    @pytest.mark.parametrize("message", [
        "AI provider returned 400: bad request",
        "404 not found",
        "something odd happened",
    ])
    def test_non_retryable_messages(self, message):
        assert not is_retryable(Exception(message))

    def test_first_status_code_wins(self):
        """Only the first three-digit number is considered."""
        assert not is_retryable(Exception("AI provider returned 400: upstream said 503"))

    def test_custom_status_codes(self):
        assert is_retryable(Exception("408 request timeout"), retryable_status_codes=(408,))
        assert not is_retryable(Exception("503"), retryable_status_codes=(408,))

    @pytest.mark.parametrize("message", [
        "Rate limit reached for gpt-4o",
        "read ECONNRESET",
        "connect ETIMEDOUT 1.2.3.4:443",
        "getaddrinfo ENOTFOUND api.openai.com",
        "TypeError: fetch failed",
        "Connection reset by peer",
        "Request timed out.",
        "[Errno -3] Temporary failure in name resolution",
    ])
    def test_rate_limit_and_network_messages(self, message):
        assert is_retryable(Exception(message))

    def test_parsing_kind_never_retried(self):
        error = PipelineError(ErrorKind.PARSING, "Failed to parse AI response as JSON: 503...")
        assert not is_retryable(error)

    def test_configuration_kind_never_retried(self):
        error = PipelineError(ErrorKind.CONFIGURATION, "AI provider returned 401: bad key")
        assert not is_retryable(error)

    def test_transient_network_kind_always_retried(self):
        assert is_retryable(PipelineError(ErrorKind.TRANSIENT_NETWORK, "socket closed"))

    def test_rate_limit_kind_classified_by_message(self):
        assert is_retryable(PipelineError(ErrorKind.RATE_LIMIT, "AI provider returned 429: busy"))


# ===========================================================================
# EXECUTION
# ===========================================================================

class TestExecute:
    """Tests for execute."""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self, no_sleep):
        operation, calls = flaky([])
        assert await execute(operation) == "ok"
        assert calls["count"] == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, no_sleep):
        operation, calls = flaky([Exception("503"), Exception("503")])

        assert await execute(operation, RetryConfig(max_retries=3, initial_delay_ms=1000)) == "ok"

        assert calls["count"] == 3
        assert [c.args[0] for c in no_sleep.await_args_list] == [1000, 2000]

    @pytest.mark.asyncio
    async def test_delay_is_capped(self, no_sleep):
        operation, _ = flaky([Exception("500")] * 4)
        config = RetryConfig(max_retries=4, initial_delay_ms=1000, max_delay_ms=5000, backoff_multiplier=10)

        await execute(operation, config)

        assert [c.args[0] for c in no_sleep.await_args_list] == [1000, 5000, 5000, 5000]

    @pytest.mark.asyncio
    async def test_fractional_backoff_curve(self, no_sleep, caplog):
        operation, _ = flaky([Exception("502"), Exception("502")])
        config = RetryConfig(max_retries=2, initial_delay_ms=1500, backoff_multiplier=1.5)

        with caplog.at_level(logging.WARNING, logger="posterkit"):
            await execute(operation, config, context="vision")

        assert [c.args[0] for c in no_sleep.await_args_list] == [1500, 2250]
        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert warnings[1] == "[vision] Attempt 2/3 failed: 502. Retrying in 2250ms..."

    @pytest.mark.asyncio
    async def test_non_retryable_after_retryable_stops(self, no_sleep):
        final = PipelineError(ErrorKind.PARSING, "AI provider returned 503 but body was not JSON")
        operation, calls = flaky([Exception("503"), final])

        with pytest.raises(PipelineError) as exc_info:
            await execute(operation, RetryConfig(max_retries=5))

        assert exc_info.value is final
        assert calls["count"] == 2
        assert no_sleep.await_count == 1

    @pytest.mark.asyncio
    async def test_budget_exhausted_reraises_last_error(self, no_sleep):
        errors = [Exception("500 first"), Exception("500 second"), Exception("500 third")]
        operation, calls = flaky(errors)

        with pytest.raises(Exception) as exc_info:
            await execute(operation, RetryConfig(max_retries=2))

        assert exc_info.value is errors[2]
        assert calls["count"] == 3
        assert no_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self, no_sleep):
        error = Exception("400 bad request")
        operation, calls = flaky([error])

        with pytest.raises(Exception) as exc_info:
            await execute(operation)

        assert exc_info.value is error
        assert calls["count"] == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_retries_means_single_attempt(self, no_sleep):
        operation, calls = flaky([Exception("503")])

        with pytest.raises(Exception):
            await execute(operation, RetryConfig(max_retries=0))

        assert calls["count"] == 1

    @pytest.mark.asyncio
    async def test_logs_each_retry(self, no_sleep, caplog):
        operation, _ = flaky([Exception("503 unavailable")])

        with caplog.at_level(logging.WARNING, logger="posterkit"):
            await execute(operation, RetryConfig(max_retries=2), context="OpenAI API")

        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert warnings == ["[OpenAI API] Attempt 1/3 failed: 503 unavailable. Retrying in 1000ms..."]

    @pytest.mark.asyncio
    async def test_fresh_awaitable_per_attempt(self, no_sleep):
        factory = AsyncMock(side_effect=[Exception("502"), "done"])
        assert await execute(factory) == "done"
        assert factory.await_count == 2
