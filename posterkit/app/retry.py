"""Exponential-backoff retry for async operations (AI calls, mostly)."""
import asyncio
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from posterkit.app.errors import ErrorKind, PipelineError
from posterkit.app.logger import logger

T = TypeVar("T")

DEFAULT_RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)

# Substrings of transient network failures (node-style codes and Python wording)
NETWORK_ERROR_MARKERS = (
    'ECONNRESET',
    'ETIMEDOUT',
    'ENOTFOUND',
    'fetch failed',
)
NETWORK_ERROR_PHRASES = (
    'connection reset',
    'connection refused',
    'connection error',
    'timed out',
    'temporary failure in name resolution',
    'name or service not known',
)

_STATUS_PATTERN = re.compile(r'(\d{3})')


@dataclass(frozen=True)
class RetryConfig:
    """Retry budget and backoff curve."""
    max_retries: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: int = 10000
    backoff_multiplier: float = 2
    retryable_status_codes: Sequence[int] = DEFAULT_RETRYABLE_STATUS_CODES


def is_retryable(error: BaseException, retryable_status_codes: Sequence[int] = DEFAULT_RETRYABLE_STATUS_CODES) -> bool:
    """Decide whether an error is worth another attempt."""
    if isinstance(error, PipelineError):
        if error.kind in (ErrorKind.CONFIGURATION, ErrorKind.PARSING):
            return False
        if error.kind == ErrorKind.TRANSIENT_NETWORK:
            return True

    message = str(error)

    # HTTP status code embedded in the message
    status_match = _STATUS_PATTERN.search(message)
    if status_match and int(status_match.group(1)) in retryable_status_codes:
        return True

    lowered = message.lower()
    if 'rate limit' in lowered:
        return True

    if any(marker in message for marker in NETWORK_ERROR_MARKERS):
        return True
    return any(phrase in lowered for phrase in NETWORK_ERROR_PHRASES)


async def _sleep(delay_ms: float) -> None:
    await asyncio.sleep(delay_ms / 1000)


async def _wait_seconds(seconds: float) -> None:
    # Resolved per call so tests can patch _sleep
    await _sleep(round(seconds * 1000, 3))


def _log_before_retry(context: str, total: int):
    def log_attempt(retry_state: RetryCallState) -> None:
        delay_ms = round(retry_state.next_action.sleep * 1000, 3)
        logger.warning(
            f"[{context}] Attempt {retry_state.attempt_number}/{total} failed: "
            f"{retry_state.outcome.exception()}. Retrying in {delay_ms:g}ms..."
        )
    return log_attempt


async def execute(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig = RetryConfig(),
    context: str = "retry",
) -> T:
    """
    Run ``operation`` with exponential backoff.

    The operation is attempted at most ``max_retries + 1`` times. Before retry
    ``i`` (1-indexed) the executor waits
    ``min(initial_delay_ms * backoff_multiplier ** (i - 1), max_delay_ms)``.

    Args:
        operation: Zero-argument factory returning a fresh awaitable per attempt
        config: Retry budget and backoff settings
        context: Label used in log lines

    Returns:
        The operation's result

    Raises:
        The last error, once the budget is spent or the error is not retryable
    """
    total = config.max_retries + 1
    retrying = AsyncRetrying(
        stop=stop_after_attempt(total),
        wait=wait_exponential(
            multiplier=config.initial_delay_ms / 1000,
            exp_base=config.backoff_multiplier,
            max=config.max_delay_ms / 1000,
        ),
        retry=retry_if_exception(lambda error: is_retryable(error, config.retryable_status_codes)),
        sleep=_wait_seconds,
        before_sleep=_log_before_retry(context, total),
        reraise=True,
    )
    return await retrying(operation)
