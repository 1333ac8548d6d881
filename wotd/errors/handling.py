from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import aiohttp
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..logging_config import log_structured_error
from .internal import (
    InternalError,
    NetworkError,
    ParsingError,
    WebhookError,
)


def log_error(message: str, error: Exception, context: dict | None = None) -> None:
    """Log an error message with the associated exception details.

    The exception is classified into a coarse error type so the structured
    log line and the error aggregator can group similar failures.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
    """
    error_type = "unknown"
    if isinstance(error, NetworkError | OSError | aiohttp.ClientError):
        error_type = "network"
    elif isinstance(error, WebhookError):
        error_type = "webhook"
    elif isinstance(error, ParsingError):
        error_type = "parsing"
    elif isinstance(error, InternalError):
        error_type = "internal"

    log_structured_error(
        error_type=error_type,
        message=f"{message}: {str(error)}",
        exception=error,
        context=context,
    )


def is_transient_error(error: BaseException) -> bool:
    """Check if an exception is worth another attempt."""
    if isinstance(error, WebhookError):
        return error.is_transient
    return isinstance(
        error, NetworkError | aiohttp.ClientError | TimeoutError | ConnectionError
    )


T = TypeVar("T")


async def retry_transient(
    operation: Callable[[], Awaitable[T]],
    context: str,
    max_attempts: int = 3,
    max_backoff: float = 60,
) -> T:
    """Run ``operation`` retrying transient failures with exponential backoff.

    Non-transient errors propagate immediately. When the attempts are
    exhausted the last error is re-raised unchanged.

    Args:
        operation: Async callable with no arguments.
        context: Descriptive context for log lines.
        max_attempts: Maximum number of attempts.
        max_backoff: Upper bound in seconds for the wait between attempts.

    Returns:
        The operation result.
    """

    def after_attempt(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return
        error = outcome.exception()
        if isinstance(error, Exception):
            log_error(
                f"Attempt {retry_state.attempt_number} failed for {context}",
                error,
                context={"attempt": retry_state.attempt_number, "timestamp": time.time()},
            )
        if retry_state.attempt_number < max_attempts and is_transient_error(error):
            logging.info(f"Retrying {context} (attempt {retry_state.attempt_number + 1})")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, max=max_backoff),
        retry=retry_if_exception(is_transient_error),
        after=after_attempt,
        reraise=True,
    )
    return await retrying(operation)


__all__ = ["log_error", "is_transient_error", "retry_transient"]
