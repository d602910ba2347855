"""
Bounded retry for reconciliations that failed with a retryable error.

Kopf does not retry event-watching handlers, so a transient failure to
fetch object state is retried here with exponential backoff before it is
surfaced to kopf.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pod_monitor_operator.constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_RETRIES,
)
from pod_monitor_operator.errors import OperatorError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_reconcile(
    operation: Callable[[], Awaitable[T]],
    description: str,
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
) -> T:
    """
    Run an operation, retrying retryable OperatorErrors.

    Args:
        operation: Zero-argument coroutine factory
        description: Subject of the operation, for log messages
        max_retries: Retries after the first attempt
        initial_delay: Seconds before the first retry
        backoff_factor: Multiplier applied to the delay after each retry

    Returns:
        The operation's result

    Raises:
        OperatorError: The last error, once retries are exhausted or the
            error is not retryable
    """
    delay = initial_delay
    attempt = 0
    while True:
        try:
            return await operation()
        except OperatorError as e:
            if not e.retryable or attempt >= max_retries:
                raise
            attempt += 1
            logger.warning(
                f"Reconciliation of {description} failed "
                f"(attempt {attempt}/{max_retries + 1}): {e}; "
                f"retrying in {delay:.1f}s",
                extra={"error_type": type(e).__name__},
            )
            await asyncio.sleep(delay)
            delay *= backoff_factor
