"""
Cancellable periodic re-reconciliation.

The certificate secret must be re-evaluated even when nothing changes,
because a certificate goes stale purely by time passing. The timer is an
asyncio task owned by whoever starts it, so shutdown can cancel and join it.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from ..errors import OperatorError
from ..models import ReconcileResult
from ..observability.logging import generate_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)


class RecheckTimer:
    """Runs a reconciliation, then again after whatever delay it asks for."""

    def __init__(
        self,
        name: str,
        reconcile: Callable[[], Awaitable[ReconcileResult]],
        interval: float,
        initial_delay: float = 0.0,
    ):
        """
        Initialize the timer.

        Args:
            name: Used for the task name and log messages
            reconcile: Reconciliation to run on every tick
            interval: Delay used when the reconciliation does not request one
            initial_delay: Delay before the first tick
        """
        self.name = name
        self.reconcile = reconcile
        self.interval = interval
        self.initial_delay = initial_delay
        self.runs = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the timer task on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"recheck-{self.name}")
        logger.info(f"Started recheck timer {self.name} (interval={self.interval}s)")

    async def stop(self) -> None:
        """Cancel the timer task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info(f"Stopped recheck timer {self.name}")

    async def _run(self) -> None:
        delay = self.initial_delay
        while True:
            if delay > 0:
                await asyncio.sleep(delay)
            delay = await self.tick()

    async def tick(self) -> float:
        """
        Run one reconciliation.

        Returns:
            Seconds until the next tick
        """
        set_correlation_id(generate_correlation_id())
        self.runs += 1
        try:
            result = await self.reconcile()
        except OperatorError as e:
            delay = float(e.delay) if e.retryable else self.interval
            logger.warning(
                f"Recheck {self.name} failed: {e}; next attempt in {delay:.0f}s",
                extra={"error_type": type(e).__name__},
            )
            return delay
        except Exception as e:
            # Keep the timer alive; the next tick retries
            logger.error(f"Recheck {self.name} failed: {e}", exc_info=True)
            return self.interval

        if result.requeue_after is None:
            return self.interval
        return result.requeue_after
