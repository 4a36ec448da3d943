"""
Lifetime-extension hook for fire-and-forget work.

The request path hands the logging coroutine to a WaitUntil implementation
and returns immediately. The registry keeps each task referenced until it
settles, and the app lifespan drains it on shutdown so in-flight rows are
not dropped by the process exiting.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Protocol, Set

import structlog

logger = structlog.get_logger(__name__)


class WaitUntil(Protocol):
    """Host hook: run this in the background but keep me alive until it settles."""

    def wait_until(self, awaitable: Awaitable[Any]) -> None:
        ...


class BackgroundTaskRegistry:
    """
    Tracks detached asyncio tasks spawned per request.

    Features:
    - Strong references until each task completes
    - Optional callback when the in-flight count changes
    - Drain with optional grace period on shutdown
    """

    def __init__(self, on_change: Optional[Callable[[int], None]] = None) -> None:
        self._tasks: Set[asyncio.Task[Any]] = set()
        self._accepting = True
        self._on_change = on_change

    @property
    def pending(self) -> int:
        """Number of tasks not yet settled."""
        return len(self._tasks)

    @property
    def accepting(self) -> bool:
        return self._accepting

    def wait_until(self, awaitable: Awaitable[Any]) -> None:
        """Schedule the awaitable as a detached task and track it."""
        if not self._accepting:
            logger.warning("Background registry closed, dropping task")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        self._notify()

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        self._notify()

        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(len(self._tasks))

    def close(self) -> None:
        """Stop accepting new work."""
        self._accepting = False

    async def drain(self, timeout: Optional[float] = None) -> int:
        """
        Wait for in-flight tasks to settle.

        Args:
            timeout: Seconds to wait before cancelling stragglers; None waits indefinitely.

        Returns:
            Number of tasks cancelled because the grace period ran out.
        """
        if not self._tasks:
            return 0

        logger.info("Draining background tasks", pending=len(self._tasks), timeout=timeout)
        done, still_pending = await asyncio.wait(set(self._tasks), timeout=timeout)

        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
            logger.warning("Cancelled background tasks after grace period", cancelled=len(still_pending))

        return len(still_pending)
