"""
Background Tasks
================

Fire-and-forget execution for side effects that run outside a request's
transaction (workflow evaluation, lifecycle emails).

Spawned tasks are never awaited by the caller. Their failures are logged
through this module's logger and discarded; nothing is retried.
"""

import asyncio
from functools import partial
from typing import Any, Coroutine, Optional, Set

from ticketflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class BackgroundTaskRunner:
    """
    Tracks fire-and-forget asyncio tasks.

    Holds a strong reference to every running task so the event loop does not
    garbage-collect it mid-flight, and logs any exception it ends with.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        *,
        name: str,
        context: Optional[dict] = None
    ) -> asyncio.Task:
        """Schedule ``coro`` on the running loop and return immediately."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(partial(self._on_done, context or {}))
        return task

    def _on_done(self, context: dict, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(
                "Background task cancelled",
                extra={"task": task.get_name(), **context}
            )
            return

        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task failed",
                extra={
                    "task": task.get_name(),
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                    **context,
                }
            )

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """
        Wait for in-flight tasks, including ones spawned while waiting.

        Used at shutdown so queued side effects get a chance to finish.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while True:
            running = {task for task in self._tasks if not task.done()}
            if not running:
                break
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                break
            _, pending = await asyncio.wait(running, timeout=remaining)
            if pending:
                logger.warning(
                    "Background tasks still running after drain timeout",
                    extra={"pending": len(pending)}
                )
                break
