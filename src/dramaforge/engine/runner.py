"""Fire-and-forget execution of generation jobs on the running event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from dramaforge.config import get_logger

logger = get_logger(__name__)


class BackgroundRunner:
    """Schedules job coroutines and keeps them alive until they finish.

    ``submit`` never blocks the caller. The event loop only holds weak
    references to tasks, so the runner keeps strong ones until completion.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def submit(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        """Schedule ``coro`` on the running loop.

        Raises:
            RuntimeError: No event loop is running; ``coro`` is closed unrun.
        """
        try:
            task = asyncio.create_task(coro, name=name)
        except RuntimeError:
            coro.close()
            raise
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug("Background job submitted", job=name, pending=len(self._tasks))
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background job cancelled", job=task.get_name())
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Background job raised",
                job=task.get_name(),
                error=str(error),
                error_type=type(error).__name__,
            )

    def snapshot(self) -> list[asyncio.Task[Any]]:
        """Jobs submitted and not yet finished."""
        return list(self._tasks)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def join(self) -> None:
        """Wait for every submitted job, including jobs submitted while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
