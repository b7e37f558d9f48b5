# voicebridge/core/jobs.py
"""
Detached background jobs.

Persistence of turns and post-session enrichment run as named asyncio
tasks that the request path never awaits. The registry keeps a strong
reference to each running task (the event loop only keeps weak ones) and
logs any failure with the job name, so a crashed job is visible in the
logs without ever reaching the caller.
"""
import asyncio
import logging
from typing import Awaitable, Set

logger = logging.getLogger(__name__)


class BackgroundJobs:
    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, name: str, coro: Awaitable) -> asyncio.Task:
        """Start ``coro`` as a detached task and return it."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug("[Jobs] started %s", name)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("[Jobs] %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "[Jobs] %s failed: %s",
                task.get_name(),
                exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )
        else:
            logger.debug("[Jobs] %s finished", task.get_name())

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """
        Wait for every running job, including jobs spawned by jobs.

        Used on shutdown and by tests; never called on a request path.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            await asyncio.wait(set(self._tasks), timeout=remaining)
            if deadline is not None and loop.time() >= deadline:
                if self._tasks:
                    logger.warning("[Jobs] drain timed out with %d job(s) running", len(self._tasks))
                return
            # give done-callbacks a chance to run before re-checking
            await asyncio.sleep(0)


# Global job registry (singleton pattern)
jobs = BackgroundJobs()
