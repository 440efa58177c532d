from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Coroutine, Dict, Optional

logger = logging.getLogger("task_supervisor")


class TaskSupervisor:
    """
    Owns fire-and-forget background tasks, one per key (job id).

    Nothing awaits these tasks on the request path, so the supervisor keeps a
    strong reference until they finish and logs any exception that escapes
    them instead of letting asyncio drop it.
    """

    def __init__(self, name: str = "videogen") -> None:
        self.name = name
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    def is_running(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def get_task(self, key: str) -> Optional[asyncio.Task]:
        return self._tasks.get(key)

    def spawn(self, key: str, coro: Coroutine) -> asyncio.Task:
        existing = self._tasks.get(key)
        if existing is not None and not existing.done():
            coro.close()
            logger.info("task_already_running", extra={"key": key})
            return existing

        task = asyncio.create_task(coro, name=f"{self.name}:{key}")
        self._tasks[key] = task
        task.add_done_callback(partial(self._on_done, key))
        return task

    def cancel(self, key: str) -> bool:
        task = self._tasks.get(key)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def _on_done(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

        if task.cancelled():
            logger.info("task_cancelled", extra={"key": key})
            return

        exc = task.exception()
        if exc is not None:
            logger.error(
                "background_task_failed",
                exc_info=(type(exc), exc, exc.__traceback__),
                extra={"key": key, "error": str(exc)},
            )

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("supervisor_stopped", extra={"cancelled": len(tasks)})
