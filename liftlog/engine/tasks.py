from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Coroutine

from loguru import logger


class TaskPolicy(str, Enum):
    # Failure is expected to be harmless; keep it out of the logs above debug
    IGNORE_FAILURE = "ignore_failure"
    LOG_FAILURE = "log_failure"


class BackgroundTasks:
    """Detached coroutines the caller does not await.

    Tasks are referenced until done so the loop cannot garbage-collect them
    mid-flight. ``drain`` waits for everything currently pending.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        *,
        name: str,
        policy: TaskPolicy = TaskPolicy.LOG_FAILURE,
    ) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._finished(t, policy))
        return task

    def _finished(self, task: asyncio.Task, policy: TaskPolicy) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        if policy is TaskPolicy.IGNORE_FAILURE:
            logger.debug(f"Detached task {task.get_name()} failed (ignored): {exc!r}")
        else:
            logger.warning(f"Detached task {task.get_name()} failed: {exc!r}")

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
