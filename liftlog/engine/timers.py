"""Session clocks.

Two independent clocks advanced once per second while a session is live: the
elapsed count-up and the rest countdown. ``SessionTicker`` is the asyncio
driver; the clocks themselves know nothing about scheduling.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable

from loguru import logger

from liftlog.schemas.session import RestTimerState


@dataclass(slots=True)
class ElapsedClock:
    seconds: int = 0

    def tick(self) -> None:
        self.seconds += 1

    def reset(self) -> None:
        self.seconds = 0


@dataclass(slots=True)
class RestTimer:
    is_running: bool = False
    remaining: int = 0
    total: int = 0
    exercise_id: str | None = None

    def start(self, seconds: int, exercise_id: str | None = None) -> None:
        """Start (or restart) a countdown; replaces any running one."""
        seconds = int(seconds)
        if seconds <= 0:
            self.stop()
            return
        self.is_running = True
        self.remaining = seconds
        self.total = seconds
        self.exercise_id = exercise_id

    def extend(self, seconds: int) -> None:
        # Restarts from remaining + seconds, so total moves with it
        self.start(self.remaining + seconds, self.exercise_id)

    def stop(self) -> None:
        self.is_running = False
        self.remaining = 0
        self.total = 0
        self.exercise_id = None

    def tick(self) -> bool:
        """Advance one second. True only on the tick that reaches zero."""
        if not self.is_running:
            return False
        self.remaining -= 1
        if self.remaining <= 0:
            self.remaining = 0
            self.is_running = False
            return True
        return False

    def snapshot(self) -> RestTimerState:
        return RestTimerState(
            is_running=self.is_running,
            remaining=self.remaining,
            total=self.total,
            exercise_id=self.exercise_id,
        )


class SessionTicker:
    """Calls ``tick`` every ``interval`` seconds on the running event loop."""

    def __init__(self, tick: Callable[[], None], interval: float = 1.0):
        self._tick = tick
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="session-ticker")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self._tick()
            except Exception:
                logger.exception("Session tick failed")
