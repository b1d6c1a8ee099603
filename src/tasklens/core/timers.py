# src/tasklens/core/timers.py

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from datetime import date

logger = logging.getLogger(__name__)


class LoopScheduler:
    """
    Scheduler port backed by the running asyncio loop.

    Coroutine callbacks are wrapped into tasks that are tracked until done,
    so failures are logged instead of being lost.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._tasks: set[asyncio.Task[object]] = set()

    def now(self) -> float:
        return time.monotonic()

    def today(self) -> str:
        return date.today().isoformat()

    def call_later(self, delay: float, callback: Callable[[], object]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, float(delay)), self._fire, callback)

    def _fire(self, callback: Callable[[], object]) -> None:
        try:
            result = callback()
        except Exception:
            logger.exception("Timer callback failed")
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[object]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Timer task failed", exc_info=exc)

    async def drain(self) -> None:
        """Wait for callbacks that are already running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
