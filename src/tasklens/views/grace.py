# src/tasklens/views/grace.py

from __future__ import annotations

"""
Grace-period completion.

IDLE -> COUNTING on check-click; COUNTING -> COMMITTED when the countdown
reaches zero; COUNTING -> IDLE when the user unchecks before that.
Nothing is written to text while COUNTING.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from ..core.ports import Scheduler, TimerHandle
from ..tasks.task_models import TaskAddress, TaskRecord

logger = logging.getLogger(__name__)


class CompletionState(StrEnum):
    IDLE = "idle"
    COUNTING = "counting"
    COMMITTED = "committed"


@dataclass(slots=True)
class PendingCompletion:
    address: TaskAddress
    task: TaskRecord
    remaining: int
    state: CompletionState = CompletionState.COUNTING
    timer: TimerHandle | None = None


class GracePeriod:
    def __init__(
        self,
        scheduler: Scheduler,
        *,
        on_tick: Callable[[TaskAddress, int], None],
        on_expire: Callable[[PendingCompletion], Awaitable[None]],
        ticks: int = 5,
        tick_seconds: float = 1.0,
    ) -> None:
        self._scheduler = scheduler
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._ticks = max(1, int(ticks))
        self._tick_seconds = float(tick_seconds)
        self._pending: dict[TaskAddress, PendingCompletion] = {}

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def active(self) -> frozenset[TaskAddress]:
        return frozenset(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def state(self, address: TaskAddress) -> CompletionState:
        pending = self._pending.get(address)
        return pending.state if pending is not None else CompletionState.IDLE

    def is_counting(self, address: TaskAddress) -> bool:
        return self.state(address) == CompletionState.COUNTING

    def countdowns(self) -> dict[TaskAddress, int]:
        return {a: p.remaining for a, p in self._pending.items() if p.state == CompletionState.COUNTING}

    def start(self, task: TaskRecord) -> PendingCompletion | None:
        address = task.address
        if address in self._pending:
            return None
        pending = PendingCompletion(address=address, task=task, remaining=self._ticks)
        self._pending[address] = pending
        self._schedule(pending)
        logger.debug("Grace period started for %s", address)
        return pending

    def cancel(self, address: TaskAddress) -> bool:
        pending = self._pending.get(address)
        if pending is None or pending.state != CompletionState.COUNTING:
            return False
        self._drop(pending)
        logger.debug("Grace period cancelled for %s", address)
        return True

    def release(self, address: TaskAddress) -> None:
        pending = self._pending.get(address)
        if pending is not None:
            self._drop(pending)

    def cancel_all(self) -> None:
        for pending in list(self._pending.values()):
            self._drop(pending)

    # ---- internals ----

    def _schedule(self, pending: PendingCompletion) -> None:
        pending.timer = self._scheduler.call_later(self._tick_seconds, lambda: self._tick(pending))

    def _drop(self, pending: PendingCompletion) -> None:
        if pending.timer is not None:
            pending.timer.cancel()
            pending.timer = None
        if self._pending.get(pending.address) is pending:
            del self._pending[pending.address]

    def _tick(self, pending: PendingCompletion) -> Awaitable[None] | None:
        # Stale tick from a countdown that was cancelled and restarted.
        if self._pending.get(pending.address) is not pending or pending.state != CompletionState.COUNTING:
            return None

        pending.remaining -= 1
        if pending.remaining > 0:
            self._on_tick(pending.address, pending.remaining)
            self._schedule(pending)
            return None

        pending.state = CompletionState.COMMITTED
        pending.timer = None
        return self._expire(pending)

    async def _expire(self, pending: PendingCompletion) -> None:
        try:
            await self._on_expire(pending)
        finally:
            # on_expire normally releases before re-rendering; make sure it is gone.
            self.release(pending.address)
