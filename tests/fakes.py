# tests/fakes.py

from __future__ import annotations

import asyncio
import heapq
import inspect
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field

from tasklens.connectors.file_vault import task_line_numbers
from tasklens.tasks.task_models import EditResult, TaskAddress, TaskRecord
from tasklens.views.render_model import RenderedView


@dataclass(slots=True)
class VirtualTimer:
    due: float
    callback: Callable[[], object]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """
    Deterministic Scheduler for unit tests.

    Time only moves inside advance(); due callbacks run in due order and
    awaitables they return are awaited before the next one fires.
    """

    def __init__(self, start: float = 1000.0, today: str = "2024-05-01") -> None:
        self._now = start
        self._today = today
        self._queue: list[tuple[float, int, VirtualTimer]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def today(self) -> str:
        return self._today

    def call_later(self, delay: float, callback: Callable[[], object]) -> VirtualTimer:
        timer = VirtualTimer(due=self._now + max(0.0, float(delay)), callback=callback)
        heapq.heappush(self._queue, (timer.due, next(self._seq), timer))
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    async def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = max(self._now, due)
            result = timer.callback()
            if inspect.isawaitable(result):
                await result
            await asyncio.sleep(0)
        self._now = target
        await asyncio.sleep(0)


class InMemoryStore:
    """
    DocumentStore over a dict of path -> text.

    Counts calls so tests can assert the cache did (or did not) hit the store.
    """

    def __init__(self, docs: dict[str, str] | None = None) -> None:
        self.docs: dict[str, str] = dict(docs or {})
        self.unindexed: set[str] = set()
        self.fail_reads = False
        self.list_calls = 0
        self.cached_read_calls = 0
        self.read_calls = 0
        self.writes: list[tuple[str, str]] = []
        self._listeners: list[Callable[[str], None]] = []

    async def list_documents(self) -> list[str]:
        self.list_calls += 1
        return sorted(self.docs)

    async def cached_read(self, path: str) -> str:
        self.cached_read_calls += 1
        if self.fail_reads:
            raise OSError("read failed")
        return self.docs[path]

    async def read(self, path: str) -> str:
        self.read_calls += 1
        if self.fail_reads:
            raise OSError("read failed")
        return self.docs[path]

    async def write(self, path: str, text: str) -> None:
        self.docs[path] = text
        self.writes.append((path, text))
        for listener in list(self._listeners):
            listener(path)

    async def process(self, path: str, fn: Callable[[str], str]) -> str:
        old = self.docs[path]
        new = fn(old)
        if new != old:
            await self.write(path, new)
        return new

    def get_task_line_numbers(self, path: str) -> list[int] | None:
        if path in self.unindexed or path not in self.docs:
            return None
        return task_line_numbers(self.docs[path])

    def on_change(self, callback: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback) if callback in self._listeners else None

    # Simulates an edit made outside this process.
    def external_edit(self, path: str, text: str) -> None:
        self.docs[path] = text
        for listener in list(self._listeners):
            listener(path)

    def line(self, path: str, index: int) -> str:
        return self.docs[path].split("\n")[index]


@dataclass(slots=True)
class RecordingSink:
    """ViewSink that keeps everything it was told."""

    shown: list[RenderedView] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    done: list[tuple[TaskAddress, bool]] = field(default_factory=list)
    countdowns: list[tuple[TaskAddress, int | None]] = field(default_factory=list)
    fail_show: bool = False

    def show(self, rendered: RenderedView) -> None:
        if self.fail_show:
            raise RuntimeError("sink exploded")
        self.shown.append(rendered)

    def show_error(self, message: str) -> None:
        self.errors.append(message)

    def set_done(self, address: TaskAddress, done: bool) -> None:
        self.done.append((address, done))

    def set_countdown(self, address: TaskAddress, remaining: int | None) -> None:
        self.countdowns.append((address, remaining))

    @property
    def last(self) -> RenderedView | None:
        return self.shown[-1] if self.shown else None

    def descriptions(self) -> list[str]:
        view = self.last
        return [item.description for item in view.items()] if view is not None else []


class ScriptedForm:
    """EditForm returning queued results (None = user cancelled)."""

    def __init__(self, *results: EditResult | None) -> None:
        self.results = list(results)
        self.seen: list[TaskRecord] = []

    async def edit(self, task: TaskRecord) -> EditResult | None:
        self.seen.append(task)
        return self.results.pop(0) if self.results else None
