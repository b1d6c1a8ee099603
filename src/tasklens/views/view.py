# src/tasklens/views/view.py

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable

from ..core.ports import TimerHandle, Unsubscribe, ViewSink
from ..core.state import AppState
from ..events.bus import Subscription
from ..query.query_lang import QueryContext, compile_query
from ..tasks.task_models import NO_DESCRIPTION, TaskAddress, TaskRecord
from .grace import GracePeriod, PendingCompletion
from .render_model import build_rendered_view

logger = logging.getLogger(__name__)

RENDER_ERROR_MESSAGE = "Error rendering tasks. Check the log."


def result_hash(tasks: Iterable[TaskRecord], provisional: frozenset[TaskAddress] = frozenset()) -> str:
    payload = [
        [t.source_path, t.line_index, t.completed or t.address in provisional, t.clean_description, str(t.priority)]
        for t in tasks
    ]
    return hashlib.sha1(json.dumps(payload, ensure_ascii=False).encode("utf-8")).hexdigest()


class TaskView:
    """
    One query block on screen.

    Lifecycle: load() subscribes to the bus and the store and renders once;
    unload() drops every subscription, timer and countdown.

    Rendering is hash-guarded: when the filtered result is unchanged the sink
    is not touched at all.
    """

    def __init__(
        self,
        state: AppState,
        source: str,
        sink: ViewSink,
        *,
        host_path: str | None = None,
        name: str | None = None,
    ) -> None:
        self._state = state
        self.source = source
        self.query = compile_query(source)
        self.sink = sink
        self.host_path = host_path
        self.name = name or host_path or "view"

        settings = state.settings
        self._refresh_delay = float(getattr(settings, "refresh_delay_seconds", 0.5))
        self._settle_delay = float(getattr(settings, "settle_delay_seconds", 1.0))
        self._echo_window = float(getattr(settings, "echo_window_seconds", 3.0))
        self._refresh_all_delay = float(getattr(settings, "refresh_all_delay_seconds", 0.4))

        self._grace = GracePeriod(
            state.scheduler,
            on_tick=self._on_countdown_tick,
            on_expire=self._commit_completion,
            ticks=int(getattr(settings, "grace_ticks", 5)),
            tick_seconds=float(getattr(settings, "grace_tick_seconds", 1.0)),
        )

        self._visible: dict[TaskAddress, TaskRecord] = {}
        self._last_hash = ""
        self._refresh_timer: TimerHandle | None = None
        self._subscriptions: list[Subscription] = []
        self._store_unsubscribe: Unsubscribe | None = None
        self._loaded = False
        self.render_count = 0

    # ---- public state ----

    @property
    def visible_tasks(self) -> list[TaskRecord]:
        return list(self._visible.values())

    @property
    def grace(self) -> GracePeriod:
        return self._grace

    def task_at(self, index: int) -> TaskRecord | None:
        """1-based position in the current result (console numbering)."""
        tasks = [t for group in self.query.group(self._visible.values()).values() for t in group]
        if 1 <= index <= len(tasks):
            return tasks[index - 1]
        return None

    # ---- lifecycle ----

    async def load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        bus = self._state.bus
        self._subscriptions = [
            bus.on_status_change(self.on_status_change),
            bus.on_refresh_all(self.on_refresh_all),
        ]
        self._store_unsubscribe = self._state.store.on_change(self.on_document_changed)
        await self.render()

    def unload(self) -> None:
        self._loaded = False
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []
        if self._store_unsubscribe is not None:
            self._store_unsubscribe()
            self._store_unsubscribe = None
        self._cancel_refresh()
        self._grace.cancel_all()

    # ---- rendering ----

    async def render(self, *, force: bool = False) -> bool:
        """Re-run the query; returns True if the sink received new output."""
        try:
            tasks = await self._state.cache.get_tasks()
            provisional = self._grace.active
            ctx = QueryContext(today=self._state.scheduler.today(), provisional=provisional)
            visible = self.query.apply(tasks, ctx)

            digest = result_hash(visible, provisional)
            if not force and digest == self._last_hash:
                return False
            self._last_hash = digest

            self._visible = {t.address: t for t in visible}
            self.sink.show(build_rendered_view(self.query.group(visible), self._grace.countdowns()))
            self.render_count += 1
            return True
        except Exception:
            logger.exception("Render failed for %s", self.name)
            self._last_hash = ""
            self.sink.show_error(RENDER_ERROR_MESSAGE)
            return False

    # ---- user actions ----

    async def toggle(self, address: TaskAddress) -> None:
        """Checkbox click."""
        task = self._visible.get(address)
        if task is None:
            logger.info("Toggle ignored: %s is not in %s", address, self.name)
            return

        if self._grace.cancel(address):
            self.sink.set_countdown(address, None)
            self.sink.set_done(address, task.completed)
            return

        if not task.completed:
            if self._grace.start(task) is not None:
                self.sink.set_done(address, True)
                self.sink.set_countdown(address, self._grace.ticks)
            return

        # Unchecking a committed task writes immediately.
        task.completed = False
        self.sink.set_done(address, False)
        if await self._state.writer.toggle_task(task, False):
            self._state.cache.invalidate()

    async def edit(self, address: TaskAddress) -> bool:
        """Edit form: commits immediately, then every view refreshes."""
        form = self._state.form
        task = self._visible.get(address)
        if form is None or task is None:
            return False

        result = await form.edit(task)
        if result is None:
            return False

        if self._grace.cancel(address):
            self.sink.set_countdown(address, None)

        task.completed = result.completed
        task.clean_description = result.description.strip() or NO_DESCRIPTION
        task.priority = result.priority

        ok = await self._state.writer.update_task(task, result)
        self._state.bus.publish_refresh_all()
        return ok

    async def open_task(self, address: TaskAddress) -> None:
        editor = self._state.editor
        if editor is not None:
            await editor.open_document_at_line(address.path, address.line)

    async def open_group(self, name: str) -> None:
        for group_name, tasks in self.query.group(self._visible.values()).items():
            if group_name == name and tasks:
                editor = self._state.editor
                if editor is not None:
                    await editor.open_document_at_line(tasks[0].source_path, 0)
                return

    # ---- bus / host notifications ----

    def on_status_change(self, address: TaskAddress, is_done: bool) -> None:
        task = self._visible.get(address)
        if task is None:
            return
        task.completed = is_done
        # Only the user's own uncheck cancels a running countdown.
        if self._grace.is_counting(address):
            return
        self.sink.set_done(address, is_done)

    def on_document_changed(self, path: str) -> None:
        if len(self._grace):
            return
        now = self._state.scheduler.now()
        echo = self._state.sync.is_recent(now, self._echo_window)
        self._schedule_refresh(self._settle_delay if echo else self._refresh_delay)

    def on_refresh_all(self) -> None:
        self._schedule_refresh(self._refresh_all_delay, force=True)

    # ---- internals ----

    def _schedule_refresh(self, delay: float, *, force: bool = False) -> None:
        self._cancel_refresh()
        self._refresh_timer = self._state.scheduler.call_later(delay, lambda: self._refresh(force))

    def _cancel_refresh(self) -> None:
        if self._refresh_timer is not None:
            self._refresh_timer.cancel()
            self._refresh_timer = None

    async def _refresh(self, force: bool) -> None:
        self._refresh_timer = None
        if not self._loaded:
            return
        self._state.cache.invalidate()
        await self.render(force=force)

    def _on_countdown_tick(self, address: TaskAddress, remaining: int) -> None:
        self.sink.set_countdown(address, remaining)

    async def _commit_completion(self, pending: PendingCompletion) -> None:
        ok = await self._state.writer.toggle_task(pending.task, True)
        if ok:
            pending.task.completed = True
        else:
            logger.info("Completion of %s was not written", pending.address)

        self._grace.release(pending.address)
        self.sink.set_countdown(pending.address, None)
        self._state.cache.invalidate()
        await self.render(force=True)
