# src/tasklens/editor/watcher.py

from __future__ import annotations

"""
Editor watcher.

Debounced scan of the open document after live edits:
- broadcast every checkbox line's status (views flip instantly, no cache),
- add a completion tag to done lines that lack one,
- strip it from open lines that still carry one.
"""

import logging

from ..cache.vault_cache import VaultCache
from ..core.ports import LiveEditor, Scheduler, TimerHandle, Unsubscribe
from ..core.state import SyncState
from ..events.bus import EventBus
from ..tasks.task_models import TaskAddress
from ..tasks.task_parser import CHECKBOX_MARKERS, DONE_MARKERS, match_task_line, reconcile_completion_tag

logger = logging.getLogger(__name__)


class EditorWatcher:
    def __init__(
        self,
        editor: LiveEditor,
        bus: EventBus,
        cache: VaultCache,
        scheduler: Scheduler,
        sync: SyncState,
        *,
        debounce_seconds: float = 0.5,
    ) -> None:
        self._editor = editor
        self._bus = bus
        self._cache = cache
        self._scheduler = scheduler
        self._sync = sync
        self._debounce = float(debounce_seconds)

        self._timer: TimerHandle | None = None
        self._scanning = False
        self._unsubscribe: Unsubscribe | None = None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._editor.on_change(self.on_editor_change)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_editor_change(self) -> None:
        # Our own tag rewrites.
        if self._scanning:
            return
        # Trailing edge: only the last change inside the window triggers a scan.
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._scheduler.call_later(self._debounce, self._on_timer)

    async def _on_timer(self) -> None:
        self._timer = None
        await self.scan()

    async def scan(self) -> int:
        """Scan the open document once; returns the number of rewritten lines."""
        path = self._editor.active_path()
        today = self._scheduler.today()
        changed = 0

        for i in range(self._editor.line_count()):
            line = self._editor.get_line(i)
            m = match_task_line(line)
            if m is None or m.group("status") not in CHECKBOX_MARKERS:
                continue

            is_done = m.group("status") in DONE_MARKERS
            if path is not None:
                self._bus.publish_status_change(TaskAddress(path, i), is_done)

            new_line = reconcile_completion_tag(line, is_done, today)
            if new_line != line:
                self._scanning = True
                try:
                    self._editor.set_line(i, new_line)
                finally:
                    self._scanning = False
                changed += 1

        if changed:
            logger.debug("Editor watcher rewrote %d line(s) in %s", changed, path)
            self._sync.mark_internal_update(self._scheduler.now())
            await self._cache.run_write(self._editor.flush())
            self._cache.invalidate()

        return changed
