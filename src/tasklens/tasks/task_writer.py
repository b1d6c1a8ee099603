# src/tasklens/tasks/task_writer.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..cache.vault_cache import VaultCache
from ..core.ports import DocumentStore, LiveEditor, Scheduler
from ..core.state import SyncState
from .task_models import EditResult, TaskRecord
from .task_parser import edit_line, toggle_line

logger = logging.getLogger(__name__)

LineBuilder = Callable[[str], "str | None"]


class TaskWriter:
    """
    Commits task changes back to text.

    Every write goes to the live editor when the target document is open there
    (so the user's buffer is never clobbered), otherwise through the store's
    read-modify-write. Writes are registered with the cache, and the shared
    SyncState is stamped so views can recognise the echo.

    Failures are logged and reported as False; nothing is retried.
    """

    def __init__(
        self,
        store: DocumentStore,
        cache: VaultCache,
        scheduler: Scheduler,
        sync: SyncState,
        editor: LiveEditor | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._scheduler = scheduler
        self._sync = sync
        self.editor = editor

    async def toggle_task(self, task: TaskRecord, completed: bool) -> bool:
        today = self._scheduler.today()
        return await self._rewrite(task, lambda line: toggle_line(line, completed, today), "toggle")

    async def update_task(self, task: TaskRecord, result: EditResult) -> bool:
        today = self._scheduler.today()
        return await self._rewrite(task, lambda line: edit_line(line, result, today), "update")

    async def read_line(self, path: str, line_index: int) -> str | None:
        """Current text of one line (editor buffer first), or None if out of range."""
        lines = await self._current_lines(path)
        if line_index >= len(lines):
            return None
        return lines[line_index]

    async def safe_modify_line(self, path: str, line_index: int, new_line: str) -> bool:
        self._sync.mark_internal_update(self._scheduler.now())

        editor = self._editor_for(path)
        if editor is not None and line_index < editor.line_count():
            editor.set_line(line_index, new_line)
            await self._cache.run_write(editor.flush())
            return True

        replaced = False

        def replace(text: str) -> str:
            nonlocal replaced
            lines = text.split("\n")
            if line_index >= len(lines):
                return text
            lines[line_index] = new_line
            replaced = True
            return "\n".join(lines)

        await self._cache.run_write(self._store.process(path, replace))
        if not replaced:
            logger.info("Stale address %s:%d, write skipped", path, line_index)
        return replaced

    # ---- internals ----

    async def _rewrite(self, task: TaskRecord, build: LineBuilder, what: str) -> bool:
        path, line_index = task.address
        try:
            line = await self.read_line(path, line_index)
            if line is None:
                logger.info("%s aborted: %s is past the end of the document", what, task.address)
                return False
            if not line:
                return False

            new_line = build(line)
            if new_line is None:
                logger.info("%s aborted: %s is no longer a task line: %r", what, task.address, line)
                return False

            if new_line == line:
                return True
            return await self.safe_modify_line(path, line_index, new_line)
        except Exception:
            logger.exception("Task %s failed for %s", what, task.address)
            return False

    def _editor_for(self, path: str) -> LiveEditor | None:
        editor = self.editor
        if editor is not None and editor.active_path() == path:
            return editor
        return None

    async def _current_lines(self, path: str) -> list[str]:
        editor = self._editor_for(path)
        if editor is not None:
            return [editor.get_line(i) for i in range(editor.line_count())]
        return (await self._store.read(path)).split("\n")
