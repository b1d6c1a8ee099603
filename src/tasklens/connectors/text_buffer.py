# src/tasklens/connectors/text_buffer.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.ports import DocumentStore, Unsubscribe

logger = logging.getLogger(__name__)


class TextBuffer:
    """
    In-memory live editor over one open document.

    Edits stay in the buffer until flush() writes it to the store.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._path: str | None = None
        self._lines: list[str] = []
        self._dirty = False
        self._listeners: list[Callable[[], None]] = []
        self.cursor_line = 0

    @property
    def dirty(self) -> bool:
        return self._dirty

    def text(self) -> str:
        return "\n".join(self._lines)

    # ---- LiveEditor ----

    def active_path(self) -> str | None:
        return self._path

    def line_count(self) -> int:
        return len(self._lines)

    def get_line(self, index: int) -> str:
        if 0 <= index < len(self._lines):
            return self._lines[index]
        return ""

    def set_line(self, index: int, text: str) -> None:
        if not 0 <= index < len(self._lines):
            raise IndexError(f"line {index} out of range (0..{len(self._lines) - 1})")
        if self._lines[index] == text:
            return
        self._lines[index] = text
        self._dirty = True
        self._notify()

    def on_change(self, callback: Callable[[], None]) -> Unsubscribe:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def open_document_at_line(self, path: str, line: int) -> None:
        if self._dirty:
            await self.flush()
        text = await self._store.read(path)
        self._path = path
        self._lines = text.split("\n")
        self._dirty = False
        self.cursor_line = max(0, min(int(line), len(self._lines) - 1))
        logger.info("Opened %s at line %d", path, self.cursor_line)

    async def flush(self) -> None:
        if self._path is None or not self._dirty:
            return
        self._dirty = False
        await self._store.write(self._path, self.text())

    def close(self) -> None:
        self._path = None
        self._lines = []
        self._dirty = False

    # ---- internals ----

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("editor change listener failed")
