# src/tasklens/connectors/file_vault.py

from __future__ import annotations

import contextlib
import logging
import os
import re
from collections.abc import Callable
from pathlib import Path

from ..core.ports import Unsubscribe

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".md"

# Structural index: list items ("-", "*", "+", "1." / "1)") carrying a checkbox.
_LIST_TASK_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+\[[^\]]\]")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")


def task_line_numbers(text: str) -> list[int]:
    """Zero-based lines of task list items, skipping fenced code blocks."""
    out: list[int] = []
    fence: str | None = None
    for i, line in enumerate(text.split("\n")):
        m = _FENCE_RE.match(line)
        if m:
            if fence is None:
                fence = m.group(1)
            elif m.group(1) == fence:
                fence = None
            continue
        if fence is None and _LIST_TASK_RE.match(line):
            out.append(i)
    return out


class FileVault:
    """
    Document store over a directory of markdown files.

    - paths are POSIX-style and relative to the vault root
    - cached_read() serves from an mtime-keyed cache, read() always hits disk
    - writes are atomic (temp file + os.replace)
    - poll_changes() turns external edits into on_change notifications

    Hidden directories (".obsidian", ".git", ...) are not part of the vault.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)
        self._real_root = self._root.resolve()

        self._texts: dict[str, tuple[int, str]] = {}
        self._listeners: list[Callable[[str], None]] = []
        self._snapshot: dict[str, int] | None = None
        logger.info("FileVault ready root=%s documents=%d", self._root, len(self._list_paths()))

    @property
    def root(self) -> Path:
        return self._root

    # ---- DocumentStore ----

    async def list_documents(self) -> list[str]:
        return self._list_paths()

    async def cached_read(self, path: str) -> str:
        return self._cached_text(path)

    async def read(self, path: str) -> str:
        full = self._resolve(path)
        text = full.read_text("utf-8")
        self._texts[path] = (full.stat().st_mtime_ns, text)
        return text

    async def write(self, path: str, text: str) -> None:
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)

        tmp = full.with_name(f".{full.name}.tmp")
        try:
            tmp.write_text(text, "utf-8")
            os.replace(tmp, full)
        finally:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()

        mtime = full.stat().st_mtime_ns
        self._texts[path] = (mtime, text)
        if self._snapshot is not None:
            self._snapshot[path] = mtime

        logger.debug("Wrote %s (%d bytes)", path, len(text))
        self._notify(path)

    async def process(self, path: str, fn: Callable[[str], str]) -> str:
        text = await self.read(path)
        new_text = fn(text)
        if new_text != text:
            await self.write(path, new_text)
        return new_text

    def get_task_line_numbers(self, path: str) -> list[int] | None:
        try:
            return task_line_numbers(self._cached_text(path))
        except FileNotFoundError:
            return None

    def on_change(self, callback: Callable[[str], None]) -> Unsubscribe:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # ---- change detection ----

    async def poll_changes(self) -> list[str]:
        """
        Compare mtimes with the previous poll and notify about every added,
        modified or removed document. The first call only takes a snapshot.
        """
        current = {p: self._resolve(p).stat().st_mtime_ns for p in self._list_paths()}
        previous = self._snapshot
        self._snapshot = current
        if previous is None:
            return []

        changed = sorted(p for p in current.keys() | previous.keys() if current.get(p) != previous.get(p))
        for path in changed:
            self._texts.pop(path, None)
            logger.info("External change: %s", path)
            self._notify(path)
        return changed

    # ---- internals ----

    def _list_paths(self) -> list[str]:
        out: list[str] = []
        for full in self._root.rglob(f"*{DOCUMENT_SUFFIX}"):
            rel = full.relative_to(self._root)
            if any(part.startswith(".") for part in rel.parts) or not full.is_file():
                continue
            out.append(rel.as_posix())
        return sorted(out)

    def _resolve(self, path: str) -> Path:
        full = (self._root / path).resolve()
        if full != self._real_root and self._real_root not in full.parents:
            raise ValueError(f"Path escapes the vault: {path}")
        return full

    def _cached_text(self, path: str) -> str:
        full = self._resolve(path)
        mtime = full.stat().st_mtime_ns
        cached = self._texts.get(path)
        if cached is not None and cached[0] == mtime:
            return cached[1]
        text = full.read_text("utf-8")
        self._texts[path] = (mtime, text)
        return text

    def _notify(self, path: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(path)
            except Exception:
                logger.exception("on_change listener failed path=%s", path)
