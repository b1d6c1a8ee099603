# src/tasklens/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The engine depends on Protocols instead of the host application.
This keeps the document store / editor / UI swappable and makes testing easier.
"""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import EditResult, TaskAddress, TaskRecord
    from ..views.render_model import RenderedView

Unsubscribe = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """
    Clock + timers.

    Every delay in the engine (debounce, settle, countdown ticks) goes through
    call_later() so tests can drive virtual time. A callback may return an
    awaitable; the scheduler runs it to completion.
    """

    def now(self) -> float: ...
    def today(self) -> str: ...
    def call_later(self, delay: float, callback: Callable[[], object]) -> TimerHandle: ...


class DocumentStore(Protocol):
    """Host document storage: whole-document reads/writes by path."""

    async def list_documents(self) -> list[str]: ...

    # Cache-preferring read, used for bulk scans.
    async def cached_read(self, path: str) -> str: ...

    # Strong read, used before write-backs.
    async def read(self, path: str) -> str: ...

    async def write(self, path: str, text: str) -> None: ...

    # Atomic read-modify-write; returns the new text.
    async def process(self, path: str, fn: Callable[[str], str]) -> str: ...

    # Structural index: zero-based lines of list items flagged as tasks,
    # or None if the document is not indexed (yet).
    def get_task_line_numbers(self, path: str) -> list[int] | None: ...

    # Host "document changed" notification (our own writes included).
    def on_change(self, callback: Callable[[str], None]) -> Unsubscribe: ...


class LiveEditor(Protocol):
    """Live text buffer of the currently open document."""

    def active_path(self) -> str | None: ...
    def line_count(self) -> int: ...
    def get_line(self, index: int) -> str: ...
    def set_line(self, index: int, text: str) -> None: ...
    def on_change(self, callback: Callable[[], None]) -> Unsubscribe: ...
    async def open_document_at_line(self, path: str, line: int) -> None: ...

    # Persist the buffer to the document store.
    async def flush(self) -> None: ...


class EditForm(Protocol):
    """Modal edit form: returns None on cancel."""

    def edit(self, task: TaskRecord) -> Awaitable[EditResult | None]: ...


class ViewSink(Protocol):
    """
    Where a view puts its output.

    show() receives a whole rendered result; set_done()/set_countdown() are
    the cheap in-place updates used by status broadcasts and grace periods.
    """

    def show(self, rendered: RenderedView) -> None: ...
    def show_error(self, message: str) -> None: ...
    def set_done(self, address: TaskAddress, done: bool) -> None: ...
    def set_countdown(self, address: TaskAddress, remaining: int | None) -> None: ...
