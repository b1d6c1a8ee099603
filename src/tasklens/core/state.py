# src/tasklens/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .ports import DocumentStore, EditForm, LiveEditor, Scheduler

if TYPE_CHECKING:
    from ..cache.vault_cache import VaultCache
    from ..editor.watcher import EditorWatcher
    from ..events.bus import EventBus
    from ..tasks.task_writer import TaskWriter
    from ..views.view import TaskView


@dataclass(slots=True)
class SyncState:
    """
    Process-wide "did we just write this?" marker.

    Views compare host change notifications against last_internal_update to
    tell an echo of our own write from an external edit.
    """

    last_internal_update: float = 0.0

    def mark_internal_update(self, now: float) -> None:
        self.last_internal_update = now

    def is_recent(self, now: float, window: float) -> bool:
        return now - self.last_internal_update < window


@dataclass
class AppState:
    # Settings object (tasklens.config.Settings or a SimpleNamespace in tests).
    settings: Any

    scheduler: Scheduler
    store: DocumentStore
    cache: VaultCache
    bus: EventBus
    writer: TaskWriter
    sync: SyncState

    editor: LiveEditor | None = None
    form: EditForm | None = None
    watcher: EditorWatcher | None = None

    views: list[TaskView] = field(default_factory=list)
