# src/tasklens/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store, cache, bus, writer and watcher into AppState,
- discovers ```todos query blocks and turns them into views,
- tears everything down again on shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..cache.vault_cache import VaultCache
from ..config import get_settings
from ..connectors.file_vault import FileVault
from ..core.ports import DocumentStore, EditForm, LiveEditor, Scheduler, ViewSink
from ..core.state import AppState, SyncState
from ..core.timers import LoopScheduler
from ..editor.watcher import EditorWatcher
from ..events.bus import EventBus
from ..query.blocks import find_query_blocks
from ..tasks.task_writer import TaskWriter
from ..views.view import TaskView

logger = logging.getLogger(__name__)

SinkFactory = Callable[[str], ViewSink]


def _ensure_local_dirs(settings) -> None:
    data_dir = getattr(settings, "data_dir", None)
    if data_dir is not None:
        data_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    store: DocumentStore | None = None,
    scheduler: Scheduler | None = None,
    editor: LiveEditor | None = None,
    form: EditForm | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and collaborators injectable makes the app easier to test
    and avoids hidden global state. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if store is None:
        store = FileVault(settings.vault_dir)
    if scheduler is None:
        scheduler = LoopScheduler()

    sync = SyncState()
    cache = VaultCache(
        store,
        scheduler,
        ttl_seconds=float(getattr(settings, "cache_ttl_seconds", 10.0)),
        rescan_empty=bool(getattr(settings, "rescan_empty_vault", False)),
    )
    bus = EventBus()
    writer = TaskWriter(store, cache, scheduler, sync, editor=editor)

    watcher = None
    if editor is not None:
        watcher = EditorWatcher(
            editor,
            bus,
            cache,
            scheduler,
            sync,
            debounce_seconds=float(getattr(settings, "editor_debounce_seconds", 0.5)),
        )
        watcher.start()

    return AppState(
        settings=settings,
        scheduler=scheduler,
        store=store,
        cache=cache,
        bus=bus,
        writer=writer,
        sync=sync,
        editor=editor,
        form=form,
        watcher=watcher,
    )


async def add_view(state: AppState, source: str, sink: ViewSink, *, name: str, host_path: str | None = None) -> TaskView:
    view = TaskView(state, source, sink, host_path=host_path, name=name)
    state.views.append(view)
    await view.load()
    return view


async def load_query_views(state: AppState, sink_factory: SinkFactory) -> list[TaskView]:
    """Create one view per ```todos block found in the vault."""
    created: list[TaskView] = []
    for path in await state.store.list_documents():
        try:
            text = await state.store.cached_read(path)
        except Exception:
            logger.exception("Failed to read %s while looking for query blocks", path)
            continue

        for block in find_query_blocks(text):
            name = f"{path}:{block.start_line}"
            created.append(await add_view(state, block.source, sink_factory(name), name=name, host_path=path))

    logger.info("Loaded %d query view(s)", len(created))
    return created


def shutdown_state(state: AppState) -> None:
    """Best-effort teardown (no exceptions should escape)."""
    for view in list(state.views):
        try:
            view.unload()
        except Exception:
            logger.exception("View unload failed: %s", view.name)
    state.views.clear()

    if state.watcher is not None:
        try:
            state.watcher.stop()
        except Exception:
            logger.debug("Watcher stop failed.", exc_info=True)

    state.bus.close()
    state.cache.invalidate()

    close = getattr(state.scheduler, "close", None)
    if callable(close):
        try:
            close()
        except Exception:
            logger.debug("Scheduler close failed.", exc_info=True)
