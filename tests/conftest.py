# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasklens.cli.bootstrap import create_initial_state
from tasklens.connectors.text_buffer import TextBuffer
from tasklens.core.state import AppState

from .fakes import InMemoryStore, ScriptedForm, VirtualScheduler

INBOX = "\n".join(
    [
        "# Inbox",
        "",
        "- [ ] Buy milk #errand",
        "- [x] Pay rent [completed: 2024-04-30]",
        "- [ ] Call mom [priority: high]",
    ]
)

WORK = "\n".join(
    [
        "# Work",
        "- [ ] Ship release #work [priority: low]",
        "  - [ ] Write notes",
        "```",
        "- [ ] not a task (code)",
        "```",
    ]
)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="tasklens-test",
        vault_dir=tmp_path / "vault",
        data_dir=tmp_path / "data",
        cache_ttl_seconds=10.0,
        rescan_empty_vault=False,
        editor_debounce_seconds=0.5,
        refresh_delay_seconds=0.5,
        settle_delay_seconds=1.0,
        echo_window_seconds=3.0,
        refresh_all_delay_seconds=0.4,
        grace_ticks=5,
        grace_tick_seconds=1.0,
    )


@pytest.fixture()
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore({"Inbox.md": INBOX, "Projects/Work.md": WORK})


@pytest.fixture()
def editor(store: InMemoryStore) -> TextBuffer:
    return TextBuffer(store)


@pytest.fixture()
def form() -> ScriptedForm:
    return ScriptedForm()


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    store: InMemoryStore,
    scheduler: VirtualScheduler,
    editor: TextBuffer,
    form: ScriptedForm,
) -> AppState:
    """AppState wired with deterministic fakes (virtual time, in-memory vault)."""
    return create_initial_state(
        settings=settings,
        store=store,
        scheduler=scheduler,
        editor=editor,
        form=form,
    )
