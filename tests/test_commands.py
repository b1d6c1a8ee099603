# tests/test_commands.py

from __future__ import annotations

import pytest

from tasklens.cli.bootstrap import add_view
from tasklens.cli.commands import CommandRegistry, registry
from tasklens.core.state import AppState

from .fakes import InMemoryStore, RecordingSink, VirtualScheduler


@pytest.mark.asyncio
async def test_command_registry_routes_sync_and_async_handlers(state) -> None:
    reg = CommandRegistry()
    called = {"sync": 0, "async": 0}

    def h_sync(state, args, emit):
        called["sync"] += 1
        return "sync " + " ".join(args)

    async def h_async(state, args, emit):
        called["async"] += 1
        if emit is not None:
            emit("note")
        return "async"

    reg.register("a", h_sync, "a", aliases=["aa"])
    reg.register("b", h_async, "b")

    assert await reg.handle(state, "/a x y") == "sync x y"
    assert await reg.handle(state, "/AA") == "sync "
    assert await reg.handle(state, "/b", emit=lambda _: None) == "async"
    assert called == {"sync": 2, "async": 1}


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_help_lists_builtin_commands(state: AppState) -> None:
    text = await registry.handle(state, "/help") or ""
    for name in ("/views", "/show", "/query", "/check", "/edit", "/refresh"):
        assert name in text


@pytest.mark.asyncio
async def test_views_show_and_check(
    state: AppState, store: InMemoryStore, scheduler: VirtualScheduler
) -> None:
    await add_view(state, "not done\nsort by priority", RecordingSink(), name="Dashboard.md:1")

    listing = await registry.handle(state, "/views") or ""
    assert "Dashboard.md:1" in listing
    assert "4 task(s)" in listing

    shown = await registry.handle(state, "/show 1") or ""
    assert shown.splitlines()[0] == "== Dashboard.md:1 =="
    assert "1. [ ] Call mom  HIGH" in shown

    reply = await registry.handle(state, "/check 1 1") or ""
    assert "Completing 'Call mom'" in reply

    await scheduler.advance(5.0)
    assert store.line("Inbox.md", 4) == "- [x] Call mom [priority: high] [completed: 2024-05-01]"


@pytest.mark.asyncio
async def test_check_reports_bad_numbers(state: AppState) -> None:
    await add_view(state, "", RecordingSink(), name="all")

    assert "No view #7" in (await registry.handle(state, "/check 7 1") or "")
    assert "No item #99" in (await registry.handle(state, "/check 1 99") or "")
    assert "Usage" in (await registry.handle(state, "/check 1") or "")


@pytest.mark.asyncio
async def test_adhoc_query(state: AppState) -> None:
    text = await registry.handle(state, "/query done; group by path") or ""

    assert "# Inbox" in text
    assert "[x] Pay rent" in text
    assert "Buy milk" not in text


@pytest.mark.asyncio
async def test_open_lines_and_line(state: AppState, store: InMemoryStore, scheduler: VirtualScheduler) -> None:
    await add_view(state, "", RecordingSink(), name="all")

    assert "Opened Inbox.md at line 2" in (await registry.handle(state, "/open 1 1") or "")
    assert "   2 | - [ ] Buy milk #errand" in (await registry.handle(state, "/lines") or "")

    assert await registry.handle(state, "/line 2 - [x] Buy milk #errand") == "Line 2 updated."
    await scheduler.advance(0.5)

    assert store.line("Inbox.md", 2) == "- [x] Buy milk #errand [completed: 2024-05-01]"


@pytest.mark.asyncio
async def test_refresh_emits_and_schedules(state: AppState) -> None:
    notes: list[str] = []
    refreshed = {"n": 0}
    state.bus.on_refresh_all(lambda: refreshed.__setitem__("n", refreshed["n"] + 1))

    assert await registry.handle(state, "/refresh", emit=notes.append) == "Refresh scheduled."
    assert refreshed["n"] == 1
    assert notes
