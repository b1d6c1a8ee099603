# tests/test_vault_cache.py

from __future__ import annotations

import asyncio

import pytest

from tasklens.cache.vault_cache import VaultCache

from .fakes import InMemoryStore, VirtualScheduler


@pytest.mark.asyncio
async def test_scan_uses_structural_index(store: InMemoryStore, scheduler: VirtualScheduler) -> None:
    cache = VaultCache(store, scheduler)

    tasks = await cache.get_tasks()

    assert [str(t.address) for t in tasks] == [
        "Inbox.md:2",
        "Inbox.md:3",
        "Inbox.md:4",
        "Projects/Work.md:1",
        "Projects/Work.md:2",
    ]
    assert cache.scan_count == 1
    assert tasks[2].clean_description == "Call mom"


@pytest.mark.asyncio
async def test_valid_entry_does_not_touch_store(store: InMemoryStore, scheduler: VirtualScheduler) -> None:
    cache = VaultCache(store, scheduler)
    first = await cache.get_tasks()
    calls = (store.list_calls, store.cached_read_calls)

    await scheduler.advance(9.9)
    second = await cache.get_tasks()

    assert second is first
    assert (store.list_calls, store.cached_read_calls) == calls


@pytest.mark.asyncio
async def test_ttl_expiry_and_invalidate_rebuild(store: InMemoryStore, scheduler: VirtualScheduler) -> None:
    cache = VaultCache(store, scheduler)
    await cache.get_tasks()

    await scheduler.advance(10.0)
    assert cache.is_valid() is False
    await cache.get_tasks()
    assert cache.scan_count == 2

    cache.invalidate()
    assert cache.entry is None
    await cache.get_tasks()
    assert cache.scan_count == 3


@pytest.mark.asyncio
async def test_unindexed_documents_are_skipped(store: InMemoryStore, scheduler: VirtualScheduler) -> None:
    store.unindexed.add("Inbox.md")
    cache = VaultCache(store, scheduler)

    tasks = await cache.get_tasks()

    assert {t.source_path for t in tasks} == {"Projects/Work.md"}


@pytest.mark.asyncio
async def test_empty_vault_stays_valid_unless_configured(scheduler: VirtualScheduler) -> None:
    store = InMemoryStore({"Empty.md": "no tasks here"})

    cache = VaultCache(store, scheduler)
    assert await cache.get_tasks() == []
    await cache.get_tasks()
    assert cache.scan_count == 1

    eager = VaultCache(store, scheduler, rescan_empty=True)
    await eager.get_tasks()
    await eager.get_tasks()
    assert eager.scan_count == 2


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_scan(store: InMemoryStore, scheduler: VirtualScheduler) -> None:
    cache = VaultCache(store, scheduler)

    a, b = await asyncio.gather(cache.get_tasks(), cache.get_tasks())

    assert a is b
    assert cache.scan_count == 1


@pytest.mark.asyncio
async def test_rebuild_waits_for_in_flight_writes(store: InMemoryStore, scheduler: VirtualScheduler) -> None:
    cache = VaultCache(store, scheduler)
    release = asyncio.Event()

    async def slow_write() -> None:
        await release.wait()
        await store.write("Inbox.md", store.docs["Inbox.md"].replace("- [ ] Buy milk", "- [x] Buy milk"))

    writer = asyncio.create_task(cache.run_write(slow_write()))
    reader = asyncio.create_task(cache.get_tasks())
    await asyncio.sleep(0)
    assert not reader.done()

    release.set()
    await writer
    tasks = await reader

    assert next(t for t in tasks if t.line_index == 2 and t.source_path == "Inbox.md").completed is True


@pytest.mark.asyncio
async def test_invalidate_during_scan_discards_result(store: InMemoryStore, scheduler: VirtualScheduler) -> None:
    cache = VaultCache(store, scheduler)

    scan = asyncio.create_task(cache.get_tasks())
    await asyncio.sleep(0)
    cache.invalidate()
    await scan

    assert cache.entry is None
