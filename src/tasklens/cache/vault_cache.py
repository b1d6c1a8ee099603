# src/tasklens/cache/vault_cache.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TypeVar

from ..core.ports import DocumentStore, Scheduler
from ..tasks.task_models import TaskRecord
from ..tasks.task_parser import parse_task_line

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class CacheEntry:
    records: list[TaskRecord]
    scanned_at: float


class VaultCache:
    """
    Last full scan of every task in the vault.

    The entry is served as-is while younger than ttl_seconds; otherwise (or
    after invalidate()) the next get_tasks() rescans every document through
    the store's structural index. The entry is replaced whole, never patched.

    Write-backs go through run_write() so a rebuild never reads a document
    while a write to it is still in flight.
    """

    def __init__(
        self,
        store: DocumentStore,
        clock: Scheduler,
        *,
        ttl_seconds: float = 10.0,
        rescan_empty: bool = False,
    ) -> None:
        self._store = store
        self._clock = clock
        self._ttl = float(ttl_seconds)
        self._rescan_empty = rescan_empty

        self._entry: CacheEntry | None = None
        self._generation = 0
        self._scan: asyncio.Future[list[TaskRecord]] | None = None
        self._scan_generation = -1
        self._writes: set[asyncio.Future[object]] = set()
        self.scan_count = 0

    @property
    def entry(self) -> CacheEntry | None:
        return self._entry

    def is_valid(self) -> bool:
        entry = self._entry
        if entry is None:
            return False
        if not entry.records and self._rescan_empty:
            return False
        return self._clock.now() - entry.scanned_at < self._ttl

    def invalidate(self) -> None:
        if self._entry is not None:
            logger.debug("Cache invalidated (%d tasks dropped)", len(self._entry.records))
        self._entry = None
        self._generation += 1

    async def get_tasks(self) -> list[TaskRecord]:
        if self.is_valid():
            assert self._entry is not None
            return self._entry.records

        # Concurrent callers share one rescan, unless it was invalidated meanwhile.
        if self._scan is None or self._scan.done() or self._scan_generation != self._generation:
            self._scan_generation = self._generation
            self._scan = asyncio.ensure_future(self._rebuild(self._generation))
        return await asyncio.shield(self._scan)

    async def run_write(self, write: Awaitable[T]) -> T:
        fut = asyncio.ensure_future(write)
        self._writes.add(fut)
        try:
            return await fut
        finally:
            self._writes.discard(fut)

    async def wait_for_writes(self) -> None:
        while self._writes:
            await asyncio.gather(*list(self._writes), return_exceptions=True)

    # ---- internals ----

    async def _rebuild(self, generation: int) -> list[TaskRecord]:
        await self.wait_for_writes()

        started = self._clock.now()
        records = await self._scan_vault()
        self.scan_count += 1

        if generation == self._generation:
            self._entry = CacheEntry(records=records, scanned_at=started)
        else:
            logger.debug("Cache invalidated during scan; result not kept")

        logger.info("Vault scan: %d tasks", len(records))
        return records

    async def _scan_vault(self) -> list[TaskRecord]:
        tasks: list[TaskRecord] = []
        for path in await self._store.list_documents():
            line_numbers = self._store.get_task_line_numbers(path)
            if not line_numbers:
                continue

            content = await self._store.cached_read(path)
            lines = content.split("\n")
            for line_index in line_numbers:
                if line_index >= len(lines) or not lines[line_index]:
                    continue
                tasks.append(parse_task_line(lines[line_index], line_index, path))
        return tasks
