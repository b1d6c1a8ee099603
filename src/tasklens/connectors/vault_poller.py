# src/tasklens/connectors/vault_poller.py

from __future__ import annotations

"""
Vault poller.

A small polling loop that:
- asks the store for documents changed outside this process,
- lets the store fan that out as ordinary change notifications.

Views decide what to do with a notification (settle delay, echo check);
the poller only detects.
"""

import asyncio
import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class PollableStore(Protocol):
    async def poll_changes(self) -> list[str]: ...


async def run_vault_poller(
        store: PollableStore,
        *,
        interval_seconds: float = 2.0,
) -> None:
    """
    Every interval_seconds call store.poll_changes().

    Failures are logged and polling continues.
    To stop the poller, cancel the coroutine/task.
    """
    sleep_s = max(0.05, float(interval_seconds))

    while True:
        try:
            changed = await store.poll_changes()
        except Exception:
            logger.exception("poll_changes failed")
            changed = []

        if changed:
            logger.debug("Poller saw %d changed document(s)", len(changed))

        await asyncio.sleep(sleep_s)
