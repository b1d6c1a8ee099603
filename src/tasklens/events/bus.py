# src/tasklens/events/bus.py

from __future__ import annotations

"""
Change broadcaster.

Two channels:
- status change: one task's checkbox flipped in the live editor
- refresh all: something changed that the cache cannot patch (edit form)

Delivery is synchronous, in publish order, to every subscriber.
One instance per AppState (created at bootstrap, closed at shutdown).
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..tasks.task_models import TaskAddress

logger = logging.getLogger(__name__)

StatusListener = Callable[[TaskAddress, bool], None]
RefreshListener = Callable[[], None]


@dataclass(slots=True)
class Subscription:
    _bus: EventBus
    _channel: str
    _listener: Callable[..., None]
    active: bool = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._bus._remove(self._channel, self._listener)


class EventBus:
    STATUS_CHANGE = "status-change"
    REFRESH_ALL = "refresh-all"

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable[..., None]]] = {
            self.STATUS_CHANGE: [],
            self.REFRESH_ALL: [],
        }

    def on_status_change(self, listener: StatusListener) -> Subscription:
        return self._add(self.STATUS_CHANGE, listener)

    def on_refresh_all(self, listener: RefreshListener) -> Subscription:
        return self._add(self.REFRESH_ALL, listener)

    def publish_status_change(self, address: TaskAddress, is_done: bool) -> None:
        self._publish(self.STATUS_CHANGE, address, is_done)

    def publish_refresh_all(self) -> None:
        logger.debug("refresh-all broadcast")
        self._publish(self.REFRESH_ALL)

    def subscriber_count(self, channel: str) -> int:
        return len(self._listeners.get(channel, []))

    def close(self) -> None:
        for listeners in self._listeners.values():
            listeners.clear()

    # ---- internals ----

    def _add(self, channel: str, listener: Callable[..., None]) -> Subscription:
        self._listeners[channel].append(listener)
        return Subscription(self, channel, listener)

    def _remove(self, channel: str, listener: Callable[..., None]) -> None:
        listeners = self._listeners.get(channel, [])
        if listener in listeners:
            listeners.remove(listener)

    def _publish(self, channel: str, *args: object) -> None:
        # Snapshot: a listener may unsubscribe while we iterate.
        for listener in list(self._listeners[channel]):
            try:
                listener(*args)
            except Exception:
                logger.exception("%s listener failed", channel)
