"""In-process event bus with per-subscriber synchronous or deferred delivery."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from core.scheduler import DeferredScheduler

EventHandler = Callable[..., None]

WILDCARD = "*"


class EventBus:
    """Dispatches events to subscribers by event name and to wildcard subscribers.

    Each bucket is an insertion-ordered mapping of handler -> sync flag, so a
    handler is registered at most once per event and keeps its original
    position when re-subscribed with a different mode.
    """

    def __init__(
        self,
        scheduler: DeferredScheduler | None = None,
        events: Iterable[str] | None = None,
        default_sync: bool = False,
    ) -> None:
        self.scheduler = scheduler or DeferredScheduler()
        self.default_sync = default_sync
        self._known = frozenset(events) if events is not None else None
        self._handlers: dict[str, dict[EventHandler, bool]] = {}

    def subscribe(
        self,
        event_name: str,
        handler: EventHandler,
        sync: bool | None = None,
    ) -> Callable[[], bool]:
        """Register a callback for an event and return its unsubscriber."""
        if self._known is not None and event_name != WILDCARD and event_name not in self._known:
            raise ValueError(f"Unknown event: {event_name}")
        bucket = self._handlers.setdefault(event_name, {})
        bucket[handler] = self.default_sync if sync is None else sync

        def unsubscribe() -> bool:
            return bucket.pop(handler, None) is not None

        return unsubscribe

    def emit(self, event_name: str, *args: Any) -> None:
        """Emit an event to wildcard subscribers, then to its own subscribers."""
        for name in (WILDCARD, event_name):
            bucket = self._handlers.get(name)
            if not bucket:
                continue
            for handler, sync in list(bucket.items()):
                if sync:
                    handler(event_name, *args)
                else:
                    self.scheduler.schedule(handler, event_name, *args)

    def subscriber_count(self, event_name: str | None = None) -> int:
        if event_name is None:
            return sum(len(bucket) for bucket in self._handlers.values())
        return len(self._handlers.get(event_name, {}))

    def clear(self) -> None:
        self._handlers.clear()
