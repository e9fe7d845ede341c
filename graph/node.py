"""Graph node wrapping a single payload object."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

from core.scheduler import DeferredScheduler
from graph.patching import OperationLike, PatchOperation, apply_operations

T = TypeVar("T")

PayloadSubscriber = Callable[[Any, list[PatchOperation]], None]


class Node(Generic[T]):
    """Owns one payload and notifies its own subscribers when it is patched.

    Nodes compare by identity; the payload object is the node's identity
    inside the store.
    """

    def __init__(self, data: T, scheduler: DeferredScheduler | None = None) -> None:
        self.data = data
        self._scheduler = scheduler or DeferredScheduler()
        self._subscribers: dict[PayloadSubscriber, bool] = {}

    def __repr__(self) -> str:
        return f"Node({self.data!r})"

    def patch(self, operations: Iterable[OperationLike]) -> Node[T]:
        """Apply JSON Patch operations to the payload, then notify subscribers."""
        applied = apply_operations(self.data, operations)
        for subscriber, sync in list(self._subscribers.items()):
            if sync:
                subscriber(self.data, applied)
            else:
                self._scheduler.schedule(subscriber, self.data, applied)
        return self

    def subscribe(self, fn: PayloadSubscriber, sync: bool = False) -> Callable[[], bool]:
        self._subscribers[fn] = sync

        def unsubscribe() -> bool:
            return self._subscribers.pop(fn, None) is not None

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
