"""Standing subscriptions that keep conditional edges alive."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from graph.edge import Edge
from graph.events import GraphEvent
from graph.node import Node
from graph.relationship import Relationship

if TYPE_CHECKING:
    from graph.store import GraphStore

logger = logging.getLogger("statestore.conditions")

EdgeCondition = Callable[["GraphStore[Any]", Node[Any], Node[Any], Relationship[Any]], bool]


class WatchState(Enum):
    ACTIVE = "active"
    REMOVING = "removing"
    REMOVED = "removed"


class ConditionalEdgeWatch:
    """Re-checks an edge's keep-alive predicate on every store event.

    The watch unsubscribes itself before removing its edge, so the
    ``edge:removed`` event caused by that removal never reaches it again.
    Calls that were already queued before the shutdown are ignored by state.
    """

    def __init__(self, store: GraphStore[Any], edge: Edge[Any], condition: EdgeCondition) -> None:
        self.store = store
        self.edge = edge
        self.condition = condition
        self.state = WatchState.ACTIVE
        self._unsubscribe: Callable[[], bool] | None = None

    def start(self) -> ConditionalEdgeWatch:
        self._unsubscribe = self.store.subscribe(GraphEvent.WILDCARD, self, sync=False)
        return self

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.state = WatchState.REMOVED

    def __call__(self, event: str, *args: Any) -> None:
        if self.state is not WatchState.ACTIVE:
            return
        if event == GraphEvent.EDGE_REMOVED and args[0] is self.edge:
            self.stop()
            return
        if event == GraphEvent.NODE_REMOVED and self.edge in args[1]:
            self.stop()
            return

        edge = self.edge
        if self.condition(self.store, edge.source, edge.target, edge.relationship):
            return

        logger.debug("Condition failed for %r after %s; removing edge", edge, event)
        self.state = WatchState.REMOVING
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        try:
            self.store.remove_edge(edge)
        finally:
            self.state = WatchState.REMOVED
