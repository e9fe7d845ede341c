"""Event names emitted by the graph store and the argument shapes they carry."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, TypeAlias


class GraphEvent(StrEnum):
    """Store event names; ``WILDCARD`` subscribes to every event."""

    NODE_ADDED = "node:added"
    NODE_REMOVED = "node:removed"
    NODE_DATA_UPDATED = "node:data:updated"
    EDGE_ADDED = "edge:added"
    EDGE_REMOVED = "edge:removed"
    WILDCARD = "*"


STORE_EVENTS: frozenset[str] = frozenset(
    event.value for event in GraphEvent if event is not GraphEvent.WILDCARD
)

# node:added        -> (node,)
# node:removed      -> (node, removed_edges)
# node:data:updated -> (node, operations)
# edge:added        -> (edge,)
# edge:removed      -> (edge,)

# Anything the store can resolve to a node: the Node itself, its payload
# object, or the string key it was registered under.
NodeRef: TypeAlias = Any
