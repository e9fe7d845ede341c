"""Graph store: owns nodes, edges, the key index and the event bus."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from functools import partial
from typing import Any, Generic, TypeVar

from core.event_bus import EventBus
from core.scheduler import DeferredScheduler
from core.settings import StatestoreSettings
from graph.conditions import ConditionalEdgeWatch, EdgeCondition
from graph.edge import Edge
from graph.events import STORE_EVENTS, GraphEvent, NodeRef
from graph.node import Node
from graph.patching import OperationLike, PatchOperation
from graph.relationship import Relationship
from graph.two_way_map import TwoWayMap

logger = logging.getLogger("statestore.store")

T = TypeVar("T")

StoreSubscriber = Callable[..., None]


class GraphStore(Generic[T]):
    """In-memory labeled graph with change notifications.

    Payloads are registered by object identity and wrapped in :class:`Node`.
    Every node has an adjacency entry holding the edges that touch it, and
    every edge sits in the adjacency entries of both of its endpoints.
    Mutations emit ``node:*`` / ``edge:*`` events through an :class:`EventBus`;
    subscribers choose synchronous or deferred delivery.

    Strings passed where a node is expected are always treated as keys.
    """

    def __init__(
        self,
        settings: StatestoreSettings | None = None,
        scheduler: DeferredScheduler | None = None,
    ) -> None:
        self.settings = settings or StatestoreSettings()
        # Deferred deliveries queued while no asyncio loop runs stay here until
        # scheduler.drain() or the next delivery scheduled from inside a loop.
        self.scheduler = scheduler or DeferredScheduler()
        self._bus = EventBus(
            scheduler=self.scheduler,
            events=STORE_EVENTS,
            default_sync=self.settings.events.default_sync,
        )
        # payload identity -> node
        self._nodes: dict[int, Node[T]] = {}
        # node -> insertion-ordered set of touching edges
        self._node_edges: dict[Node[T], dict[Edge[T], None]] = {}
        self._keys: TwoWayMap[str, T] = TwoWayMap()
        self._node_unsubscribers: dict[Node[T], Callable[[], bool]] = {}
        self._watches: dict[Edge[T], ConditionalEdgeWatch] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, ref: object) -> bool:
        return self.get_node(ref) is not None

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(
        self,
        event: GraphEvent | str,
        subscriber: StoreSubscriber,
        sync: bool | None = None,
    ) -> Callable[[], bool]:
        """Attach a subscriber to one event name or to ``*``.

        The subscriber is called as ``subscriber(event, *args)``.
        """
        return self._bus.subscribe(str(event), subscriber, sync=sync)

    def _emit(self, event: GraphEvent, *args: Any) -> None:
        self._bus.emit(event.value, *args)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, data: T, key: str | None = None) -> Node[T]:
        """Register ``data`` as a node, optionally under a string key.

        Adding an already registered payload returns its node untouched.
        """
        if isinstance(data, str):
            raise TypeError("String payloads cannot be told apart from keys")
        existing = self._nodes.get(id(data))
        if existing is not None:
            return existing

        node: Node[T] = Node(data, scheduler=self.scheduler)
        self._nodes[id(data)] = node
        self._node_edges[node] = {}
        if key:
            previous = self._keys.get(key)
            if previous is not None:
                logger.warning("Key %r moved to a new node", key)
            self._keys.set(key, data)
        self._node_unsubscribers[node] = node.subscribe(
            partial(self._forward_patch, node), sync=True
        )
        logger.debug("Added node %r (key=%r)", node, key)
        self._emit(GraphEvent.NODE_ADDED, node)
        return node

    def _forward_patch(self, node: Node[T], data: T, operations: list[PatchOperation]) -> None:
        self._emit(GraphEvent.NODE_DATA_UPDATED, node, operations)

    def get_node(self, ref: NodeRef) -> Node[T] | None:
        """Resolve a node from a node, a payload or a key."""
        if isinstance(ref, Node):
            return ref if self._nodes.get(id(ref.data)) is ref else None
        if isinstance(ref, str):
            payload = self._keys.get(ref)
            if payload is None:
                return None
            ref = payload
        return self._nodes.get(id(ref))

    def key_for(self, ref: NodeRef) -> str | None:
        node = self.get_node(ref)
        if node is None:
            return None
        return self._keys.get_by_value(node.data)

    def remove_node(self, ref: NodeRef) -> bool:
        """Remove a node and detach its edges from every neighbour.

        Returns True when the adjacency entry, the node entry, the change
        forwarding subscription and (if one was bound) the key were all
        actually removed.
        """
        node = self.get_node(ref)
        if node is None:
            return False

        edges = self._node_edges.get(node, {})
        removed_edges = set(edges)
        for edge in list(edges):
            peer_edges = self._node_edges.get(edge.other(node))
            if peer_edges is not None:
                peer_edges.pop(edge, None)
            watch = self._watches.pop(edge, None)
            if watch is not None:
                watch.stop()

        unsubscribe = self._node_unsubscribers.pop(node, None)
        forwarding_removed = unsubscribe() if unsubscribe is not None else False
        edges_removed = self._node_edges.pop(node, None) is not None
        key_removed = True
        if self._keys.get_by_value(node.data) is not None:
            key_removed = self._keys.delete_by_value(node.data)
        node_removed = self._nodes.pop(id(node.data), None) is not None

        logger.debug("Removed node %r with %d edge(s)", node, len(removed_edges))
        self._emit(GraphEvent.NODE_REMOVED, node, removed_edges)
        return edges_removed and node_removed and key_removed and forwarding_removed

    def patch_node(self, ref: NodeRef, operations: Iterable[OperationLike]) -> Node[T] | None:
        """Apply JSON Patch operations to a node's payload.

        Returns None for an unknown node. Patch failures raise
        :class:`~graph.errors.PatchApplyError`.
        """
        node = self.get_node(ref)
        if node is None:
            return None
        return node.patch(operations)

    def iterate(self, condition: Callable[[Node[T]], bool] | None = None) -> Iterator[Node[T]]:
        """Lazily yield registered nodes, optionally filtered.

        The node map is not snapshotted; do not add or remove nodes while
        the iterator is live.
        """
        for node in self._nodes.values():
            if condition is None or condition(node):
                yield node

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(
        self,
        source: NodeRef,
        target: NodeRef,
        relationship: Relationship[T],
        condition: EdgeCondition | None = None,
    ) -> Edge[T] | None:
        """Connect two registered nodes.

        With ``condition``, the edge is removed as soon as
        ``condition(store, source, target, relationship)`` turns false when
        re-evaluated after a later store event.
        """
        source_node = self.get_node(source)
        target_node = self.get_node(target)
        if source_node is None or target_node is None:
            return None

        edge = Edge(
            source_node,
            target_node,
            relationship,
            strict=self.settings.relationships.strict_upgrade,
        )
        self._node_edges[source_node][edge] = None
        self._node_edges[target_node][edge] = None
        logger.debug("Added edge %r", edge)
        self._emit(GraphEvent.EDGE_ADDED, edge)

        if condition is not None:
            self._watches[edge] = ConditionalEdgeWatch(self, edge, condition).start()
        return edge

    def remove_edge(
        self,
        edge_or_source: Edge[T] | NodeRef,
        target: NodeRef | None = None,
        relationship_type: type[Relationship[Any]] | None = None,
    ) -> bool:
        """Remove one edge, or every ``source -> target`` edge of a relationship type.

        Emits ``edge:removed`` once per edge that was still in the graph.
        Returns True if at least one edge left both endpoints.
        """
        if isinstance(edge_or_source, Edge):
            candidates = [edge_or_source]
        else:
            source_node = self.get_node(edge_or_source)
            target_node = self.get_node(target) if target is not None else None
            if source_node is None or target_node is None or relationship_type is None:
                return False
            candidates = [
                edge
                for edge in self._node_edges.get(source_node, {})
                if edge.source is source_node
                and edge.target is target_node
                and edge.relationship.matches(relationship_type)
            ]

        removed = 0
        for edge in candidates:
            detached, from_both = self._detach_edge(edge)
            if not detached:
                continue
            if from_both:
                removed += 1
            watch = self._watches.pop(edge, None)
            if watch is not None:
                watch.stop()
            logger.debug("Removed edge %r", edge)
            self._emit(GraphEvent.EDGE_REMOVED, edge)
        return removed > 0

    def _detach_edge(self, edge: Edge[T]) -> tuple[bool, bool]:
        """Drop ``edge`` from its endpoints; returns (touched any, removed from both)."""
        count = 0
        endpoints = {edge.source, edge.target}
        for node in endpoints:
            node_edges = self._node_edges.get(node)
            if node_edges is not None and edge in node_edges:
                del node_edges[edge]
                count += 1
        return count > 0, count == len(endpoints)

    def edges(self) -> list[Edge[T]]:
        """All distinct edges currently in the graph."""
        seen: dict[Edge[T], None] = {}
        for node_edges in self._node_edges.values():
            seen.update(node_edges)
        return list(seen)

    def edges_for(
        self,
        ref: NodeRef,
        relationship_type: type[Relationship[Any]] | None = None,
    ) -> list[Edge[T]] | None:
        """Edges touching a node, optionally only those of one relationship type.

        Returns None if the node is unknown.
        """
        node = self.get_node(ref)
        if node is None:
            return None
        edges = self._node_edges.get(node)
        if edges is None:
            return None
        if relationship_type is None:
            return list(edges)
        return [edge for edge in edges if edge.relationship.matches(relationship_type)]

    def relationships_for(
        self,
        ref: NodeRef,
        relationship_type: type[Relationship[Any]],
    ) -> list[Edge[T]] | None:
        return self.edges_for(ref, relationship_type)

    def has_relationship(
        self,
        source: NodeRef,
        target: NodeRef,
        relationship_type: type[Relationship[Any]],
    ) -> bool:
        source_node = self.get_node(source)
        target_node = self.get_node(target)
        if source_node is None or target_node is None:
            return False
        return any(
            edge.source is source_node
            and edge.target is target_node
            and edge.relationship.matches(relationship_type)
            for edge in self._node_edges.get(source_node, {})
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Drop every node, edge, key and subscriber without emitting events."""
        self._bus.clear()
        for unsubscribe in self._node_unsubscribers.values():
            unsubscribe()
        self._node_unsubscribers.clear()
        for watch in self._watches.values():
            watch.stop()
        self._watches.clear()
        self._node_edges.clear()
        self._keys.clear()
        self._nodes.clear()
        logger.debug("Store reset")
