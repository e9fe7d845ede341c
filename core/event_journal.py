"""Structured JSONL journal of graph store events."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from graph.edge import Edge
from graph.events import GraphEvent
from graph.node import Node
from graph.patching import PatchOperation
from graph.store import GraphStore


class EventJournal:
    """Appends one JSON line per store event and mirrors it to logging."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("statestore.journal")
        self._store: GraphStore[Any] | None = None
        self._labels: dict[Node[Any], str] = {}
        self._unsubscribe: Callable[[], bool] | None = None

    def attach(self, store: GraphStore[Any]) -> EventJournal:
        """Record every event of ``store`` synchronously."""
        self._store = store
        self._unsubscribe = store.subscribe(GraphEvent.WILDCARD, self.record, sync=True)
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def record(self, event: str, *args: Any) -> dict[str, Any]:
        """Append one JSONL event."""
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "event": str(event),
        }
        entry.update(self._describe(event, args))
        line = json.dumps(entry, ensure_ascii=True, default=str)
        with self.log_path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")
        self.logger.info(line)
        return entry

    def _describe(self, event: str, args: tuple[Any, ...]) -> dict[str, Any]:
        if event in (GraphEvent.EDGE_ADDED, GraphEvent.EDGE_REMOVED):
            return {"edge": self._edge(args[0])}
        node = args[0]
        details: dict[str, Any] = {"node": self._node(node)}
        if event == GraphEvent.NODE_REMOVED:
            details["edges"] = [self._edge(edge) for edge in args[1]]
        elif event == GraphEvent.NODE_DATA_UPDATED:
            details["operations"] = [op.to_dict() for op in args[1] if isinstance(op, PatchOperation)]
        return details

    def _node(self, node: Node[Any]) -> str:
        # keys are gone from the store by the time node:removed is delivered
        key = self._store.key_for(node) if self._store is not None else None
        if key:
            self._labels[node] = key
        return key or self._labels.get(node) or repr(node.data)

    def _edge(self, edge: Edge[Any]) -> dict[str, str]:
        return {
            "source": self._node(edge.source),
            "target": self._node(edge.target),
            "relationship": edge.relationship.kind,
        }
