"""Relational state store: nodes, typed edges and change events."""

from graph.edge import Edge
from graph.errors import PatchApplyError, RelationshipAlreadyAttachedError, StatestoreError
from graph.events import GraphEvent
from graph.node import Node
from graph.patching import PatchOperation, apply_operations, diff_operations
from graph.relationship import Relationship
from graph.store import GraphStore
from graph.two_way_map import TwoWayMap

__all__ = [
    "Edge",
    "GraphEvent",
    "GraphStore",
    "Node",
    "PatchApplyError",
    "PatchOperation",
    "Relationship",
    "RelationshipAlreadyAttachedError",
    "StatestoreError",
    "TwoWayMap",
    "apply_operations",
    "diff_operations",
]
