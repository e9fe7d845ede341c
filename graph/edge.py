"""Edge connecting two nodes through one relationship."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from graph.node import Node
from graph.relationship import Relationship

T = TypeVar("T")


class Edge(Generic[T]):
    """Directed association ``source -> target``; does not own its nodes."""

    def __init__(
        self,
        source: Node[T],
        target: Node[T],
        relationship: Relationship[T],
        strict: bool | None = None,
    ) -> None:
        self.source = source
        self.target = target
        self.relationship = relationship.upgrade(self, strict=strict)

    def __repr__(self) -> str:
        return f"Edge({self.source!r} -[{self.relationship.kind}]-> {self.target!r})"

    def other(self, node: Node[T]) -> Node[T]:
        """The endpoint that is not ``node``."""
        return self.target if self.source is node else self.source

    def touches(self, node: Node[Any]) -> bool:
        return self.source is node or self.target is node
