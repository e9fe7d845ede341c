"""Typed relationship tags bound to edges."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from graph.errors import RelationshipAlreadyAttachedError

if TYPE_CHECKING:
    from graph.edge import Edge

logger = logging.getLogger("statestore.relationship")

T = TypeVar("T")


class Relationship(Generic[T]):
    """Describes what kind of connection an edge represents.

    Subclass it once per kind (``class IsFriendOf(Relationship): ...``); the
    runtime type is the discriminant, instances carry no data by default.
    A relationship starts detached and becomes attached to exactly one edge
    when that edge is constructed.
    """

    strict: ClassVar[bool] = True

    def __init__(self) -> None:
        self._edge: Edge[T] | None = None

    def __repr__(self) -> str:
        state = "attached" if self.attached else "detached"
        return f"{self.kind}({state})"

    @classmethod
    def kind_name(cls) -> str:
        return cls.__qualname__

    @property
    def kind(self) -> str:
        return type(self).kind_name()

    @property
    def attached(self) -> bool:
        return self._edge is not None

    @property
    def edge(self) -> Edge[T] | None:
        return self._edge

    def matches(self, relationship_type: type[Relationship[Any]]) -> bool:
        """Exact runtime-type match; subclasses do not match their parents."""
        return type(self) is relationship_type

    def upgrade(self, edge: Edge[T], strict: bool | None = None) -> Relationship[T]:
        """Bind this relationship to ``edge``."""
        if self._edge is not None and self._edge is not edge:
            if self.strict if strict is None else strict:
                raise RelationshipAlreadyAttachedError(
                    f"{self.kind} is already attached to another edge"
                )
            logger.warning("Re-binding attached relationship %s to a new edge", self.kind)
        self._edge = edge
        return self
