"""Bidirectional key <-> payload index."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class TwoWayMap(Generic[K, V]):
    """One-to-one mapping navigable from either side.

    Values are tracked by object identity, so unhashable payloads such as
    dicts can be indexed. Binding a key or a value that is already bound
    drops the previous pair first, which keeps both directions in step.
    """

    def __init__(self) -> None:
        self._left_right: dict[K, V] = {}
        self._right_left: dict[int, K] = {}

    def __len__(self) -> int:
        return len(self._left_right)

    def __contains__(self, key: object) -> bool:
        return key in self._left_right

    def __iter__(self) -> Iterator[K]:
        return iter(self._left_right)

    def set(self, key: K, value: V) -> None:
        if key in self._left_right:
            self.delete(key)
        if id(value) in self._right_left:
            self.delete_by_value(value)
        self._left_right[key] = value
        self._right_left[id(value)] = key

    def get(self, key: K) -> V | None:
        return self._left_right.get(key)

    def get_by_value(self, value: V) -> K | None:
        return self._right_left.get(id(value))

    def delete(self, key: K) -> bool:
        """Remove a pair by key; True only if both directions held it."""
        removed = 0
        if key in self._left_right:
            value = self._left_right[key]
            if self._right_left.get(id(value)) == key:
                del self._right_left[id(value)]
                removed += 1
            del self._left_right[key]
            removed += 1
        return removed == 2

    def delete_by_value(self, value: V) -> bool:
        """Remove a pair by value; True only if both directions held it."""
        removed = 0
        key = self._right_left.pop(id(value), None)
        if key is not None:
            removed += 1
            if key in self._left_right and self._left_right[key] is value:
                del self._left_right[key]
                removed += 1
        return removed == 2

    def clear(self) -> None:
        self._left_right.clear()
        self._right_left.clear()
