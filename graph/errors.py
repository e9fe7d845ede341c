"""Exception types raised by the graph engine."""

from __future__ import annotations


class StatestoreError(Exception):
    """Base class for graph engine failures."""


class RelationshipAlreadyAttachedError(StatestoreError, RuntimeError):
    """Raised when a bound relationship is upgraded onto a second edge."""


class PatchApplyError(StatestoreError, ValueError):
    """Raised when a payload patch cannot be applied."""
