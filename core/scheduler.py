"""Deferred work queue used for non-synchronous event delivery."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from typing import Any

logger = logging.getLogger("statestore.scheduler")


class DeferredScheduler:
    """Runs callbacks after the current synchronous call stack unwinds.

    Inside a running asyncio loop every unit goes through ``loop.call_soon``,
    so a single ``await asyncio.sleep(0)`` lets all previously scheduled units
    run in FIFO order. Without a loop, units wait in a local queue until the
    host calls :meth:`drain`, or until the next unit is scheduled from inside
    a running loop, which hands the backlog to that loop ahead of itself.
    """

    def __init__(self) -> None:
        self._pending: deque[tuple[Callable[..., Any], tuple[Any, ...]]] = deque()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue one independent unit of work."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._pending.append((callback, args))
            return
        while self._pending:
            queued, queued_args = self._pending.popleft()
            loop.call_soon(self._run, queued, queued_args)
        loop.call_soon(self._run, callback, args)

    def drain(self) -> int:
        """Run queued units, including ones queued while draining."""
        executed = 0
        while self._pending:
            callback, args = self._pending.popleft()
            self._run(callback, args)
            executed += 1
        return executed

    def clear(self) -> None:
        self._pending.clear()

    @staticmethod
    def _run(callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("Deferred callback %r failed", callback)
