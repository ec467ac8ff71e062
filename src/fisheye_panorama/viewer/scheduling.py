"""Frame scheduling primitives used to coalesce renders."""
from __future__ import annotations

import itertools
from typing import Callable, Dict, Hashable, Protocol


class FrameScheduler(Protocol):
    """Runs a callback before the next display refresh."""

    def schedule(self, callback: Callable[[], None]) -> Hashable:
        ...

    def cancel(self, token: Hashable) -> None:
        ...


class ManualFrameScheduler:
    """Queue frame callbacks until :meth:`run_pending` is called.

    Used for headless rendering and in tests where the caller decides when a
    display refresh happens.
    """

    def __init__(self) -> None:
        self._pending: Dict[int, Callable[[], None]] = {}
        self._counter = itertools.count(1)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def schedule(self, callback: Callable[[], None]) -> int:
        token = next(self._counter)
        self._pending[token] = callback
        return token

    def cancel(self, token: Hashable) -> None:
        self._pending.pop(token, None)

    def run_pending(self) -> int:
        """Run every queued callback once and return how many ran."""
        callbacks = list(self._pending.values())
        self._pending.clear()
        for callback in callbacks:
            callback()
        return len(callbacks)
