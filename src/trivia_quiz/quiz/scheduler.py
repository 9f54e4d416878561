"""Host clock abstraction used by the quiz session.

The session never sleeps. It asks a scheduler to call it back later and keeps
the returned handle so it can cancel the callback when the question it
belonged to is left behind.
"""

from __future__ import annotations

import heapq
import itertools
from typing import Any, Callable, Protocol

Callback = Callable[[], Any]


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callback) -> Cancellable: ...


class ScheduledCall:
    """Handle returned by :class:`ManualScheduler`."""

    __slots__ = ("due", "callback", "cancelled")

    def __init__(self, due: float, callback: Callback) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock that fires callbacks only when advanced explicitly.

    Used by tests and by headless hosts that drive time themselves.
    Callbacks scheduled while advancing run in the same call if they fall
    due before the new time.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, ScheduledCall]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callback) -> ScheduledCall:
        if delay < 0:
            raise ValueError("delay must be non-negative")
        call = ScheduledCall(self.now + delay, callback)
        heapq.heappush(self._queue, (call.due, next(self._counter), call))
        return call

    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run due callbacks in order.

        Returns the number of callbacks that ran.
        """

        if seconds < 0:
            raise ValueError("seconds must be non-negative")
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            self.now = due
            if call.cancelled:
                continue
            call.cancelled = True
            call.callback()
            fired += 1
        self.now = target
        return fired
