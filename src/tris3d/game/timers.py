"""Cooperative timer queue driven by the host loop.

Nothing here runs on its own thread. A frame loop (pygame, a test, a gym
step) calls ``advance`` with the elapsed milliseconds and every timer that
came due fires synchronously, in due order, from inside that call.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import Callable, List, Optional, Tuple


logger = logging.getLogger(__name__)


class TimerHandle:
    def __init__(self, scheduler: "Scheduler", callback: Callable[[], None],
                 due_ms: float, interval_ms: Optional[float]) -> None:
        self._scheduler = scheduler
        self.callback = callback
        self.due_ms = due_ms
        self.interval_ms = interval_ms
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    def __init__(self) -> None:
        self.now_ms: float = 0.0
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._queue, (handle.due_ms, next(self._seq), handle))

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self, callback, self.now_ms + max(0.0, delay_ms), None)
        self._push(handle)
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        handle = TimerHandle(self, callback, self.now_ms + interval_ms, interval_ms)
        self._push(handle)
        return handle

    def advance(self, elapsed_ms: float) -> int:
        """Move the clock forward and fire due timers. Returns the number fired."""
        target = self.now_ms + max(0.0, elapsed_ms)
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now_ms = due
            if handle.interval_ms is None:
                handle.cancelled = True
            else:
                handle.due_ms = due + handle.interval_ms
                self._push(handle)
            handle.callback()
            fired += 1
        self.now_ms = target
        return fired

    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def cancel_all(self) -> None:
        for _, _, handle in self._queue:
            handle.cancel()
        self._queue.clear()
