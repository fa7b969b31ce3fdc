"""
Nutso Engine — Deferred Callbacks

A logical clock for one-shot and repeating callbacks (launch cooldown,
round-over delay, boss bomb loop). Everything runs on the caller's thread
when `advance` is called; nothing blocks.
"""

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, List, Optional


@dataclass(order=True)
class _Timer:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    interval: Optional[float] = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)


class TimerHandle:
    def __init__(self, timer: _Timer):
        self._timer = timer

    @property
    def cancelled(self) -> bool:
        return self._timer.cancelled

    def cancel(self) -> None:
        self._timer.cancelled = True


class Scheduler:
    def __init__(self):
        self.now = 0.0
        self._queue: List[_Timer] = []
        self._seq = itertools.count()

    def __len__(self) -> int:
        return sum(1 for t in self._queue if not t.cancelled)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _Timer(self.now + max(delay, 0.0), next(self._seq), callback)
        heapq.heappush(self._queue, timer)
        return TimerHandle(timer)

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        timer = _Timer(self.now + interval, next(self._seq), callback, interval=interval)
        heapq.heappush(self._queue, timer)
        return TimerHandle(timer)

    def advance(self, dt: float) -> int:
        """Move the clock forward and fire everything that fell due, in order."""
        target = self.now + dt
        fired = 0
        while self._queue and self._queue[0].due <= target:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = timer.due
            timer.callback()
            fired += 1
            if timer.interval is not None and not timer.cancelled:
                timer.due += timer.interval
                timer.seq = next(self._seq)
                heapq.heappush(self._queue, timer)
        self.now = target
        return fired

    def cancel_all(self) -> None:
        for timer in self._queue:
            timer.cancelled = True
        self._queue.clear()
