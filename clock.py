"""
Discrete-event clock for the Drone Relay Chain simulation
"""

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, List, Optional

NS_PER_S = 1_000_000_000


def to_ns(seconds: float) -> int:
    return int(round(seconds * NS_PER_S))


@dataclass(order=True)
class EventHandle:
    """A scheduled one-shot callback. Ordered by (time, priority, seq)."""
    time_ns: int
    priority: int
    seq: int
    fn: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class EventClock:
    """Single-threaded virtual time. Callbacks run serially and never preempt each other.

    Events due at the same instant run by ascending priority, then in the order
    they were scheduled.
    """

    def __init__(self):
        self._now_ns = 0
        self._queue: List[EventHandle] = []
        self._seq = itertools.count()
        self._stopped = False

    def now(self) -> float:
        return self._now_ns / NS_PER_S

    def now_ns(self) -> int:
        return self._now_ns

    def schedule(self, after: float, fn: Callable[[], None], priority: int = 0) -> EventHandle:
        if after < 0:
            raise ValueError(f"cannot schedule into the past (after={after})")
        handle = EventHandle(self._now_ns + to_ns(after), priority, next(self._seq), fn)
        heapq.heappush(self._queue, handle)
        return handle

    def cancel(self, handle: Optional[EventHandle]):
        if handle is not None:
            handle.cancelled = True

    def pending(self) -> int:
        return sum(1 for h in self._queue if not h.cancelled)

    def next_time(self) -> Optional[float]:
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)
        if not self._queue:
            return None
        return self._queue[0].time_ns / NS_PER_S

    def stop(self):
        """Make the current run() return once the running callback completes"""
        self._stopped = True

    def run(self, until: float):
        """Execute every event due at or before `until`, then park the clock there"""
        until_ns = to_ns(until)
        self._stopped = False
        while self._queue and not self._stopped:
            head = self._queue[0]
            if head.time_ns > until_ns:
                break
            heapq.heappop(self._queue)
            if head.cancelled:
                continue
            self._now_ns = head.time_ns
            head.fn()
        if not self._stopped and until_ns > self._now_ns:
            self._now_ns = until_ns
