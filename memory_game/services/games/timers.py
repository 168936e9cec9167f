import heapq
import itertools
from typing import Callable, List, Optional, Tuple

# Lower runs first when two timers fall due at the same instant:
# a pending turn resolution is processed before a clock tick.
PRIORITY_RESOLVE = 0
PRIORITY_TICK = 1


class TimerHandle:
    __slots__ = ('callback', 'priority', 'interval_ms', 'due_ms', 'cancelled')

    def __init__(self, callback: Callable[[], None], priority: int, interval_ms: Optional[int], due_ms: int):
        self.callback = callback
        self.priority = priority
        self.interval_ms = interval_ms
        self.due_ms = due_ms
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class TimerQueue:
    """Single-threaded cooperative timer queue over a virtual millisecond clock.

    Nothing fires on its own: callers move time forward with ``advance`` or
    ``advance_to`` and every callback that falls due runs to completion, in
    ``(due time, priority, scheduling order)`` order, before the next one.
    """

    def __init__(self) -> None:
        self._now_ms = 0
        self._heap: List[Tuple[int, int, int, TimerHandle]] = []
        self._seq = itertools.count()

    @property
    def now_ms(self) -> int:
        return self._now_ms

    def call_later(self, delay_ms: int, callback: Callable[[], None], priority: int = PRIORITY_RESOLVE) -> TimerHandle:
        return self._push(TimerHandle(callback, priority, None, self._now_ms + max(0, int(delay_ms))))

    def call_every(self, interval_ms: int, callback: Callable[[], None], priority: int = PRIORITY_TICK) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError(f'interval_ms must be positive, got {interval_ms}')
        return self._push(TimerHandle(callback, priority, int(interval_ms), self._now_ms + int(interval_ms)))

    def pending(self) -> int:
        return sum(1 for entry in self._heap if not entry[3].cancelled)

    def advance(self, delta_ms: int) -> int:
        return self.advance_to(self._now_ms + max(0, int(delta_ms)))

    def advance_to(self, now_ms: int) -> int:
        """Run every callback due at or before ``now_ms``; return how many ran."""
        fired = 0
        while self._heap and self._heap[0][0] <= now_ms:
            due, _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            self._now_ms = max(self._now_ms, due)
            if handle.interval_ms is not None:
                handle.due_ms = due + handle.interval_ms
                self._push(handle)
            else:
                handle.cancelled = True
            handle.callback()
            fired += 1
        self._now_ms = max(self._now_ms, now_ms)
        return fired

    def _push(self, handle: TimerHandle) -> TimerHandle:
        heapq.heappush(self._heap, (handle.due_ms, handle.priority, next(self._seq), handle))
        return handle
