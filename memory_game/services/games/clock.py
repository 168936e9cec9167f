from typing import Callable, Optional

from .timers import PRIORITY_TICK, TimerHandle, TimerQueue


class SessionClock:
    """Repeating per-second tick posted on a session's timer queue.

    Only one ticker exists at a time: ``start`` cancels the previous one
    before arming a new one, so repeated start/reset cycles never stack.
    """

    def __init__(self, timers: TimerQueue, on_tick: Callable[[], None], interval_ms: int = 1000):
        self._timers = timers
        self._on_tick = on_tick
        self._interval_ms = interval_ms
        self._handle: Optional[TimerHandle] = None

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def start(self) -> None:
        self.stop()
        self._handle = self._timers.call_every(self._interval_ms, self._on_tick, priority=PRIORITY_TICK)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
