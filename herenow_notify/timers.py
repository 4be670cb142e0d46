"""
Timer Queues
============

Cancellable scheduled-task primitive: ``arm(delay_s, fn) -> handle`` and
``cancel(handle)``.

Implementations:
- ManualTimerQueue: virtual time on a ManualClock; fires in due order
- AsyncioTimerQueue: ``loop.call_later`` on the service's event loop
"""

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Protocol, Union

from herenow_store.clock import ManualClock


class TimerQueue(Protocol):
    """Protocol for timer facilities (interface)."""

    def arm(self, delay_s: float, fn: Callable[[], None]) -> Any:
        """Run fn once after delay_s seconds. Returns a handle for cancel()."""
        ...

    def cancel(self, handle: Any) -> None:
        """Disarm a timer. No error if it already fired or was cancelled."""
        ...


@dataclass(order=True)
class ManualTimer:
    due: datetime
    seq: int
    fn: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class ManualTimerQueue:
    """
    Timer queue driven by a ManualClock.

    Firing sets the clock to the timer's due time first, so callbacks
    observe "now" exactly as they would in real time. Ties fire in arm
    order.

    Usage:
        clock = ManualClock(start)
        timers = ManualTimerQueue(clock)
        timers.arm(60, lambda: print("fired"))
        timers.advance(minutes=1)  # prints "fired"
    """

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self._heap: List[ManualTimer] = []
        self._seq = itertools.count()

    def arm(self, delay_s: float, fn: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(
            due=self.clock.now() + timedelta(seconds=max(0.0, delay_s)),
            seq=next(self._seq),
            fn=fn,
        )
        heapq.heappush(self._heap, timer)
        return timer

    def cancel(self, handle: ManualTimer) -> None:
        handle.cancelled = True

    def pending_count(self) -> int:
        return sum(1 for timer in self._heap if not timer.cancelled)

    def next_due(self) -> Optional[datetime]:
        self._drop_cancelled()
        return self._heap[0].due if self._heap else None

    def _drop_cancelled(self) -> None:
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)

    def run_until(self, moment: datetime) -> int:
        """
        Fire every timer due at or before moment (including timers armed
        by the callbacks), then leave the clock at moment.

        Returns:
            Number of timers fired
        """
        fired = 0
        while True:
            self._drop_cancelled()
            if not self._heap or self._heap[0].due > moment:
                break
            timer = heapq.heappop(self._heap)
            if timer.due > self.clock.now():
                self.clock.set(timer.due)
            timer.cancelled = True
            timer.fn()
            fired += 1
        if moment > self.clock.now():
            self.clock.set(moment)
        return fired

    def advance(self, delta: Union[timedelta, float, None] = None, **kwargs) -> int:
        """Move virtual time forward, firing due timers on the way."""
        if delta is None:
            delta = timedelta(**kwargs)
        elif not isinstance(delta, timedelta):
            delta = timedelta(seconds=float(delta))
        return self.run_until(self.clock.now() + delta)

    def __len__(self) -> int:
        return self.pending_count()


class AsyncioTimerQueue:
    """Timers on an asyncio event loop (``loop.call_later``)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.get_running_loop()

    def arm(self, delay_s: float, fn: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay_s), fn)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()
