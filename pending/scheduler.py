"""Timer scheduling behind a protocol so tick logic runs without wall-clock waits."""
from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Prevent the callback from running. Safe to call more than once."""
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Protocol for one-shot timer sources."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run *callback* once after *delay_ms* milliseconds."""
        ...


class ManualTimer:
    def __init__(self, due_ms: float, callback: Callable[[], None]) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual millisecond clock for tests and headless hosts.

    Nothing runs until ``advance()`` moves virtual time. Callbacks due at the
    same time run in registration order; callbacks scheduled while advancing
    run in the same call if they fall due before the new time.
    """

    def __init__(self) -> None:
        self.now_ms: float = 0.0
        self._heap: list[tuple[float, int, ManualTimer]] = []
        self._order = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ManualTimer:
        if delay_ms < 0:
            raise ValueError("delay_ms must be non-negative")
        timer = ManualTimer(self.now_ms + delay_ms, callback)
        heapq.heappush(self._heap, (timer.due_ms, next(self._order), timer))
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._heap if not t.cancelled)

    def advance(self, ms: float) -> int:
        """Move virtual time forward by *ms* and fire due callbacks. Returns how many ran."""
        target = self.now_ms + ms
        fired = 0
        while self._heap and self._heap[0][0] <= target:
            due, _, timer = heapq.heappop(self._heap)
            if timer.cancelled:
                continue
            self.now_ms = due
            timer.callback()
            fired += 1
        self.now_ms = target
        return fired

    def run_next(self) -> bool:
        """Jump straight to the next live timer and fire it."""
        while self._heap:
            due, _, timer = heapq.heappop(self._heap)
            if timer.cancelled:
                continue
            self.now_ms = due
            timer.callback()
            return True
        return False


class AsyncioScheduler:
    """Schedules on a running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        return loop.call_later(delay_ms / 1000.0, callback)
