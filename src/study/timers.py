"""
Clocks and timers for the session layer.

Every timed effect in a session (round countdown, auto-advance, calibration
pauses) is scheduled through a Clock, never through sleeps:

- AsyncioClock: real time, callbacks on an asyncio event loop
- ManualClock: simulated time that only moves when advance() is called

All times are milliseconds.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled."""

    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


@runtime_checkable
class Clock(Protocol):
    """Time source plus one-shot and repeating timers."""

    def now(self) -> float: ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle: ...


# =============================================================================
# Asyncio Clock
# =============================================================================


class _LoopTimer:
    """One-shot or repeating timer on an asyncio loop."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        delay_ms: float,
        callback: Callable[[], None],
        repeat: bool,
    ):
        self._loop = loop
        self._delay = delay_ms / 1000
        self._callback = callback
        self._repeat = repeat
        self._cancelled = False
        self._handle = loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        if self._repeat:
            self._handle = self._loop.call_later(self._delay, self._fire)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioClock:
    """Wall-clock time with callbacks scheduled on an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return time.time() * 1000

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        return _LoopTimer(self.loop, delay_ms, callback, repeat=False)

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        return _LoopTimer(self.loop, interval_ms, callback, repeat=True)


# =============================================================================
# Manual Clock
# =============================================================================


class _ManualTimer:
    def __init__(self, due: float, interval: float | None, callback: Callable[[], None]):
        self.due = due
        self.interval = interval
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualClock:
    """
    Deterministic simulated clock.

    Time stands still until advance() is called; due callbacks then run in
    time order (scheduling order for ties), and the clock reads each
    callback's due time while it runs.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list[tuple[float, int, _ManualTimer]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def _push(self, timer: _ManualTimer) -> None:
        heapq.heappush(self._queue, (timer.due, next(self._seq), timer))

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self._now + delay_ms, None, callback)
        self._push(timer)
        return timer

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self._now + interval_ms, interval_ms, callback)
        self._push(timer)
        return timer

    @property
    def pending(self) -> int:
        """Number of live scheduled timers."""
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    def advance(self, ms: float) -> None:
        """Move time forward by `ms`, firing everything that falls due."""
        target = self._now + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = due
            if timer.interval is not None:
                timer.due = due + timer.interval
                self._push(timer)
            timer.callback()
        self._now = target
