"""Cancellable one-shot timers on the event loop, plus a manual fake clock."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    """Token returned by `Scheduler.schedule`; cancel is idempotent."""

    def cancel(self) -> None: ...

    @property
    def active(self) -> bool: ...


class Scheduler(Protocol):
    """Wall-clock source and one-shot timer factory injected into state machines."""

    def now_ms(self) -> float: ...

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...


class _LoopTimerHandle:
    def __init__(self) -> None:
        self._handle: Optional[asyncio.TimerHandle] = None
        self._done = False

    @property
    def active(self) -> bool:
        return not self._done

    def cancel(self) -> None:
        if self._done:
            return
        self._done = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioScheduler:
    """Scheduler backed by `loop.call_later` on the running event loop."""

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._loop = loop
        self._logger = logger or logging.getLogger("scheduling")

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now_ms(self) -> float:
        return self.loop.time() * 1000.0

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        token = _LoopTimerHandle()

        def fire() -> None:
            if token._done:
                return
            token._done = True
            token._handle = None
            try:
                callback()
            except Exception as error:
                self._logger.error("Timer callback failed: %s", error, exc_info=True)

        token._handle = self.loop.call_later(max(0.0, delay_ms) / 1000.0, fire)
        return token


class _ManualTimerHandle:
    def __init__(self, deadline_ms: float, callback: Callable[[], None]):
        self.deadline_ms = deadline_ms
        self.callback = callback
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic fake clock; time only moves through `advance`."""

    def __init__(self, start_ms: float = 0.0):
        self._now_ms = float(start_ms)
        self._queue: list[tuple[float, int, _ManualTimerHandle]] = []
        self._sequence = itertools.count()

    def now_ms(self) -> float:
        return self._now_ms

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualTimerHandle(self._now_ms + max(0.0, delay_ms), callback)
        heapq.heappush(self._queue, (handle.deadline_ms, next(self._sequence), handle))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._queue if handle.active)

    def advance(self, delta_ms: float) -> None:
        """Move the clock forward, firing due timers in deadline order."""
        target = self._now_ms + max(0.0, delta_ms)
        while self._queue and self._queue[0][0] <= target:
            deadline, _, handle = heapq.heappop(self._queue)
            if not handle.active:
                continue
            self._now_ms = max(self._now_ms, deadline)
            handle.fired = True
            handle.callback()
        self._now_ms = target

    def advance_to(self, timestamp_ms: float) -> None:
        self.advance(timestamp_ms - self._now_ms)
