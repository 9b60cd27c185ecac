"""Per-key cancel-and-reschedule debouncing over a pluggable scheduler."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback after a delay and hands back a cancellable handle."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by the running event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


@dataclass(slots=True)
class _ManualTimer:
    due: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass(slots=True)
class ManualScheduler:
    """Virtual clock: timers fire only when :meth:`advance` moves time past them."""

    now: float = 0.0
    _timers: list[tuple[float, int, _ManualTimer]] = field(default_factory=list)
    _sequence: itertools.count = field(default_factory=itertools.count)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(due=self.now + delay, callback=callback)
        heapq.heappush(self._timers, (timer.due, next(self._sequence), timer))
        return timer

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire due timers in order; returns how many fired."""
        target = self.now + seconds
        fired = 0
        while self._timers and self._timers[0][0] <= target:
            due, _, timer = heapq.heappop(self._timers)
            self.now = due
            if timer.cancelled:
                continue
            timer.callback()
            fired += 1
        self.now = target
        return fired

    def pending(self) -> int:
        return sum(1 for _, _, timer in self._timers if not timer.cancelled)


class Debouncer:
    """Delays a callback per key until no new trigger arrives within ``delay`` seconds."""

    def __init__(self, delay: float, scheduler: Scheduler) -> None:
        self.delay = delay
        self._scheduler = scheduler
        self._handles: dict[Hashable, TimerHandle] = {}

    def trigger(self, key: Hashable, callback: Callable[[], None]) -> None:
        """(Re)start the timer for ``key``; only the latest callback runs."""
        previous = self._handles.pop(key, None)
        if previous is not None:
            previous.cancel()

        def fire() -> None:
            self._handles.pop(key, None)
            callback()

        self._handles[key] = self._scheduler.call_later(self.delay, fire)

    def cancel(self, key: Hashable) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending timer and return how many were dropped."""
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            handle.cancel()
        if handles:
            logger.debug("Cancelled %d pending debounce timers", len(handles))
        return len(handles)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._handles

    def pending_count(self) -> int:
        return len(self._handles)
