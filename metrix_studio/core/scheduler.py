"""
Cancelable deferred callbacks.

The viewport's shutter transition and the analysis panel's busy marker are
the only scheduled work in the client; both go through a Scheduler so that
teardown can cancel whatever is still pending.
"""

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

FRAME_MS = 16

Callback = Callable[[], None]


class ScheduledHandle(ABC):
    """A pending callback that can be cancelled before it fires."""

    @abstractmethod
    def cancel(self) -> None:
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        pass


class Scheduler(ABC):
    """Abstract scheduler for delayed and next-frame callbacks."""

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callback) -> ScheduledHandle:
        """Run callback after delay_ms milliseconds."""
        pass

    def next_frame(self, callback: Callback) -> ScheduledHandle:
        """Run callback on the next paint frame."""
        return self.call_later(FRAME_MS, callback)


class _AsyncioHandle(ScheduledHandle):
    def __init__(self, timer: asyncio.TimerHandle):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._timer.cancelled()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_ms: float, callback: Callback) -> ScheduledHandle:
        return _AsyncioHandle(self.loop.call_later(delay_ms / 1000.0, callback))


class _VirtualHandle(ScheduledHandle):
    def __init__(self, due_ms: float, callback: Callback):
        self.due_ms = due_ms
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class VirtualScheduler(Scheduler):
    """
    Deterministic scheduler driven by a virtual clock.

    Nothing fires until ``advance`` or ``run_all`` is called. Callbacks that
    schedule further callbacks are honoured within the same advance window.
    """

    def __init__(self):
        self.now_ms: float = 0.0
        self._queue: List[Tuple[float, int, _VirtualHandle]] = []
        self._counter = itertools.count()

    def call_later(self, delay_ms: float, callback: Callback) -> ScheduledHandle:
        handle = _VirtualHandle(self.now_ms + max(delay_ms, 0), callback)
        heapq.heappush(self._queue, (handle.due_ms, next(self._counter), handle))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def advance(self, ms: float) -> None:
        target = self.now_ms + ms
        while self._queue and self._queue[0][0] <= target:
            due_ms, _, handle = heapq.heappop(self._queue)
            self.now_ms = due_ms
            if not handle.cancelled:
                handle.callback()
        self.now_ms = target

    def run_all(self) -> None:
        while self._queue:
            due_ms, _, handle = heapq.heappop(self._queue)
            self.now_ms = max(self.now_ms, due_ms)
            if not handle.cancelled:
                handle.callback()
