"""
Cooperative Schedulers
======================

Single-threaded scheduling of frame callbacks and timers.

MODEL:
======
All instrumentation state is touched only from callbacks fired by one
scheduler, so nothing needs a lock. There are exactly two suspension
points:

1. Awaiting the next frame boundary (request_frame)
2. Awaiting a timer (call_later / call_every)

Callbacks requested during a frame run on the following frame, never the
current one. Cancellation is idempotent and takes effect immediately: a
cancelled callback never fires, even if it was already due.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import asyncio
import heapq
import itertools
import logging
import math
from typing import Callable, List, Optional, Tuple

from .clock import Clock, ManualClock, MonotonicClock


logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]
TimerCallback = Callable[[], None]

DEFAULT_REFRESH_HZ = 60


class ScheduledHandle:
    """Cancelable reference to a pending frame callback or timer."""

    def __init__(self, label: str = ""):
        self.label = label
        self._cancelled = False
        self._on_cancel: Optional[Callable[[], None]] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()
            self._on_cancel = None

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "pending"
        return f"ScheduledHandle({self.label or '?'}, {state})"


class Scheduler(ABC):
    """Frame boundaries plus timers on a single logical thread."""

    def __init__(self, clock: Clock):
        self._clock = clock

    @property
    def clock(self) -> Clock:
        return self._clock

    def now_ms(self) -> float:
        return self._clock.now_ms()

    @abstractmethod
    def request_frame(self, callback: FrameCallback, label: str = "") -> ScheduledHandle:
        """Run callback(frame_timestamp_ms) once, at the next frame boundary."""
        ...

    @abstractmethod
    def call_later(self, delay_ms: float, callback: TimerCallback, label: str = "") -> ScheduledHandle:
        """Run callback() once after delay_ms."""
        ...

    @abstractmethod
    def call_every(self, interval_ms: float, callback: TimerCallback, label: str = "") -> ScheduledHandle:
        """Run callback() every interval_ms until the handle is cancelled."""
        ...


# =============================================================================
# VIRTUAL TIME
# =============================================================================

class ManualScheduler(Scheduler):
    """
    Deterministic scheduler over a ManualClock.

    Frame boundaries sit on a fixed grid (multiples of frame_interval_ms).
    advance() walks virtual time forward, firing timers and frames in
    chronological order; a timer and a frame due at the same instant fire
    timer first.
    """

    def __init__(
        self,
        clock: Optional[ManualClock] = None,
        frame_interval_ms: float = 1000.0 / DEFAULT_REFRESH_HZ
    ):
        if frame_interval_ms <= 0:
            raise ValueError("frame_interval_ms must be positive")
        super().__init__(clock or ManualClock())
        self._manual: ManualClock = self._clock
        self._frame_interval_ms = frame_interval_ms
        self._frame_queue: List[Tuple[ScheduledHandle, FrameCallback]] = []
        self._timers: List[Tuple[float, int, ScheduledHandle, TimerCallback, Optional[float]]] = []
        self._seq = itertools.count()
        self._frames_fired = 0
        self._next_frame_at: Optional[float] = None

    @property
    def frame_interval_ms(self) -> float:
        return self._frame_interval_ms

    @property
    def frames_fired(self) -> int:
        return self._frames_fired

    @property
    def pending_frame_callbacks(self) -> int:
        return sum(1 for handle, _ in self._frame_queue if not handle.cancelled)

    @property
    def pending_timers(self) -> int:
        return sum(1 for entry in self._timers if not entry[2].cancelled)

    def request_frame(self, callback: FrameCallback, label: str = "") -> ScheduledHandle:
        handle = ScheduledHandle(label)
        self._frame_queue.append((handle, callback))
        if self._next_frame_at is None:
            self._next_frame_at = self._next_frame_boundary()
        return handle

    def call_later(self, delay_ms: float, callback: TimerCallback, label: str = "") -> ScheduledHandle:
        handle = ScheduledHandle(label)
        self._push_timer(self._manual.now_ms() + max(0.0, delay_ms), handle, callback, None)
        return handle

    def call_every(self, interval_ms: float, callback: TimerCallback, label: str = "") -> ScheduledHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        handle = ScheduledHandle(label)
        self._push_timer(self._manual.now_ms() + interval_ms, handle, callback, interval_ms)
        return handle

    def run_frame(self) -> int:
        """
        Fire every queued frame callback at the current instant.

        Returns the number of callbacks fired.
        """
        queue, self._frame_queue = self._frame_queue, []
        # Requests made by the callbacks below target the following boundary
        self._next_frame_at = None
        now = self._manual.now_ms()
        fired = 0
        for handle, callback in queue:
            if handle.cancelled:
                continue
            callback(now)
            fired += 1
        self._frames_fired += 1
        return fired

    def advance(self, ms: float) -> None:
        """Move virtual time forward by ms, firing everything that comes due."""
        self._run_until(self._manual.now_ms() + ms, frames=True)

    def suspend(self, ms: float) -> None:
        """
        Move time forward with frames withheld.

        Models a backgrounded view: timers still fire, frame callbacks wait
        for the first boundary after the suspension.
        """
        self._run_until(self._manual.now_ms() + ms, frames=False)

    def _run_until(self, target: float, frames: bool) -> None:
        while True:
            next_timer = self._timers[0][0] if self._timers else math.inf
            next_frame = math.inf
            if frames and self._frame_queue:
                if self._next_frame_at is None or self._next_frame_at < self._manual.now_ms():
                    # Boundaries that passed during a suspension are skipped
                    self._next_frame_at = self._next_frame_boundary()
                next_frame = self._next_frame_at

            if min(next_timer, next_frame) > target:
                self._manual.set(max(target, self._manual.now_ms()))
                return

            if next_timer <= next_frame:
                due, _, handle, callback, interval = heapq.heappop(self._timers)
                self._manual.set(due)
                if handle.cancelled:
                    continue
                callback()
                if interval is not None and not handle.cancelled:
                    self._push_timer(due + interval, handle, callback, interval)
            else:
                self._manual.set(next_frame)
                self.run_frame()

    def _next_frame_boundary(self) -> float:
        now = self._manual.now_ms()
        boundary = (math.floor(now / self._frame_interval_ms) + 1) * self._frame_interval_ms
        if boundary <= now:
            boundary += self._frame_interval_ms
        return boundary

    def _push_timer(
        self,
        due: float,
        handle: ScheduledHandle,
        callback: TimerCallback,
        interval: Optional[float]
    ) -> None:
        heapq.heappush(self._timers, (due, next(self._seq), handle, callback, interval))


# =============================================================================
# REAL TIME
# =============================================================================

class AsyncioScheduler(Scheduler):
    """
    Scheduler on an asyncio event loop.

    Frames are emulated with a ticker at refresh_hz that only runs while
    frame callbacks are queued. Timers map onto loop.call_later().
    """

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        clock: Optional[Clock] = None,
        refresh_hz: float = DEFAULT_REFRESH_HZ
    ):
        if refresh_hz <= 0:
            raise ValueError("refresh_hz must be positive")
        super().__init__(clock or MonotonicClock())
        self._loop = loop
        self._frame_interval_s = 1.0 / refresh_hz
        self._frame_queue: List[Tuple[ScheduledHandle, FrameCallback]] = []
        self._frame_timer: Optional[asyncio.TimerHandle] = None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def request_frame(self, callback: FrameCallback, label: str = "") -> ScheduledHandle:
        handle = ScheduledHandle(label)
        self._frame_queue.append((handle, callback))
        if self._frame_timer is None:
            self._frame_timer = self._get_loop().call_later(
                self._frame_interval_s, self._fire_frame
            )
        return handle

    def call_later(self, delay_ms: float, callback: TimerCallback, label: str = "") -> ScheduledHandle:
        handle = ScheduledHandle(label)

        def fire():
            if not handle.cancelled:
                handle._on_cancel = None
                callback()

        timer = self._get_loop().call_later(max(0.0, delay_ms) / 1000.0, fire)
        handle._on_cancel = timer.cancel
        return handle

    def call_every(self, interval_ms: float, callback: TimerCallback, label: str = "") -> ScheduledHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        handle = ScheduledHandle(label)
        loop = self._get_loop()

        def fire():
            if handle.cancelled:
                return
            callback()
            if not handle.cancelled:
                timer = loop.call_later(interval_ms / 1000.0, fire)
                handle._on_cancel = timer.cancel

        timer = loop.call_later(interval_ms / 1000.0, fire)
        handle._on_cancel = timer.cancel
        return handle

    def _fire_frame(self) -> None:
        self._frame_timer = None
        queue, self._frame_queue = self._frame_queue, []
        now = self.now_ms()
        for handle, callback in queue:
            if handle.cancelled:
                continue
            try:
                callback(now)
            except Exception:
                logger.exception("Frame callback %s failed", handle.label or callback)
        if self._frame_queue:
            self._frame_timer = self._get_loop().call_later(
                self._frame_interval_s, self._fire_frame
            )
