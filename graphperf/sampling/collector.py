"""
Sample Collector
================

Two independent cadences plus an on-demand probe, all attributing samples
to the activity current at the instant the sample is finalized.

CADENCES:
=========
1. Frame loop (every display frame)
   - dt = now - previous frame; 0 < dt < max_frame_dt_ms is kept as a
     frame time, anything else is a suspended view and is not recorded
   - frames are counted into a rolling bucket; once the bucket spans
     fps_bucket_ms, fps = frames * 1000 / elapsed goes to the global fps
     series and to the current activity's bucket, together with a memory
     reading when memory is available
2. Memory interval (every memory_interval_ms)
   - one reading into the session-global memory series, not gated by
     activity and not aligned with the fps bucket
3. Render probe (on demand)
   - start time now, completion on the next frame; the duration goes to
     the {count, sum, max} accumulator and to the bucket of the activity
     current at completion

INVARIANTS:
- Every series is append-only
- After stop() nothing is appended, even by callbacks already in flight
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Set
import logging

from ..contracts.base import ACTIVITY_ORDER, Activity
from ..temporal.scheduler import ScheduledHandle, Scheduler
from .memory import MemoryProbe, NullMemoryProbe


logger = logging.getLogger(__name__)

ActivitySource = Callable[[], Activity]


class SampleKind(Enum):
    FPS = "fps"
    MEMORY = "memory"
    RENDER = "render"


SampleListener = Callable[[SampleKind, Optional[Activity], float], None]


@dataclass
class SamplingConfig:
    fps_bucket_ms: float = 1000.0
    max_frame_dt_ms: float = 1000.0
    memory_interval_ms: float = 1000.0

    def __post_init__(self):
        if self.fps_bucket_ms <= 0 or self.max_frame_dt_ms <= 0 or self.memory_interval_ms <= 0:
            raise ValueError("Sampling intervals must be positive")


# =============================================================================
# ACCUMULATORS
# =============================================================================

@dataclass
class ActivityBucket:
    """Samples attributed to one activity."""
    fps: List[float] = field(default_factory=list)
    mem: List[float] = field(default_factory=list)
    render: List[float] = field(default_factory=list)


@dataclass
class RenderAccumulator:
    count: int = 0
    sum: float = 0.0
    max: float = 0.0

    def add(self, duration_ms: float) -> None:
        self.count += 1
        self.sum += duration_ms
        if duration_ms > self.max:
            self.max = duration_ms

    @property
    def average(self) -> float:
        return self.sum / self.count if self.count else 0.0


@dataclass
class GlobalSamples:
    """Session-wide series, independent of activity."""
    fps: List[float] = field(default_factory=list)
    frame_times: List[float] = field(default_factory=list)
    memory: List[float] = field(default_factory=list)
    render: RenderAccumulator = field(default_factory=RenderAccumulator)


# =============================================================================
# COLLECTOR
# =============================================================================

class SampleCollector:
    """
    Owns every sample buffer of a session.

    The collector never decides what the current activity is; it asks
    activity_source() each time it finalizes a sample.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        activity_source: ActivitySource,
        memory_probe: Optional[MemoryProbe] = None,
        config: Optional[SamplingConfig] = None
    ):
        self._scheduler = scheduler
        self._activity_source = activity_source
        self._memory = memory_probe or NullMemoryProbe()
        self._config = config or SamplingConfig()

        self._buckets: Dict[Activity, ActivityBucket] = {
            activity: ActivityBucket() for activity in ACTIVITY_ORDER
        }
        self._global = GlobalSamples()
        self._listeners: List[SampleListener] = []

        self._frame_handle: Optional[ScheduledHandle] = None
        self._memory_handle: Optional[ScheduledHandle] = None
        self._pending_renders: Set[ScheduledHandle] = set()
        self._started = False
        self._stopped = False

        self._last_frame_ts: Optional[float] = None
        self._bucket_start_ts: Optional[float] = None
        self._frames_in_bucket = 0

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        if self._started or self._stopped:
            return
        self._started = True
        now = self._scheduler.now_ms()
        self._last_frame_ts = now
        self._bucket_start_ts = now
        self._frame_handle = self._scheduler.request_frame(self._on_frame, "fps-frame")

        if self._memory.available:
            self._memory_handle = self._scheduler.call_every(
                self._config.memory_interval_ms, self.sample_memory, "memory-interval"
            )
        else:
            logger.info("Memory capability unavailable; memory sampling disabled")

    def stop(self) -> None:
        """
        Cancel both cadences and every in-flight render probe.

        Unconditional and idempotent.
        """
        self._stopped = True
        if self._frame_handle is not None:
            self._frame_handle.cancel()
        if self._memory_handle is not None:
            self._memory_handle.cancel()
        for handle in list(self._pending_renders):
            handle.cancel()
        self._pending_renders.clear()

    @property
    def running(self) -> bool:
        return self._started and not self._stopped

    @property
    def memory_available(self) -> bool:
        return self._memory.available

    def subscribe(self, listener: SampleListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # FRAME CADENCE
    # =========================================================================

    def _on_frame(self, now_ms: float) -> None:
        if self._stopped:
            return
        self._frame_handle = self._scheduler.request_frame(self._on_frame, "fps-frame")
        self.record_frame(now_ms)

    def record_frame(self, now_ms: float) -> Optional[float]:
        """
        Account for one display frame at now_ms.

        Returns the fps value when this frame closed a bucket, else None.
        """
        if self._stopped:
            return None
        if self._last_frame_ts is None:
            self._last_frame_ts = now_ms
            self._bucket_start_ts = now_ms
            return None

        cfg = self._config
        dt = now_ms - self._last_frame_ts
        self._last_frame_ts = now_ms
        if 0 < dt < cfg.max_frame_dt_ms:
            self._global.frame_times.append(dt)

        self._frames_in_bucket += 1
        elapsed = now_ms - self._bucket_start_ts
        if elapsed < cfg.fps_bucket_ms:
            return None

        fps = self._frames_in_bucket * 1000.0 / elapsed
        activity = self._activity_source()
        bucket = self._buckets[activity]
        self._global.fps.append(fps)
        bucket.fps.append(fps)
        self._notify(SampleKind.FPS, activity, fps)

        if self._memory.available:
            mem = self._memory.read_mb()
            bucket.mem.append(mem)

        self._frames_in_bucket = 0
        self._bucket_start_ts = now_ms
        return fps

    # =========================================================================
    # MEMORY INTERVAL
    # =========================================================================

    def sample_memory(self) -> Optional[float]:
        if self._stopped or not self._memory.available:
            return None
        mem = self._memory.read_mb()
        self._global.memory.append(mem)
        self._notify(SampleKind.MEMORY, None, mem)
        return mem

    # =========================================================================
    # RENDER PROBE
    # =========================================================================

    def sample_render(self) -> Optional[ScheduledHandle]:
        """
        Start a render-latency probe that completes on the next frame.

        The activity is read at completion, not now.
        """
        if self._stopped:
            return None
        start = self._scheduler.now_ms()
        handle: Optional[ScheduledHandle] = None

        def complete(frame_ts: float):
            self._pending_renders.discard(handle)
            self.record_render(self._scheduler.now_ms() - start)

        handle = self._scheduler.request_frame(complete, "render-probe")
        self._pending_renders.add(handle)
        return handle

    def record_render(self, duration_ms: float) -> None:
        """Record an already measured render duration for the current activity."""
        if self._stopped:
            return
        activity = self._activity_source()
        self._global.render.add(duration_ms)
        self._buckets[activity].render.append(duration_ms)
        self._notify(SampleKind.RENDER, activity, duration_ms)

    # =========================================================================
    # READ SIDE
    # =========================================================================

    @property
    def global_samples(self) -> GlobalSamples:
        return self._global

    @property
    def buckets(self) -> Dict[Activity, ActivityBucket]:
        return self._buckets

    def bucket(self, activity: Activity) -> ActivityBucket:
        return self._buckets[activity]

    @property
    def latest_fps(self) -> float:
        return self._global.fps[-1] if self._global.fps else 0.0

    @property
    def latest_memory_mb(self) -> Optional[float]:
        return self._global.memory[-1] if self._global.memory else None

    @property
    def pending_render_probes(self) -> int:
        return len(self._pending_renders)

    def _notify(self, kind: SampleKind, activity: Optional[Activity], value: float) -> None:
        for listener in list(self._listeners):
            try:
                listener(kind, activity, value)
            except Exception:
                logger.exception("Sample listener %r failed on %s", listener, kind.value)
