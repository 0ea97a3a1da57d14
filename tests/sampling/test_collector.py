"""
Sample Collector Tests
======================

INVARIANTS TESTED:
1. fps = frames * 1000 / bucket elapsed, closed at >= 1000ms
2. Each sample lands in the bucket of the activity current when it is
   finalized, and in no other bucket
3. Memory sampling degrades silently without a memory capability
4. Nothing is appended after stop()
"""

import pytest

from graphperf.contracts.base import ACTIVITY_ORDER, Activity
from graphperf.sampling.collector import SampleCollector, SampleKind, SamplingConfig
from graphperf.sampling.memory import MemoryProbe, NullMemoryProbe, TracemallocProbe
from graphperf.temporal.scheduler import ManualScheduler


class FixedMemoryProbe(MemoryProbe):
    """Reports a constant reading."""

    def __init__(self, value_mb: float):
        self.value_mb = value_mb
        self.reads = 0

    @property
    def available(self) -> bool:
        return True

    def read_mb(self) -> float:
        self.reads += 1
        return self.value_mb


class ActivityHolder:
    def __init__(self, activity: Activity = Activity.IDLE):
        self.activity = activity

    def __call__(self) -> Activity:
        return self.activity


def make_collector(probe=None, activity=Activity.IDLE, frame_interval_ms=20.0):
    scheduler = ManualScheduler(frame_interval_ms=frame_interval_ms)
    holder = ActivityHolder(activity)
    collector = SampleCollector(scheduler, holder, memory_probe=probe)
    return scheduler, holder, collector


class TestFrameCadence:

    def test_sixty_frames_over_one_second_is_sixty_fps(self):
        _, _, collector = make_collector()
        collector.start()

        result = None
        for k in range(1, 61):
            result = collector.record_frame(k * 1000 / 60)

        assert result == pytest.approx(60.0)
        assert collector.global_samples.fps == [pytest.approx(60.0)]
        assert len(collector.global_samples.frame_times) == 60

    def test_bucket_stays_open_below_one_second(self):
        _, _, collector = make_collector()
        collector.start()

        for k in range(1, 60):
            assert collector.record_frame(k * 1000 / 60) is None

        assert collector.global_samples.fps == []

    def test_suspended_frame_time_is_not_recorded(self):
        _, _, collector = make_collector()
        collector.start()

        collector.record_frame(16.0)
        fps = collector.record_frame(1516.0)

        assert collector.global_samples.frame_times == [16.0]
        assert fps == pytest.approx(2 * 1000 / 1516.0)

    def test_non_positive_dt_is_not_recorded(self):
        _, _, collector = make_collector()
        collector.start()

        collector.record_frame(16.0)
        collector.record_frame(16.0)

        assert collector.global_samples.frame_times == [16.0]

    def test_driven_by_scheduler_frames(self):
        scheduler, _, collector = make_collector(frame_interval_ms=20.0)
        collector.start()

        scheduler.advance(2000.0)

        assert collector.global_samples.fps == [pytest.approx(50.0), pytest.approx(50.0)]
        assert collector.bucket(Activity.IDLE).fps == collector.global_samples.fps


class TestAttribution:

    def test_panning_sample_only_in_panning_bucket(self):
        _, holder, collector = make_collector(activity=Activity.PANNING)
        collector.start()

        collector.record_frame(500.0)
        fps = collector.record_frame(1000.0)

        assert collector.global_samples.fps == [fps]
        assert collector.bucket(Activity.PANNING).fps == [fps]
        for activity in ACTIVITY_ORDER:
            if activity is not Activity.PANNING:
                assert collector.bucket(activity).fps == []

    def test_activity_read_when_bucket_closes(self):
        _, holder, collector = make_collector()
        collector.start()

        collector.record_frame(500.0)
        holder.activity = Activity.ZOOMING
        collector.record_frame(1000.0)

        assert len(collector.bucket(Activity.ZOOMING).fps) == 1
        assert collector.bucket(Activity.IDLE).fps == []

    def test_render_probe_attributed_at_completion(self):
        scheduler, holder, collector = make_collector(activity=Activity.PANNING)

        collector.sample_render()
        holder.activity = Activity.ZOOMING
        scheduler.advance(20.0)

        render = collector.global_samples.render
        assert render.count == 1
        assert render.sum == pytest.approx(20.0)
        assert render.max == pytest.approx(20.0)
        assert collector.bucket(Activity.ZOOMING).render == [pytest.approx(20.0)]
        assert collector.bucket(Activity.PANNING).render == []
        assert collector.pending_render_probes == 0

    def test_render_accumulator_tracks_max(self):
        _, _, collector = make_collector()

        for duration in (3.0, 9.0, 6.0):
            collector.record_render(duration)

        render = collector.global_samples.render
        assert render.count == 3
        assert render.max == 9.0
        assert render.average == pytest.approx(6.0)


class TestMemory:

    def test_interval_and_frame_memory_samples(self):
        scheduler, _, collector = make_collector(probe=FixedMemoryProbe(42.0))
        collector.start()

        scheduler.advance(1010.0)

        assert collector.global_samples.memory == [42.0]
        assert collector.bucket(Activity.IDLE).mem == [42.0]
        assert collector.latest_memory_mb == 42.0

    def test_memory_interval_does_not_cost_frames(self):
        scheduler, _, collector = make_collector(probe=FixedMemoryProbe(42.0))
        collector.start()

        scheduler.advance(3000.0)

        assert collector.global_samples.fps == [pytest.approx(50.0)] * 3
        assert collector.global_samples.memory == [42.0, 42.0, 42.0]
        assert scheduler.frames_fired == 150

    def test_missing_capability_disables_memory(self):
        scheduler, _, collector = make_collector(probe=NullMemoryProbe())
        collector.start()

        assert scheduler.pending_timers == 0
        scheduler.advance(3000.0)

        assert collector.global_samples.memory == []
        assert all(collector.bucket(a).mem == [] for a in ACTIVITY_ORDER)
        assert collector.memory_available is False
        assert collector.latest_memory_mb is None

    def test_tracemalloc_probe_owns_tracing(self):
        import tracemalloc

        was_tracing = tracemalloc.is_tracing()
        probe = TracemallocProbe(start_tracing=True)
        try:
            assert probe.available
            assert probe.read_mb() >= 0.0
        finally:
            probe.close()

        assert tracemalloc.is_tracing() == was_tracing


class TestStop:

    def test_stop_cancels_everything(self):
        scheduler, _, collector = make_collector(probe=FixedMemoryProbe(10.0))
        collector.start()
        collector.sample_render()

        collector.stop()
        collector.stop()
        scheduler.advance(5000.0)

        assert collector.global_samples.fps == []
        assert collector.global_samples.memory == []
        assert collector.global_samples.render.count == 0
        assert scheduler.pending_timers == 0
        assert scheduler.pending_frame_callbacks == 0
        assert not collector.running

    def test_no_appends_after_stop(self):
        _, _, collector = make_collector(probe=FixedMemoryProbe(10.0))
        collector.start()
        collector.stop()

        assert collector.record_frame(2000.0) is None
        assert collector.sample_memory() is None
        assert collector.sample_render() is None
        collector.record_render(5.0)

        assert collector.global_samples.render.count == 0

    def test_start_after_stop_is_a_no_op(self):
        scheduler, _, collector = make_collector()
        collector.stop()
        collector.start()

        assert scheduler.pending_frame_callbacks == 0


class TestListeners:

    def test_listener_receives_samples(self):
        scheduler, _, collector = make_collector(probe=FixedMemoryProbe(1.0))
        seen = []
        collector.subscribe(lambda kind, activity, value: seen.append((kind, activity)))
        collector.start()

        scheduler.advance(1000.0)

        assert (SampleKind.MEMORY, None) in seen
        assert (SampleKind.FPS, Activity.IDLE) in seen


    def test_failing_listener_does_not_stop_the_frame_loop(self):
        scheduler, _, collector = make_collector()
        failures = []

        def flaky(kind, activity, value):
            if not failures:
                failures.append(kind)
                raise RuntimeError("display went away")

        collector.subscribe(flaky)
        collector.start()
        scheduler.advance(3000.0)

        assert failures == [SampleKind.FPS]
        assert len(collector.global_samples.fps) == 3
        assert scheduler.pending_frame_callbacks == 1


class TestSamplingConfig:

    def test_rejects_non_positive_intervals(self):
        with pytest.raises(ValueError):
            SamplingConfig(fps_bucket_ms=0.0)
