"""
Report Aggregator
=================

Folds every session buffer into an immutable PerformanceReport.

RULES:
======
- Empty series aggregate to 0.0, never NaN
- Memory statistics use the global memory series, or [0.0] when empty
- Per-activity memory/render averages fall back to the global averages
  when the activity's own bucket is empty
- Verdicts are evaluated independently; several may apply

The aggregator only reads its inputs. Building the same input twice gives
equal reports.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Mapping, Sequence
import logging
import math

import numpy as np

from ..contracts.base import ACTIVITY_ORDER, Activity, LoadTimings
from ..contracts.report import (
    ActivitySummary, DropSeverity, FrameRateSummary, InteractionCounts,
    InteractionSummary, MemorySummary, PerformanceReport, RenderSummary,
    Verdict
)
from ..sampling.collector import ActivityBucket, GlobalSamples


logger = logging.getLogger(__name__)


@dataclass
class ReportConfig:
    """Thresholds used for frame-drop accounting and verdicts."""
    baseline_fps: float = 60.0
    excellent_fps: float = 50.0
    excellent_max_drop_pct: float = 5.0
    acceptable_fps: float = 30.0
    memory_budget_mb: float = 80.0
    idle_concern_fps: float = 40.0
    zoom_concern_fps: float = 30.0
    high_drop_pct: float = 15.0
    moderate_drop_pct: float = 7.0

    def __post_init__(self):
        if self.baseline_fps <= 0:
            raise ValueError("baseline_fps must be positive")


@dataclass(frozen=True)
class AggregationInput:
    """Everything a report is computed from."""
    session_duration_ms: float
    node_count: int
    load: LoadTimings
    samples: GlobalSamples
    buckets: Mapping[Activity, ActivityBucket]
    interactions: InteractionCounts


def _finite(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0


def _mean(values: Sequence[float]) -> float:
    return _finite(np.mean(values)) if len(values) else 0.0


def _median(values: Sequence[float]) -> float:
    return _finite(np.median(values)) if len(values) else 0.0


def _min(values: Sequence[float]) -> float:
    return _finite(np.min(values)) if len(values) else 0.0


def _max(values: Sequence[float]) -> float:
    return _finite(np.max(values)) if len(values) else 0.0


class ReportAggregator:

    def __init__(self, config: ReportConfig = None):
        self._config = config or ReportConfig()

    @property
    def config(self) -> ReportConfig:
        return self._config

    def aggregate(self, inputs: AggregationInput) -> PerformanceReport:
        frame_rate = self._frame_rate(inputs.samples)
        memory = self._memory(inputs.samples)
        render = RenderSummary(
            average_ms=_finite(inputs.samples.render.average),
            max_ms=_finite(inputs.samples.render.max),
            sample_count=inputs.samples.render.count
        )
        interactions = self._interactions(inputs.interactions, inputs.session_duration_ms)
        activities = tuple(
            self._activity(activity, inputs.buckets[activity], memory, render)
            for activity in ACTIVITY_ORDER
        )
        verdicts = self._verdicts(frame_rate, memory, inputs.buckets[Activity.ZOOMING])

        report = PerformanceReport(
            session_duration_ms=_finite(inputs.session_duration_ms),
            node_count=inputs.node_count,
            load=inputs.load,
            frame_rate=frame_rate,
            memory=memory,
            render=render,
            interactions=interactions,
            activities=activities,
            verdicts=verdicts
        )
        logger.debug(
            "Aggregated %d fps samples, %d memory samples, %d render samples",
            frame_rate.sample_count, len(inputs.samples.memory), render.sample_count
        )
        return report

    # =========================================================================
    # SECTIONS
    # =========================================================================

    def _frame_rate(self, samples: GlobalSamples) -> FrameRateSummary:
        cfg = self._config
        fps = np.asarray(samples.fps, dtype=float)
        count = len(fps)

        if count:
            drops = np.clip(1.0 - fps / cfg.baseline_fps, 0.0, None)
            drop_pct = _finite(np.mean(drops) * 100.0)
        else:
            drop_pct = 0.0

        denominator = count or 1
        excellent = _finite(np.count_nonzero(fps >= 60) / denominator * 100.0)
        good = _finite(np.count_nonzero((fps >= 30) & (fps < 60)) / denominator * 100.0)
        poor = _finite(np.count_nonzero(fps < 30) / denominator * 100.0)

        if drop_pct > cfg.high_drop_pct:
            severity = DropSeverity.HIGH
        elif drop_pct > cfg.moderate_drop_pct:
            severity = DropSeverity.MODERATE
        else:
            severity = DropSeverity.LOW

        return FrameRateSummary(
            average=_mean(fps),
            median=_median(fps),
            minimum=_min(fps),
            maximum=_max(fps),
            sample_count=count,
            frame_drop_pct=drop_pct,
            avg_frame_time_ms=_mean(samples.frame_times),
            excellent_pct=excellent,
            good_pct=good,
            poor_pct=poor,
            drop_severity=severity
        )

    def _memory(self, samples: GlobalSamples) -> MemorySummary:
        values = samples.memory or [0.0]
        peak = _max(values)
        low = _min(values)
        return MemorySummary(
            average_mb=_mean(values),
            peak_mb=peak,
            min_mb=low,
            growth_mb=peak - low
        )

    def _interactions(self, counts: InteractionCounts, duration_ms: float) -> InteractionSummary:
        minutes = duration_ms / 60000.0
        per_minute = counts.total / minutes if minutes > 0 else 0.0
        return InteractionSummary(counts=counts, per_minute=_finite(per_minute))

    def _activity(
        self,
        activity: Activity,
        bucket: ActivityBucket,
        memory: MemorySummary,
        render: RenderSummary
    ) -> ActivitySummary:
        return ActivitySummary(
            activity=activity,
            sample_count=len(bucket.fps),
            fps_avg=_mean(bucket.fps),
            fps_min=_min(bucket.fps),
            fps_max=_max(bucket.fps),
            memory_avg_mb=_mean(bucket.mem) if bucket.mem else memory.average_mb,
            render_avg_ms=_mean(bucket.render) if bucket.render else render.average_ms
        )

    def _verdicts(
        self,
        frame_rate: FrameRateSummary,
        memory: MemorySummary,
        zooming: ActivityBucket
    ) -> tuple:
        cfg = self._config
        verdicts: List[Verdict] = []

        if frame_rate.average >= cfg.excellent_fps and frame_rate.frame_drop_pct < cfg.excellent_max_drop_pct:
            verdicts.append(Verdict.EXCELLENT)
        elif frame_rate.average >= cfg.acceptable_fps:
            verdicts.append(Verdict.ACCEPTABLE)
        else:
            verdicts.append(Verdict.POOR)

        if memory.peak_mb <= cfg.memory_budget_mb:
            verdicts.append(Verdict.MEMORY_EFFICIENT)
        if frame_rate.average < cfg.idle_concern_fps:
            verdicts.append(Verdict.IDLE_PERFORMANCE)
        if zooming.fps and _mean(zooming.fps) < cfg.zoom_concern_fps:
            verdicts.append(Verdict.ZOOM_PERFORMANCE)

        return tuple(verdicts)
