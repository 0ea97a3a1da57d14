"""
Report Contracts

Immutable outputs of the instrumentation: the live metrics snapshot read by
the display collaborator and the final performance report.

All numeric fields are plain floats; absence of data is 0.0, never NaN.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .base import Activity, LoadTimings


# =============================================================================
# INTERACTIONS
# =============================================================================

@dataclass(frozen=True)
class InteractionCounts:
    """Frozen copy of the interaction counters."""
    pan_ops: int = 0
    zoom_ops: int = 0
    node_clicks: int = 0
    node_drag_sessions: int = 0

    @property
    def total(self) -> int:
        return self.pan_ops + self.zoom_ops + self.node_clicks + self.node_drag_sessions


# =============================================================================
# LIVE METRICS
# =============================================================================

@dataclass(frozen=True)
class LiveMetrics:
    """
    Point-in-time view for on-screen display.

    Cheap to build; the collaborator may poll it every frame.
    """
    activity: Activity
    fps: float
    fps_sample_count: int
    memory_mb: Optional[float]
    render_count: int
    render_avg_ms: float
    render_max_ms: float
    interactions: InteractionCounts
    session_ended: bool


# =============================================================================
# FINAL REPORT
# =============================================================================

class DropSeverity(Enum):
    LOW = "LOW FRAME DROPS - Minor performance impact"
    MODERATE = "MODERATE FRAME DROPS - Noticeable performance impact"
    HIGH = "HIGH FRAME DROPS - Severe performance issues detected"


class Verdict(Enum):
    """Qualitative judgments. Several may apply to one session."""
    EXCELLENT = "EXCELLENT - Suitable for production use"
    ACCEPTABLE = "ACCEPTABLE - May need optimization for some users"
    POOR = "POOR - Optimization required"
    MEMORY_EFFICIENT = "MEMORY EFFICIENT - Low memory footprint"
    IDLE_PERFORMANCE = "IDLE PERFORMANCE - Consider reducing background processing"
    ZOOM_PERFORMANCE = "ZOOM PERFORMANCE - Consider level-of-detail rendering"


@dataclass(frozen=True)
class FrameRateSummary:
    average: float = 0.0
    median: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0
    sample_count: int = 0
    frame_drop_pct: float = 0.0
    avg_frame_time_ms: float = 0.0
    excellent_pct: float = 0.0
    good_pct: float = 0.0
    poor_pct: float = 0.0
    drop_severity: DropSeverity = DropSeverity.LOW


@dataclass(frozen=True)
class MemorySummary:
    average_mb: float = 0.0
    peak_mb: float = 0.0
    min_mb: float = 0.0
    growth_mb: float = 0.0


@dataclass(frozen=True)
class RenderSummary:
    average_ms: float = 0.0
    max_ms: float = 0.0
    sample_count: int = 0


@dataclass(frozen=True)
class InteractionSummary:
    counts: InteractionCounts = field(default_factory=InteractionCounts)
    per_minute: float = 0.0


@dataclass(frozen=True)
class ActivitySummary:
    """
    Per-activity line of the report.

    memory_avg_mb and render_avg_ms already carry the global fallback when
    the bucket itself is empty.
    """
    activity: Activity
    sample_count: int
    fps_avg: float
    fps_min: float
    fps_max: float
    memory_avg_mb: float
    render_avg_ms: float

    @property
    def has_data(self) -> bool:
        return self.sample_count > 0


@dataclass(frozen=True)
class PerformanceReport:
    """Complete, immutable result of one session."""
    session_duration_ms: float
    node_count: int
    load: LoadTimings
    frame_rate: FrameRateSummary
    memory: MemorySummary
    render: RenderSummary
    interactions: InteractionSummary
    activities: Tuple[ActivitySummary, ...]
    verdicts: Tuple[Verdict, ...]

    def activity(self, activity: Activity) -> ActivitySummary:
        for summary in self.activities:
            if summary.activity is activity:
                return summary
        raise KeyError(activity)
