"""
Report Formatter

Renders a PerformanceReport as the fixed-schema text block.

Section order is fixed: Session Duration, Node Count, DATABASE PERFORMANCE,
FRAME RATE ANALYSIS, MEMORY USAGE ANALYSIS, RENDER PERFORMANCE,
USER INTERACTIONS, PERFORMANCE BY ACTIVITY, PERFORMANCE VERDICT.
"""

from __future__ import annotations
import math

from ..contracts.report import ActivitySummary, PerformanceReport


RULE = "=" * 60
ACTIVITY_LABEL_WIDTH = 9


def fmt2(value: float) -> str:
    """Two decimals; anything non-finite renders as 0.00."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return "0.00"
    if not math.isfinite(value):
        return "0.00"
    return f"{value:.2f}"


def format_activity_line(summary: ActivitySummary) -> str:
    label = summary.activity.value.ljust(ACTIVITY_LABEL_WIDTH)
    if summary.has_data:
        fps = f"{fmt2(summary.fps_avg)} FPS ({fmt2(summary.fps_min)}-{fmt2(summary.fps_max)})"
    else:
        fps = "No data collected"
    return (
        f"  {label}: {fps} | {summary.sample_count} samples"
        f" | Avg Memory: {fmt2(summary.memory_avg_mb)}MB"
        f" | Avg Render: {fmt2(summary.render_avg_ms)}ms"
    )


def format_report(report: PerformanceReport) -> str:
    fr = report.frame_rate
    mem = report.memory
    counts = report.interactions.counts

    lines = [
        RULE,
        "PERFORMANCE REPORT",
        RULE,
        f"Session Duration: {fmt2(report.session_duration_ms / 1000.0)}s",
        f"Node Count: {report.node_count:,}",
        "",
        "DATABASE PERFORMANCE:",
        f"  Query Time: {fmt2(report.load.query_ms)}ms",
        f"  Transform Time: {fmt2(report.load.transform_ms)}ms",
        f"  Total Load Time: {fmt2(report.load.total_ms)}ms",
        "",
        "FRAME RATE ANALYSIS:",
        f"  Average FPS: {fmt2(fr.average)}",
        f"  Median FPS: {fmt2(fr.median)}",
        f"  Min FPS: {fmt2(fr.minimum)}",
        f"  Max FPS: {fmt2(fr.maximum)}",
        f"  Samples Collected: {fr.sample_count}",
        f"  Average Frame Drops: {fmt2(fr.frame_drop_pct)}%",
        f"  Average Frame Time: {fmt2(fr.avg_frame_time_ms)}ms",
        f"  Excellent (>=60 FPS): {fmt2(fr.excellent_pct)}%",
        f"  Good (30-59 FPS): {fmt2(fr.good_pct)}%",
        f"  Poor (<30 FPS): {fmt2(fr.poor_pct)}%",
        f"  {fr.drop_severity.value}",
        "",
        "MEMORY USAGE ANALYSIS:",
        f"  Average Memory: {fmt2(mem.average_mb)}MB",
        f"  Peak Memory: {fmt2(mem.peak_mb)}MB",
        f"  Min Memory: {fmt2(mem.min_mb)}MB",
        f"  Memory Growth: {fmt2(mem.growth_mb)}MB",
        "",
        "RENDER PERFORMANCE:",
        f"  Average Render Time: {fmt2(report.render.average_ms)}ms",
        f"  Max Render Time: {fmt2(report.render.max_ms)}ms",
        f"  Render Samples: {report.render.sample_count}",
        "",
        "USER INTERACTIONS:",
        f"  Pan Operations: {counts.pan_ops}",
        f"  Zoom Operations: {counts.zoom_ops}",
        f"  Node Clicks: {counts.node_clicks}",
        f"  Node Drag Sessions: {counts.node_drag_sessions}",
        f"  Total Interactions: {counts.total}",
        f"  Interactions/Minute: {fmt2(report.interactions.per_minute)}",
        "",
        "PERFORMANCE BY ACTIVITY:",
    ]
    lines.extend(format_activity_line(summary) for summary in report.activities)
    lines.extend(["", "PERFORMANCE VERDICT:"])
    lines.extend(f"  {verdict.value}" for verdict in report.verdicts)
    lines.append(RULE)
    return "\n".join(lines)
