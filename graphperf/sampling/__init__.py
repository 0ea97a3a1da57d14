"""
Sampling Layer

RESPONSIBILITY: Measure fps, memory and render latency per activity
ALLOWED INPUTS: Scheduler frames/timers, the current Activity, a MemoryProbe
OUTPUTS: GlobalSamples and one ActivityBucket per Activity

WHAT THIS LAYER MUST NOT DO:
============================
- Change the current activity
- Edit or drop samples that were already appended
- Append anything after stop()
"""

from .collector import (
    ActivityBucket,
    GlobalSamples,
    RenderAccumulator,
    SampleCollector,
    SampleKind,
    SamplingConfig,
)
from .memory import MemoryProbe, NullMemoryProbe, TracemallocProbe

__all__ = [
    'ActivityBucket',
    'GlobalSamples',
    'MemoryProbe',
    'NullMemoryProbe',
    'RenderAccumulator',
    'SampleCollector',
    'SampleKind',
    'SamplingConfig',
    'TracemallocProbe',
]
