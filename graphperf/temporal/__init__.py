"""
Temporal Layer
==============

Clocks and cooperative schedulers.

INVARIANTS:
- All time reads go through a Clock
- All deferred work goes through a Scheduler (frames or timers)
- One logical thread; no callback runs concurrently with another

Modules:
- clock: MonotonicClock (live) and ManualClock (virtual)
- scheduler: ManualScheduler (virtual) and AsyncioScheduler (live)
"""

from .clock import Clock, ClockRewound, ManualClock, MonotonicClock
from .scheduler import (
    AsyncioScheduler,
    ManualScheduler,
    ScheduledHandle,
    Scheduler,
)

__all__ = [
    'AsyncioScheduler',
    'Clock',
    'ClockRewound',
    'ManualClock',
    'ManualScheduler',
    'MonotonicClock',
    'ScheduledHandle',
    'Scheduler',
]
