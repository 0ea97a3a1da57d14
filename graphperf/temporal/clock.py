"""
Injectable Clocks
=================

Every time read in the instrumentation goes through a clock object so that
sessions can run against real time or against a virtual timeline.

GUARANTEES:
- Readings are monotonic milliseconds from an arbitrary origin
- MonotonicClock never reads wall-clock time (immune to NTP jumps)
- ManualClock only moves when told to; it can never go backwards
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import time


class ClockRewound(Exception):
    """Raised when a manual clock is asked to move backwards."""
    pass


class Clock(ABC):
    """Source of monotonic millisecond timestamps."""

    @abstractmethod
    def now_ms(self) -> float:
        ...

    @abstractmethod
    def tick_count(self) -> int:
        """Number of readings taken so far."""
        ...


@dataclass
class MonotonicClock(Clock):
    """
    Live clock backed by time.perf_counter().

    Readings are relative to construction, so the first reading is close
    to zero.
    """
    _origin: float = field(default_factory=time.perf_counter)
    _ticks: int = 0

    def now_ms(self) -> float:
        self._ticks += 1
        return (time.perf_counter() - self._origin) * 1000.0

    def tick_count(self) -> int:
        return self._ticks

    def __repr__(self) -> str:
        return f"MonotonicClock(ticks={self._ticks})"


@dataclass
class ManualClock(Clock):
    """
    Virtual clock for deterministic runs.

    Time only advances through advance() or set(); the ManualScheduler
    drives it while firing frames and timers.
    """
    _now: float = 0.0
    _ticks: int = 0

    def now_ms(self) -> float:
        self._ticks += 1
        return self._now

    def advance(self, ms: float) -> float:
        if ms < 0:
            raise ClockRewound(f"Cannot advance by negative amount {ms}")
        self._now += ms
        return self._now

    def set(self, now_ms: float) -> float:
        if now_ms < self._now:
            raise ClockRewound(
                f"Clock at {self._now}ms cannot move back to {now_ms}ms"
            )
        self._now = now_ms
        return self._now

    def tick_count(self) -> int:
        return self._ticks

    def __repr__(self) -> str:
        return f"ManualClock(now={self._now}ms, ticks={self._ticks})"
