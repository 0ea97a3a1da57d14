"""
Memory Probes

Capability-probed readers of current memory usage, in megabytes.

A probe that is not `available` is never read; memory sampling is simply
off for the session. That is a degradation path, not an error.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import logging
import tracemalloc


logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


class MemoryProbe(ABC):

    @property
    @abstractmethod
    def available(self) -> bool:
        ...

    @abstractmethod
    def read_mb(self) -> float:
        ...


class NullMemoryProbe(MemoryProbe):
    """No memory capability in this environment."""

    @property
    def available(self) -> bool:
        return False

    def read_mb(self) -> float:
        return 0.0


class TracemallocProbe(MemoryProbe):
    """
    Python heap usage as traced by tracemalloc.

    With start_tracing=True the probe starts tracemalloc itself and stops it
    again in close(); otherwise it is only available while some other
    component has tracing switched on.
    """

    def __init__(self, start_tracing: bool = False):
        self._owns_tracing = False
        if start_tracing and not tracemalloc.is_tracing():
            tracemalloc.start()
            self._owns_tracing = True
            logger.debug("tracemalloc started for memory sampling")

    @property
    def available(self) -> bool:
        return tracemalloc.is_tracing()

    def read_mb(self) -> float:
        current, _peak = tracemalloc.get_traced_memory()
        return current / BYTES_PER_MB

    def close(self) -> None:
        if self._owns_tracing and tracemalloc.is_tracing():
            tracemalloc.stop()
        self._owns_tracing = False
