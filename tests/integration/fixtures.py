"""
Integration Test Fixtures

Deterministic topologies, probes and session factories.
All fixtures are explicit - virtual time only, seeded randomness only.
"""

import random
from typing import List, Optional, Tuple

from graphperf.contracts.base import Edge, Node
from graphperf.engine import HarnessConfig, InstrumentationSession
from graphperf.graph.store import GraphConfig
from graphperf.sampling.memory import MemoryProbe
from graphperf.temporal.scheduler import ManualScheduler


# 50 FPS grid keeps every frame boundary on a whole millisecond
FRAME_INTERVAL_MS = 20.0


# =============================================================================
# PROBES
# =============================================================================

class FixedMemoryProbe(MemoryProbe):
    """Always reports the same heap size."""

    def __init__(self, value_mb: float = 42.0):
        self.value_mb = value_mb

    @property
    def available(self) -> bool:
        return True

    def read_mb(self) -> float:
        return self.value_mb


# =============================================================================
# TOPOLOGIES
# =============================================================================

def chain_topology() -> Tuple[List[Node], List[Edge]]:
    """1 -> 2 -> 3 plus an isolated 4."""
    nodes = [Node(id=str(i), x=float(i), y=0.0) for i in range(1, 5)]
    edges = [Edge("1", "2"), Edge("2", "3")]
    return nodes, edges


def dangling_topology() -> Tuple[List[Node], List[Edge]]:
    """Chain with one edge to an unknown target and one from an unknown source."""
    nodes = [Node(id=str(i), x=0.0, y=0.0) for i in range(1, 4)]
    edges = [
        Edge("1", "2"),
        Edge("2", "99"),
        Edge("77", "3"),
    ]
    return nodes, edges


# =============================================================================
# SESSIONS
# =============================================================================

def make_session(
    total_nodes: int = 0,
    total_edges: int = 0,
    seed: Optional[int] = 7,
    memory_probe: Optional[MemoryProbe] = None
) -> Tuple[ManualScheduler, InstrumentationSession]:
    scheduler = ManualScheduler(frame_interval_ms=FRAME_INTERVAL_MS)
    config = HarnessConfig(
        graph=GraphConfig(total_nodes=total_nodes, total_edges=total_edges, seed=seed)
    )
    session = InstrumentationSession(
        scheduler,
        config=config,
        memory_probe=memory_probe,
        rng=random.Random(seed)
    )
    return scheduler, session
