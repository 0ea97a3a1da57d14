"""
Graph Layer

RESPONSIBILITY: Own the topology and order it
ALLOWED INPUTS: Node/edge additions from the session or a snapshot
OUTPUTS: TopologicalOrder, GraphMetrics

WHAT THIS LAYER MUST NOT DO:
============================
- Delete nodes or edges
- Reject dangling edges (they are filtered by consumers)
- Know anything about activities or sampling
"""

from .store import GraphConfig, GraphStore
from .topology import GraphMetrics, TopologicalOrder, TopologicalSorter, TopologyEngine

__all__ = [
    'GraphConfig',
    'GraphMetrics',
    'GraphStore',
    'TopologicalOrder',
    'TopologicalSorter',
    'TopologyEngine',
]
