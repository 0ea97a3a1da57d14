"""
Base Contracts and Shared Types

Graph identity types, the activity enum and the load timing record.

BOUNDARY ENFORCEMENT:
=====================
- Edge validity (no self-loops) is checked here, once, at creation
- Edges may point at ids that are not nodes; that is not checked here
- Node is the only mutable type (position changes during drags)
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


NodeId = str


# =============================================================================
# ACTIVITIES
# =============================================================================

class Activity(Enum):
    """
    Mutually exclusive classification of the current user interaction.

    Exactly one value is current at any instant for a session.
    """
    IDLE = "IDLE"
    PANNING = "PANNING"
    ZOOMING = "ZOOMING"
    DRAGGING = "DRAGGING"
    SELECTING = "SELECTING"


# Report and bucket iteration order
ACTIVITY_ORDER = (
    Activity.IDLE,
    Activity.PANNING,
    Activity.ZOOMING,
    Activity.DRAGGING,
    Activity.SELECTING,
)


# =============================================================================
# GRAPH TYPES
# =============================================================================

@dataclass
class Node:
    """
    Graph node with a position in graph space.

    Position is mutated in place while the node is dragged.
    Nodes are never deleted.
    """
    id: NodeId
    x: float
    y: float

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Node id must be a non-empty string")


@dataclass(frozen=True)
class Edge:
    """
    Directed edge between two node ids.

    The target may not exist in the node collection (yet). Consumers
    filter such edges instead of assuming referential integrity.
    """
    source: NodeId
    target: NodeId

    def __post_init__(self):
        if self.source == self.target:
            raise ValueError(f"Self-edge on {self.source!r} is not allowed")


@dataclass(frozen=True)
class LoadTimings:
    """Wall time spent producing the initial topology, in milliseconds."""
    query_ms: float = 0.0
    transform_ms: float = 0.0
    total_ms: float = 0.0
