"""
Graph Store
===========

Append-only ownership of the node and edge collections.

INVARIANTS:
- Node ids are unique strings; nodes are never removed
- Edges are never removed; an edge may name an id that is not a node
- Every add bumps `revision`, which invalidates any cached ordering
- Moving a node changes its position only, not the topology revision
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
import logging
import random

import networkx as nx

from ..contracts.base import Edge, LoadTimings, Node, NodeId
from ..temporal.clock import Clock, MonotonicClock


logger = logging.getLogger(__name__)


@dataclass
class GraphConfig:
    """Synthetic topology parameters."""
    total_nodes: int = 50000
    total_edges: int = 2000
    spread: float = 20000.0
    seed: Optional[int] = None

    def __post_init__(self):
        if self.total_nodes < 0 or self.total_edges < 0:
            raise ValueError("Node and edge totals must be non-negative")
        if self.spread <= 0:
            raise ValueError("spread must be positive")


class GraphStore:
    """
    Node and edge collections for one session.

    Nodes keep insertion order; that order is the tie-breaker the
    topological sorter relies on.
    """

    def __init__(self, spread: float = 20000.0, rng: Optional[random.Random] = None):
        self._spread = spread
        self._rng = rng or random.Random()
        self._nodes: Dict[NodeId, Node] = {}
        self._edges: List[Edge] = []
        self._revision = 0

    # =========================================================================
    # MUTATION
    # =========================================================================

    def add_node(self) -> NodeId:
        """Append a node with the next sequential id at a random position."""
        candidate = len(self._nodes) + 1
        while str(candidate) in self._nodes:
            candidate += 1
        node_id = str(candidate)
        self._nodes[node_id] = Node(
            id=node_id,
            x=self._rng.random() * self._spread,
            y=self._rng.random() * self._spread
        )
        self._revision += 1
        return node_id

    def insert_node(self, node: Node) -> None:
        """Append an externally supplied node (topology snapshots)."""
        if node.id in self._nodes:
            raise ValueError(f"Duplicate node id {node.id!r}")
        self._nodes[node.id] = node
        self._revision += 1

    def add_edge(self, source: NodeId, target: NodeId) -> Edge:
        edge = Edge(source=source, target=target)
        self._edges.append(edge)
        self._revision += 1
        return edge

    def move_node(self, node_id: NodeId, dx: float, dy: float) -> bool:
        """
        Shift a node in place.

        Returns False when the id is unknown; the caller's gesture simply
        has nothing to move.
        """
        node = self._nodes.get(node_id)
        if node is None:
            return False
        node.x += dx
        node.y += dy
        return True

    def populate(
        self,
        node_count: int,
        edge_count: int,
        clock: Optional[Clock] = None
    ) -> LoadTimings:
        """
        Generate a synthetic topology and time each phase.

        "Query" covers node generation, "transform" covers edge generation.
        Edge targets are resampled until they differ from the source.
        """
        clock = clock or MonotonicClock()
        t0 = clock.now_ms()

        for _ in range(node_count):
            self.add_node()
        t_query = clock.now_ms()

        ids = list(self._nodes)
        if len(ids) < 2 and edge_count:
            logger.warning(
                "Cannot place %d edges on %d node(s) without self-edges; skipping",
                edge_count, len(ids)
            )
            edge_count = 0
        for _ in range(edge_count):
            source = self._rng.choice(ids)
            target = self._rng.choice(ids)
            while target == source:
                target = self._rng.choice(ids)
            self.add_edge(source, target)
        t_transform = clock.now_ms()

        timings = LoadTimings(
            query_ms=t_query - t0,
            transform_ms=t_transform - t_query,
            total_ms=t_transform - t0
        )
        logger.info(
            "Generated %d nodes / %d edges in %.2fms",
            len(self._nodes), len(self._edges), timings.total_ms
        )
        return timings

    def load(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """Append a topology snapshot supplied by a collaborator."""
        for node in nodes:
            self.insert_node(node)
        for edge in edges:
            self.add_edge(edge.source, edge.target)

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def spread(self) -> float:
        return self._spread

    def all_nodes(self) -> Tuple[Node, ...]:
        return tuple(self._nodes.values())

    def all_edges(self) -> Tuple[Edge, ...]:
        return tuple(self._edges)

    def node_ids(self) -> Tuple[NodeId, ...]:
        return tuple(self._nodes)

    def has_node(self, node_id: NodeId) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: NodeId) -> Optional[Node]:
        return self._nodes.get(node_id)

    def dangling_edges(self) -> Tuple[Edge, ...]:
        """Edges with at least one endpoint missing from the node set."""
        return tuple(
            e for e in self._edges
            if e.source not in self._nodes or e.target not in self._nodes
        )

    def to_networkx(self) -> nx.DiGraph:
        """
        Directed view of the resolvable part of the graph.

        Dangling edges are left out; they have nothing to attach to.
        """
        graph = nx.DiGraph()
        graph.add_nodes_from(self._nodes)
        for edge in self._edges:
            if edge.source in self._nodes and edge.target in self._nodes:
                graph.add_edge(edge.source, edge.target)
        return graph

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes
