"""
Topology Engine
===============

Topological ordering of the session graph plus structural diagnostics.

ORDERING RULES:
===============
Kahn's algorithm with a FIFO queue:
- The queue is seeded with every in-degree-0 id in node collection order
- Successors are visited in edge scan order
- Ties are broken purely by discovery order (queue, not stack)

Ids that are never dequeued (members of cycles, or held back by an edge
whose source is not a node) are appended afterwards in node collection
order. Nothing orders the residual ids among themselves; the only promise
for them is that each appears exactly once.

Edges whose target is not a node contribute nothing.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple
import logging

import networkx as nx

from ..contracts.base import Edge, NodeId
from .store import GraphStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopologicalOrder:
    """
    Ordering of every node id.

    node_ids[:resolved_count] came out of the queue phase and respect every
    edge between them; node_ids[resolved_count:] is the residual tail.
    """
    node_ids: Tuple[NodeId, ...]
    resolved_count: int
    revision: int = 0

    @property
    def residual(self) -> Tuple[NodeId, ...]:
        return self.node_ids[self.resolved_count:]

    @property
    def is_complete(self) -> bool:
        """True when no id needed the fallback (the graph was acyclic)."""
        return self.resolved_count == len(self.node_ids)

    def position(self, node_id: NodeId) -> int:
        return self.node_ids.index(node_id)

    def __len__(self) -> int:
        return len(self.node_ids)

    def __iter__(self) -> Iterator[NodeId]:
        return iter(self.node_ids)


class TopologicalSorter:
    """
    Full-recompute Kahn sorter with a per-revision cache.

    The session recomputes after every mutation; order_for() only returns
    the cached result when the store revision has not moved.
    """

    def __init__(self):
        self._cached: Optional[TopologicalOrder] = None
        self._recompute_count = 0

    @property
    def recompute_count(self) -> int:
        return self._recompute_count

    def order_for(self, store: GraphStore) -> TopologicalOrder:
        if self._cached is not None and self._cached.revision == store.revision:
            return self._cached
        order = self.sort(store.node_ids(), store.all_edges(), revision=store.revision)
        self._cached = order
        self._recompute_count += 1
        if not order.is_complete:
            logger.debug(
                "Topological order rev %d has %d residual node(s)",
                order.revision, len(order.residual)
            )
        return order

    @staticmethod
    def sort(
        node_ids: Sequence[NodeId],
        edges: Iterable[Edge],
        revision: int = 0
    ) -> TopologicalOrder:
        successors: Dict[NodeId, List[NodeId]] = {nid: [] for nid in node_ids}
        in_degree: Dict[NodeId, int] = {nid: 0 for nid in node_ids}

        for edge in edges:
            if edge.target not in in_degree:
                continue
            in_degree[edge.target] += 1
            if edge.source in successors:
                successors[edge.source].append(edge.target)

        queue = deque(nid for nid in node_ids if in_degree[nid] == 0)
        ordered: List[NodeId] = []
        while queue:
            current = queue.popleft()
            ordered.append(current)
            for nxt in successors[current]:
                in_degree[nxt] -= 1
                if in_degree[nxt] == 0:
                    queue.append(nxt)

        resolved_count = len(ordered)
        if resolved_count < len(node_ids):
            resolved = set(ordered)
            ordered.extend(nid for nid in node_ids if nid not in resolved)

        return TopologicalOrder(
            node_ids=tuple(ordered),
            resolved_count=resolved_count,
            revision=revision
        )


# =============================================================================
# STRUCTURAL DIAGNOSTICS
# =============================================================================

@dataclass(frozen=True)
class GraphMetrics:
    """Immutable structural metrics for the session graph."""
    node_count: int
    edge_count: int
    dangling_edge_count: int
    density: float
    is_acyclic: bool
    cyclic_node_count: int
    weak_component_count: int


class TopologyEngine:
    """
    Structural checks over the resolvable part of the graph.

    Wraps NetworkX; used for diagnostics and logging only, never for the
    ordering itself.
    """

    def compute_metrics(self, store: GraphStore) -> GraphMetrics:
        graph = store.to_networkx()
        dangling = len(store.dangling_edges())
        if not graph:
            return GraphMetrics(0, 0, dangling, 0.0, True, 0, 0)

        cyclic_nodes = sum(
            len(component)
            for component in nx.strongly_connected_components(graph)
            if len(component) > 1
        )

        return GraphMetrics(
            node_count=graph.number_of_nodes(),
            edge_count=graph.number_of_edges(),
            dangling_edge_count=dangling,
            density=nx.density(graph),
            is_acyclic=nx.is_directed_acyclic_graph(graph),
            cyclic_node_count=cyclic_nodes,
            weak_component_count=nx.number_weakly_connected_components(graph)
        )

    def find_cycle(self, store: GraphStore) -> Optional[List[Tuple[NodeId, NodeId]]]:
        """Return one cycle as a list of edges, or None for an acyclic graph."""
        try:
            return [(u, v) for u, v in nx.find_cycle(store.to_networkx())]
        except nx.NetworkXNoCycle:
            return None
