"""
Graph Store Tests

Append-only node/edge collections, revisions and synthetic generation.
"""

import random

import pytest

from graphperf.contracts.base import Edge, Node
from graphperf.graph.store import GraphConfig, GraphStore
from graphperf.temporal.clock import ManualClock


class TestMutation:

    def test_add_node_assigns_sequential_ids(self):
        store = GraphStore(spread=100.0, rng=random.Random(1))

        ids = [store.add_node() for _ in range(3)]

        assert ids == ["1", "2", "3"]
        for node in store.all_nodes():
            assert 0.0 <= node.x < 100.0
            assert 0.0 <= node.y < 100.0

    def test_add_node_skips_ids_taken_by_snapshot(self):
        store = GraphStore()
        store.insert_node(Node(id="2", x=0.0, y=0.0))

        assert store.add_node() == "3"

    def test_duplicate_insert_rejected(self):
        store = GraphStore()
        store.insert_node(Node(id="a", x=0.0, y=0.0))

        with pytest.raises(ValueError):
            store.insert_node(Node(id="a", x=1.0, y=1.0))

    def test_self_edge_rejected(self):
        with pytest.raises(ValueError):
            Edge(source="1", target="1")

    def test_dangling_edge_accepted(self):
        store = GraphStore()
        store.add_node()

        store.add_edge("1", "999")

        assert store.dangling_edges() == (Edge("1", "999"),)
        assert store.to_networkx().number_of_edges() == 0

    def test_every_add_bumps_revision(self):
        store = GraphStore()
        rev0 = store.revision

        store.add_node()
        store.add_node()
        store.add_edge("1", "2")

        assert store.revision == rev0 + 3

    def test_move_node_in_place(self):
        store = GraphStore()
        store.insert_node(Node(id="n", x=10.0, y=10.0))
        revision = store.revision

        assert store.move_node("n", 2.5, -1.0) is True
        assert store.get_node("n").x == 12.5
        assert store.get_node("n").y == 9.0
        assert store.revision == revision

    def test_move_unknown_node_is_not_an_error(self):
        assert GraphStore().move_node("missing", 1.0, 1.0) is False


class TestGeneration:

    def test_populate_counts_and_no_self_edges(self):
        store = GraphStore(rng=random.Random(7))

        store.populate(node_count=200, edge_count=500)

        assert len(store) == 200
        assert len(store.all_edges()) == 500
        for edge in store.all_edges():
            assert edge.source != edge.target
            assert edge.source in store and edge.target in store

    def test_populate_timings_come_from_clock(self):
        clock = ManualClock()
        store = GraphStore(rng=random.Random(7))

        timings = store.populate(node_count=10, edge_count=5, clock=clock)

        assert timings.query_ms == 0.0
        assert timings.transform_ms == 0.0
        assert timings.total_ms == 0.0

    def test_populate_single_node_skips_edges(self):
        store = GraphStore()

        store.populate(node_count=1, edge_count=10)

        assert len(store) == 1
        assert store.all_edges() == ()

    def test_same_seed_same_graph(self):
        a = GraphStore(rng=random.Random(42))
        b = GraphStore(rng=random.Random(42))

        a.populate(50, 60)
        b.populate(50, 60)

        assert a.all_edges() == b.all_edges()
        assert [(n.x, n.y) for n in a.all_nodes()] == [(n.x, n.y) for n in b.all_nodes()]


class TestGraphConfig:

    def test_rejects_negative_totals(self):
        with pytest.raises(ValueError):
            GraphConfig(total_nodes=-1)

    def test_rejects_non_positive_spread(self):
        with pytest.raises(ValueError):
            GraphConfig(spread=0.0)
