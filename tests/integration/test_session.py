"""
Instrumentation Session Tests
=============================

Whole sessions on a ManualScheduler with a 20ms frame grid, so fps buckets
close exactly on every full second.

INVARIANTS TESTED:
1. A session with no data still reports 0.00 everywhere
2. end_session() is idempotent and teardown flushes the report
3. Node presses count as DRAGGING until released; clicks show up
   retroactively only in later samples
4. Topology mutations re-sort and are measured as renders
"""

import pytest

from graphperf.contracts.base import Activity, Edge
from graphperf.contracts.events import (
    BackgroundPressStart, NodePressStart, PointerMove, PointerUp, Wheel
)
from graphperf.contracts.report import Verdict
from graphperf.engine import HarnessConfig, NoticeKind
from .fixtures import (
    FixedMemoryProbe, chain_topology, dangling_topology, make_session
)


class TestEmptySession:

    def test_report_is_all_zero(self):
        scheduler, session = make_session()
        session.start()
        report = session.end_session()
        text = session.report_text

        assert report.node_count == 0
        assert report.render.sample_count == 0
        assert report.interactions.counts.total == 0
        assert report.verdicts == (
            Verdict.POOR,
            Verdict.MEMORY_EFFICIENT,
            Verdict.IDLE_PERFORMANCE,
        )
        assert "Session Duration: 0.00s" in text
        assert "Node Count: 0" in text
        assert "  Average FPS: 0.00" in text
        assert "  Peak Memory: 0.00MB" in text
        assert "  Total Interactions: 0" in text
        assert "nan" not in text.lower()

    def test_end_is_idempotent(self):
        scheduler, session = make_session(memory_probe=FixedMemoryProbe())
        session.start()
        scheduler.advance(2000.0)

        first = session.end_session()
        first_text = session.report_text
        scheduler.advance(5000.0)
        second = session.end_session()

        assert second is first
        assert session.report_text == first_text
        assert first.frame_rate.sample_count == 2

    def test_close_flushes_report(self):
        scheduler, session = make_session()
        session.start()
        scheduler.advance(1000.0)

        report = session.close()

        assert session.ended
        assert report is session.report
        assert report.frame_rate.sample_count == 1

    def test_context_manager(self):
        scheduler, session = make_session()
        with session:
            scheduler.advance(1000.0)
            assert session.collector.running

        assert session.ended
        assert not session.collector.running
        assert session.report_text.startswith("=" * 60)


class TestGeneratedSession:

    def test_seeded_generation_is_reproducible(self):
        texts = []
        for _ in range(2):
            scheduler, session = make_session(total_nodes=200, total_edges=50, seed=3)
            session.start()
            scheduler.advance(1000.0)
            session.end_session()
            texts.append(session.report_text)
            assert len(session.graph) == 200
            assert len(session.graph.all_edges()) == 50
            assert len(session.order) == 200

        assert texts[0] == texts[1]
        assert "Node Count: 200" in texts[0]

    def test_initial_sort_is_a_render_sample(self):
        scheduler, session = make_session(total_nodes=10, total_edges=5)
        session.start()

        assert session.collector.global_samples.render.count == 1
        assert session.collector.bucket(Activity.IDLE).render == [0.0]


class TestGestureAttribution:

    def test_click_is_dragging_while_pressed(self):
        scheduler, session = make_session()
        session.start()

        scheduler.advance(100.0)
        session.handle(NodePressStart(node_id="1"))
        assert session.activity is Activity.DRAGGING
        scheduler.advance(80.0)
        session.handle(PointerUp())
        assert session.activity is Activity.SELECTING

        scheduler.advance(20.0)
        assert session.collector.bucket(Activity.SELECTING).render == [pytest.approx(20.0)]

        scheduler.advance(800.0)
        report = session.end_session()

        assert report.activity(Activity.DRAGGING).sample_count == 0
        assert report.activity(Activity.IDLE).sample_count == 1
        assert report.interactions.counts.node_clicks == 1
        assert report.interactions.counts.node_drag_sessions == 1

    def test_sample_during_press_lands_in_dragging(self):
        scheduler, session = make_session()
        session.start()

        scheduler.advance(990.0)
        session.handle(NodePressStart(node_id="1"))
        scheduler.advance(10.0)

        assert session.collector.bucket(Activity.DRAGGING).fps == [pytest.approx(50.0)]

        session.handle(PointerUp())
        report = session.end_session()
        assert report.interactions.counts.node_clicks == 1

    def test_pan_and_zoom_attribution(self):
        scheduler, session = make_session(memory_probe=FixedMemoryProbe(30.0))
        session.start()

        scheduler.advance(900.0)
        session.handle(BackgroundPressStart())
        session.handle(PointerMove(dx=15.0, dy=-5.0))
        scheduler.advance(200.0)
        session.handle(PointerUp())

        scheduler.advance(400.0)
        session.handle(Wheel(delta_y=-100.0))
        scheduler.advance(100.0)
        session.handle(Wheel(delta_y=-100.0))
        scheduler.advance(200.0)
        session.handle(Wheel(delta_y=50.0))
        scheduler.advance(1200.0)

        report = session.end_session()

        assert report.activity(Activity.PANNING).sample_count == 1
        assert report.activity(Activity.ZOOMING).sample_count == 1
        assert report.activity(Activity.IDLE).sample_count == 1
        assert report.activity(Activity.ZOOMING).memory_avg_mb == 30.0
        assert report.interactions.counts.pan_ops == 1
        assert report.interactions.counts.zoom_ops == 3
        assert session.camera.x == 15.0
        assert session.activity is Activity.IDLE

    def test_reset_view_restores_camera(self):
        scheduler, session = make_session()
        session.start()

        session.handle(BackgroundPressStart())
        session.handle(PointerMove(dx=40.0, dy=25.0))
        session.handle(PointerUp())
        session.handle(Wheel(delta_y=-500.0))
        assert session.camera.scale > 1.0

        session.reset_view()

        assert (session.camera.x, session.camera.y, session.camera.scale) == (0.0, 0.0, 1.0)
        assert session.activity is Activity.ZOOMING
        assert session.counters.total == 2

    def test_events_after_end_are_ignored(self):
        scheduler, session = make_session()
        session.start()
        session.end_session()

        session.handle(Wheel(delta_y=10.0))
        session.handle(BackgroundPressStart())

        assert session.activity is Activity.IDLE
        assert session.counters.total == 0


class TestTopologyMutation:

    def test_add_node_links_into_current_order(self):
        scheduler, session = make_session()
        session.start()

        first = session.add_node()
        second = session.add_node()

        assert (first, second) == ("1", "2")
        assert session.graph.all_edges() == (Edge("2", "1"),)
        assert session.order.node_ids == ("2", "1")

        collector = session.collector
        assert collector.global_samples.render.count == 2
        assert collector.pending_render_probes == 2
        scheduler.advance(20.0)
        assert collector.global_samples.render.count == 4
        assert collector.pending_render_probes == 0

    def test_add_node_targets_existing_id(self):
        scheduler, session = make_session(total_nodes=20, total_edges=0)
        session.start()
        before = set(session.order.node_ids)

        node_id = session.add_node()

        new_edges = [e for e in session.graph.all_edges() if e.source == node_id]
        assert len(new_edges) == 1
        assert new_edges[0].target in before
        assert session.order.position(new_edges[0].target) > session.order.position(node_id)

    def test_loaded_topology(self):
        scheduler, session = make_session()
        session.load_topology(*chain_topology())
        session.start(generate=True)

        assert len(session.graph) == 4
        assert session.order.node_ids == ("1", "4", "2", "3")
        assert session.order.is_complete

    def test_dangling_edges(self):
        scheduler, session = make_session()
        session.load_topology(*dangling_topology())
        session.start()

        # 3 waits on a source that is not a node
        assert session.order.node_ids == ("1", "2", "3")
        assert session.order.resolved_count == 2
        metrics = session.graph_metrics()
        assert metrics.dangling_edge_count == 2
        assert metrics.edge_count == 1
        assert metrics.is_acyclic

    def test_cycle_falls_back_to_collection_order(self):
        scheduler, session = make_session()
        session.load_topology(*chain_topology())
        session.start()

        session.add_edge("3", "1")

        assert session.order.node_ids == ("4", "1", "2", "3")
        assert session.order.resolved_count == 1
        assert session.graph_metrics().cyclic_node_count == 3


class TestObservation:

    def test_live_metrics(self):
        scheduler, session = make_session(memory_probe=FixedMemoryProbe(12.0))
        session.start()
        scheduler.advance(1000.0)

        metrics = session.live_metrics()

        assert metrics.activity is Activity.IDLE
        assert metrics.fps == pytest.approx(50.0)
        assert metrics.fps_sample_count == 1
        assert metrics.memory_mb == 12.0
        assert not metrics.session_ended

    def test_observers_receive_notices(self):
        scheduler, session = make_session()
        notices = []
        unsubscribe = session.subscribe(notices.append)
        session.start()

        session.handle(Wheel(delta_y=-1.0))
        scheduler.advance(400.0)
        session.end_session()
        unsubscribe()

        kinds = [n.kind for n in notices]
        assert NoticeKind.ORDER_CHANGED in kinds
        changes = [n.detail for n in notices if n.kind is NoticeKind.ACTIVITY_CHANGED]
        assert changes == [Activity.ZOOMING, Activity.IDLE]
        assert kinds[-1] is NoticeKind.SESSION_ENDED
        assert notices[-1].detail is session.report


    def test_failing_observer_does_not_break_session(self):
        scheduler, session = make_session()

        def broken(notice):
            raise RuntimeError("renderer detached")

        session.subscribe(broken)
        session.start()
        session.handle(Wheel(delta_y=-1.0))
        scheduler.advance(3000.0)
        report = session.end_session()

        assert session.activity is Activity.IDLE
        assert report.frame_rate.sample_count == 3
        assert session.report_text is not None


class TestHarnessConfig:

    def test_from_env(self):
        config = HarnessConfig.from_env({
            "GRAPHPERF_TOTAL_NODES": "1000",
            "GRAPHPERF_TOTAL_EDGES": "40",
            "GRAPHPERF_SEED": "11",
            "GRAPHPERF_MEMORY_BUDGET_MB": "64",
        })

        assert config.graph.total_nodes == 1000
        assert config.graph.total_edges == 40
        assert config.graph.seed == 11
        assert config.report.memory_budget_mb == 64.0
        assert config.interaction.zoom_revert_ms == 300.0

    def test_from_env_defaults(self):
        config = HarnessConfig.from_env({})
        assert config.graph.total_nodes == 50000
        assert config.graph.total_edges == 2000

    def test_from_env_rejects_garbage(self):
        with pytest.raises(ValueError, match="GRAPHPERF_TOTAL_NODES"):
            HarnessConfig.from_env({"GRAPHPERF_TOTAL_NODES": "many"})
