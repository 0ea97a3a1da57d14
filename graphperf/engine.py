"""
Engine Orchestration Module

One coordinator object per instrumented session. It owns every mutable
buffer (graph, activity, samples, counters) and exposes explicit mutation
methods plus pull-based snapshots. Collaborators observe it through
subscribe() instead of reaching into the layers.

DESIGN PRINCIPLES:
==================
1. Every layer is constructed here and only talks to its neighbours
2. All callbacks run on the session's scheduler; no locks anywhere
3. end_session() runs once; later calls return the same report
4. Teardown without end_session() still produces the report
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Mapping, Optional
import logging
import os
import random

from .contracts.base import Activity, Edge, LoadTimings, Node, NodeId
from .contracts.events import InteractionEvent
from .contracts.report import InteractionCounts, LiveMetrics, PerformanceReport
from .graph import GraphConfig, GraphMetrics, GraphStore, TopologicalOrder, TopologicalSorter, TopologyEngine
from .interaction import ActivityStateMachine, Camera, InteractionConfig
from .report import AggregationInput, ReportAggregator, ReportConfig, format_report
from .sampling import MemoryProbe, SampleCollector, SampleKind, SamplingConfig
from .temporal.scheduler import Scheduler


logger = logging.getLogger(__name__)

ENV_PREFIX = "GRAPHPERF_"


@dataclass
class HarnessConfig:
    """Unified configuration for a session."""
    graph: GraphConfig = None
    interaction: InteractionConfig = None
    sampling: SamplingConfig = None
    report: ReportConfig = None

    def __post_init__(self):
        self.graph = self.graph or GraphConfig()
        self.interaction = self.interaction or InteractionConfig()
        self.sampling = self.sampling or SamplingConfig()
        self.report = self.report or ReportConfig()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'HarnessConfig':
        """
        Defaults overridden by GRAPHPERF_* environment variables.

        Recognised: TOTAL_NODES, TOTAL_EDGES, SPREAD, SEED, MEMORY_BUDGET_MB.
        """
        env = os.environ if environ is None else environ

        def get(name: str, cast, default):
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw == "":
                return default
            try:
                return cast(raw)
            except ValueError as e:
                raise ValueError(f"Invalid {ENV_PREFIX}{name}={raw!r}") from e

        defaults = GraphConfig()
        graph = GraphConfig(
            total_nodes=get("TOTAL_NODES", int, defaults.total_nodes),
            total_edges=get("TOTAL_EDGES", int, defaults.total_edges),
            spread=get("SPREAD", float, defaults.spread),
            seed=get("SEED", int, defaults.seed)
        )
        report = ReportConfig(
            memory_budget_mb=get("MEMORY_BUDGET_MB", float, ReportConfig().memory_budget_mb)
        )
        return cls(graph=graph, report=report)


# =============================================================================
# OBSERVATION
# =============================================================================

class NoticeKind(Enum):
    ACTIVITY_CHANGED = "activity_changed"
    ORDER_CHANGED = "order_changed"
    SAMPLE_RECORDED = "sample_recorded"
    SESSION_ENDED = "session_ended"


@dataclass(frozen=True)
class SessionNotice:
    kind: NoticeKind
    detail: object = None


SessionObserver = Callable[[SessionNotice], None]


# =============================================================================
# SESSION
# =============================================================================

class InstrumentationSession:
    """
    Coordinator for one instrumentation session.

    LIFECYCLE:
    ==========
    1. start()        - build or load topology, sort, start sampling
    2. handle(...)    - interaction events from the input collaborator
       add_node(...)  - topology mutations (each triggers a re-sort)
    3. end_session()  - stop sampling, aggregate, format (once)
       close()        - teardown; flushes the report if still open
    """

    def __init__(
        self,
        scheduler: Scheduler,
        config: Optional[HarnessConfig] = None,
        memory_probe: Optional[MemoryProbe] = None,
        rng: Optional[random.Random] = None
    ):
        self._config = config or HarnessConfig()
        self._scheduler = scheduler
        self._rng = rng or random.Random(self._config.graph.seed)

        self._graph = GraphStore(spread=self._config.graph.spread, rng=self._rng)
        self._sorter = TopologicalSorter()
        self._topology = TopologyEngine()
        self._state = ActivityStateMachine(
            scheduler=scheduler,
            graph=self._graph,
            config=self._config.interaction
        )
        self._collector = SampleCollector(
            scheduler=scheduler,
            activity_source=self._state.current,
            memory_probe=memory_probe,
            config=self._config.sampling
        )
        self._state.set_render_probe(self._collector.sample_render)
        self._aggregator = ReportAggregator(self._config.report)

        self._observers: List[SessionObserver] = []
        self._state.subscribe(self._on_activity_changed)
        self._collector.subscribe(self._on_sample)

        self._start_ms = scheduler.now_ms()
        self._load = LoadTimings()
        self._order = TopologicalOrder(node_ids=(), resolved_count=0)
        self._started = False
        self._ended = False
        self._report: Optional[PerformanceReport] = None
        self._report_text: Optional[str] = None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, generate: bool = True) -> LoadTimings:
        """
        Start the session.

        With generate=True and an empty graph, a synthetic topology of the
        configured size is generated first and its load timings kept for
        the report.
        """
        if self._started:
            return self._load
        self._started = True
        self._start_ms = self._scheduler.now_ms()

        if generate and not len(self._graph):
            cfg = self._config.graph
            self._load = self._graph.populate(cfg.total_nodes, cfg.total_edges, self._scheduler.clock)

        self._recompute_order()
        metrics = self._topology.compute_metrics(self._graph)
        logger.info(
            "Session started: %d nodes, %d edges (%d dangling), acyclic=%s",
            len(self._graph), len(self._graph.all_edges()),
            metrics.dangling_edge_count, metrics.is_acyclic
        )
        self._collector.start()
        return self._load

    def end_session(self) -> PerformanceReport:
        """
        Stop sampling and build the final report.

        Idempotent: later calls return the same report object and touch
        nothing.
        """
        if self._ended:
            return self._report
        self._ended = True

        # Both cadences and pending probes go before any aggregation
        self._collector.stop()
        self._state.close()

        duration = self._scheduler.now_ms() - self._start_ms
        self._report = self._aggregator.aggregate(AggregationInput(
            session_duration_ms=duration,
            node_count=len(self._graph),
            load=self._load,
            samples=self._collector.global_samples,
            buckets=self._collector.buckets,
            interactions=self._state.counters
        ))
        self._report_text = format_report(self._report)
        logger.info("Session ended after %.2fs\n%s", duration / 1000.0, self._report_text)
        self._notify(NoticeKind.SESSION_ENDED, self._report)
        return self._report

    def close(self) -> Optional[PerformanceReport]:
        """Teardown. Flushes the report if end_session() was never called."""
        if not self._ended:
            logger.info("Session torn down before end_session(); flushing report")
        return self.end_session()

    def __enter__(self) -> 'InstrumentationSession':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================================
    # TOPOLOGY
    # =========================================================================

    def load_topology(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> LoadTimings:
        """Append a collaborator-supplied snapshot and re-sort."""
        clock = self._scheduler.clock
        t0 = clock.now_ms()
        nodes = list(nodes)
        t_query = clock.now_ms()
        self._graph.load(nodes, edges)
        t_end = clock.now_ms()
        self._load = LoadTimings(
            query_ms=t_query - t0,
            transform_ms=t_end - t_query,
            total_ms=t_end - t0
        )
        if self._started:
            self._recompute_order()
        return self._load

    def add_node(self) -> NodeId:
        """
        Add a node linked to a random node of the current order.

        Falls back to "1" as the target when the order is empty. The
        change is rendered under whatever activity is current.
        """
        ids = self._order.node_ids
        target = self._rng.choice(ids) if ids else "1"
        node_id = self._graph.add_node()
        if target != node_id:
            self._graph.add_edge(node_id, target)
        self._recompute_order()
        self._collector.sample_render()
        return node_id

    def add_edge(self, source: NodeId, target: NodeId) -> Edge:
        edge = self._graph.add_edge(source, target)
        self._recompute_order()
        return edge

    def _recompute_order(self) -> None:
        clock = self._scheduler.clock
        t0 = clock.now_ms()
        self._order = self._sorter.order_for(self._graph)
        if len(self._graph):
            self._collector.record_render(clock.now_ms() - t0)
        self._notify(NoticeKind.ORDER_CHANGED, self._order)

    # =========================================================================
    # INTERACTION
    # =========================================================================

    def handle(self, event: InteractionEvent) -> None:
        self._state.handle(event)

    def reset_view(self) -> None:
        self._state.camera.reset()

    # =========================================================================
    # READ SIDE
    # =========================================================================

    @property
    def activity(self) -> Activity:
        return self._state.current()

    @property
    def order(self) -> TopologicalOrder:
        return self._order

    @property
    def graph(self) -> GraphStore:
        return self._graph

    @property
    def camera(self) -> Camera:
        return self._state.camera

    @property
    def counters(self) -> InteractionCounts:
        return self._state.counters

    @property
    def state_machine(self) -> ActivityStateMachine:
        return self._state

    @property
    def collector(self) -> SampleCollector:
        return self._collector

    @property
    def load_timings(self) -> LoadTimings:
        return self._load

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def report(self) -> Optional[PerformanceReport]:
        return self._report

    @property
    def report_text(self) -> Optional[str]:
        return self._report_text

    def graph_metrics(self) -> GraphMetrics:
        return self._topology.compute_metrics(self._graph)

    def live_metrics(self) -> LiveMetrics:
        render = self._collector.global_samples.render
        return LiveMetrics(
            activity=self._state.current(),
            fps=self._collector.latest_fps,
            fps_sample_count=len(self._collector.global_samples.fps),
            memory_mb=self._collector.latest_memory_mb,
            render_count=render.count,
            render_avg_ms=render.average,
            render_max_ms=render.max,
            interactions=self._state.counters,
            session_ended=self._ended
        )

    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        """Register observer(notice); returns an unsubscribe function."""
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _on_activity_changed(self, old: Activity, new: Activity) -> None:
        self._notify(NoticeKind.ACTIVITY_CHANGED, new)

    def _on_sample(self, kind: SampleKind, activity: Optional[Activity], value: float) -> None:
        self._notify(NoticeKind.SAMPLE_RECORDED, (kind, activity, value))

    def _notify(self, kind: NoticeKind, detail: object = None) -> None:
        notice = SessionNotice(kind=kind, detail=detail)
        for observer in list(self._observers):
            try:
                observer(notice)
            except Exception:
                logger.exception("Session observer %r failed on %s", observer, kind.value)
