"""
graphperf - Interaction Performance Instrumentation
===================================================

Instrumentation engine for large-graph visualizations. It orders the graph
topologically, classifies what the user is doing, samples frame rate,
memory and render latency per activity, and folds everything into a final
report with verdicts.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Shared value types: Node, Edge, Activity, interaction events, report
   - No behavior beyond validation

2. GRAPH (graph/)
   - GraphStore: append-only node/edge collections
   - TopologicalSorter: Kahn ordering with residual fallback

3. TEMPORAL (temporal/)
   - Injectable clocks and cooperative schedulers (frames + timers)

4. INTERACTION (interaction/)
   - ActivityStateMachine: current activity, debounced reverts, counters

5. SAMPLING (sampling/)
   - SampleCollector: frame cadence, memory interval, render probe

6. REPORT (report/)
   - ReportAggregator + text formatter

The InstrumentationSession in engine.py owns one instance of each layer and
is the only object collaborators talk to.
"""

from .contracts.base import Activity, Edge, Node, NodeId
from .engine import HarnessConfig, InstrumentationSession

__all__ = [
    'Activity',
    'Edge',
    'HarnessConfig',
    'InstrumentationSession',
    'Node',
    'NodeId',
]

__version__ = "0.1.0"
