"""
Graph Performance Harness - scripted session runner.

Generates a synthetic graph, replays a fixed cycle of interactions (pan,
wheel zoom, node drag, node click, add node) against it and prints the
final performance report.
"""

import argparse
import asyncio
import logging
import random
import sys
from dataclasses import replace
from pathlib import Path
from typing import Callable, List, Tuple

from graphperf import HarnessConfig, InstrumentationSession
from graphperf.contracts.events import (
    BackgroundPressStart, NodePressStart, PointerMove, PointerUp, Wheel
)
from graphperf.sampling import NullMemoryProbe, TracemallocProbe
from graphperf.temporal import AsyncioScheduler, ManualScheduler, Scheduler


logger = logging.getLogger("graphperf.harness")

CYCLE_MS = 10000
MOVE_STEP_MS = 16

Step = Tuple[float, Callable[[], None]]


# =============================================================================
# INTERACTION SCRIPT
# =============================================================================

def build_cycle(session: InstrumentationSession, rng: random.Random, offset: float) -> List[Step]:
    """One 10s cycle of scripted interactions, starting at offset ms."""
    steps: List[Step] = []

    def at(ms: float, action: Callable[[], None]):
        steps.append((offset + ms, action))

    # Pan: press background, drag for ~800ms, release
    at(1500, lambda: session.handle(BackgroundPressStart()))
    for i in range(50):
        at(1500 + (i + 1) * MOVE_STEP_MS, lambda: session.handle(PointerMove(dx=4.0, dy=-2.0)))
    at(2400, lambda: session.handle(PointerUp()))

    # Wheel burst: 10 notches, 50ms apart
    for i in range(10):
        delta = -120.0 if i < 5 else 120.0
        at(3500 + i * 50, lambda d=delta: session.handle(Wheel(delta_y=d)))

    # Node drag
    def press_random():
        ids = session.order.node_ids
        if ids:
            session.handle(NodePressStart(node_id=rng.choice(ids)))

    at(6000, press_random)
    for i in range(30):
        at(6000 + (i + 1) * MOVE_STEP_MS, lambda: session.handle(PointerMove(dx=3.0, dy=3.0)))
    at(6600, lambda: session.handle(PointerUp()))

    # Node click (press/release without movement)
    at(8000, press_random)
    at(8080, lambda: session.handle(PointerUp()))

    # Topology mutations
    for i in range(3):
        at(9000 + i * 100, session.add_node)

    return steps


def schedule_script(
    session: InstrumentationSession,
    scheduler: Scheduler,
    duration_ms: float,
    seed: int
) -> int:
    rng = random.Random(seed)
    count = 0
    offset = 0.0
    while offset < duration_ms:
        for due, action in build_cycle(session, rng, offset):
            if due < duration_ms:
                scheduler.call_later(due, action, "script")
                count += 1
        offset += CYCLE_MS
    return count


# =============================================================================
# RUNNERS
# =============================================================================

def run_virtual(config: HarnessConfig, duration_ms: float, seed: int, probe) -> str:
    scheduler = ManualScheduler()
    with InstrumentationSession(scheduler, config, memory_probe=probe) as session:
        steps = schedule_script(session, scheduler, duration_ms, seed)
        logger.info("Replaying %d scripted steps over %.0fms of virtual time", steps, duration_ms)
        scheduler.advance(duration_ms)
    return session.report_text


async def _run_live(config: HarnessConfig, duration_ms: float, seed: int, probe) -> str:
    scheduler = AsyncioScheduler(loop=asyncio.get_running_loop())
    with InstrumentationSession(scheduler, config, memory_probe=probe) as session:
        steps = schedule_script(session, scheduler, duration_ms, seed)
        logger.info("Running %d scripted steps over %.1fs of wall time", steps, duration_ms / 1000)
        await asyncio.sleep(duration_ms / 1000.0)
    return session.report_text


def run_live(config: HarnessConfig, duration_ms: float, seed: int, probe) -> str:
    return asyncio.run(_run_live(config, duration_ms, seed, probe))


# =============================================================================
# CLI ENTRY POINT
# =============================================================================

def main():
    parser = argparse.ArgumentParser(
        description="Scripted interaction session with performance report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_harness.py                          # 30s live session, 50k nodes
  python run_harness.py --virtual --duration 60  # 60s of virtual time
  python run_harness.py --nodes 5000 --trace-memory -o report.txt
        """
    )

    parser.add_argument('--duration', '-d', type=float, default=30.0,
                        help='Session length in seconds')
    parser.add_argument('--nodes', '-n', type=int, default=None,
                        help='Node count (overrides GRAPHPERF_TOTAL_NODES)')
    parser.add_argument('--edges', '-e', type=int, default=None,
                        help='Edge count (overrides GRAPHPERF_TOTAL_EDGES)')
    parser.add_argument('--seed', '-s', type=int, default=None,
                        help='Seed for graph generation and the script')
    parser.add_argument('--virtual', action='store_true',
                        help='Run on virtual time instead of the wall clock')
    parser.add_argument('--trace-memory', action='store_true',
                        help='Sample Python heap usage via tracemalloc')
    parser.add_argument('--output', '-o', default=None,
                        help='Also write the report text to this file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Log activity transitions and samples')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = HarnessConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    overrides = {
        "total_nodes": args.nodes,
        "total_edges": args.edges,
        "seed": args.seed,
    }
    try:
        config.graph = replace(config.graph, **{k: v for k, v in overrides.items() if v is not None})
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    seed = config.graph.seed if config.graph.seed is not None else 0

    probe = TracemallocProbe(start_tracing=True) if args.trace_memory else NullMemoryProbe()
    duration_ms = args.duration * 1000.0
    try:
        if args.virtual:
            text = run_virtual(config, duration_ms, seed, probe)
        else:
            text = run_live(config, duration_ms, seed, probe)
    finally:
        if isinstance(probe, TracemallocProbe):
            probe.close()

    print(text)
    if args.output:
        Path(args.output).write_text(text + "\n")
        print(f"Report saved to: {args.output}")


if __name__ == "__main__":
    main()
