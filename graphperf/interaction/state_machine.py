"""
Activity State Machine
======================

Classifies the user's interaction into exactly one Activity.

STATES:
=======
IDLE (initial) | PANNING | ZOOMING | DRAGGING | SELECTING

TRANSITIONS:
============
- background press          IDLE      -> PANNING    (pan_ops += 1)
- press end while panning   PANNING   -> IDLE
- wheel                     *         -> ZOOMING    (zoom_ops += 1)
                            ZOOMING   -> IDLE       after 300ms without wheel
- node press                *         -> DRAGGING   (node_drag_sessions += 1)
- node press end, moved     DRAGGING  -> IDLE
- node press end, no move   DRAGGING  -> SELECTING  (node_clicks += 1)
                            SELECTING -> IDLE       after 150ms

A node press is classified as DRAGGING before anything is known about
movement. Samples taken while the button is down therefore land in
DRAGGING even if the gesture turns out to be a click; only samples taken
after the release can land in SELECTING.

At most one deferred revert is pending at any time. Any new transition
cancels it; a new wheel event cancels and reschedules it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Optional
import logging

from ..contracts.base import Activity, NodeId
from ..contracts.events import EventType, InteractionEvent
from ..contracts.report import InteractionCounts
from ..graph.store import GraphStore
from ..temporal.scheduler import ScheduledHandle, Scheduler
from .camera import Camera


logger = logging.getLogger(__name__)

ActivityListener = Callable[[Activity, Activity], None]
RenderProbe = Callable[[], None]


@dataclass
class InteractionConfig:
    zoom_revert_ms: float = 300.0
    select_revert_ms: float = 150.0
    zoom_sensitivity: float = 0.001
    min_scale: float = 0.05
    max_scale: float = 10.0

    def __post_init__(self):
        if self.zoom_revert_ms < 0 or self.select_revert_ms < 0:
            raise ValueError("Revert delays must be non-negative")
        if not 0 < self.min_scale <= self.max_scale:
            raise ValueError("Scale bounds must satisfy 0 < min_scale <= max_scale")


@dataclass
class InteractionCounters:
    """Monotonic interaction counts. Only the state machine increments them."""
    pan_ops: int = 0
    zoom_ops: int = 0
    node_clicks: int = 0
    node_drag_sessions: int = 0

    def snapshot(self) -> InteractionCounts:
        return InteractionCounts(
            pan_ops=self.pan_ops,
            zoom_ops=self.zoom_ops,
            node_clicks=self.node_clicks,
            node_drag_sessions=self.node_drag_sessions
        )


class ActivityStateMachine:
    """
    Single-current-state machine driven by interaction events.

    current() may be read at any time by the sampler. The optional render
    probe is invoked for every interaction that changes what is on screen.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        graph: Optional[GraphStore] = None,
        config: Optional[InteractionConfig] = None,
        render_probe: Optional[RenderProbe] = None,
        camera: Optional[Camera] = None
    ):
        self._scheduler = scheduler
        self._graph = graph
        self._config = config or InteractionConfig()
        self._render_probe = render_probe
        self._camera = camera or Camera()

        self._current = Activity.IDLE
        self._counters = InteractionCounters()
        self._listeners: List[ActivityListener] = []
        self._pending_revert: Optional[ScheduledHandle] = None
        self._closed = False

        # Gesture tracking
        self._panning = False
        self._pressed_node: Optional[NodeId] = None
        self._moved = False

    # =========================================================================
    # READ SIDE
    # =========================================================================

    def current(self) -> Activity:
        return self._current

    @property
    def counters(self) -> InteractionCounts:
        return self._counters.snapshot()

    @property
    def camera(self) -> Camera:
        return self._camera

    @property
    def has_pending_revert(self) -> bool:
        return self._pending_revert is not None and not self._pending_revert.cancelled

    def subscribe(self, listener: ActivityListener) -> Callable[[], None]:
        """Register listener(old, new); returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_render_probe(self, probe: Optional[RenderProbe]) -> None:
        self._render_probe = probe

    def close(self) -> None:
        """Stop reacting to events and drop any pending revert."""
        self._closed = True
        self._cancel_revert()

    # =========================================================================
    # EVENT ENTRY POINTS
    # =========================================================================

    def handle(self, event: InteractionEvent) -> None:
        """Dispatch a typed interaction event on its event_type."""
        event_type = getattr(event, "event_type", None)
        if event_type is EventType.BACKGROUND_PRESS_START:
            self.on_background_press_start(event.on_background)
        elif event_type is EventType.POINTER_MOVE:
            self.on_pointer_move(event.dx, event.dy)
        elif event_type is EventType.POINTER_UP:
            self.on_press_end()
        elif event_type is EventType.WHEEL:
            self.on_wheel(event.delta_y)
        elif event_type is EventType.NODE_PRESS_START:
            self.on_node_press_start(event.node_id)
        else:
            raise TypeError(f"Unsupported interaction event: {event!r}")

    def on_background_press_start(self, on_background: bool = True) -> bool:
        """
        Begin a pan if the press hit the background surface itself.

        Returns True when a pan started.
        """
        if self._ignored("background press"):
            return False
        if not on_background or self._pressed_node is not None:
            return False
        self._cancel_revert()
        self._panning = True
        self._counters.pan_ops += 1
        self._transition(Activity.PANNING)
        return True

    def on_pointer_move(self, dx: float, dy: float) -> None:
        if self._ignored("pointer move"):
            return
        if self._panning:
            self._camera.pan(dx, dy)
            self._probe_render()
        elif self._pressed_node is not None:
            self.on_node_move(dx, dy)

    def on_press_end(self) -> None:
        if self._ignored("press end"):
            return
        if self._panning:
            self._panning = False
            self._transition(Activity.IDLE)
        elif self._pressed_node is not None:
            self.on_node_press_end()

    def on_wheel(self, delta_y: float) -> None:
        if self._ignored("wheel"):
            return
        cfg = self._config
        self._counters.zoom_ops += 1
        self._camera.zoom(delta_y, cfg.zoom_sensitivity, cfg.min_scale, cfg.max_scale)
        self._schedule_revert(cfg.zoom_revert_ms, "zoom-revert")
        self._transition(Activity.ZOOMING)
        self._probe_render()

    def on_node_press_start(self, node_id: NodeId) -> None:
        if self._ignored("node press"):
            return
        if self._panning:
            return
        self._cancel_revert()
        self._pressed_node = node_id
        self._moved = False
        self._counters.node_drag_sessions += 1
        self._transition(Activity.DRAGGING)

    def on_node_move(self, dx: float, dy: float) -> None:
        if self._pressed_node is None:
            return
        self._moved = True
        if self._graph is not None:
            gdx, gdy = self._camera.to_graph_delta(dx, dy)
            self._graph.move_node(self._pressed_node, gdx, gdy)
        self._probe_render()

    def on_node_press_end(self) -> None:
        if self._pressed_node is None:
            return
        moved = self._moved
        self._pressed_node = None
        self._moved = False
        if moved:
            self._transition(Activity.IDLE)
            return
        # No movement: the press was a click after all
        self._counters.node_clicks += 1
        self._schedule_revert(self._config.select_revert_ms, "select-revert")
        self._transition(Activity.SELECTING)
        self._probe_render()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _ignored(self, what: str) -> bool:
        if self._closed:
            logger.debug("Ignoring %s after session end", what)
        return self._closed

    def _transition(self, new: Activity) -> None:
        old = self._current
        self._current = new
        if old is new:
            return
        logger.debug("Activity %s -> %s", old.value, new.value)
        for listener in list(self._listeners):
            try:
                listener(old, new)
            except Exception:
                logger.exception("Activity listener %r failed on %s -> %s", listener, old.value, new.value)

    def _schedule_revert(self, delay_ms: float, label: str) -> None:
        self._cancel_revert()
        self._pending_revert = self._scheduler.call_later(delay_ms, self._revert_to_idle, label)

    def _cancel_revert(self) -> None:
        if self._pending_revert is not None:
            self._pending_revert.cancel()
            self._pending_revert = None

    def _revert_to_idle(self) -> None:
        self._pending_revert = None
        self._transition(Activity.IDLE)

    def _probe_render(self) -> None:
        if self._render_probe is not None:
            self._render_probe()
