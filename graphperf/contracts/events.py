"""
Interaction Contracts

Typed interaction events delivered by the input collaborator.

Payloads are carried through untouched; the state machine only looks at
them to detect movement, translate the camera and move nodes.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .base import NodeId


class EventType(Enum):
    """Kinds of interaction event."""
    BACKGROUND_PRESS_START = "background_press_start"
    POINTER_MOVE = "pointer_move"
    POINTER_UP = "pointer_up"
    WHEEL = "wheel"
    NODE_PRESS_START = "node_press_start"


@dataclass(frozen=True)
class BackgroundPressStart:
    """
    Pointer pressed on the canvas.

    on_background is False when the press landed on something drawn on top
    of the background surface; such presses never start a pan.
    """
    x: float = 0.0
    y: float = 0.0
    on_background: bool = True
    event_type: EventType = EventType.BACKGROUND_PRESS_START


@dataclass(frozen=True)
class PointerMove:
    """Pointer motion with the delta since the previous move, screen space."""
    dx: float
    dy: float
    x: float = 0.0
    y: float = 0.0
    event_type: EventType = EventType.POINTER_MOVE


@dataclass(frozen=True)
class PointerUp:
    x: float = 0.0
    y: float = 0.0
    event_type: EventType = EventType.POINTER_UP


@dataclass(frozen=True)
class Wheel:
    """Wheel rotation; positive delta_y scrolls down (zooms out)."""
    delta_y: float
    event_type: EventType = EventType.WHEEL


@dataclass(frozen=True)
class NodePressStart:
    node_id: NodeId
    x: float = 0.0
    y: float = 0.0
    event_type: EventType = EventType.NODE_PRESS_START


InteractionEvent = Union[
    BackgroundPressStart, PointerMove, PointerUp, Wheel, NodePressStart
]
