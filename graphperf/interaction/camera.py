"""
Camera
======

Pan offset and zoom scale of the view. The state machine mutates it; the
rendering collaborator reads it to build its view transform.
"""

from __future__ import annotations
from dataclasses import dataclass
import math


# Keeps exp() finite for absurd wheel deltas
MAX_EXPONENT = 700.0


@dataclass
class Camera:
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0

    def pan(self, dx: float, dy: float) -> None:
        self.x += dx
        self.y += dy

    def zoom(self, delta_y: float, sensitivity: float, min_scale: float, max_scale: float) -> float:
        """
        Exponential zoom: scale *= exp(-delta_y * sensitivity), clamped.

        Returns the new scale.
        """
        exponent = max(-MAX_EXPONENT, min(MAX_EXPONENT, -delta_y * sensitivity))
        factor = math.exp(exponent)
        self.scale = max(min_scale, min(max_scale, self.scale * factor))
        return self.scale

    def to_graph_delta(self, dx: float, dy: float):
        """Convert a screen-space delta to graph space at the current zoom."""
        return dx / self.scale, dy / self.scale

    def reset(self) -> None:
        self.x = 0.0
        self.y = 0.0
        self.scale = 1.0
