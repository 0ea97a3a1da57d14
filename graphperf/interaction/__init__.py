"""
Interaction Layer

RESPONSIBILITY: Classify user interaction, count it, move the camera/nodes
ALLOWED INPUTS: Typed interaction events from the input collaborator
OUTPUTS: current Activity, InteractionCounts, Camera

WHAT THIS LAYER MUST NOT DO:
============================
- Record fps or memory samples (it may only request a render probe)
- Reclassify samples retroactively
"""

from .camera import Camera
from .state_machine import (
    ActivityStateMachine,
    InteractionConfig,
    InteractionCounters,
)

__all__ = [
    'ActivityStateMachine',
    'Camera',
    'InteractionConfig',
    'InteractionCounters',
]
