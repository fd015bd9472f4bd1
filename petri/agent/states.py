"""Behavior states shared by the state machine and the action translator."""

from enum import Enum


class BehaviorState(Enum):
    """Discrete behavioral modes. No terminal state; death is handled elsewhere."""
    EXPLORING = "Exploring"       # default and fallback
    SEEKING_FOOD = "SeekingFood"
    REPRODUCING = "Reproducing"
    FLEEING = "Fleeing"
    RESTING = "Resting"


class TargetType(Enum):
    FOOD = "food"
    MATE = "mate"
    ESCAPE = "escape"
    RANDOM = "random"
