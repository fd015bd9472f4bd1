"""Sensor readings: the per-tick summary of an agent's surroundings.

Readings arrive from an external environment sensor as loose dicts. They are
sanitized here so that nothing malformed reaches the policy table.
"""

import math
from dataclasses import dataclass

import numpy as np

from ..logging_config import get_logger

logger = get_logger("petri.agent.sensor")

# canonical field -> accepted aliases
_ALIASES = {
    "food_nearby": ("food_nearby", "foodNearby"),
    "mate_nearby": ("mate_nearby", "mateNearby"),
    "predator_nearby": ("predator_nearby", "predatorNearby"),
    "mate_ready": ("mate_ready", "mateReady"),
    "health": ("health",),
    "energy": ("energy",),
    "ticks_since_last_meal": ("ticks_since_last_meal", "ticksSinceLastMeal"),
    "starvation_threshold": ("starvation_threshold", "starvationThreshold"),
}

_FLAGS = ("food_nearby", "mate_nearby", "predator_nearby", "mate_ready")


@dataclass(frozen=True)
class SensorReading:
    """One agent's sensed context for one tick."""
    food_nearby: bool = False
    mate_nearby: bool = False
    predator_nearby: bool = False
    mate_ready: bool = False
    health: float = 0.0
    energy: float = 0.0
    ticks_since_last_meal: float = 0.0
    starvation_threshold: float = math.inf
    invalid_fields: tuple = ()

    @property
    def valid(self) -> bool:
        return not self.invalid_fields

    @classmethod
    def from_raw(cls, raw) -> "SensorReading":
        """Build a reading from a sensor dict, substituting neutral defaults.

        Missing or non-finite vitals become 0 (bucket 0), missing flags
        become False. The names of substituted fields are kept in
        ``invalid_fields`` so callers can fall back to their own state.
        """
        if isinstance(raw, SensorReading):
            return raw
        raw = raw or {}

        values = {}
        invalid = []
        for name, aliases in _ALIASES.items():
            value = None
            for alias in aliases:
                if alias in raw:
                    value = raw[alias]
                    break

            if name in _FLAGS:
                if not isinstance(value, (bool, int, np.bool_)):
                    if value is not None:
                        invalid.append(name)
                    value = False
                values[name] = bool(value)
            elif name in ("health", "energy"):
                number = _finite(value)
                if number is None:
                    invalid.append(name)
                    number = 0.0
                values[name] = min(100.0, max(0.0, number))
            elif name == "ticks_since_last_meal":
                number = _finite(value)
                if number is None:
                    if value is not None:
                        invalid.append(name)
                    number = 0.0
                values[name] = max(0.0, number)
            else:
                # No threshold means the agent can never starve
                number = _finite(value)
                if number is None:
                    if value is not None:
                        invalid.append(name)
                    number = math.inf
                values[name] = number

        if invalid:
            logger.warning(f"invalid sensor input, neutral defaults for: {', '.join(invalid)}")

        return cls(invalid_fields=tuple(invalid), **values)


def _finite(value) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number
