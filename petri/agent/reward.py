"""Reward model: scalar reward from an agent's own vital signs."""

from typing import Optional

from ..config import ControllerConfig
from .sensor import SensorReading


def compute_reward(reading: SensorReading, context_bonus: float = 0.0,
                   cfg: Optional[ControllerConfig] = None) -> float:
    """
    Reward for the tick described by ``reading``.

    Health and energy each contribute +/- when above/below their bands, every
    living tick earns a small bonus, and starvation costs a full point.
    ``context_bonus`` is the behavior state machine's own contribution
    (proximity to food and mates, exposure to predators). Not clamped;
    typical range is [-3, 2].
    """
    cfg = cfg or ControllerConfig()
    reward = 0.0

    if reading.health > cfg.REWARD_HEALTH_HIGH:
        reward += 1.0
    elif reading.health < cfg.REWARD_HEALTH_LOW:
        reward -= 1.0

    if reading.energy > cfg.REWARD_ENERGY_HIGH:
        reward += 0.5
    elif reading.energy < cfg.REWARD_ENERGY_LOW:
        reward -= 0.5

    reward += cfg.ALIVE_BONUS

    if reading.ticks_since_last_meal > reading.starvation_threshold:
        reward -= 1.0

    return reward + context_bonus
