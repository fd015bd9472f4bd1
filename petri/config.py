from dataclasses import dataclass, fields
import os

import yaml


@dataclass
class ControllerConfig:
    # Q-learning
    LEARNING_RATE: float = 0.1      # alpha
    DISCOUNT_FACTOR: float = 0.9    # gamma
    EPSILON: float = 0.1            # random action probability

    # Reward model thresholds
    REWARD_HEALTH_HIGH: float = 80.0
    REWARD_HEALTH_LOW: float = 30.0
    REWARD_ENERGY_HIGH: float = 70.0
    REWARD_ENERGY_LOW: float = 30.0
    ALIVE_BONUS: float = 0.1
    MEAL_REWARD: float = 2.0        # immediate reward applied when the agent eats

    # Context reward contributed by the state machine
    FOOD_NEARBY_BONUS: float = 0.5
    MATE_NEARBY_BONUS: float = 0.5
    PURSUIT_BONUS: float = 1.0      # extra while actually seeking what is nearby
    PREDATOR_PENALTY: float = 1.0

    # State machine rule thresholds
    SEEK_FOOD_ENERGY: float = 70.0  # seek food below this
    MATE_ENERGY: float = 80.0       # reproduce above this
    REST_ENERGY: float = 20.0       # rest below this

    # Anti-oscillation safeguards (ticks)
    STATE_CHANGE_COOLDOWN: int = 30
    REPRODUCTION_COOLDOWN: int = 300
    FORCE_EXPLORE_INTERVAL: int = 180
    MAX_RESTING_TICKS: int = 120
    LOOP_PAIR_THRESHOLD: int = 3    # pair must recur more than this many times
    LOOP_WINDOW: int = 90
    LOOP_MAX_TRACKED_PAIRS: int = 16

    # Per-tick energy dynamics
    RESTING_ENERGY_GAIN: float = 0.2
    REPRODUCING_ENERGY_COST: float = 0.15
    BASE_ENERGY_COST: float = 0.05
    ENERGY_FLOOR: float = 10.0      # energy never drops below this
    ENERGY_MAX: float = 100.0

    # Learned action ranks directly below the predator rule when True
    POLICY_OVERRIDES_RULES: bool = False

    # Colony harness (simulation-wide settings)
    HEALTH_LOSS_RATE: float = 0.05  # per tick once starving
    STARVATION_THRESHOLD: int = 1800
    FOOD_ENCOUNTER_PROB: float = 0.3
    MATE_ENCOUNTER_PROB: float = 0.15
    PREDATOR_ENCOUNTER_PROB: float = 0.02
    EAT_CHANCE: float = 0.1
    FOOD_NUTRITION: float = 20.0
    MAX_POPULATION: int = 60
    LIFESPAN_MIN: int = 3000
    LIFESPAN_MAX: int = 6000
    MATURITY_AGE: int = 300
    METRICS_INTERVAL: int = 100


def load_config(path: str = "config.yaml") -> ControllerConfig:
    """Load configuration from YAML, filter to ControllerConfig fields."""
    cfg = ControllerConfig()
    if os.path.exists(path):
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        valid = {f.name for f in fields(ControllerConfig)}
        filtered = {k: v for k, v in raw.items() if k in valid}
        cfg = ControllerConfig(**filtered)
    return cfg
