"""Stand-ins for the external trait source and environment sensor.

The colony harness needs something to feed the decision loop. These draw
from encounter probabilities rather than geometry; there is no space here.
"""

from types import MappingProxyType

import numpy as np

from .config import ControllerConfig
from .agent.controller import DecisionController


class TraitSource:
    """Draws an immutable trait snapshot for each new agent."""

    def __init__(self, cfg: ControllerConfig, rng: np.random.RandomState):
        self.cfg = cfg
        self.rng = rng

    def sample(self) -> MappingProxyType:
        return MappingProxyType({
            "lifespan": int(self.rng.randint(self.cfg.LIFESPAN_MIN, self.cfg.LIFESPAN_MAX + 1)),
            "maturity_age": int(self.cfg.MATURITY_AGE * self.rng.uniform(0.8, 1.2)),
            "food_attraction": float(self.rng.uniform(0.5, 1.5)),
            "mate_attraction": float(self.rng.uniform(0.5, 1.5)),
        })


class RandomSensor:
    """Per-tick sensor readings from encounter probabilities and vitals."""

    def __init__(self, cfg: ControllerConfig, rng: np.random.RandomState):
        self.cfg = cfg
        self.rng = rng

    def sense(self, agent: DecisionController, population: int = 1) -> dict:
        st = agent.state
        traits = st.traits
        food_p = self.cfg.FOOD_ENCOUNTER_PROB * traits.get("food_attraction", 1.0)
        mate_p = self.cfg.MATE_ENCOUNTER_PROB * traits.get("mate_attraction", 1.0)

        return {
            "foodNearby": bool(self.rng.random() < food_p),
            "mateNearby": population > 1 and bool(self.rng.random() < mate_p),
            "predatorNearby": bool(self.rng.random() < self.cfg.PREDATOR_ENCOUNTER_PROB),
            "mateReady": st.age >= traits.get("maturity_age", self.cfg.MATURITY_AGE),
            "health": st.health,
            "energy": st.energy,
            "ticksSinceLastMeal": st.ticks_since_last_meal,
            "starvationThreshold": self.cfg.STARVATION_THRESHOLD,
        }
