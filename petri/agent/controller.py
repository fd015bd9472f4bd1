"""DecisionController: one agent's per-tick decision loop.

sense -> key -> learn(previous pair) -> predict -> state machine -> directive
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

import numpy as np

from ..config import ControllerConfig
from ..logging_config import get_logger
from .behavior import BehaviorStateMachine
from .policy import Action, QPolicy, StateKey, bucket
from .reward import compute_reward
from .sensor import SensorReading
from .states import BehaviorState
from .translator import MovementDirective

logger = get_logger("petri.agent.controller")


@dataclass
class AgentDecisionState:
    """Vitals and learning bookkeeping owned by exactly one agent."""
    health: float = 100.0
    energy: float = 100.0
    age: int = 0
    lifespan: int = 0
    traits: Mapping = field(default_factory=lambda: MappingProxyType({}))
    last_state_key: Optional[StateKey] = None
    last_action: Optional[Action] = None
    behavior_state: BehaviorState = BehaviorState.EXPLORING
    ticks_since_last_meal: int = 0
    last_reward: float = 0.0

    def __post_init__(self):
        self.health = min(100.0, max(0.0, self.health))
        self.energy = min(100.0, max(0.0, self.energy))
        if not isinstance(self.traits, MappingProxyType):
            self.traits = MappingProxyType(dict(self.traits))


class DecisionController:
    """
    Owns one agent's decision state, Q-table and state machine.

    Nothing here is shared between agents; dropping the controller is the
    whole of an agent's death as far as decisions are concerned.
    """

    def __init__(self, cfg: Optional[ControllerConfig] = None,
                 rng: Optional[np.random.RandomState] = None,
                 agent_id: int = 0,
                 state: Optional[AgentDecisionState] = None):
        self.cfg = cfg or ControllerConfig()
        self.agent_id = agent_id
        self.state = state or AgentDecisionState()
        self.state.energy = max(self.cfg.ENERGY_FLOOR, self.state.energy)
        self.policy = QPolicy(self.cfg, rng)
        self.behavior = BehaviorStateMachine(self.cfg, agent_id=agent_id)
        self.behavior.state = self.state.behavior_state

    def step(self, raw_reading) -> MovementDirective:
        """Run one decision tick and return the directive for movement."""
        reading = SensorReading.from_raw(raw_reading)
        if not reading.valid:
            logger.debug(f"agent {self.agent_id}: sensor fields replaced: {reading.invalid_fields}")

        key = StateKey.from_reading(reading)

        if self.state.last_state_key is not None and self.state.last_action is not None:
            bonus = self.behavior.context_reward(reading)
            reward = compute_reward(reading, bonus, self.cfg)
            self.policy.learn(self.state.last_state_key, self.state.last_action, reward, key)
            self.state.last_reward = reward

        action = self.policy.predict(key)
        self.state.last_state_key = key
        self.state.last_action = action

        if "health" not in reading.invalid_fields:
            self.state.health = reading.health
        energy = self.state.energy if "energy" in reading.invalid_fields else reading.energy

        directive = self.behavior.update(reading, energy, action)
        self.state.energy = directive.energy
        self.state.behavior_state = directive.state
        return directive

    def on_meal(self, nutrition: float) -> float:
        """Credit a meal: energy, hunger clock and an immediate learning signal.

        Returns the energy actually gained.
        """
        before = self.state.energy
        self.add_energy(nutrition)
        self.state.ticks_since_last_meal = 0

        if self.state.last_state_key is not None and self.state.last_action is not None:
            next_key = StateKey(
                health_bucket=self.state.last_state_key.health_bucket,
                energy_bucket=bucket(self.state.energy),
                food_nearby=self.state.last_state_key.food_nearby,
                mate_nearby=self.state.last_state_key.mate_nearby,
            )
            self.policy.learn(self.state.last_state_key, self.state.last_action,
                              self.cfg.MEAL_REWARD, next_key)

        return self.state.energy - before

    def add_energy(self, amount: float):
        self.state.energy = min(self.cfg.ENERGY_MAX, self.state.energy + amount)

    def consume_energy(self, amount: float):
        self.state.energy = max(self.cfg.ENERGY_FLOOR, self.state.energy - amount)

    @property
    def behavior_state(self) -> BehaviorState:
        return self.behavior.state
