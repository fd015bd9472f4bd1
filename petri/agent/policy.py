"""
Tabular Q-learning policy over discretized vital signs.

One table per agent. State space is (health_bucket, energy_bucket,
food_nearby, mate_nearby) -> at most 5 * 5 * 2 * 2 = 100 rows.
Actions are a closed, order-significant enumeration; argmax ties resolve
to the earliest action.
"""
from enum import Enum
from collections import defaultdict
from typing import Dict, List, NamedTuple, Optional

import numpy as np

from ..config import ControllerConfig
from ..logging_config import get_logger
from .sensor import SensorReading

logger = get_logger("petri.agent.policy")

BUCKET_SIZE = 20
MAX_BUCKET = 4


class Action(Enum):
    EXPLORE = "explore"
    SEEK_FOOD = "seekFood"
    SEEK_MATE = "seekMate"
    REST = "rest"

    @classmethod
    def coerce(cls, value) -> "Action":
        """Map an action or action name onto the enumeration, else EXPLORE."""
        if isinstance(value, cls):
            return value
        for action in cls:
            if value == action.value or value == action.name:
                return action
        logger.warning(f"unknown action {value!r}, defaulting to explore")
        return cls.EXPLORE


ACTIONS: List[Action] = list(Action)


class StateKey(NamedTuple):
    health_bucket: int
    energy_bucket: int
    food_nearby: int
    mate_nearby: int

    @classmethod
    def from_reading(cls, reading: SensorReading) -> "StateKey":
        return cls(
            health_bucket=bucket(reading.health),
            energy_bucket=bucket(reading.energy),
            food_nearby=int(reading.food_nearby),
            mate_nearby=int(reading.mate_nearby),
        )


def bucket(value: float) -> int:
    """floor(value / 20) clipped to [0, 4]; 100 shares the top bucket."""
    return int(np.clip(value // BUCKET_SIZE, 0, MAX_BUCKET))


class QPolicy:
    """Epsilon-greedy Q-learning over StateKey rows."""

    def __init__(self, cfg: Optional[ControllerConfig] = None,
                 rng: Optional[np.random.RandomState] = None):
        self.cfg = cfg or ControllerConfig()
        self.rng = rng if rng is not None else np.random.RandomState()

        self.actions = list(ACTIONS)
        self.n_actions = len(self.actions)

        self.alpha = self.cfg.LEARNING_RATE
        self.gamma = self.cfg.DISCOUNT_FACTOR
        self.epsilon = self.cfg.EPSILON

        # Q-table: rows appear, zeroed, the first time a key is touched
        self.Q = defaultdict(lambda: np.zeros(self.n_actions))

        # Statistics
        self.total_updates = 0
        self.recent_rewards: List[float] = []
        self.recent_rewards_window = 50

    def predict(self, state_key: StateKey) -> Action:
        """Epsilon-greedy action for a state key."""
        q_values = self.Q[state_key]

        if self.rng.random() < self.epsilon:
            return self.actions[self.rng.randint(self.n_actions)]

        # np.argmax returns the first maximum, so ties go to EXPLORE
        return self.actions[int(np.argmax(q_values))]

    def learn(self, prev_key: StateKey, prev_action: Action, reward: float,
              next_key: StateKey) -> Dict:
        """One-step Q-learning update for (prev_key, prev_action)."""
        prev_action = Action.coerce(prev_action)
        a = self.actions.index(prev_action)

        row = self.Q[prev_key]
        next_q_max = float(np.max(self.Q[next_key]))

        current_q = row[a]
        td_target = reward + self.gamma * next_q_max
        td_error = td_target - current_q
        row[a] = current_q + self.alpha * td_error

        self.total_updates += 1
        self.recent_rewards.append(reward)
        if len(self.recent_rewards) > self.recent_rewards_window * 2:
            self.recent_rewards = self.recent_rewards[-self.recent_rewards_window:]

        return {
            'td_error': float(td_error),
            'current_q': float(current_q),
            'target_q': float(td_target),
            'reward': float(reward),
        }

    def q_values(self, state_key: StateKey) -> Dict[Action, float]:
        """Read a row without creating it; unseen keys read as zeros."""
        row = self.Q.get(state_key)
        if row is None:
            return {a: 0.0 for a in self.actions}
        return {a: float(row[i]) for i, a in enumerate(self.actions)}

    def __len__(self) -> int:
        return len(self.Q)

    def __contains__(self, state_key) -> bool:
        return state_key in self.Q

    def get_statistics(self) -> Dict:
        """Get learning statistics."""
        avg_q = np.mean([np.mean(q) for q in self.Q.values()]) if self.Q else 0.0
        max_q = np.max([np.max(q) for q in self.Q.values()]) if self.Q else 0.0

        return {
            'total_states_visited': len(self.Q),
            'total_updates': self.total_updates,
            'average_q_value': float(avg_q),
            'max_q_value': float(max_q),
            'exploration_rate': float(self.epsilon),
            'recent_avg_reward': float(np.mean(self.recent_rewards)) if self.recent_rewards else 0.0
        }
