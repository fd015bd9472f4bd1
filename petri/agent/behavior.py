"""
Behavior State Machine - turns sensed conditions and the learned action
into one stable behavior per tick.

This module provides:
1. An explicit priority-ordered rule list (the learned action is one rule)
2. A transition lock after every state change (predators always preempt)
3. A reproduction lock with a forced return to exploring
4. Periodic forced exploration and a cap on consecutive resting
5. A loop breaker for (from, to) transitions that keep recurring

Together these guarantee that no agent holds one state forever and that
no pair of states can flap indefinitely.
"""

from collections import OrderedDict, deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

from ..config import ControllerConfig
from ..logging_config import get_logger, log_transition
from .policy import Action
from .sensor import SensorReading
from .states import BehaviorState
from .translator import MovementDirective, translate

logger = get_logger("petri.agent.behavior")


ACTION_TO_STATE = {
    Action.EXPLORE: BehaviorState.EXPLORING,
    Action.SEEK_FOOD: BehaviorState.SEEKING_FOOD,
    Action.SEEK_MATE: BehaviorState.REPRODUCING,
    Action.REST: BehaviorState.RESTING,
}


class Rule(Enum):
    """Candidate sources for the next state, evaluated top-down."""
    PREDATOR = auto()
    FOOD = auto()
    MATE = auto()
    LOW_ENERGY = auto()
    POLICY = auto()
    DEFAULT = auto()


def rule_order(cfg: ControllerConfig) -> List[Rule]:
    """Rank the rules for one agent.

    Sensed triggers outrank the learned action by default, so an untrained
    table's Explore guess never masks food, a ready mate or low energy.
    With POLICY_OVERRIDES_RULES the learned action sits just below the
    predator rule instead.
    """
    if cfg.POLICY_OVERRIDES_RULES:
        return [Rule.PREDATOR, Rule.POLICY, Rule.FOOD, Rule.MATE,
                Rule.LOW_ENERGY, Rule.DEFAULT]
    return [Rule.PREDATOR, Rule.FOOD, Rule.MATE, Rule.LOW_ENERGY,
            Rule.POLICY, Rule.DEFAULT]


@dataclass
class PairHistory:
    count: int = 0
    ticks: deque = field(default_factory=lambda: deque(maxlen=2))


class TransitionTracker:
    """Counts ordered (from, to) transitions and flags recurring loops.

    A loop is a pair seen more than ``threshold`` times whose two most
    recent occurrences are at most ``window`` ticks apart. At most
    ``max_pairs`` pairs are tracked; the least recently seen is evicted.
    """

    def __init__(self, threshold: int = 3, window: int = 90, max_pairs: int = 16):
        self.threshold = threshold
        self.window = window
        self.max_pairs = max_pairs
        self._pairs: "OrderedDict[Tuple[BehaviorState, BehaviorState], PairHistory]" = OrderedDict()

    def record(self, from_state: BehaviorState, to_state: BehaviorState,
               tick: int) -> bool:
        """Record one transition. Returns True if it closes a loop."""
        pair = (from_state, to_state)
        history = self._pairs.get(pair)
        if history is None:
            history = PairHistory()
            self._pairs[pair] = history
            while len(self._pairs) > self.max_pairs:
                self._pairs.popitem(last=False)
        else:
            self._pairs.move_to_end(pair)

        history.count += 1
        history.ticks.append(tick)

        if history.count > self.threshold and len(history.ticks) == 2:
            return history.ticks[1] - history.ticks[0] <= self.window
        return False

    def clear(self):
        self._pairs.clear()

    @property
    def counts(self) -> Dict[Tuple[BehaviorState, BehaviorState], int]:
        return {pair: h.count for pair, h in self._pairs.items()}

    def __len__(self) -> int:
        return len(self._pairs)


class BehaviorStateMachine:
    """
    Per-agent behavior controller.

    Counters are all in ticks and never negative:
    - state_change_cooldown: transitions are rejected while > 0 (except Fleeing)
    - reproduction_cooldown: Reproducing cannot be re-entered while > 0
    - resting_ticks: consecutive ticks spent Resting
    - forced_explore_timer: ticks since the last forced reset to Exploring
    """

    def __init__(self, cfg: Optional[ControllerConfig] = None, agent_id: int = 0):
        self.cfg = cfg or ControllerConfig()
        self.agent_id = agent_id

        self.state = BehaviorState.EXPLORING
        self.tick = 0

        self.state_change_cooldown = 0
        self.reproduction_cooldown = 0
        self.resting_ticks = 0
        self.forced_explore_timer = 0

        self.tracker = TransitionTracker(
            threshold=self.cfg.LOOP_PAIR_THRESHOLD,
            window=self.cfg.LOOP_WINDOW,
            max_pairs=self.cfg.LOOP_MAX_TRACKED_PAIRS,
        )
        self.rules = rule_order(self.cfg)

        # Stats
        self.transitions = 0
        self.loop_breaks = 0

    @property
    def transition_pair_counts(self) -> Dict[Tuple[BehaviorState, BehaviorState], int]:
        return self.tracker.counts

    def update(self, reading: SensorReading, energy: float,
               suggested_action=None) -> MovementDirective:
        """
        Advance one tick and return the movement directive.

        Args:
            reading: Sanitized sensor reading
            energy: Agent energy before this tick's metabolic effect
            suggested_action: Learned action (or None) ranked as one more rule

        Returns:
            MovementDirective carrying the new state and updated energy
        """
        self.tick += 1
        cfg = self.cfg

        locked = self.state_change_cooldown > 0
        if self.state_change_cooldown > 0:
            self.state_change_cooldown -= 1

        if self.reproduction_cooldown > 0:
            self.reproduction_cooldown -= 1
            if self.reproduction_cooldown == 0 and self.state == BehaviorState.REPRODUCING:
                locked |= self._force(BehaviorState.EXPLORING, "reproduction_done")

        self.forced_explore_timer += 1
        if self.forced_explore_timer >= cfg.FORCE_EXPLORE_INTERVAL:
            self.forced_explore_timer = 0
            locked |= self._force(BehaviorState.EXPLORING, "forced_explore")

        if self.state == BehaviorState.RESTING:
            self.resting_ticks += 1
            if self.resting_ticks >= cfg.MAX_RESTING_TICKS:
                locked |= self._force(BehaviorState.EXPLORING, "resting_cap")

        action = Action.coerce(suggested_action) if suggested_action is not None else None
        target, reason = self._select(reading, energy, action, locked)

        if target is not None and target != self.state:
            if target != BehaviorState.FLEEING and self.tracker.record(self.state, target, self.tick):
                logger.info(
                    f"agent {self.agent_id}: loop on {self.state.value}->{target.value} "
                    f"at t={self.tick}, forcing rest"
                )
                target, reason = BehaviorState.RESTING, "loop_break"
                self.tracker.clear()
                self.loop_breaks += 1
            if target != self.state:
                self._transition(target, reason)

        energy = self._apply_energy(energy)
        return translate(self.state, energy)

    def context_reward(self, reading: SensorReading) -> float:
        """Reward contribution for the current state given what is nearby."""
        cfg = self.cfg
        reward = 0.0

        if reading.food_nearby:
            reward += cfg.FOOD_NEARBY_BONUS
            if self.state == BehaviorState.SEEKING_FOOD:
                reward += cfg.PURSUIT_BONUS

        if reading.mate_nearby and reading.energy > cfg.REWARD_ENERGY_HIGH:
            reward += cfg.MATE_NEARBY_BONUS
            if self.state == BehaviorState.REPRODUCING:
                reward += cfg.PURSUIT_BONUS

        if reading.predator_nearby and self.state != BehaviorState.FLEEING:
            reward -= cfg.PREDATOR_PENALTY

        return reward

    # ------------------------------------------------------------------ #
    #  Rule evaluation                                                     #
    # ------------------------------------------------------------------ #

    def _select(self, reading: SensorReading, energy: float,
                action: Optional[Action], locked: bool) -> Tuple[Optional[BehaviorState], str]:
        # Only the predator rule survives the lock
        rules = [Rule.PREDATOR] if locked else self.rules

        for rule in rules:
            target = self._evaluate(rule, reading, energy, action)
            if target is not None:
                return target, rule.name.lower()
        return None, "locked"

    def _evaluate(self, rule: Rule, reading: SensorReading, energy: float,
                  action: Optional[Action]) -> Optional[BehaviorState]:
        cfg = self.cfg
        if rule == Rule.PREDATOR:
            return BehaviorState.FLEEING if reading.predator_nearby else None
        if rule == Rule.FOOD:
            if reading.food_nearby and energy < cfg.SEEK_FOOD_ENERGY:
                return BehaviorState.SEEKING_FOOD
            return None
        if rule == Rule.MATE:
            if (reading.mate_nearby and reading.mate_ready
                    and energy > cfg.MATE_ENERGY and self.reproduction_cooldown == 0):
                return BehaviorState.REPRODUCING
            return None
        if rule == Rule.LOW_ENERGY:
            return BehaviorState.RESTING if energy < cfg.REST_ENERGY else None
        if rule == Rule.POLICY:
            if action is None or not self._action_allowed(action, reading):
                return None
            return ACTION_TO_STATE[action]
        return BehaviorState.EXPLORING

    def _action_allowed(self, action: Action, reading: SensorReading) -> bool:
        if action == Action.SEEK_MATE:
            return self.reproduction_cooldown == 0 and reading.mate_ready
        if action == Action.REST:
            return self.resting_ticks < self.cfg.MAX_RESTING_TICKS
        return True

    # ------------------------------------------------------------------ #
    #  State changes                                                       #
    # ------------------------------------------------------------------ #

    def _transition(self, target: BehaviorState, reason: str):
        previous = self.state
        self.state = target
        self.state_change_cooldown = self.cfg.STATE_CHANGE_COOLDOWN
        self.transitions += 1

        if target != BehaviorState.RESTING:
            self.resting_ticks = 0
        if target == BehaviorState.REPRODUCING:
            self.reproduction_cooldown = self.cfg.REPRODUCTION_COOLDOWN

        log_transition(self.agent_id, self.tick, previous.value, target.value, reason)

    def _force(self, target: BehaviorState, reason: str) -> bool:
        """Unconditional reset that bypasses the lock and the loop tracker."""
        if self.state == target:
            return False
        self._transition(target, reason)
        return True

    def _apply_energy(self, energy: float) -> float:
        cfg = self.cfg
        if self.state == BehaviorState.RESTING:
            energy += cfg.RESTING_ENERGY_GAIN
        elif self.state == BehaviorState.REPRODUCING:
            energy -= cfg.REPRODUCING_ENERGY_COST
        else:
            energy -= cfg.BASE_ENERGY_COST
        return min(cfg.ENERGY_MAX, max(cfg.ENERGY_FLOOR, energy))
