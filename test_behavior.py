"""Tests for the behavior state machine and its anti-oscillation safeguards."""

import pytest

from petri.config import ControllerConfig
from petri.agent.behavior import BehaviorStateMachine, TransitionTracker
from petri.agent.policy import Action
from petri.agent.sensor import SensorReading
from petri.agent.states import BehaviorState, TargetType
from petri.agent.translator import translate

E = BehaviorState.EXPLORING
R = BehaviorState.RESTING


def reading(**kwargs):
    kwargs.setdefault("health", 50.0)
    kwargs.setdefault("energy", 50.0)
    return SensorReading(**kwargs)


def test_initial_state_is_exploring():
    bsm = BehaviorStateMachine()
    assert bsm.state == E
    assert bsm.transition_pair_counts == {}


# ------------------------------------------------------------------ #
#  Rule priority                                                      #
# ------------------------------------------------------------------ #

def test_predator_has_absolute_priority():
    bsm = BehaviorStateMachine()
    out = bsm.update(reading(predator_nearby=True, food_nearby=True), 10.0, Action.REST)
    assert out.state == BehaviorState.FLEEING


def test_food_rule_needs_low_energy():
    bsm = BehaviorStateMachine()
    assert bsm.update(reading(food_nearby=True), 75.0).state == E

    bsm = BehaviorStateMachine()
    assert bsm.update(reading(food_nearby=True), 69.0).state == BehaviorState.SEEKING_FOOD


def test_low_energy_rests():
    bsm = BehaviorStateMachine()
    assert bsm.update(reading(), 15.0).state == R


def test_mate_rule_requires_readiness():
    bsm = BehaviorStateMachine()
    assert bsm.update(reading(mate_nearby=True, mate_ready=False), 90.0).state == E

    bsm = BehaviorStateMachine()
    out = bsm.update(reading(mate_nearby=True, mate_ready=True), 90.0)
    assert out.state == BehaviorState.REPRODUCING
    assert bsm.reproduction_cooldown == 300


def test_sensed_rules_outrank_learned_action_by_default():
    bsm = BehaviorStateMachine()
    out = bsm.update(reading(food_nearby=True), 50.0, Action.REST)
    assert out.state == BehaviorState.SEEKING_FOOD


def test_learned_action_used_when_no_rule_fires():
    bsm = BehaviorStateMachine()
    assert bsm.update(reading(), 50.0, Action.REST).state == R


def test_learned_seek_mate_needs_mate_ready():
    bsm = BehaviorStateMachine()
    assert bsm.update(reading(mate_ready=False), 50.0, Action.SEEK_MATE).state == E

    bsm = BehaviorStateMachine()
    out = bsm.update(reading(mate_ready=True), 50.0, Action.SEEK_MATE)
    assert out.state == BehaviorState.REPRODUCING


def test_learned_action_override_mode():
    bsm = BehaviorStateMachine(ControllerConfig(POLICY_OVERRIDES_RULES=True))
    assert bsm.update(reading(food_nearby=True), 50.0, Action.REST).state == R

    bsm = BehaviorStateMachine(ControllerConfig(POLICY_OVERRIDES_RULES=True))
    out = bsm.update(reading(predator_nearby=True), 50.0, Action.REST)
    assert out.state == BehaviorState.FLEEING


def test_unknown_action_falls_back_to_explore():
    bsm = BehaviorStateMachine()
    bsm.state = R
    assert bsm.update(reading(), 50.0, "teleport").state == E


# ------------------------------------------------------------------ #
#  Transition lock                                                    #
# ------------------------------------------------------------------ #

def test_transition_lock_rejects_changes_for_30_ticks():
    bsm = BehaviorStateMachine()
    assert bsm.update(reading(food_nearby=True), 50.0).state == BehaviorState.SEEKING_FOOD

    for _ in range(30):
        assert bsm.update(reading(), 50.0, Action.REST).state == BehaviorState.SEEKING_FOOD

    assert bsm.update(reading(), 50.0).state == E


def test_predator_breaks_transition_lock():
    bsm = BehaviorStateMachine()
    bsm.update(reading(food_nearby=True), 50.0)
    bsm.update(reading(), 50.0)
    assert bsm.state_change_cooldown > 0

    assert bsm.update(reading(predator_nearby=True), 50.0).state == BehaviorState.FLEEING


def test_cooldowns_never_negative():
    bsm = BehaviorStateMachine()
    for i in range(400):
        bsm.update(reading(food_nearby=i % 7 == 0, predator_nearby=i % 50 == 0), 50.0)
        assert bsm.state_change_cooldown >= 0
        assert bsm.reproduction_cooldown >= 0
        assert bsm.resting_ticks >= 0
        assert bsm.forced_explore_timer >= 0


# ------------------------------------------------------------------ #
#  Reproduction lock                                                  #
# ------------------------------------------------------------------ #

def test_reproduction_cannot_reenter_until_cooldown_expires():
    bsm = BehaviorStateMachine()
    mate = reading(mate_nearby=True, mate_ready=True)
    assert bsm.update(mate, 90.0).state == BehaviorState.REPRODUCING

    for _ in range(299):
        out = bsm.update(mate, 90.0)
    assert out.state != BehaviorState.REPRODUCING
    assert bsm.reproduction_cooldown == 1

    assert bsm.update(mate, 90.0).state == BehaviorState.REPRODUCING
    assert bsm.reproduction_cooldown == 300


def test_reproduction_expiry_forces_exploring():
    cfg = ControllerConfig(REPRODUCTION_COOLDOWN=10)
    bsm = BehaviorStateMachine(cfg)
    mate = reading(mate_nearby=True, mate_ready=True)
    bsm.update(mate, 90.0)

    for _ in range(9):
        assert bsm.update(mate, 90.0).state == BehaviorState.REPRODUCING

    assert bsm.update(mate, 90.0).state == E
    assert bsm.reproduction_cooldown == 0


# ------------------------------------------------------------------ #
#  Forced exploration and resting cap                                 #
# ------------------------------------------------------------------ #

def test_forced_exploration_after_180_ticks():
    bsm = BehaviorStateMachine()
    food = reading(food_nearby=True)

    for _ in range(179):
        out = bsm.update(food, 50.0)
    assert out.state == BehaviorState.SEEKING_FOOD

    assert bsm.update(food, 50.0).state == E
    assert bsm.forced_explore_timer == 0


def test_resting_capped_at_120_ticks():
    bsm = BehaviorStateMachine()
    for _ in range(120):
        out = bsm.update(reading(), 15.0)
    assert out.state == R

    assert bsm.update(reading(), 15.0).state == E
    assert bsm.resting_ticks == 0


def test_no_state_held_forever():
    bsm = BehaviorStateMachine()
    food = reading(food_nearby=True)
    seen = set()
    for _ in range(400):
        seen.add(bsm.update(food, 50.0).state)
    assert E in seen
    assert BehaviorState.SEEKING_FOOD in seen


# ------------------------------------------------------------------ #
#  Loop breaker                                                       #
# ------------------------------------------------------------------ #

def test_loop_breaker_forces_rest_and_clears_counts():
    bsm = BehaviorStateMachine(ControllerConfig(STATE_CHANGE_COOLDOWN=0))
    bsm.state = R

    # R->E, E->R three times each within a few ticks
    for action in [Action.EXPLORE, Action.REST] * 3:
        bsm.update(reading(), 50.0, action)
    assert bsm.state == R
    assert bsm.transition_pair_counts == {(R, E): 3, (E, R): 3}

    # Fourth R->E closes the loop: target overridden to Resting
    out = bsm.update(reading(), 50.0, Action.EXPLORE)
    assert out.state == R
    assert bsm.transition_pair_counts == {}
    assert bsm.loop_breaks == 1


def test_loop_breaker_with_default_lock():
    # Each change waits out the 30-tick lock, so repeats land 62 ticks apart
    bsm = BehaviorStateMachine(ControllerConfig(FORCE_EXPLORE_INTERVAL=10_000))
    bsm.state = R

    for action in [Action.EXPLORE, Action.REST] * 3:
        for _ in range(31):
            bsm.update(reading(), 50.0, action)
    assert bsm.state == R
    assert bsm.tick == 186
    assert bsm.transition_pair_counts == {(R, E): 3, (E, R): 3}

    out = bsm.update(reading(), 50.0, Action.EXPLORE)
    assert out.state == R
    assert bsm.transition_pair_counts == {}
    assert bsm.loop_breaks == 1


def test_loop_breaker_ignores_spread_out_repeats():
    tracker = TransitionTracker(threshold=3, window=90)
    for tick in (0, 100, 200):
        assert not tracker.record(E, R, tick)
    assert not tracker.record(E, R, 300)
    assert tracker.counts[(E, R)] == 4

    assert tracker.record(E, R, 350)


def test_tracker_evicts_least_recently_seen_pair():
    tracker = TransitionTracker(max_pairs=2)
    tracker.record(E, R, 1)
    tracker.record(R, E, 2)
    tracker.record(E, R, 3)
    tracker.record(E, BehaviorState.SEEKING_FOOD, 4)

    assert len(tracker) == 2
    assert (R, E) not in tracker.counts
    assert tracker.counts[(E, R)] == 2


# ------------------------------------------------------------------ #
#  Energy and output                                                  #
# ------------------------------------------------------------------ #

def test_energy_never_below_floor():
    bsm = BehaviorStateMachine()
    energy = 11.0
    for _ in range(200):
        out = bsm.update(reading(predator_nearby=True), energy)
        energy = out.energy
        assert energy >= 10.0
    assert energy == pytest.approx(10.0)


def test_energy_effects_per_state():
    bsm = BehaviorStateMachine()
    assert bsm.update(reading(), 50.0).energy == pytest.approx(49.95)

    bsm = BehaviorStateMachine()
    assert bsm.update(reading(), 15.0).energy == pytest.approx(15.2)

    bsm = BehaviorStateMachine()
    out = bsm.update(reading(mate_nearby=True, mate_ready=True), 90.0)
    assert out.energy == pytest.approx(89.85)

    bsm = BehaviorStateMachine()
    bsm.state = R
    bsm.state_change_cooldown = 5
    assert bsm.update(reading(), 99.9).energy == pytest.approx(100.0)


@pytest.mark.parametrize("state,move,target,speed", [
    (BehaviorState.EXPLORING, True, TargetType.RANDOM, 1.0),
    (BehaviorState.SEEKING_FOOD, True, TargetType.FOOD, 1.2),
    (BehaviorState.REPRODUCING, True, TargetType.MATE, 0.8),
    (BehaviorState.FLEEING, True, TargetType.ESCAPE, 1.5),
    (BehaviorState.RESTING, False, TargetType.RANDOM, 0.0),
])
def test_translate(state, move, target, speed):
    directive = translate(state, 42.0)
    assert directive.should_move is move
    assert directive.target_type == target
    assert directive.speed_multiplier == speed
    assert directive.to_dict()["state"] == state.value
