"""Action translator: behavior state -> movement directive.

The movement component is external; it only ever sees MovementDirective.
"""

from dataclasses import dataclass

from .states import BehaviorState, TargetType


TARGET_TYPES = {
    BehaviorState.SEEKING_FOOD: TargetType.FOOD,
    BehaviorState.REPRODUCING: TargetType.MATE,
    BehaviorState.FLEEING: TargetType.ESCAPE,
}

SPEED_MULTIPLIERS = {
    BehaviorState.FLEEING: 1.5,
    BehaviorState.SEEKING_FOOD: 1.2,
    BehaviorState.REPRODUCING: 0.8,
    BehaviorState.RESTING: 0.0,
}


@dataclass(frozen=True)
class MovementDirective:
    """What the movement component should do this tick."""
    state: BehaviorState
    should_move: bool
    target_type: TargetType
    speed_multiplier: float
    energy: float

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "should_move": self.should_move,
            "target_type": self.target_type.value,
            "speed_multiplier": self.speed_multiplier,
            "energy": self.energy,
        }


def translate(state: BehaviorState, energy: float) -> MovementDirective:
    return MovementDirective(
        state=state,
        should_move=state != BehaviorState.RESTING,
        target_type=TARGET_TYPES.get(state, TargetType.RANDOM),
        speed_multiplier=SPEED_MULTIPLIERS.get(state, 1.0),
        energy=energy,
    )
