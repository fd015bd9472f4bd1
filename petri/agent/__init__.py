from .states import BehaviorState, TargetType
from .sensor import SensorReading
from .policy import Action, ACTIONS, StateKey, QPolicy
from .reward import compute_reward
from .behavior import BehaviorStateMachine, TransitionTracker
from .translator import MovementDirective, translate
from .controller import AgentDecisionState, DecisionController

__all__ = [
    "BehaviorState", "TargetType", "SensorReading", "Action", "ACTIONS",
    "StateKey", "QPolicy", "compute_reward", "BehaviorStateMachine",
    "TransitionTracker", "MovementDirective", "translate",
    "AgentDecisionState", "DecisionController",
]
