# petri - adaptive behavior controller for artificial-life agents
# Q-learning policy, behavior state machine and decision loop, plus a
# headless colony harness.

__version__ = "0.1.0"

from .config import ControllerConfig, load_config
from .agent import DecisionController, AgentDecisionState
from .colony import Colony

__all__ = ["ControllerConfig", "load_config", "DecisionController",
           "AgentDecisionState", "Colony"]
