"""Colony: a headless population of agents ticked in a fixed scan order."""

from collections import Counter
from typing import Optional

import numpy as np

from .config import ControllerConfig
from .agent.controller import AgentDecisionState, DecisionController
from .agent.states import BehaviorState
from .environment import RandomSensor, TraitSource
from .logging_config import get_logger, log_death, log_metrics

logger = get_logger("petri.colony")


class Colony:
    """
    Owns the agents and the simulation clock.

    Each tick every living agent, in creation order, senses, decides and
    has the outcome applied: meals, hunger, ageing, advisory reproduction
    and death. Agents never share a Q-table; children start from scratch.
    """

    def __init__(self, n_agents: int = 20, cfg: Optional[ControllerConfig] = None,
                 seed: int | None = None):
        self.cfg = cfg or ControllerConfig()
        self.rng = np.random.RandomState(seed)
        self.traits = TraitSource(self.cfg, self.rng)
        self.sensor = RandomSensor(self.cfg, self.rng)

        self.agents: list[DecisionController] = []
        self.tick_count = 0
        self._next_id = 0

        # Stats
        self.births = 0
        self.deaths = 0
        self.meals = 0
        self.death_causes: Counter = Counter()

        for _ in range(n_agents):
            self.spawn()

    @property
    def population(self) -> int:
        return len(self.agents)

    def spawn(self, energy: float = 100.0) -> DecisionController:
        traits = self.traits.sample()
        state = AgentDecisionState(
            energy=energy,
            lifespan=traits["lifespan"],
            traits=traits,
        )
        agent = DecisionController(
            self.cfg,
            rng=np.random.RandomState(self.rng.randint(2**31 - 1)),
            agent_id=self._next_id,
            state=state,
        )
        self._next_id += 1
        self.agents.append(agent)
        return agent

    def tick(self) -> dict:
        """Advance every agent one step. Returns per-tick event counts."""
        self.tick_count += 1
        born = 0
        died = []

        population = self.population
        for agent in list(self.agents):
            previous = agent.behavior_state
            reading = self.sensor.sense(agent, population)
            directive = agent.step(reading)
            st = agent.state

            st.age += 1
            st.ticks_since_last_meal += 1

            if (directive.state == BehaviorState.SEEKING_FOOD and reading["foodNearby"]
                    and self.rng.random() < self.cfg.EAT_CHANCE):
                agent.on_meal(self.cfg.FOOD_NUTRITION)
                self.meals += 1

            if st.ticks_since_last_meal > self.cfg.STARVATION_THRESHOLD:
                st.health = max(0.0, st.health - self.cfg.HEALTH_LOSS_RATE)

            # Reproduction is advisory; a child needs a partner in range
            if (directive.state == BehaviorState.REPRODUCING and reading["mateNearby"]
                    and previous != BehaviorState.REPRODUCING
                    and self.population < self.cfg.MAX_POPULATION):
                self.spawn(energy=50.0)
                agent.consume_energy(10.0)
                born += 1

            cause = None
            if st.health <= 0:
                cause = "starvation"
            elif st.age >= st.lifespan:
                cause = "old_age"
            if cause:
                died.append((agent, cause))

        for agent, cause in died:
            self.agents.remove(agent)
            self.death_causes[cause] += 1
            log_death(self.tick_count, agent.agent_id, cause,
                      agent.state.age, len(agent.policy))

        self.births += born
        self.deaths += len(died)

        if self.cfg.METRICS_INTERVAL and self.tick_count % self.cfg.METRICS_INTERVAL == 0:
            log_metrics(self.tick_count, self.summary())

        return {"births": born, "deaths": len(died)}

    def run(self, ticks: int) -> dict:
        for _ in range(ticks):
            self.tick()
            if not self.agents:
                logger.info(f"colony extinct at t={self.tick_count}")
                break
        return self.summary()

    def summary(self) -> dict:
        agents = self.agents
        return {
            "tick": self.tick_count,
            "population": len(agents),
            "births": self.births,
            "deaths": self.deaths,
            "meals": self.meals,
            "death_causes": dict(self.death_causes),
            "mean_energy": float(np.mean([a.state.energy for a in agents])) if agents else 0.0,
            "mean_health": float(np.mean([a.state.health for a in agents])) if agents else 0.0,
            "state_counts": dict(Counter(a.behavior_state.value for a in agents)),
            "loop_breaks": sum(a.behavior.loop_breaks for a in agents),
            "mean_q_states": float(np.mean([len(a.policy) for a in agents])) if agents else 0.0,
            "mean_reward": float(np.mean([a.state.last_reward for a in agents])) if agents else 0.0,
        }
