"""Logging configuration for petri colony runs.

Creates two output files per run:
- runs/latest.log: Human-readable narrative of transitions and deaths
- runs/latest_metrics.jsonl: Structured colony metrics every N ticks
"""

import logging
import json
from datetime import datetime
from pathlib import Path


RUNS_DIR = Path("runs")
LOG_NAME = "latest.log"
METRICS_NAME = "latest_metrics.jsonl"


def setup_logging(run_dir: str | Path = RUNS_DIR, console: bool = True):
    """Configure logging for a new run. Clears previous log files."""
    run_dir = Path(run_dir)
    run_dir.mkdir(parents=True, exist_ok=True)
    log_file = run_dir / LOG_NAME
    metrics_file = run_dir / METRICS_NAME

    # Clear previous log files
    if log_file.exists():
        log_file.unlink()
    if metrics_file.exists():
        metrics_file.unlink()

    # Create main logger
    logger = logging.getLogger("petri")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    # File handler for narrative log (overwrites each run)
    file_handler = logging.FileHandler(log_file, mode='w')
    file_handler.setLevel(logging.DEBUG)
    file_format = logging.Formatter(
        '%(asctime)s [%(name)s] %(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )
    file_handler.setFormatter(file_format)
    logger.addHandler(file_handler)

    # Console handler (INFO and above)
    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_format = logging.Formatter('[%(name)s] %(message)s')
        console_handler.setFormatter(console_format)
        logger.addHandler(console_handler)

    # Per-agent decision logger (child of petri)
    agent_logger = logging.getLogger("petri.agent")
    agent_logger.setLevel(logging.DEBUG)

    # Metrics logger (child of petri): bare JSON lines, kept out of the narrative
    metrics_logger = logging.getLogger("petri.metrics")
    metrics_logger.setLevel(logging.DEBUG)
    metrics_logger.propagate = False
    for handler in list(metrics_logger.handlers):
        handler.close()
        metrics_logger.removeHandler(handler)
    metrics_handler = logging.FileHandler(metrics_file, mode='w')
    metrics_handler.setFormatter(logging.Formatter('%(message)s'))
    metrics_logger.addHandler(metrics_handler)

    logger.info(f"=== Petri Run Started: {datetime.now().isoformat()} ===")

    return logger


def get_logger(name: str = "petri") -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


def log_metrics(tick: int, colony_state: dict):
    """
    Write metrics to JSONL file.

    Called every N ticks to capture colony state for analysis. Dropped
    until setup_logging() has attached the metrics file handler.
    """
    metrics_logger = logging.getLogger("petri.metrics")
    if not metrics_logger.handlers:
        return

    metrics = {
        "tick": tick,
        "timestamp": datetime.now().isoformat(),
        # Population
        "population": colony_state.get("population", 0),
        "births": colony_state.get("births", 0),
        "deaths": colony_state.get("deaths", 0),
        # Vitals
        "mean_energy": colony_state.get("mean_energy", 0.0),
        "mean_health": colony_state.get("mean_health", 0.0),
        # Behavior
        "state_counts": colony_state.get("state_counts", {}),
        "loop_breaks": colony_state.get("loop_breaks", 0),
        # Learning
        "mean_q_states": colony_state.get("mean_q_states", 0.0),
        "mean_reward": colony_state.get("mean_reward", 0.0),
    }

    metrics_logger.info(json.dumps(metrics))


def log_transition(agent_id: int, tick: int, from_state: str,
                   to_state: str, reason: str):
    """Log a behavior state change.

    Reasons: the rule that fired (predator, food, mate, low_energy, policy,
    default) or a forced reset (forced_explore, resting_cap,
    reproduction_done, loop_break)
    """
    logger = logging.getLogger("petri.agent")
    logger.debug(
        f"t={tick} | agent={agent_id} | {from_state} -> {to_state} | reason={reason}"
    )


def log_death(tick: int, agent_id: int, cause: str, age: int, q_states: int):
    """Log death events for post-mortem analysis."""
    logger = logging.getLogger("petri")
    logger.warning(
        f"DEATH t={tick} | agent={agent_id} cause={cause} age={age} "
        f"q_states={q_states}"
    )
