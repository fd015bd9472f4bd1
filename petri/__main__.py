"""Entry point for petri: python -m petri [--agents N] [--ticks T] [--seed S] [--config PATH] [--quiet]"""

import sys
from .config import load_config
from .colony import Colony
from .logging_config import setup_logging


def main():
    # Parse args
    agents = 20
    ticks = 5000
    seed = None
    config_path = "config.yaml"
    run_dir = "runs"
    quiet = False

    args = sys.argv[1:]
    i = 0
    while i < len(args):
        if args[i] == "--agents" and i + 1 < len(args):
            agents = int(args[i + 1])
            i += 2
        elif args[i] == "--ticks" and i + 1 < len(args):
            ticks = int(args[i + 1])
            i += 2
        elif args[i] == "--seed" and i + 1 < len(args):
            seed = int(args[i + 1])
            i += 2
        elif args[i] == "--config" and i + 1 < len(args):
            config_path = args[i + 1]
            i += 2
        elif args[i] == "--run-dir" and i + 1 < len(args):
            run_dir = args[i + 1]
            i += 2
        elif args[i] == "--quiet":
            quiet = True
            i += 1
        else:
            i += 1

    setup_logging(run_dir, console=not quiet)
    cfg = load_config(config_path)

    print(f"  petri colony")
    print(f"  Agents: {agents}  Ticks: {ticks}  Seed: {seed}")

    colony = Colony(n_agents=agents, cfg=cfg, seed=seed)
    summary = colony.run(ticks)

    print(f"  Ran {summary['tick']} ticks")
    print(f"  Population: {summary['population']}  Births: {summary['births']}  "
          f"Deaths: {summary['deaths']}  Meals: {summary['meals']}")
    print(f"  States: {summary['state_counts']}")
    print(f"  Loop breaks: {summary['loop_breaks']}  "
          f"Mean Q rows: {summary['mean_q_states']:.1f}")


if __name__ == "__main__":
    main()
