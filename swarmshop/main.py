"""Command line entry point: ``python -m swarmshop.main --config config.yaml``.

Loads the YAML configuration, reads the instance, runs the parallel solver
and writes the results JSON, a Gantt chart of the winning schedule and a
convergence plot into ``output_dir``.
"""
from __future__ import annotations

import argparse
import json
import logging
import os
from datetime import datetime
from typing import Any, Optional, Sequence

from swarmshop.config import SolverConfig, build_algorithms, load_config
from swarmshop.evaluation import build_schedule, check_schedule, relative_gap, validate_order
from swarmshop.models import ProblemInstance
from swarmshop.parser import load_instance
from swarmshop.solver import Solver, SolverResult

logger = logging.getLogger("jssp.main")


def run(config: SolverConfig, instance: ProblemInstance) -> SolverResult:
    """Build the engines described by ``config`` and solve ``instance``."""
    logger.info(
        "Instance: %s jobs=%d machines=%d ops=%d",
        instance.name,
        instance.jobs_number,
        instance.machines_number,
        instance.total_operations,
    )
    algorithms = build_algorithms(config, instance)
    solver = Solver(
        algorithms,
        termination_threshold=config.termination_threshold,
        patience=config.patience,
    )
    result = solver.solve(config.max_iterations, config.epoch_size)
    validate_order(instance, result.order)
    check_schedule(build_schedule(instance, result.order))
    gap = relative_gap(result.makespan, config.benchmark_makespan)
    logger.info(
        "Best makespan %d by alg %03d (%s) after %d iterations%s",
        result.makespan,
        result.best_index + 1,
        result.algorithm.name,
        result.algorithm.ran_iterations,
        f", gap to benchmark {gap:.2f}%" if gap is not None else "",
    )
    return result


def write_outputs(
    config: SolverConfig,
    instance: ProblemInstance,
    result: SolverResult,
) -> dict[str, str]:
    """Persist results JSON and charts; failures are logged, not raised."""
    from swarmshop.visualization import plot_convergence, plot_gantt

    os.makedirs(config.output_dir, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    written: dict[str, str] = {}
    payload: dict[str, Any] = {
        "instance": config.instance,
        "algorithm": config.algorithm,
        "timestamp": stamp,
        "epochs": result.epochs,
        "best": {
            "index": result.best_index,
            "algorithm": result.algorithm.name,
            "makespan": result.makespan,
            "order": result.order,
            "gap_percent": relative_gap(result.makespan, config.benchmark_makespan),
        },
        "per_instance": [
            {
                "index": s.index,
                "algorithm": s.algorithm,
                "ran_iterations": s.ran_iterations,
                "best_makespan": s.best_makespan,
                "stopped_at_epoch": s.stopped_at_epoch,
            }
            for s in result.summaries
        ],
    }
    try:
        results_path = os.path.join(config.output_dir, f"results_{stamp}.json")
        with open(results_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        written["results"] = results_path
        logger.info("Saved results JSON to %s", results_path)
    except OSError as e:
        logger.warning("Failed to write results JSON: %s", e)
    try:
        schedule = build_schedule(instance, result.order)
        written["gantt"] = plot_gantt(
            schedule,
            os.path.join(config.output_dir, f"gantt_{instance.name}_c{schedule.makespan}_{stamp}.png"),
            title=f"{instance.name} ({result.algorithm.name}) - makespan = {schedule.makespan}",
        )
        histories = {
            f"{s.algorithm} {s.index + 1:03d}": alg.makespan_history
            for s, alg in zip(result.summaries, result.algorithms)
        }
        written["convergence"] = plot_convergence(
            histories, os.path.join(config.output_dir, f"convergence_{stamp}.png")
        )
        logger.info("Saved charts to %s", config.output_dir)
    except (OSError, ValueError) as e:
        logger.warning("Failed to create charts: %s", e)
    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="JSSP ant colony / particle swarm solver")
    parser.add_argument("--config", required=True, help="Path to the YAML configuration file")
    parser.add_argument("--no-output", action="store_true", help="Skip JSON and chart output")
    args = parser.parse_args(argv)

    if not os.path.isfile(args.config):
        raise FileNotFoundError(f"Config file not found: {args.config}")
    config = load_config(args.config)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    instance = load_instance(config.instance)
    result = run(config, instance)
    if not args.no_output:
        write_outputs(config, instance, result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
