"""YAML configuration and algorithm construction.

Example::

    instance: data/ft06.txt
    algorithm: aco          # aco | pso | mixed
    max_iterations: 500
    epoch_size: 25
    workers: 4
    aco:
      colony_size: 10
      alpha: 1.0
    pso:
      swarm_size: 30

Every key outside ``instance`` has a default. Values that cannot be
converted raise ``ValueError`` before any engine is built.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from swarmshop.algorithms.aco import ACOParams, AntColonyOptimizer
from swarmshop.algorithms.base import JSSPAlgorithm
from swarmshop.algorithms.pso import ParticleSwarmOptimizer, PSOParams
from swarmshop.models import ProblemInstance
from swarmshop.solver import DEFAULT_PATIENCE, DEFAULT_THRESHOLD

ALGORITHMS = ("aco", "pso", "mixed")


@dataclass(slots=True)
class SolverConfig:
    """Typed view of the configuration file."""
    instance: str
    algorithm: str = "aco"
    max_iterations: int = 500
    epoch_size: int = 25
    workers: int = 4
    seed: Optional[int] = None
    termination_threshold: float = DEFAULT_THRESHOLD
    patience: float = DEFAULT_PATIENCE
    benchmark_makespan: Optional[int] = None
    log_level: str = "INFO"
    output_dir: str = "results"
    aco: ACOParams = field(default_factory=ACOParams)
    pso: PSOParams = field(default_factory=PSOParams)


def _convert(section: str, key: str, raw: Any, kind: type) -> Any:
    if raw is None:
        raise ValueError(f"Missing value for {section}{key}")
    try:
        if kind is int and isinstance(raw, float) and not raw.is_integer():
            raise ValueError(raw)
        return kind(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Cannot parse {section}{key}={raw!r} as {kind.__name__}") from e


def _typed_section(cls: type, raw: Any, section: str, **overrides: Any) -> Any:
    """Build a params dataclass from a mapping, converting every known key."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Section '{section}' must be a mapping")
    unknown = set(raw) - {f.name for f in fields(cls)}
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {sorted(unknown)}")
    values: dict[str, Any] = {}
    for f in fields(cls):
        if f.name in raw:
            values[f.name] = _convert(f"{section}.", f.name, raw[f.name], type(f.default))
    values.update(overrides)
    return cls(**values)


def parse_config(cfg: dict[str, Any]) -> SolverConfig:
    """Validate a raw mapping (as loaded from YAML) into :class:`SolverConfig`."""
    if not isinstance(cfg, dict):
        raise ValueError("Configuration root must be a mapping")
    if not cfg.get("instance"):
        raise ValueError("Missing key 'instance' in config")
    algorithm = str(cfg.get("algorithm", "aco")).lower()
    if algorithm not in ALGORITHMS:
        raise ValueError(f"Unknown algorithm '{algorithm}', expected one of {ALGORITHMS}")

    def opt(key: str, kind: type, default: Any) -> Any:
        if key not in cfg:
            return default
        return _convert("", key, cfg[key], kind)

    max_iterations = opt("max_iterations", int, 500)
    epoch_size = opt("epoch_size", int, 25)
    workers = opt("workers", int, 4)
    if max_iterations <= 0 or epoch_size <= 0 or workers <= 0:
        raise ValueError("max_iterations, epoch_size and workers must be positive")
    seed = cfg.get("seed")
    benchmark = cfg.get("benchmark_makespan")

    return SolverConfig(
        instance=str(cfg["instance"]),
        algorithm=algorithm,
        max_iterations=max_iterations,
        epoch_size=epoch_size,
        workers=workers,
        seed=None if seed is None else _convert("", "seed", seed, int),
        termination_threshold=opt("termination_threshold", float, DEFAULT_THRESHOLD),
        patience=opt("patience", float, DEFAULT_PATIENCE),
        benchmark_makespan=None if benchmark is None else _convert("", "benchmark_makespan", benchmark, int),
        log_level=str(cfg.get("log_level", "INFO")),
        output_dir=str(cfg.get("output_dir", "results")),
        aco=_typed_section(ACOParams, cfg.get("aco"), "aco"),
        # the PSO inertia schedule follows the global iteration ceiling
        pso=_typed_section(PSOParams, cfg.get("pso"), "pso", max_iterations=max_iterations),
    )


def load_config(config_file: str | Path = "config.yaml") -> SolverConfig:
    """Load configuration from YAML file."""
    with open(config_file, "r", encoding="utf-8") as file:
        raw = yaml.safe_load(file) or {}
    return parse_config(raw)


def build_algorithms(config: SolverConfig, instance: ProblemInstance) -> list[JSSPAlgorithm]:
    """Create ``workers`` engines, each with its own seeded random generator.

    ``mixed`` alternates ACO and PSO, starting with ACO.
    """
    master = random.Random(config.seed)
    algorithms: list[JSSPAlgorithm] = []
    for i in range(config.workers):
        rng = random.Random(master.getrandbits(64))
        kind = config.algorithm if config.algorithm != "mixed" else ("aco", "pso")[i % 2]
        if kind == "aco":
            algorithms.append(AntColonyOptimizer(instance, config.aco, rng))
        else:
            algorithms.append(ParticleSwarmOptimizer(instance, config.pso, rng))
    return algorithms
