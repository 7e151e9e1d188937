from __future__ import annotations

import textwrap

import pytest

from swarmshop.algorithms import AntColonyOptimizer, ParticleSwarmOptimizer
from swarmshop.config import build_algorithms, load_config, parse_config


def _write(tmp_path, body: str):
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_load_full_config(tmp_path):
    path = _write(
        tmp_path,
        """
        instance: data/ft06.txt
        algorithm: PSO
        max_iterations: 40
        epoch_size: 10
        workers: 2
        seed: 3
        benchmark_makespan: 55
        aco:
          colony_size: 4
          reinforcement: all
        pso:
          swarm_size: 8
          c1: 1
        """,
    )
    cfg = load_config(path)
    assert cfg.algorithm == "pso"
    assert (cfg.max_iterations, cfg.epoch_size, cfg.workers, cfg.seed) == (40, 10, 2, 3)
    assert cfg.benchmark_makespan == 55
    assert cfg.aco.colony_size == 4 and cfg.aco.reinforcement == "all"
    assert cfg.pso.swarm_size == 8
    assert isinstance(cfg.pso.c1, float) and cfg.pso.c1 == 1.0
    # the inertia schedule follows the global ceiling
    assert cfg.pso.max_iterations == 40


def test_defaults():
    cfg = parse_config({"instance": "x.txt"})
    assert cfg.algorithm == "aco"
    assert cfg.termination_threshold == 1.5
    assert cfg.patience == 15.0
    assert cfg.seed is None
    assert cfg.aco.rho == 0.1


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"instance": "x.txt", "algorithm": "tabu"},
        {"instance": "x.txt", "max_iterations": "many"},
        {"instance": "x.txt", "epoch_size": 0},
        {"instance": "x.txt", "aco": {"colony_size": 2.5}},
        {"instance": "x.txt", "aco": {"ants": 3}},
        {"instance": "x.txt", "pso": [1, 2]},
        {"instance": "x.txt", "aco": {"rho": 2.0}},
    ],
)
def test_invalid_configs(raw):
    with pytest.raises(ValueError):
        parse_config(raw)


def test_build_mixed_algorithms(tiny_instance):
    cfg = parse_config({"instance": "x.txt", "algorithm": "mixed", "workers": 3, "seed": 5})
    algorithms = build_algorithms(cfg, tiny_instance)
    assert [type(a) for a in algorithms] == [
        AntColonyOptimizer,
        ParticleSwarmOptimizer,
        AntColonyOptimizer,
    ]
    assert len({id(a.rng) for a in algorithms}) == 3


def test_same_seed_same_generators(tiny_instance):
    cfg = parse_config({"instance": "x.txt", "workers": 2, "seed": 9})
    first = [a.rng.random() for a in build_algorithms(cfg, tiny_instance)]
    second = [a.rng.random() for a in build_algorithms(cfg, tiny_instance)]
    assert first == second
    assert first[0] != first[1]
