"""Tests for the particle swarm engine: decoding, inertia and fitness caching."""

from __future__ import annotations

import random

import numpy as np
import pytest

from swarmshop.algorithms.pso import PSOParams, ParticleSwarmOptimizer, decode, inertia_at
from swarmshop.evaluation import compute_makespan, validate_order
from swarmshop.parser import load_instance


def test_decode_yields_valid_orders(ft06_path):
    instance = load_instance(ft06_path)
    gen = np.random.default_rng(3)
    for _ in range(20):
        order = decode(instance, gen.uniform(0.0, 1.0, instance.total_operations))
        assert validate_order(instance, order)


def test_decode_ties_keep_index_order(tiny_instance):
    assert decode(tiny_instance, np.zeros(4)) == [0, 1, 2, 3]
    # smallest key first: job 1 operations, then job 0
    assert decode(tiny_instance, np.array([0.9, 0.8, 0.1, 0.2])) == [2, 3, 0, 1]


def test_inertia_schedule_is_monotone_with_floor():
    grid = [i / 50 for i in range(0, 101)]
    values = [inertia_at(x, 0.9, 0.4) for x in grid]
    assert values[0] == pytest.approx(0.9)
    assert all(b <= a for a, b in zip(values, values[1:]))
    assert all(v >= 0.4 for v in values)
    assert inertia_at(1.0, 0.9, 0.4) == pytest.approx(0.4, abs=1e-4)
    assert inertia_at(2.0, 0.9, 0.4) == 0.4


def test_fitness_recomputed_once_after_move(tiny_instance):
    pso = ParticleSwarmOptimizer(tiny_instance, PSOParams(swarm_size=3), random.Random(0))
    particle = pso.swarm.particles[0]
    assert particle.evaluations == 1
    _ = particle.fitness
    assert particle.evaluations == 1

    particle.position[:] = [0.9, 0.8, 0.1, 0.2]
    particle.moved()
    particle.moved()
    assert particle.fitness == -11
    assert particle.fitness == -11
    assert particle.evaluations == 2


def test_global_best_set_at_construction(tiny_instance):
    pso = ParticleSwarmOptimizer(tiny_instance, PSOParams(swarm_size=5), random.Random(2))
    assert pso.ran_iterations == 0
    assert np.isfinite(pso.best_makespan())
    assert compute_makespan(tiny_instance, pso.best_solution()) == pso.best_makespan()


def test_velocity_bounds_and_monotone_history(ft06_path):
    instance = load_instance(ft06_path)
    params = PSOParams(swarm_size=10, vmin=-0.2, vmax=0.2, max_iterations=20)
    pso = ParticleSwarmOptimizer(instance, params, random.Random(9))
    for _ in range(20):
        pso.run_iteration()
        for p in pso.swarm.particles:
            assert p.velocity.min() >= -0.2 and p.velocity.max() <= 0.2
    history = pso.makespan_history
    assert len(history) == 20
    assert all(b <= a for a, b in zip(history, history[1:]))
    assert pso.inertia < params.initial_inertia
    stats = pso.population_stats()
    assert set(stats) == {"inertia", "swarm_best", "swarm_avg"}
    assert stats["swarm_best"] <= stats["swarm_avg"]


def test_tiny_instance_reaches_optimum(tiny_instance):
    pso = ParticleSwarmOptimizer(tiny_instance, PSOParams(swarm_size=20, max_iterations=50), random.Random(42))
    for _ in range(50):
        pso.run_iteration()
    assert pso.best_makespan() == 7
    assert compute_makespan(tiny_instance, pso.best_solution()) == 7


@pytest.mark.parametrize(
    "kwargs",
    [
        {"swarm_size": 0},
        {"xmin": 1.0, "xmax": 0.0},
        {"min_inertia": 0.95},
        {"max_iterations": 0},
    ],
)
def test_invalid_params(kwargs):
    with pytest.raises(ValueError):
        PSOParams(**kwargs)
