"""Tests for the ant colony engine: pheromone bookkeeping and construction."""

from __future__ import annotations

import random

import numpy as np
import pytest

from swarmshop.algorithms.aco import ACOParams, Ant, AntColonyOptimizer
from swarmshop.evaluation import compute_makespan, validate_order
from swarmshop.models import ProblemInstance
from swarmshop.parser import load_instance


def test_initial_pheromones_cover_reachable_edges(tiny_instance):
    aco = AntColonyOptimizer(tiny_instance, ACOParams(initial_pheromone=2.0), random.Random(0))
    tau = aco.colony.pheromones
    assert tau.shape == (5, 5)
    # start -> first operation of each job
    assert tau[0, 1] == 2.0 and tau[0, 3] == 2.0
    assert tau[0, 2] == 0.0 and tau[0, 4] == 0.0
    # own successor yes, own predecessor no, other job yes
    assert tau[1, 2] == 2.0
    assert tau[2, 1] == 0.0
    assert tau[1, 3] == 2.0 and tau[4, 1] == 2.0
    assert np.all(np.diag(tau) == 0.0)
    assert np.all(tau[:, 0] == 0.0)


def test_ant_builds_valid_orders_with_matching_makespan(ft06_path):
    instance = load_instance(ft06_path)
    aco = AntColonyOptimizer(instance, ACOParams(colony_size=5), random.Random(3))
    aco.run_iteration()
    for ant in aco.colony.ants:
        order = ant.schedule()
        assert validate_order(instance, order)
        assert ant.makespan == compute_makespan(instance, order)
        assert ant.makespan == aco.compute_makespan(order)
        # one outgoing edge per node on the route, none out of the last node
        from_nodes, to_nodes = ant.route()
        walked = [(0, order[0] + 1)] + [(a + 1, b + 1) for a, b in zip(order, order[1:])]
        assert sorted(zip(from_nodes.tolist(), to_nodes.tolist())) == sorted(walked)
        assert ant.has_connection(0, order[0] + 1)


def test_pheromones_stay_non_negative(tiny_instance):
    aco = AntColonyOptimizer(tiny_instance, ACOParams(rho=0.5), random.Random(1))
    for _ in range(30):
        aco.run_iteration()
        assert (aco.colony.pheromones >= 0.0).all()


def test_pure_evaporation_strictly_decreases_mass(tiny_instance):
    aco = AntColonyOptimizer(tiny_instance, ACOParams(q=0.0, rho=0.1), random.Random(1))
    before = aco.colony.total_pheromone()
    for _ in range(5):
        aco.run_iteration()
        after = aco.colony.total_pheromone()
        assert after < before
        assert after == pytest.approx(before * 0.9)
        before = after


def test_best_ant_route_is_reinforced(tiny_instance):
    aco = AntColonyOptimizer(tiny_instance, ACOParams(rho=0.1, q=1.0), random.Random(4))
    aco.run_iteration()
    best = aco.colony.best_ant()
    order = best.schedule()
    expected = 0.9 + 1.0 / best.makespan
    assert aco.colony.pheromone(0, order[0] + 1) == pytest.approx(expected)
    for a, b in zip(order, order[1:]):
        assert aco.colony.pheromone(a + 1, b + 1) == pytest.approx(expected)


def test_single_candidate_is_taken_without_random_draw():
    # a single job leaves exactly one accessible operation at every step
    instance = ProblemInstance(jobs=[[(0, 2), (1, 3), (2, 1)]], jobs_number=1, machines_number=3)
    orders = []
    for seed in (1, 2):
        rng = random.Random(seed)
        aco = AntColonyOptimizer(instance, ACOParams(colony_size=1), rng)
        ant = aco.colony.ants[0]
        state = rng.getstate()
        ant.generate()
        assert rng.getstate() == state
        orders.append(ant.schedule())
    assert orders[0] == orders[1] == [0, 1, 2]


def test_accessible_operations_follow_job_progress(tiny_instance):
    aco = AntColonyOptimizer(tiny_instance, rng=random.Random(0))
    ant = Ant(aco.colony)
    assert ant.accessible_operations() == [0, 2]
    ant.extend(0)
    assert ant.accessible_operations() == [1, 2]
    ant.extend(1)
    assert ant.accessible_operations() == [2]


def test_history_never_increases(ft06_path):
    instance = load_instance(ft06_path)
    aco = AntColonyOptimizer(instance, ACOParams(colony_size=4), random.Random(8))
    assert aco.best_solution() is None
    for _ in range(10):
        aco.run_iteration()
    history = aco.makespan_history
    assert len(history) == aco.ran_iterations == 10
    assert all(b <= a for a, b in zip(history, history[1:]))
    assert aco.best_makespan() == compute_makespan(instance, aco.best_solution())
    assert "colony_avg" in aco.population_stats()


@pytest.mark.parametrize("policy", ["best", "all"])
def test_tiny_instance_reaches_optimum(tiny_instance, policy):
    aco = AntColonyOptimizer(
        tiny_instance,
        ACOParams(colony_size=10, reinforcement=policy, exploration_probability=0.05),
        random.Random(42),
    )
    for _ in range(50):
        aco.run_iteration()
    assert aco.best_makespan() == 7
    assert compute_makespan(tiny_instance, aco.best_solution()) == 7


@pytest.mark.parametrize(
    "kwargs",
    [
        {"colony_size": 0},
        {"rho": 1.5},
        {"exploration_probability": -0.1},
        {"reinforcement": "worst"},
        {"distance_epsilon": 0.0},
    ],
)
def test_invalid_params(kwargs):
    with pytest.raises(ValueError):
        ACOParams(**kwargs)
