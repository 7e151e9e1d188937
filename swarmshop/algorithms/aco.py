"""Ant Colony Optimization for the job shop.

Nodes of the pheromone graph are ``0`` (virtual start) and ``op + 1`` for
every flat operation index ``op``. An ant walks from the start through every
operation once; at each step it may only move to the next unscheduled
operation of some job.

Selection weight of candidate ``c`` from node ``i``::

    tau(i, c + 1) ** alpha / (gap(c) + eps) ** beta

where ``gap`` is the makespan increase of appending ``c`` to the ant's
partial order. After a generation every edge evaporates by ``(1 - rho)`` and
the edges walked by the generation's best ant (or by every ant, under the
``"all"`` policy) receive ``Q / makespan``.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from swarmshop.algorithms.base import BestSoFar, JSSPAlgorithm
from swarmshop.evaluation import ScheduleState
from swarmshop.models import ProblemInstance
from swarmshop.roulette import spin_once

logger = logging.getLogger("jssp.aco")

REINFORCEMENT_POLICIES = ("best", "all")


@dataclass(slots=True)
class ACOParams:
    """Hyper-parameters of one ant colony.

    ``exploration_probability`` is the chance that an ant ignores pheromone
    for its whole construction (heuristic-only weights). ``reinforcement``
    selects which ants deposit pheromone: ``"best"`` (iteration best only)
    or ``"all"``.
    """
    colony_size: int = 10
    alpha: float = 1.0
    beta: float = 1.0
    initial_pheromone: float = 1.0
    rho: float = 0.1
    q: float = 1.0
    exploration_probability: float = 0.0
    reinforcement: str = "best"
    distance_epsilon: float = 0.5

    def __post_init__(self) -> None:
        if self.colony_size <= 0:
            raise ValueError("colony_size must be positive")
        if not (0.0 <= self.rho <= 1.0):
            raise ValueError(f"rho must lie in [0, 1], got {self.rho}")
        if not (0.0 <= self.exploration_probability <= 1.0):
            raise ValueError("exploration_probability must lie in [0, 1]")
        if self.reinforcement not in REINFORCEMENT_POLICIES:
            raise ValueError(f"Unknown reinforcement policy: {self.reinforcement}")
        if self.distance_epsilon <= 0:
            raise ValueError("distance_epsilon must be positive")
        if self.initial_pheromone < 0 or self.q < 0:
            raise ValueError("initial_pheromone and q must be non-negative")


class Ant:
    """One tour builder. Buffers are sized once and overwritten every generation."""

    def __init__(self, colony: "Colony") -> None:
        self.colony = colony
        instance = colony.instance
        self.order: list[Optional[int]] = [None] * instance.total_operations
        # connections[i] = j  <=>  the ant walked edge (i, j) this generation
        self.connections = np.full(instance.total_operations + 1, -1, dtype=np.int64)
        self.last_job_operation = [-1] * instance.jobs_number
        self.state = ScheduleState(instance)
        self.makespan = 0
        self.size = 0

    def _reset(self) -> None:
        for i in range(len(self.order)):
            self.order[i] = None
        self.connections.fill(-1)
        for j in range(len(self.last_job_operation)):
            self.last_job_operation[j] = -1
        self.state.reset()
        self.makespan = 0
        self.size = 0

    def accessible_operations(self) -> list[int]:
        """Next schedulable operation of every unfinished job, in job order."""
        instance = self.colony.instance
        per_job = instance.operations_per_job
        accessible = []
        for job, last in enumerate(self.last_job_operation):
            if last == -1:
                accessible.append(job * per_job)
            elif (last + 1) % per_job != 0:
                accessible.append(last + 1)
        return accessible

    def _weights(self, node: int, candidates: list[int], ignore_pheromones: bool) -> list[float]:
        alpha, beta, eps = self.colony.alpha, self.colony.beta, self.colony.distance_epsilon
        pheromones = self.colony.pheromones
        weights = []
        for op in candidates:
            attraction = 1.0 if ignore_pheromones else float(pheromones[node, op + 1]) ** alpha
            weights.append(attraction / (self.state.induced_gap(op) + eps) ** beta)
        if sum(weights) <= 0.0:
            # every candidate edge evaporated to zero; fall back to the heuristic term
            weights = [1.0 / (self.state.induced_gap(op) + eps) ** beta for op in candidates]
        return weights

    def choose_next_operation(self, ignore_pheromones: bool = False) -> int:
        """Pick the next operation; a lone candidate is taken without a random draw."""
        candidates = self.accessible_operations()
        if len(candidates) == 1:
            return candidates[0]
        node = 0 if self.size == 0 else self.order[self.size - 1] + 1  # type: ignore[operator]
        weights = self._weights(node, candidates, ignore_pheromones)
        return candidates[spin_once(self.colony.rng, weights)]

    def extend(self, operation: int) -> None:
        previous = 0 if self.size == 0 else self.order[self.size - 1] + 1  # type: ignore[operator]
        self.connections[previous] = operation + 1
        self.order[self.size] = operation
        self.size += 1
        self.last_job_operation[self.colony.instance.job_of(operation)] = operation
        self.state.append(operation)
        self.makespan = self.state.makespan

    def generate(self) -> None:
        """Build a complete order from the virtual start."""
        self._reset()
        p = self.colony.exploration_probability
        ignore_pheromones = p > 0.0 and self.colony.rng.random() < p
        total = len(self.order)
        while self.size < total:
            self.extend(self.choose_next_operation(ignore_pheromones))

    def has_connection(self, i: int, j: int) -> bool:
        return int(self.connections[i]) == j

    def route(self) -> tuple[np.ndarray, np.ndarray]:
        """Edges walked this generation as ``(from_nodes, to_nodes)`` arrays."""
        from_nodes = np.flatnonzero(self.connections >= 0)
        return from_nodes, self.connections[from_nodes]

    def schedule(self) -> list[int]:
        return [op for op in self.order if op is not None]


class Colony:
    """Pheromone matrix plus a fixed population of ants."""

    def __init__(
        self,
        instance: ProblemInstance,
        params: ACOParams,
        rng: random.Random,
    ) -> None:
        self.instance = instance
        self.rng = rng
        self.alpha = params.alpha
        self.beta = params.beta
        self.rho = params.rho
        self.q = params.q
        self.distance_epsilon = params.distance_epsilon
        self.exploration_probability = params.exploration_probability
        self.reinforcement = params.reinforcement
        self.best = BestSoFar()
        self.pheromones = self._initial_pheromones(instance, params.initial_pheromone)
        self.ants = [Ant(self) for _ in range(params.colony_size)]
        self.generations = 0

    @staticmethod
    def _initial_pheromones(instance: ProblemInstance, value: float) -> np.ndarray:
        """Seed every a priori reachable edge with ``value``.

        Reachable: start -> first operation of a job, and op i -> any
        operation of another job or i's own job successor.
        """
        n = instance.total_operations
        per_job = instance.operations_per_job
        tau = np.zeros((n + 1, n + 1), dtype=np.float64)
        tau[0, 1 + np.arange(instance.jobs_number) * per_job] = value
        jobs = np.arange(n) // per_job
        reachable = jobs[:, None] != jobs[None, :]
        successor = np.arange(n)[:, None] + 1 == np.arange(n)[None, :]
        reachable |= successor & (jobs[:, None] == jobs[None, :])
        tau[1:, 1:][reachable] = value
        return tau

    def pheromone(self, i: int, j: int) -> float:
        return float(self.pheromones[i, j])

    def next_generation(self) -> "Ant":
        """Rebuild every ant, then fold the generation best into the best-so-far."""
        for ant in self.ants:
            ant.generate()
        best_ant = self.best_ant()
        if self.best.offer(best_ant.schedule(), best_ant.makespan):
            logger.debug(
                "generation %d improved best makespan to %d", self.generations, best_ant.makespan
            )
        self.generations += 1
        return best_ant

    def update_pheromones(self) -> None:
        """Evaporate every edge, then deposit ``Q / makespan`` on reinforced routes."""
        depositors = [self.best_ant()] if self.reinforcement == "best" else self.ants
        self.pheromones *= 1.0 - self.rho
        for ant in depositors:
            if ant.makespan <= 0:
                continue
            from_nodes, to_nodes = ant.route()
            self.pheromones[from_nodes, to_nodes] += self.q / ant.makespan

    def best_ant(self) -> Ant:
        """Lowest makespan of the current generation; ties keep the lowest index."""
        best = self.ants[0]
        for ant in self.ants[1:]:
            if ant.makespan < best.makespan:
                best = ant
        return best

    def average_makespan(self) -> float:
        return sum(a.makespan for a in self.ants) / len(self.ants)

    def total_pheromone(self) -> float:
        return float(self.pheromones.sum())


class AntColonyOptimizer(JSSPAlgorithm):
    """Engine wrapper: one generation plus one pheromone update per iteration."""

    name = "aco"

    def __init__(
        self,
        instance: ProblemInstance,
        params: Optional[ACOParams] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(instance, rng)
        self.params = params if params is not None else ACOParams()
        self.colony = Colony(instance, self.params, self.rng)

    def run_iteration(self) -> None:
        self.colony.next_generation()
        self.colony.update_pheromones()
        self._ran_iterations += 1
        self.colony.best.record()

    def best_solution(self) -> Optional[list[int]]:
        return self.colony.best.order

    def best_makespan(self) -> float:
        return self.colony.best.makespan

    @property
    def makespan_history(self) -> list[float]:
        return self.colony.best.history

    def population_stats(self) -> dict[str, Any]:
        if self._ran_iterations == 0:
            return {}
        return {
            "colony_best": self.colony.best_ant().makespan,
            "colony_avg": self.colony.average_makespan(),
        }
