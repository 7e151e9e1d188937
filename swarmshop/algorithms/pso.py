"""Particle Swarm Optimization with random-key encoding.

A particle position holds one real value per operation. Sorting operation
indices by their position value yields an operation order; the evaluator's
per-job counters keep job precedence whatever the interleaving, so the
position is a priority key rather than a literal schedule.

Fitness is the negated makespan (higher is better) and is cached until the
position moves.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from swarmshop.algorithms.base import JSSPAlgorithm
from swarmshop.cache import CachedValue
from swarmshop.evaluation import compute_makespan, normalize_order
from swarmshop.models import ProblemInstance

logger = logging.getLogger("jssp.pso")

# inertia(x) = w0 - INERTIA_CURVE * log10(x + 1) ** 0.25 * (w0 - w_min)
INERTIA_CURVE = 1.35


@dataclass(slots=True)
class PSOParams:
    """Hyper-parameters of one swarm.

    ``max_iterations`` drives the inertia schedule: inertia reaches its
    floor after that many iterations and stays there.
    """
    swarm_size: int = 30
    xmin: float = 0.0
    xmax: float = 1.0
    vmin: float = -0.5
    vmax: float = 0.5
    initial_inertia: float = 0.9
    min_inertia: float = 0.4
    c1: float = 2.0
    c2: float = 2.0
    max_iterations: int = 1000

    def __post_init__(self) -> None:
        if self.swarm_size <= 0:
            raise ValueError("swarm_size must be positive")
        if self.xmin > self.xmax or self.vmin > self.vmax:
            raise ValueError("Position and velocity bounds must satisfy min <= max")
        if self.min_inertia > self.initial_inertia:
            raise ValueError("min_inertia must not exceed initial_inertia")
        if self.max_iterations <= 0:
            raise ValueError("max_iterations must be positive")


def decode(instance: ProblemInstance, position: np.ndarray) -> list[int]:
    """Sort operation indices by key value (stable) and normalize to job order."""
    keys = np.argsort(position, kind="stable")
    return normalize_order(instance, keys.tolist())


def inertia_at(progress: float, initial: float, floor: float) -> float:
    """Inertia after completing ``progress`` (fraction) of the iterations.

    Log-shaped decay: about 60% of the way down after 10% of the run and
    within 1e-4 of ``floor`` when the run completes.
    """
    w = initial - INERTIA_CURVE * math.log10(progress + 1.0) ** 0.25 * (initial - floor)
    return max(w, floor)


class Particle:
    """Position, velocity and personal best of one swarm member."""

    def __init__(self, swarm: "Swarm", position: np.ndarray, velocity: np.ndarray) -> None:
        self.swarm = swarm
        self.position = position
        self.velocity = velocity
        self.local_best_position = position.copy()
        self.local_best_fitness = -math.inf
        self.evaluations = 0
        self._fitness: CachedValue[int] = CachedValue(self._compute_fitness)
        self.update_local_best()

    def _compute_fitness(self) -> int:
        self.evaluations += 1
        instance = self.swarm.instance
        return -compute_makespan(instance, decode(instance, self.position))

    @property
    def fitness(self) -> int:
        return self._fitness.value

    def moved(self) -> None:
        """Mark the cached fitness stale after the position changed."""
        self._fitness.invalidate()

    def update_local_best(self) -> bool:
        fitness = self.fitness
        if fitness > self.local_best_fitness:
            self.local_best_fitness = fitness
            self.local_best_position[:] = self.position
            return True
        return False

    def update(
        self,
        global_best: np.ndarray,
        inertia: float,
        c1: float,
        c2: float,
        vmin: float,
        vmax: float,
    ) -> None:
        """One velocity/position step; random factors drawn per coordinate and term."""
        gen = self.swarm.generator
        n = self.position.shape[0]
        r1 = gen.random(n)
        r2 = gen.random(n)
        v = (
            inertia * self.velocity
            + c1 * r1 * (self.local_best_position - self.position)
            + c2 * r2 * (global_best - self.position)
        )
        np.clip(v, vmin, vmax, out=self.velocity)
        self.position += self.velocity
        self.moved()
        self.update_local_best()


class Swarm:
    """Population of particles and the best personal-best among them."""

    def __init__(self, instance: ProblemInstance, generator: np.random.Generator) -> None:
        self.instance = instance
        self.generator = generator
        self.particles: list[Particle] = []
        self.global_best_position = np.zeros(instance.total_operations, dtype=np.float64)
        self.global_best_fitness = -math.inf

    @classmethod
    def random_swarm(
        cls,
        instance: ProblemInstance,
        generator: np.random.Generator,
        size: int,
        xmin: float,
        xmax: float,
        vmin: float,
        vmax: float,
    ) -> "Swarm":
        swarm = cls(instance, generator)
        n = instance.total_operations
        for _ in range(size):
            position = generator.uniform(xmin, xmax, n)
            velocity = generator.uniform(vmin, vmax, n)
            swarm.particles.append(Particle(swarm, position, velocity))
        swarm.update_global_best()
        return swarm

    def update_global_best(self) -> bool:
        """Scan personal bests (not current fitness); first strictly better wins."""
        improved = False
        for p in self.particles:
            if p.local_best_fitness > self.global_best_fitness:
                self.global_best_fitness = p.local_best_fitness
                self.global_best_position[:] = p.local_best_position
                improved = True
        return improved

    def fittest(self) -> Particle:
        best = self.particles[0]
        for p in self.particles[1:]:
            if p.fitness > best.fitness:
                best = p
        return best

    def average_fitness(self) -> float:
        return sum(p.fitness for p in self.particles) / len(self.particles)


class ParticleSwarmOptimizer(JSSPAlgorithm):
    """Engine wrapper: global-best refresh, particle moves, inertia decay."""

    name = "pso"

    def __init__(
        self,
        instance: ProblemInstance,
        params: Optional[PSOParams] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(instance, rng)
        self.params = params if params is not None else PSOParams()
        self.generator = np.random.default_rng(self.rng.getrandbits(64))
        self.inertia = self.params.initial_inertia
        p = self.params
        self.swarm = Swarm.random_swarm(
            instance, self.generator, p.swarm_size, p.xmin, p.xmax, p.vmin, p.vmax
        )
        self._history: list[float] = []

    def run_iteration(self) -> None:
        p = self.params
        if self.swarm.update_global_best():
            logger.debug(
                "iteration %d global best makespan %d",
                self._ran_iterations,
                -self.swarm.global_best_fitness,
            )
        for particle in self.swarm.particles:
            particle.update(self.swarm.global_best_position, self.inertia, p.c1, p.c2, p.vmin, p.vmax)
        if self.inertia > p.min_inertia:
            self.inertia = inertia_at(
                self._ran_iterations / p.max_iterations, p.initial_inertia, p.min_inertia
            )
        self._ran_iterations += 1
        self._history.append(self.best_makespan())

    def best_solution(self) -> Optional[list[int]]:
        return decode(self.instance, self.swarm.global_best_position)

    def best_makespan(self) -> float:
        return -self.swarm.global_best_fitness

    @property
    def makespan_history(self) -> list[float]:
        return self._history

    def population_stats(self) -> dict[str, Any]:
        return {
            "inertia": self.inertia,
            "swarm_best": -self.swarm.fittest().fitness,
            "swarm_avg": -self.swarm.average_fitness(),
        }
