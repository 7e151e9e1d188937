"""Common structures for the search engines driven by the solver."""

from __future__ import annotations

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

from swarmshop.evaluation import compute_makespan
from swarmshop.models import ProblemInstance


@dataclass
class BestSoFar:
    """Best order seen by one engine. Only ever replaced by a strictly better one."""

    order: Optional[list[int]] = None
    makespan: float = math.inf
    history: list[float] = field(default_factory=list)

    def offer(self, order: list[int], makespan: int) -> bool:
        """Replace the stored order if ``makespan`` improves it. Returns True if improved."""
        if makespan < self.makespan:
            self.makespan = makespan
            self.order = list(order)
            return True
        return False

    def record(self) -> None:
        self.history.append(self.makespan)


@runtime_checkable
class PopulationReporter(Protocol):
    """Engines that can describe their current population."""

    def population_stats(self) -> dict[str, Any]: ...


class JSSPAlgorithm(ABC):
    """Capability interface consumed uniformly by the solver.

    Each instance owns its problem reference, its own random generator and
    its best-so-far record; nothing is shared between instances.
    """

    name = "base"

    def __init__(self, instance: ProblemInstance, rng: Optional[random.Random] = None) -> None:
        self.instance = instance
        self.rng = rng if rng is not None else random.Random()
        self._ran_iterations = 0

    @property
    def ran_iterations(self) -> int:
        return self._ran_iterations

    @abstractmethod
    def run_iteration(self) -> None:
        """Run one generation (ACO) or swarm update (PSO)."""

    @abstractmethod
    def best_solution(self) -> Optional[list[int]]:
        """Best operation order found so far (None before the first iteration)."""

    @abstractmethod
    def best_makespan(self) -> float:
        """Makespan of :meth:`best_solution` (``inf`` before the first iteration)."""

    @property
    @abstractmethod
    def makespan_history(self) -> list[float]:
        """Best-so-far makespan after each iteration."""

    def compute_makespan(self, order: list[int]) -> int:
        return compute_makespan(self.instance, order)

    def describe(self) -> str:
        """One-line human readable state."""
        parts = [f"{self.name} iter={self.ran_iterations}", f"best={self.best_makespan()}"]
        if isinstance(self, PopulationReporter):
            for key, val in self.population_stats().items():
                parts.append(f"{key}={val:.4f}" if isinstance(val, float) else f"{key}={val}")
        return " ".join(parts)
