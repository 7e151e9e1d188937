"""Parallel multi-instance solver with epoch-based early termination.

The solver owns several independent engines. Each epoch it submits one task
per still-running engine to a fresh thread pool; a task runs ``epoch_size``
iterations (fewer if the iteration ceiling is hit). Once every task has
joined, the main thread updates the bookkeeping and decides which engines
to retire. Engines never share mutable state, and the bookkeeping is only
touched after the join, so no locks are needed.

Retirement score of an engine that has run more than two epochs::

    m     = running engines / all engines
    delta = (own best - mean best of running) / max |best - mean best|
    g     = epochs since last improvement / patience

The engine stops when ``m + delta + g >= threshold``.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from swarmshop.algorithms.base import JSSPAlgorithm

logger = logging.getLogger("jssp.solver")

DEFAULT_PATIENCE = 15.0
DEFAULT_THRESHOLD = 1.5


@dataclass(frozen=True)
class EpochReport:
    """What one worker hands back to the main thread after its batch."""

    index: int
    makespan_before: float
    makespan_after: float
    iterations: int
    elapsed_s: float
    reached_ceiling: bool

    @property
    def improved(self) -> bool:
        return self.makespan_after < self.makespan_before

    @property
    def time_per_iteration_ms(self) -> float:
        return self.elapsed_s * 1000.0 / self.iterations if self.iterations else 0.0


@dataclass
class InstanceSummary:
    index: int
    algorithm: str
    ran_iterations: int
    best_makespan: float
    stopped_at_epoch: Optional[int] = None


@dataclass
class SolverResult:
    """Outcome of :meth:`Solver.solve`: the winning engine and per-engine summaries."""

    best_index: int
    algorithm: JSSPAlgorithm
    order: list[int]
    makespan: int
    epochs: int
    summaries: list[InstanceSummary] = field(default_factory=list)
    algorithms: list[JSSPAlgorithm] = field(default_factory=list)


def termination_pressures(
    makespan: float,
    running_makespans: Sequence[float],
    total_instances: int,
    epochs_stagnant: int,
    patience: float = DEFAULT_PATIENCE,
) -> tuple[float, float, float]:
    """Return the ``(m, delta, g)`` pressures for one engine.

    ``delta`` is 0 when a single engine is running or when every running
    engine has the same best makespan.
    """
    m = len(running_makespans) / total_instances
    delta = 0.0
    if len(running_makespans) > 1:
        average = sum(running_makespans) / len(running_makespans)
        biggest = max(abs(x - average) for x in running_makespans)
        if biggest > 0:
            delta = (makespan - average) / biggest
    g = epochs_stagnant / patience
    return m, delta, g


class Solver:
    """Runs N engines concurrently in epochs and retires them heuristically."""

    def __init__(
        self,
        algorithms: Sequence[JSSPAlgorithm],
        termination_threshold: float = DEFAULT_THRESHOLD,
        patience: float = DEFAULT_PATIENCE,
    ) -> None:
        if not algorithms:
            raise ValueError("Solver needs at least one algorithm instance")
        if patience <= 0:
            raise ValueError("patience must be positive")
        self.algorithms = list(algorithms)
        self.termination_threshold = termination_threshold
        self.patience = patience
        self.running: list[int] = []
        self.epochs_since_improvement: dict[int, int] = {}
        self.stopped_at: dict[int, int] = {}
        self.epochs = 0
        self._solving = False

    @classmethod
    def from_factory(
        cls,
        factory: Callable[[], JSSPAlgorithm],
        count: int,
        **kwargs,
    ) -> "Solver":
        return cls([factory() for _ in range(count)], **kwargs)

    @staticmethod
    def _run_epoch(
        index: int,
        alg: JSSPAlgorithm,
        epoch_size: int,
        max_iterations: int,
    ) -> EpochReport:
        before = alg.best_makespan()
        start_iter = alg.ran_iterations
        t0 = time.perf_counter()
        reached = alg.ran_iterations >= max_iterations
        if not reached:
            for _ in range(epoch_size):
                alg.run_iteration()
                if alg.ran_iterations >= max_iterations:
                    reached = True
                    break
        return EpochReport(
            index=index,
            makespan_before=before,
            makespan_after=alg.best_makespan(),
            iterations=alg.ran_iterations - start_iter,
            elapsed_s=time.perf_counter() - t0,
            reached_ceiling=reached,
        )

    def _should_retire(self, report: EpochReport, running_makespans: list[float], epoch_size: int) -> bool:
        alg = self.algorithms[report.index]
        if report.reached_ceiling:
            return True
        if alg.ran_iterations <= 2 * epoch_size:
            return False
        m, delta, g = termination_pressures(
            alg.best_makespan(),
            running_makespans,
            len(self.algorithms),
            self.epochs_since_improvement[report.index],
            self.patience,
        )
        logger.debug(
            "alg %03d pressures m=%.3f delta=%.3f g=%.3f", report.index + 1, m, delta, g
        )
        return m + delta + g >= self.termination_threshold

    def solve(self, max_iterations: int, epoch_size: int) -> SolverResult:
        """Run every engine until all are retired or hit ``max_iterations``.

        Raises:
            RuntimeError: If called while a solve is already in progress.
            ValueError: On non-positive ``max_iterations`` or ``epoch_size``.
            Exception: Any exception raised inside a worker aborts the solve.
        """
        if self._solving:
            raise RuntimeError("Solver is already solving")
        if max_iterations <= 0 or epoch_size <= 0:
            raise ValueError("max_iterations and epoch_size must be positive")
        self._solving = True
        try:
            self.running = list(range(len(self.algorithms)))
            self.epochs_since_improvement = {i: 0 for i in self.running}
            self.stopped_at = {}
            self.epochs = 0
            while self.running:
                with ThreadPoolExecutor(max_workers=len(self.running)) as executor:
                    futures = [
                        executor.submit(
                            self._run_epoch, i, self.algorithms[i], epoch_size, max_iterations
                        )
                        for i in self.running
                    ]
                    reports = [f.result() for f in futures]
                self.epochs += 1

                for report in reports:
                    if report.improved:
                        self.epochs_since_improvement[report.index] = 0
                    else:
                        self.epochs_since_improvement[report.index] += 1
                running_makespans = [self.algorithms[i].best_makespan() for i in self.running]
                retired = {
                    r.index
                    for r in reports
                    if self._should_retire(r, running_makespans, epoch_size)
                }
                for i in retired:
                    self.stopped_at[i] = self.epochs
                self.running = [i for i in self.running if i not in retired]
                self._log_progress(reports)
            return self._result()
        finally:
            self._solving = False

    def best_index(self) -> int:
        """Index of the engine whose best order has the lowest makespan (lowest index on ties)."""
        best_i = -1
        best_c: Optional[int] = None
        for i, alg in enumerate(self.algorithms):
            order = alg.best_solution()
            if order is None:
                continue
            c = alg.compute_makespan(order)
            if best_c is None or c < best_c:
                best_i, best_c = i, c
        if best_i < 0:
            raise RuntimeError("No algorithm produced a solution")
        return best_i

    def _result(self) -> SolverResult:
        best_i = self.best_index()
        winner = self.algorithms[best_i]
        order = list(winner.best_solution() or [])
        summaries = [
            InstanceSummary(
                index=i,
                algorithm=alg.name,
                ran_iterations=alg.ran_iterations,
                best_makespan=alg.best_makespan(),
                stopped_at_epoch=self.stopped_at.get(i),
            )
            for i, alg in enumerate(self.algorithms)
        ]
        return SolverResult(
            best_index=best_i,
            algorithm=winner,
            order=order,
            makespan=winner.compute_makespan(order),
            epochs=self.epochs,
            summaries=summaries,
            algorithms=list(self.algorithms),
        )

    def _log_progress(self, reports: list[EpochReport]) -> None:
        if not logger.isEnabledFor(logging.INFO):
            return
        avg_ms = sum(r.time_per_iteration_ms for r in reports) / len(reports)
        logger.info(
            "epoch %d: still running %d/%d, avg time per iteration %.2f ms, best %s",
            self.epochs,
            len(self.running),
            len(self.algorithms),
            avg_ms,
            min(alg.best_makespan() for alg in self.algorithms),
        )
        running = set(self.running)
        for i, alg in enumerate(self.algorithms):
            logger.info("[alg %03d%s] %s", i + 1, "*" if i in running else "-", alg.describe())
