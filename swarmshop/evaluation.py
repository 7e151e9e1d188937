"""Schedule evaluation: replaying operation orders into start/end times.

An operation order is a sequence of flat operation indices. The job of each
entry is ``index // operations_per_job``; its position inside the job is
taken from a per-job counter, so the evaluator enforces job precedence no
matter which index of a job appears first. A ``None`` entry ends the replay
early, which is how partial orders are evaluated.

Each operation starts at the later of "its job is free" and "its machine is
free" (semi-active decoding, no insertion into earlier idle slots).
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from swarmshop.models import ProblemInstance, Schedule, ScheduleOperationRow

OperationOrder = Sequence[Optional[int]]


class ScheduleState:
    """Incremental replay of an operation order.

    Holds per-job completion times, per-job operation counters, per-machine
    availability and the running makespan. Arrays are allocated once and
    cleared by :meth:`reset`, so one state can be reused for every
    construction of an ant.
    """

    __slots__ = ("instance", "job_free", "job_next", "machine_free", "makespan", "count")

    def __init__(self, instance: ProblemInstance) -> None:
        self.instance = instance
        self.job_free = [0] * instance.jobs_number
        self.job_next = [0] * instance.jobs_number
        self.machine_free = [0] * instance.machines_number
        self.makespan = 0
        self.count = 0

    def reset(self) -> None:
        for j in range(len(self.job_free)):
            self.job_free[j] = 0
            self.job_next[j] = 0
        for m in range(len(self.machine_free)):
            self.machine_free[m] = 0
        self.makespan = 0
        self.count = 0

    def _next_of(self, operation: int) -> tuple[int, int, int, int]:
        job = self.instance.job_of(operation)
        position = self.job_next[job]
        if position >= self.instance.operations_per_job:
            raise ValueError(f"Job {job} has no operation left for index {operation}")
        machine = self.instance.jobs[job][position][0]
        start = max(self.job_free[job], self.machine_free[machine])
        return job, position, machine, start

    def append(self, operation: int) -> ScheduleOperationRow:
        """Schedule ``operation`` as early as its job and machine allow."""
        job, position, machine, start = self._next_of(operation)
        duration = self.instance.jobs[job][position][1]
        end = start + duration
        self.job_free[job] = end
        self.machine_free[machine] = end
        self.job_next[job] = position + 1
        if end > self.makespan:
            self.makespan = end
        self.count += 1
        return ScheduleOperationRow(
            start=start,
            end=end,
            job=job,
            operation_index=position,
            machine=machine,
            duration=duration,
        )

    def induced_gap(self, operation: int) -> int:
        """Makespan increase caused by appending ``operation``, without appending it."""
        job, position, _machine, start = self._next_of(operation)
        end = start + self.instance.jobs[job][position][1]
        return max(0, end - self.makespan)


def replay(instance: ProblemInstance, order: Iterable[Optional[int]]) -> ScheduleState:
    """Replay ``order`` (stopping at the first ``None``) into a fresh state."""
    state = ScheduleState(instance)
    for operation in order:
        if operation is None:
            break
        state.append(operation)
    return state


def compute_makespan(instance: ProblemInstance, order: OperationOrder) -> int:
    """Makespan of a full order, or of the prefix before the first ``None``."""
    return replay(instance, order).makespan


def induced_gap(instance: ProblemInstance, order: OperationOrder, operation: int) -> int:
    """Additional makespan from appending ``operation`` to ``order``.

    Equal to ``compute_makespan(order + [operation]) - compute_makespan(order)``
    but obtained from a single replay of ``order``.
    """
    return replay(instance, order).induced_gap(operation)


def build_schedule(instance: ProblemInstance, order: OperationOrder) -> Schedule:
    """Replay ``order`` and keep every row (the Gantt structure)."""
    state = ScheduleState(instance)
    rows: list[ScheduleOperationRow] = []
    for operation in order:
        if operation is None:
            break
        rows.append(state.append(operation))
    return Schedule(operations=rows, makespan=state.makespan)


def normalize_order(instance: ProblemInstance, order: OperationOrder) -> list[int]:
    """Rewrite each entry as the index of its job's next operation.

    The evaluated schedule is unchanged; the result lists every job's
    operations in technological order.
    """
    next_position = [0] * instance.jobs_number
    normalized: list[int] = []
    for operation in order:
        if operation is None:
            break
        job = instance.job_of(operation)
        normalized.append(instance.operation_index(job, next_position[job]))
        next_position[job] += 1
    return normalized


def validate_order(instance: ProblemInstance, order: OperationOrder) -> bool:
    """Check that ``order`` holds every operation once, in job order.

    Returns:
        True if the order is valid.

    Raises:
        ValueError: If length is wrong, an index is out of range or a job's
            operations are repeated, skipped or reordered.
    """
    if len(order) != instance.total_operations:
        raise ValueError(
            f"Incomplete order: {len(order)}/{instance.total_operations} operations"
        )
    next_position = [0] * instance.jobs_number
    for operation in order:
        if operation is None or not (0 <= operation < instance.total_operations):
            raise ValueError(f"Operation index out of range: {operation}")
        job, position = instance.operation_key(operation)
        if position != next_position[job]:
            raise ValueError(f"Operation out of order for job {job}: {position}")
        next_position[job] += 1
    return True


def check_schedule(schedule: Schedule) -> bool:
    """Ensure no machine runs two rows at once and no job overlaps itself.

    Raises:
        AssertionError: On the first overlap found, naming the machine or job.
    """
    for machine, rows in schedule.by_machine().items():
        prev_end = 0
        for r in rows:
            if r.start < prev_end:
                raise AssertionError(
                    f"Overlap on machine {machine} between end {prev_end} and start {r.start}"
                )
            prev_end = r.end
    for job, rows in schedule.by_job().items():
        prev_end = 0
        for expected, r in enumerate(rows):
            if r.operation_index != expected or r.start < prev_end:
                raise AssertionError(
                    f"Precedence broken in job {job} at operation {r.operation_index}"
                )
            prev_end = r.end
    return True


def relative_gap(makespan: int, benchmark: int | None) -> float | None:
    """Percentage gap of ``makespan`` above ``benchmark`` (None without one)."""
    if not benchmark:
        return None
    return (makespan - benchmark) / benchmark * 100.0
