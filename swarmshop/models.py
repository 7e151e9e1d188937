"""Core data structures for rectangular Job Shop instances.

This module defines:
    Job             -- alias describing a single operation (machine, duration).
    ProblemInstance -- immutable container with all jobs for one instance.
    Schedule        -- replayed operation order with timing for each row.

Operations are addressed by a flat index: operation ``k`` of job ``j`` is
``j * operations_per_job + k``. Every order consumed by the evaluator is a
sequence of such indices.
"""

from __future__ import annotations

from dataclasses import dataclass, field

Job = tuple[int, int]  # (machine, duration)
OperationKey = tuple[int, int]  # OperationKey = (job_id, operation_index)


@dataclass(frozen=True)
class ProblemInstance:
    """Immutable representation of a JSSP instance.

    Attributes:
        jobs: Nested list: jobs[j][k] -> (machine, duration).
        jobs_number: Number of jobs (J).
        machines_number: Number of machines (M).
        name: Label used in logs and output file names.

    Raises:
        ValueError: On construction, when the instance is empty, not
            rectangular, has a non-positive duration or references a
            machine outside ``[0, machines_number)``.
    """

    jobs: list[list[Job]]
    jobs_number: int
    machines_number: int
    name: str = "instance"
    _operations_per_job: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.jobs_number <= 0 or len(self.jobs) != self.jobs_number:
            raise ValueError(
                f"Expected {self.jobs_number} jobs, got {len(self.jobs)}"
            )
        if self.machines_number <= 0:
            raise ValueError("machines_number must be positive")
        width = len(self.jobs[0])
        if width == 0:
            raise ValueError("Job 0 has no operations")
        for j, job in enumerate(self.jobs):
            if len(job) != width:
                raise ValueError(
                    f"Non-rectangular instance: job {j} has {len(job)} operations, "
                    f"expected {width}"
                )
            for k, (machine, duration) in enumerate(job):
                if not (0 <= machine < self.machines_number):
                    raise ValueError(f"Machine index out of range at job {j} op {k}: {machine}")
                if duration <= 0:
                    raise ValueError(f"Non-positive duration at job {j} op {k}: {duration}")
        object.__setattr__(self, "_operations_per_job", width)

    @property
    def operations_per_job(self) -> int:
        return self._operations_per_job

    @property
    def total_operations(self) -> int:
        return self.jobs_number * self._operations_per_job

    def job_of(self, operation: int) -> int:
        return operation // self._operations_per_job

    def operation_key(self, operation: int) -> OperationKey:
        """Split a flat operation index into ``(job, position_in_job)``."""
        return divmod(operation, self._operations_per_job)

    def operation_index(self, job: int, position: int) -> int:
        return job * self._operations_per_job + position

    def machine(self, job: int, position: int) -> int:
        return self.jobs[job][position][0]

    def duration(self, job: int, position: int) -> int:
        return self.jobs[job][position][1]


@dataclass(frozen=True)
class ScheduleOperationRow:
    """Single scheduled operation with timing and identification data.

    Fields:
        start: Start time of the operation.
        end: Completion time (start + duration).
        job: Job identifier.
        operation_index: Index of the operation inside its job (0-based).
        machine: Machine on which the operation is processed.
        duration: Processing time of the operation.
    """
    start: int
    end: int
    job: int
    operation_index: int
    machine: int
    duration: int


@dataclass(frozen=True)
class Schedule:
    """Replayed schedule plus its makespan.

    Fields:
        operations: Rows in the order they were scheduled.
        makespan: Maximum completion time across all rows.
    """
    operations: list[ScheduleOperationRow]
    makespan: int

    def by_machine(self) -> dict[int, list[ScheduleOperationRow]]:
        """Group rows per machine, each list ordered by start time."""
        rows: dict[int, list[ScheduleOperationRow]] = {}
        for row in self.operations:
            rows.setdefault(row.machine, []).append(row)
        for machine_rows in rows.values():
            machine_rows.sort(key=lambda r: r.start)
        return rows

    def by_job(self) -> dict[int, list[ScheduleOperationRow]]:
        rows: dict[int, list[ScheduleOperationRow]] = {}
        for row in self.operations:
            rows.setdefault(row.job, []).append(row)
        for job_rows in rows.values():
            job_rows.sort(key=lambda r: r.start)
        return rows
