"""Reader for plain-text JSSP instances.

Format::

    <jobs> <operations_per_job>
    <machine> <duration> <machine> <duration> ...   # one line per job

Blank lines and lines starting with ``#`` are skipped. Machine numbers may
be zero-based or one-based; one-based files are shifted down.
"""

from __future__ import annotations

from pathlib import Path

from swarmshop.models import Job, ProblemInstance


def _ints(line: str, line_no: int) -> list[int]:
    try:
        return [int(tok) for tok in line.split()]
    except ValueError as e:
        raise ValueError(f"Line {line_no}: non-integer token in {line!r}") from e


def parse_instance_text(text: str, name: str = "instance") -> ProblemInstance:
    """Parse instance text into a :class:`ProblemInstance`.

    Args:
        text: Whole file content.
        name: Label stored on the returned instance.

    Returns:
        Validated problem instance.

    Raises:
        ValueError: Invalid header, missing job lines, wrong token count,
            non-integer tokens, non-positive durations or machine index out
            of range.
    """
    lines = [
        (no, line.strip())
        for no, line in enumerate(text.splitlines(), start=1)
        if line.strip() and not line.strip().startswith("#")
    ]
    if not lines:
        raise ValueError("Empty instance")
    header_no, header = lines[0]
    header_vals = _ints(header, header_no)
    if len(header_vals) != 2:
        raise ValueError(f"Header must contain two integers, got {header!r}")
    jobs_number, machines_number = header_vals
    if jobs_number <= 0 or machines_number <= 0:
        raise ValueError("Header values must be positive")
    job_lines = lines[1:]
    if len(job_lines) < jobs_number:
        raise ValueError(f"Declared {jobs_number} jobs but found {len(job_lines)} job lines")

    raw: list[list[Job]] = []
    for line_no, line in job_lines[:jobs_number]:
        vals = _ints(line, line_no)
        if len(vals) != 2 * machines_number:
            raise ValueError(
                f"Line {line_no}: expected {2 * machines_number} integers, got {len(vals)}"
            )
        raw.append([(vals[2 * k], vals[2 * k + 1]) for k in range(machines_number)])

    machines = {m for job in raw for (m, _) in job}
    if 0 not in machines and max(machines) == machines_number:
        raw = [[(m - 1, p) for (m, p) in job] for job in raw]

    return ProblemInstance(
        jobs=raw,
        jobs_number=jobs_number,
        machines_number=machines_number,
        name=name,
    )


def load_instance(path: str | Path) -> ProblemInstance:
    """Read and parse an instance file; the file stem becomes its name."""
    path = Path(path)
    return parse_instance_text(path.read_text(encoding="utf-8"), name=path.stem)
