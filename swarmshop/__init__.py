"""Swarm-intelligence solvers for the Job Shop Scheduling Problem.

Exports base data structures, parsing and evaluation utilities.
"""

from swarmshop.evaluation import compute_makespan  # noqa: F401
from swarmshop.models import Job, ProblemInstance, Schedule  # noqa: F401
from swarmshop.parser import load_instance, parse_instance_text  # noqa: F401

__all__ = [
    "Job",
    "ProblemInstance",
    "Schedule",
    "compute_makespan",
    "load_instance",
    "parse_instance_text",
]
