"""Search engines for the job shop scheduling problem.

Contains:
- Ant Colony Optimization (ACO)
- Particle Swarm Optimization (PSO)
"""

from swarmshop.algorithms.aco import ACOParams, AntColonyOptimizer
from swarmshop.algorithms.base import JSSPAlgorithm, PopulationReporter
from swarmshop.algorithms.pso import ParticleSwarmOptimizer, PSOParams

__all__ = [
    "ACOParams",
    "AntColonyOptimizer",
    "JSSPAlgorithm",
    "PopulationReporter",
    "PSOParams",
    "ParticleSwarmOptimizer",
]
