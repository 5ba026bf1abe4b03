"""Evolutionary IK solvers and their building blocks."""

from .config import ESConfig, GAConfig, HAEAConfig, Replacement, SolverConfig
from .fitness import (
    FitnessFunction, FitnessMode, FitnessResult,
    OrientationFitness, PoseFitness, PositionFitness,
    create_fitness_function,
)
from .individual import Individual
from .statistics import Statistics
from .selection import Selection, Uniform, Tournament, Roulette, Ranking, Elitism
from .operators import Operator, UniformMutation, GaussianMutation, ConvexCombination
from .solver import Solver, MultiTargetSolver
from .es_solver import ESSolver
from .ga_solver import GASolver, PopulationHandle
from .haea_solver import HAEASolver

__all__ = [
    "ESConfig",
    "GAConfig",
    "HAEAConfig",
    "Replacement",
    "SolverConfig",
    "FitnessFunction",
    "FitnessMode",
    "FitnessResult",
    "OrientationFitness",
    "PoseFitness",
    "PositionFitness",
    "create_fitness_function",
    "Individual",
    "Statistics",
    "Selection",
    "Uniform",
    "Tournament",
    "Roulette",
    "Ranking",
    "Elitism",
    "Operator",
    "UniformMutation",
    "GaussianMutation",
    "ConvexCombination",
    # Solvers
    "Solver",
    "MultiTargetSolver",
    "ESSolver",
    "GASolver",
    "PopulationHandle",
    "HAEASolver",
]
