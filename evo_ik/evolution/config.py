"""Configuration objects for the evolutionary IK solvers."""

import math
from dataclasses import dataclass
from enum import Enum

from ..errors import OddParentCountError
from .fitness import FitnessMode


class Replacement(Enum):
    """Replacement policies for the genetic algorithm."""
    GENERATIONAL = "generational"
    ELITISM = "elitism"
    KEEP_BEST = "keep_best"  # steady state


@dataclass
class SolverConfig:
    """
    Settings shared by every solver.

    - max_iterations: iterations allowed per target (and for execute())
    - min_distance: error under which the solver reports convergence
    - max_error: error() level at which solve() stops working on a target
    - times_per_frame: iterations granted to each solve() tick
    """
    max_iterations: int = 50
    min_distance: float = 0.01
    max_error: float = 0.01
    times_per_frame: float = 5.0

    def __post_init__(self):
        if self.max_iterations <= 0:
            raise ValueError(f"max_iterations must be positive, got {self.max_iterations}")
        if self.times_per_frame <= 0:
            raise ValueError(f"times_per_frame must be positive, got {self.times_per_frame}")


@dataclass
class ESConfig(SolverConfig):
    """Evolutionary strategy settings (power_law selects the heavy tailed step)."""
    sigma: float = 0.1
    alpha: float = 2.0
    power_law: bool = False

    def __post_init__(self):
        super().__post_init__()
        if self.sigma <= 0:
            raise ValueError(f"sigma must be positive, got {self.sigma}")
        if self.power_law and self.alpha == 1.0:
            raise ValueError("alpha must differ from 1 for power-law steps")


@dataclass
class GAConfig(SolverConfig):
    """Genetic algorithm settings."""
    population_size: int = 10
    cross_probability: float = 1.0
    replacement: Replacement = Replacement.ELITISM
    fitness_mode: FitnessMode = FitnessMode.POSITION
    freeze_pose_weight: bool = False
    init_max_angle: float = math.radians(60)

    def __post_init__(self):
        super().__post_init__()
        if self.population_size <= 0:
            raise ValueError(f"population_size must be positive, got {self.population_size}")
        if self.population_size % 2 != 0:
            raise OddParentCountError(self.population_size)
        if not 0.0 <= self.cross_probability <= 1.0:
            raise ValueError(
                f"cross_probability must be in [0, 1], got {self.cross_probability}"
            )


@dataclass
class HAEAConfig(SolverConfig):
    """Hybrid adaptive evolutionary algorithm settings."""
    population_size: int = 10
    convex: bool = False
    fitness_mode: FitnessMode = FitnessMode.POSITION
    freeze_pose_weight: bool = False
    init_max_angle: float = math.radians(60)

    def __post_init__(self):
        super().__post_init__()
        if self.population_size <= 0:
            raise ValueError(f"population_size must be positive, got {self.population_size}")
