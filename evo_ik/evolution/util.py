"""Population helpers: generation, sorting and concatenation."""

import math
from typing import List, Sequence

import numpy as np

from ..kinematics import quaternion as quat
from ..kinematics.joint import Joint
from .individual import Individual

DEFAULT_MAX_ANGLE = math.radians(60)


def fitness_key(individual: Individual) -> float:
    """Sort key that places unevaluated individuals last."""
    return math.inf if math.isnan(individual.fitness) else individual.fitness


def sort(
    population: List[Individual], in_place: bool = False, reverse: bool = False
) -> List[Individual]:
    """
    Sort by fitness, ascending unless ``reverse`` is set.

    Returns the sorted list (the same object when ``in_place``).
    """
    if in_place:
        population.sort(key=fitness_key, reverse=reverse)
        return population
    return sorted(population, key=fitness_key, reverse=reverse)


def random_rotation(max_angle: float, rng: np.random.Generator) -> np.ndarray:
    """Rotation from Euler angles drawn uniformly in ``[-max_angle, max_angle]``."""
    roll, pitch, yaw = rng.uniform(-max_angle, max_angle, size=3)
    return quat.from_euler(roll, pitch, yaw)


def setup_individual(
    individual: Individual, max_angle: float, rng: np.random.Generator
) -> None:
    """Randomly rotate every joint of ``individual`` in place (constraints apply)."""
    for joint in individual.structure:
        joint.rotate(random_rotation(max_angle, rng))


def generate_individual(
    original: Individual, max_angle: float, rng: np.random.Generator
) -> Individual:
    """Random perturbation of a copy of ``original``."""
    individual = original.clone()
    setup_individual(individual, max_angle, rng)
    return individual


def generate_population(
    structure: Sequence[Joint],
    size: int,
    rng: np.random.Generator,
    max_angle: float = DEFAULT_MAX_ANGLE,
) -> List[Individual]:
    """
    Build a new population around a chain.

    The first ``size - 1`` members are random perturbations of the chain;
    the last one is an unperturbed copy.
    """
    original = Individual.from_chain(structure, copy=True)
    population = [generate_individual(original, max_angle, rng) for _ in range(size - 1)]
    population.append(original)
    return population


def setup_population(
    structure: Sequence[Joint],
    population: List[Individual],
    rng: np.random.Generator,
    max_angle: float = DEFAULT_MAX_ANGLE,
) -> None:
    """
    Reinitialize an existing population in place around a chain.

    Slot 0 becomes an exact copy of the chain; every other slot a random
    perturbation of it.
    """
    for i, individual in enumerate(population):
        individual.set_chain(structure)
        individual.generation = 0
        if i > 0:
            setup_individual(individual, max_angle, rng)


def concatenate(*populations: Sequence[Individual]) -> List[Individual]:
    """Join several populations into a new list."""
    concatenation: List[Individual] = []
    for population in populations:
        concatenation.extend(population)
    return concatenation


def format_population(population: Sequence[Individual]) -> str:
    """One-line listing of fitness values, for debug output."""
    return "[ " + ", ".join(f"{ind.fitness:.4f}" for ind in population) + " ]"
