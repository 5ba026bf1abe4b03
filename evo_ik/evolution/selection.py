"""Parent selection strategies.

Every strategy picks ``count`` individuals with replacement. ``maximize``
flips the comparison; the IK solvers minimize error and pass False.
"""

import math
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import numpy as np

from .individual import Individual


def _key(individual: Individual, maximize: bool) -> float:
    """Comparable fitness where unevaluated individuals always lose."""
    if math.isnan(individual.fitness):
        return -math.inf if maximize else math.inf
    return individual.fitness


def _roulette(weights: np.ndarray, count: int, rng: np.random.Generator) -> np.ndarray:
    total = float(np.sum(weights))
    if total <= 0 or not math.isfinite(total):
        return rng.integers(0, len(weights), size=count)
    return rng.choice(len(weights), size=count, p=weights / total)


class Selection(ABC):
    """Abstract base class for selection strategies."""

    @abstractmethod
    def choose(
        self,
        maximize: bool,
        population: Sequence[Individual],
        count: int,
        rng: np.random.Generator,
    ) -> List[Individual]:
        """
        Pick individuals from a population.

        Args:
            maximize: Prefer higher fitness instead of lower
            population: Candidates to choose from
            count: Number of individuals to return
            rng: Random generator

        Returns:
            The chosen individuals (not copies)
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Uniform(Selection):
    """Every individual is equally likely."""

    def choose(self, maximize, population, count, rng):
        if not population:
            raise ValueError("Cannot select from an empty population")
        indices = rng.integers(0, len(population), size=count)
        return [population[i] for i in indices]


class Tournament(Selection):
    """Best of ``size`` uniformly drawn contestants, repeated ``count`` times."""

    def __init__(self, size: int = 4):
        if size < 1:
            raise ValueError(f"Tournament size must be at least 1, got {size}")
        self.size = size

    def choose(self, maximize, population, count, rng):
        if not population:
            raise ValueError("Cannot select from an empty population")
        chosen = []
        for _ in range(count):
            contestants = rng.integers(0, len(population), size=self.size)
            keys = [_key(population[i], maximize) for i in contestants]
            winner = int(np.argmax(keys)) if maximize else int(np.argmin(keys))
            chosen.append(population[contestants[winner]])
        return chosen

    def __repr__(self) -> str:
        return f"Tournament(size={self.size})"


class Roulette(Selection):
    """
    Fitness-proportional selection.

    When maximizing, an individual's weight is its fitness; when
    minimizing it is ``1 / (1 + fitness)``. Unevaluated individuals get
    weight 0. ``set_fitness`` supplies external values, aligned with the
    population, that are used instead of the individuals' own fitness.
    """

    def __init__(self):
        self.fitness: Optional[np.ndarray] = None

    def set_fitness(self, fitness: Optional[Sequence[float]]) -> None:
        self.fitness = None if fitness is None else np.asarray(fitness, dtype=float)

    def _values(self, population: Sequence[Individual]) -> np.ndarray:
        if self.fitness is None:
            return np.array([ind.fitness for ind in population], dtype=float)
        if len(self.fitness) != len(population):
            raise ValueError(
                f"Got {len(self.fitness)} external fitness values for a population of {len(population)}"
            )
        return self.fitness

    def choose(self, maximize, population, count, rng):
        if not population:
            raise ValueError("Cannot select from an empty population")
        values = self._values(population)
        evaluated = ~np.isnan(values)
        if np.any(values[evaluated] < 0):
            raise ValueError("Roulette selection needs non-negative fitness values")

        weights = np.zeros(len(values))
        if maximize:
            weights[evaluated] = values[evaluated]
        else:
            weights[evaluated] = 1.0 / (1.0 + values[evaluated])
        return [population[i] for i in _roulette(weights, count, rng)]


class Ranking(Selection):
    """
    Roulette over ranks instead of raw fitness.

    The worst individual gets rank 1 and the best rank ``n``; equal fitness
    values share a rank. With ``exponential`` the weight of rank ``r`` is
    ``alpha ** (r / n)``.
    """

    def __init__(self, exponential: bool = False, alpha: float = 2.0):
        self.exponential = exponential
        self.alpha = alpha

    def choose(self, maximize, population, count, rng):
        if not population:
            raise ValueError("Cannot select from an empty population")
        ordered = sorted(population, key=lambda ind: _key(ind, maximize), reverse=not maximize)
        n = len(ordered)
        ranks = np.empty(n)
        tie = 0
        for i in range(n):
            if i > 0 and _key(ordered[i - 1], maximize) == _key(ordered[i], maximize):
                tie += 1
            else:
                tie = 0
            ranks[i] = i + 1 - tie
        if self.exponential:
            ranks = self.alpha ** (ranks / n)
        return [ordered[i] for i in _roulette(ranks, count, rng)]

    def __repr__(self) -> str:
        return f"Ranking(exponential={self.exponential}, alpha={self.alpha})"


class Elitism(Selection):
    """Half of the picks come from the top 10%, the rest from the next 70%."""

    def __init__(self, best_fraction: float = 0.1, normal_fraction: float = 0.8):
        self.best_fraction = best_fraction
        self.normal_fraction = normal_fraction
        self._uniform = Uniform()

    def choose(self, maximize, population, count, rng):
        if not population:
            raise ValueError("Cannot select from an empty population")
        ordered = sorted(population, key=lambda ind: _key(ind, maximize), reverse=maximize)
        n = len(ordered)
        index_best = int(self.best_fraction * n)
        index_normal = int(self.normal_fraction * n)

        elite = ordered[:index_best + 1]
        normal = ordered[index_best + 1:index_normal + 1] or elite

        chosen = self._uniform.choose(maximize, elite, math.ceil(count / 2), rng)
        chosen.extend(self._uniform.choose(maximize, normal, count // 2, rng))
        return chosen
