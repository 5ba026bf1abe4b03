"""Hybrid Adaptive Evolutionary Algorithm (HAEA) IK solver."""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from ..kinematics.joint import Joint
from .config import HAEAConfig
from .fitness import FitnessFunction, create_fitness_function
from .individual import Individual
from .operators import ConvexCombination, GaussianMutation, Operator, UniformMutation
from .selection import Selection, Tournament
from .solver import MultiTargetSolver
from .statistics import Statistics
from .util import fitness_key, generate_population

logger = logging.getLogger(__name__)


def random_rates(count: int, rng: np.random.Generator) -> np.ndarray:
    """Random operator rates normalized to sum 1."""
    return normalize_rates(rng.random(count))


def normalize_rates(rates: np.ndarray) -> np.ndarray:
    total = float(np.sum(rates))
    if total <= 0 or not math.isfinite(total):
        return np.full(len(rates), 1.0 / len(rates))
    return rates / total


def choose_operator(rates: np.ndarray, rng: np.random.Generator) -> int:
    """Roulette over ``rates``: subtract each rate from ``U(0, 1)`` until it drops below 0."""
    value = rng.random()
    for i, rate in enumerate(rates):
        value -= rate
        if value < 0:
            return i
    return len(rates) - 1


class HAEASolver(MultiTargetSolver):
    """
    Each individual carries its own probability vector over the operators.

    Every generation, each individual picks an operator by roulette, and
    the child replaces it only if strictly better. The rate of the chosen
    operator is multiplied by ``1 + delta`` on success and ``1 - delta``
    on failure (``delta ~ U(0, 0.5)``), then renormalized.

    Rates live in ``rates``, aligned by index with ``population``.
    """

    def __init__(
        self,
        structure: Sequence[Joint],
        config: Optional[HAEAConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        super().__init__(structure, config=config or HAEAConfig(), seed=seed, rng=rng)
        self.selection: Selection = Tournament()
        self.fitness_function: FitnessFunction = create_fitness_function(
            self.config.fitness_mode, freeze_pose_weight=self.config.freeze_pose_weight
        )
        self._operators: List[Operator] = [UniformMutation()]
        if self.config.convex:
            self._operators.append(ConvexCombination())
        self._operators.append(GaussianMutation())

        self._population: List[Individual] = []
        self._rates: List[np.ndarray] = []
        self._best: Optional[Individual] = None
        self._statistics: List[Statistics] = []
        self._operator_history: List[np.ndarray] = []

    @property
    def population_size(self) -> int:
        return self.config.population_size

    @property
    def operators(self) -> List[Operator]:
        return self._operators

    def add_operator(self, operator: Operator) -> None:
        """Register another operator; existing rate vectors are redrawn."""
        self._operators.append(operator)
        self._rates = [random_rates(len(self._operators), self.rng) for _ in self._population]

    def set_selection(self, selection: Selection) -> None:
        self.selection = selection

    @property
    def population(self) -> List[Individual]:
        return self._population

    @property
    def rates(self) -> List[np.ndarray]:
        return self._rates

    @property
    def best(self) -> Optional[Individual]:
        return self._best

    @property
    def best_fitness(self) -> float:
        return self._best.fitness if self._best is not None else math.nan

    @property
    def statistics(self) -> List[Statistics]:
        return self._statistics

    def operators_values(self) -> np.ndarray:
        """Population-average rate of each operator, shape ``[operators, generations]``."""
        if not self._operator_history:
            return np.empty((len(self._operators), 0))
        return np.column_stack(self._operator_history)

    def _evaluate(self, individual: Individual) -> float:
        return individual.update_fitness(self._targets, self.fitness_function, self.rng)

    def _initialize(self) -> None:
        self._require_targets()
        self.fitness_function.begin_generation(self.rng)
        self._best = None
        self._operator_history = []
        self._population = generate_population(
            self._structure, self.population_size, self.rng, self.config.init_max_angle
        )
        self._rates = []
        for individual in self._population:
            self._evaluate(individual)
            self._rates.append(random_rates(len(self._operators), self.rng))
            if self._best is None or fitness_key(individual) < fitness_key(self._best):
                self._best = individual
        self._debug(f"initialized {self.population_size} individuals, best {self._best.fitness:.6f}")

    def _record_rates(self) -> None:
        self._operator_history.append(np.mean(np.vstack(self._rates), axis=0))

    def iterate(self) -> bool:
        self._require_targets()
        if not self._population:
            self._initialize()
        self.fitness_function.begin_generation(self.rng)

        next_population: List[Individual] = []
        next_rates: List[np.ndarray] = []
        for individual, rates in zip(self._population, self._rates):
            delta = self.rng.random() * 0.5
            k = choose_operator(rates, self.rng)
            operator = self._operators[k]
            if operator.arity > 1:
                parents = self.selection.choose(False, self._population, operator.arity - 1, self.rng)
                child = operator.apply(*parents, individual, rng=self.rng)
            else:
                child = operator.apply(individual, rng=self.rng)
            child.generation = individual.generation + 1
            self._evaluate(child)

            rates = rates.copy()
            if fitness_key(child) < fitness_key(individual):
                rates[k] *= 1 + delta
                replacement = child
            else:
                rates[k] *= 1 - delta
                replacement = individual
            next_population.append(replacement)
            next_rates.append(normalize_rates(rates))

            if fitness_key(replacement) < fitness_key(self._best):
                self._best = replacement

        self._population = next_population
        self._rates = next_rates
        self._record_rates()
        if self.debug:
            for individual, rates in zip(self._population, self._rates):
                self._debug(f"{individual} rates {np.round(rates, 4).tolist()}")
        return self._best.fitness < self.config.min_distance

    def execute(self) -> float:
        """
        Offline run: regenerate the population around the live chain and
        run ``max_iterations`` generations.

        Returns:
            Fitness of the best individual found
        """
        self._statistics = []
        self._initialize()
        for _ in range(self.config.max_iterations):
            self.iterate()
            self._statistics.append(Statistics(self._population))
        logger.debug(
            "HAEA execute: %d generations with %d operators, best %.6f",
            self.config.max_iterations, len(self._operators), self._best.fitness,
        )
        return self._best.fitness

    def update(self) -> None:
        self._write_back(self._best)

    def reset(self) -> None:
        self._best = None
        self._iterations = 0
        if not self._targets:
            self._previous_targets = {}
            return
        self._snapshot_targets()
        self._initialize()

    def error(self) -> float:
        if self._best is None:
            return math.nan
        return self._evaluate(self._best)
