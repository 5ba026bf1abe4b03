"""Genetic algorithm IK solver."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..errors import StaleHandleError
from ..kinematics.joint import Joint
from .config import GAConfig, Replacement
from .fitness import FitnessFunction, create_fitness_function
from .individual import Individual
from .operators import ConvexCombination, Operator, UniformMutation
from .selection import Selection, Tournament
from .solver import MultiTargetSolver
from .statistics import Statistics
from .util import concatenate, fitness_key, format_population, setup_population, sort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PopulationHandle:
    """Reference to a population slot, valid only for the generation it was issued in."""
    generation: int
    index: int


class GASolver(MultiTargetSolver):
    """
    Genetic algorithm over joint rotations.

    The population and a children buffer of the same size are allocated
    once and reused: individuals are overwritten in place with ``set``
    and, for GENERATIONAL / KEEP_BEST, the two buffers are swapped.
    Because of that, individuals obtained from ``population`` must not be
    kept across generations; use ``handle``/``resolve`` to catch that.

    Defaults: tournament selection, convex combination crossover and
    uniform mutation.
    """

    def __init__(
        self,
        structure: Sequence[Joint],
        config: Optional[GAConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        super().__init__(structure, config=config or GAConfig(), seed=seed, rng=rng)
        self.selection: Selection = Tournament()
        self.mutation: Operator = UniformMutation()
        self.crossover: Operator = ConvexCombination()
        self.fitness_function: FitnessFunction = create_fitness_function(
            self.config.fitness_mode, freeze_pose_weight=self.config.freeze_pose_weight
        )
        self._population = self._init_list()
        self._children = self._init_list()
        self._best = Individual.from_chain(self._structure)
        self._statistics: List[Statistics] = []
        self._generation = 0

    def _init_list(self) -> List[Individual]:
        return [Individual.from_chain(self._structure) for _ in range(self.config.population_size)]

    # --- configuration ---

    @property
    def population_size(self) -> int:
        return self.config.population_size

    @property
    def cross_probability(self) -> float:
        return self.config.cross_probability

    def set_cross_probability(self, probability: float) -> None:
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"cross_probability must be in [0, 1], got {probability}")
        self.config.cross_probability = probability

    @property
    def replacement(self) -> Replacement:
        return self.config.replacement

    def set_replacement(self, replacement: Replacement) -> None:
        self.config.replacement = Replacement(replacement)

    def set_selection(self, selection: Selection) -> None:
        self.selection = selection

    def set_mutation(self, mutation: Operator) -> None:
        self.mutation = mutation

    def set_crossover(self, crossover: Operator) -> None:
        self.crossover = crossover

    # --- state ---

    @property
    def population(self) -> List[Individual]:
        return self._population

    @property
    def children(self) -> List[Individual]:
        return self._children

    @property
    def best(self) -> Individual:
        """The best individual found so far (an owned copy, stable across generations)."""
        return self._best

    @property
    def best_fitness(self) -> float:
        return self._best.fitness

    @property
    def statistics(self) -> List[Statistics]:
        return self._statistics

    @property
    def generation(self) -> int:
        return self._generation

    def handle(self, index: int) -> PopulationHandle:
        """Tag a population slot with the current generation."""
        if not 0 <= index < len(self._population):
            raise IndexError(f"Population index {index} out of range")
        return PopulationHandle(self._generation, index)

    def resolve(self, handle: PopulationHandle) -> Individual:
        """
        Get the individual a handle points to.

        Raises:
            StaleHandleError: The buffers moved on since the handle was issued
        """
        if handle.generation != self._generation:
            raise StaleHandleError(handle.generation, self._generation)
        return self._population[handle.index]

    # --- algorithm ---

    def _evaluate(self, individual: Individual) -> float:
        return individual.update_fitness(self._targets, self.fitness_function, self.rng)

    def _initialize(self) -> None:
        """Rebuild both buffers around the live chain and evaluate them."""
        self._require_targets()
        self._generation += 1
        self.fitness_function.begin_generation(self.rng)

        self._best.set_chain(self._structure)
        self._evaluate(self._best)

        setup_population(self._structure, self._population, self.rng, self.config.init_max_angle)
        best = self._best
        for individual in self._population:
            self._evaluate(individual)
            if fitness_key(individual) < fitness_key(best):
                best = individual
        self._best.set(best)
        self._best.generation = 0

        # Children slots skipped by ELITISM crossover keep whatever they
        # held; start them from the live chain so they are never unevaluated.
        for child in self._children:
            child.set_chain(self._structure)
            child.generation = 0
            self._evaluate(child)

        self._debug(f"initialized {self.population_size} individuals, best {self._best.fitness:.6f}")

    def _offspring(self, p1: Individual, p2: Individual, generation: int) -> Individual:
        child = self.crossover.apply(p1, p2, rng=self.rng)
        child = self.mutation.apply(child, rng=self.rng)
        child.generation = generation
        self._evaluate(child)
        return child

    def iterate(self) -> bool:
        self._require_targets()
        self.fitness_function.begin_generation(self.rng)
        n = self.population_size
        generation = self._best.generation + 1

        # 1. Select parents
        parents = self.selection.choose(False, self._population, n, self.rng)
        if self.debug:
            self._debug(f"generation {generation} parents {format_population(parents)}")

        # 2. Generate children; None stands for the incumbent best
        best_index: Optional[int] = None
        worst_index: Optional[int] = None
        for i in range(0, n, 2):
            if self.rng.random() < self.config.cross_probability:
                self._children[i].set(self._offspring(parents[i], parents[i + 1], generation))
                self._children[i + 1].set(self._offspring(parents[i], parents[i + 1], generation))
            elif self.config.replacement != Replacement.ELITISM:
                self._children[i].set(parents[i])
                self._children[i + 1].set(parents[i + 1])
            else:
                continue

            for j in (i, i + 1):
                key = fitness_key(self._children[j])
                best = self._best if best_index is None else self._children[best_index]
                worst = self._best if worst_index is None else self._children[worst_index]
                if key < fitness_key(best):
                    best_index = j
                if key > fitness_key(worst):
                    worst_index = j

        if self.debug:
            self._debug(f"children {format_population(self._children)}")

        # 3. Replacement
        if self.config.replacement == Replacement.ELITISM:
            concatenation = sort(concatenate(self._population, self._children))
            self._best.set(concatenation[0])
            split = 2 * n // 3
            elite = concatenation[:split]
            other = concatenation[split:]
            self.rng.shuffle(other)
            self._population = elite + other[:n - split]
            self._children = other[n - split:]
            self.rng.shuffle(self._population)
        else:
            self._population, self._children = self._children, self._population
            if best_index is not None:
                self._best.set(self._population[best_index])
            elif self.config.replacement == Replacement.KEEP_BEST:
                # The incumbent is not in the new population
                slot = 0 if worst_index is None else worst_index
                self._population[slot].set(self._best)

        self._best.generation = generation
        self._generation += 1
        if self.debug:
            self._debug(f"population {format_population(self._population)} best {self._best.fitness:.6f}")
        return self._best.fitness < self.config.min_distance

    def execute(self) -> float:
        """
        Offline run: reinitialize around the live chain and run
        ``max_iterations`` generations, recording ``Statistics`` for each.

        Returns:
            Fitness of the best individual found
        """
        self._statistics = []
        self._initialize()
        for _ in range(self.config.max_iterations):
            self.iterate()
            self._statistics.append(Statistics(self._population))
        logger.debug(
            "GA execute: %d generations (%s), best %.6f",
            self.config.max_iterations, self.config.replacement.name, self._best.fitness,
        )
        return self._best.fitness

    def update(self) -> None:
        self._write_back(self._best)

    def reset(self) -> None:
        self._iterations = 0
        if not self._targets:
            self._previous_targets = {}
            return
        self._snapshot_targets()
        self._initialize()

    def error(self) -> float:
        return self._best.fitness
