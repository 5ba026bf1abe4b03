"""Genetic operators for mutation and crossover.

Operators never modify their inputs: the result is always a fresh
individual. Rotations go through each joint's constrained ``rotate`` /
``set_rotation`` so attached constraints are honored.
"""

import math
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np

from ..kinematics import quaternion as quat
from .individual import Individual


class Operator(ABC):
    """Abstract base class for variation operators."""

    arity: int = 1

    @abstractmethod
    def apply(self, *individuals: Individual, rng: np.random.Generator) -> Individual:
        """
        Produce an offspring.

        Args:
            *individuals: Parents (``arity`` of them)
            rng: Random generator

        Returns:
            A new individual; its cached fitness is stale until re-evaluated
        """
        pass

    def _check_arity(self, individuals: Sequence[Individual]) -> None:
        if len(individuals) < 1:
            raise ValueError(f"{self.__class__.__name__} needs at least one individual")
        if self.arity == 1 and len(individuals) != 1:
            raise ValueError(
                f"{self.__class__.__name__} expects 1 individual, got {len(individuals)}"
            )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class UniformMutation(Operator):
    """
    Each joint mutates with probability ``1/n``; its Euler angles are
    perturbed by ``U(-delta, delta)``.
    """

    def __init__(self, delta: float = math.radians(30)):
        self.delta = delta

    def apply(self, *individuals, rng):
        self._check_arity(individuals)
        individual = individuals[0].clone()
        alpha = 1.0 / len(individual.structure)
        for joint in individual.structure:
            if rng.random() > alpha:
                continue
            roll, pitch, yaw = rng.uniform(-self.delta, self.delta, size=3)
            joint.rotate(quat.from_euler(roll, pitch, yaw))
        return individual

    def __repr__(self) -> str:
        return f"UniformMutation(delta={math.degrees(self.delta):.1f}deg)"


class GaussianMutation(Operator):
    """
    Each joint mutates with probability ``1/n``; its Euler angles are
    perturbed by ``N(0, sigma)``.
    """

    def __init__(self, sigma: float = math.radians(30)):
        self.sigma = sigma

    def apply(self, *individuals, rng):
        self._check_arity(individuals)
        individual = individuals[0].clone()
        alpha = 1.0 / len(individual.structure)
        for joint in individual.structure:
            if rng.random() > alpha:
                continue
            roll, pitch, yaw = rng.normal(0.0, self.sigma, size=3)
            joint.rotate(quat.from_euler(roll, pitch, yaw))
        return individual

    def __repr__(self) -> str:
        return f"GaussianMutation(sigma={math.degrees(self.sigma):.1f}deg)"


class ConvexCombination(Operator):
    """
    Blend the parents joint by joint: each joint's Euler angles become a
    weighted mean of the parents' angles.

    Weights are fixed when given (and match the number of parents),
    otherwise drawn from ``U(0, 1)`` per parent and joint.
    """

    arity = 2

    def __init__(self, weights: Optional[Sequence[float]] = None, random_weights: bool = True):
        self.random_weights = random_weights
        self.weights: Optional[np.ndarray] = None
        self.set_weights(weights)

    def set_weights(self, weights: Optional[Sequence[float]]) -> None:
        """Set fixed weights (normalized to sum 1), or None for random ones."""
        if weights is None:
            self.weights = None
            return
        weights = np.asarray(weights, dtype=float)
        total = float(np.sum(weights))
        if total <= 0:
            raise ValueError("Convex combination weights must have a positive sum")
        self.weights = weights / total
        self.arity = len(weights)

    def _weight(self, j: int, num_parents: int, rng: np.random.Generator) -> float:
        if self.weights is not None and len(self.weights) == num_parents:
            return float(self.weights[j])
        if self.random_weights:
            return float(rng.random())
        return 1.0

    def apply(self, *individuals, rng):
        self._check_arity(individuals)
        combination = individuals[0].clone()
        n = len(individuals)
        for i, joint in enumerate(combination.structure):
            angles = np.zeros(3)
            total = 0.0
            for j, parent in enumerate(individuals):
                w = self._weight(j, n, rng)
                angles += w * quat.to_euler(parent.structure[i].rotation)
                total += w
            if total == 0:
                continue
            angles /= total
            joint.set_rotation(quat.from_euler(*angles))
        return combination

    def __repr__(self) -> str:
        weights = None if self.weights is None else self.weights.tolist()
        return f"ConvexCombination(weights={weights})"
