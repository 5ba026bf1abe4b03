"""Fitness functions for evaluating candidate chain configurations.

All functions measure error, so lower is better and 0.0 is a perfect match.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional

import numpy as np

from ..errors import MissingTargetError
from ..kinematics import quaternion as quat
from ..kinematics.chain import link_length
from ..kinematics.joint import Joint


class FitnessMode(Enum):
    """Which part of the end-effector pose is compared against the target."""
    POSITION = "position"
    ORIENTATION = "orientation"
    POSE = "pose"


@dataclass
class FitnessResult:
    """Outcome of evaluating one structure against its targets."""
    fitness: float
    balanced_fitness: float
    position_error: float  # summed over targets
    orientation_error: float  # summed over targets
    raw_error: float


def position_error(
    structure: List[Joint], index: int, target: Any, scaled: bool = False
) -> float:
    """
    Euclidean distance between joint ``index`` and the target position.

    When ``scaled`` is set the distance is normalized by how extended the
    chain is: ``pi * dist / sqrt(l * d)`` with ``l`` the summed link length
    from the root and ``d`` the straight root-to-effector distance.
    """
    effector = structure[index].position
    dist = float(np.linalg.norm(effector - np.asarray(target.position, dtype=float)))
    if not scaled:
        return dist
    l = link_length(structure, index)
    d = float(np.linalg.norm(structure[0].position - effector))
    if l * d == 0:
        return dist
    return math.pi * dist / math.sqrt(l * d)


def orientation_error(
    structure: List[Joint], index: int, target: Any, shortest_arc: bool = False
) -> float:
    """Angle ``2 * acos(q . q*)`` between joint ``index`` and the target orientation."""
    q_dot = quat.dot(structure[index].orientation, np.asarray(target.orientation, dtype=float))
    if shortest_arc:
        q_dot = abs(q_dot)
    return 2.0 * math.acos(min(1.0, max(-1.0, q_dot)))


class FitnessFunction(ABC):
    """Abstract base class for fitness functions."""

    mode: FitnessMode

    def __init__(self, shortest_arc: bool = False):
        """
        Args:
            shortest_arc: Compare orientations with ``|q . q*|`` so that
                antipodal quaternions count as the same rotation
        """
        self.shortest_arc = shortest_arc

    def begin_generation(self, rng: np.random.Generator) -> None:
        """Hook called by solvers before each generation."""
        pass

    @abstractmethod
    def evaluate(
        self,
        structure: List[Joint],
        targets: Mapping[int, Any],
        rng: Optional[np.random.Generator] = None,
    ) -> FitnessResult:
        """
        Evaluate a structure against its targets.

        Args:
            structure: Joints of the candidate chain
            targets: End-effector index -> pose (anything with position/orientation)
            rng: Random generator, required by stochastic weightings

        Returns:
            FitnessResult with fitness and the cached raw errors
        """
        pass

    @staticmethod
    def _check_targets(targets: Mapping[int, Any]) -> None:
        if not targets:
            raise MissingTargetError("Cannot evaluate fitness without targets")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class PositionFitness(FitnessFunction):
    """Average end-effector distance."""

    mode = FitnessMode.POSITION

    def evaluate(self, structure, targets, rng=None):
        self._check_targets(targets)
        dt = sum(position_error(structure, i, t) for i, t in targets.items())
        value = dt / len(targets)
        return FitnessResult(value, value, dt, 0.0, dt)


class OrientationFitness(FitnessFunction):
    """Average end-effector angular error."""

    mode = FitnessMode.ORIENTATION

    def evaluate(self, structure, targets, rng=None):
        self._check_targets(targets)
        dr = sum(
            orientation_error(structure, i, t, self.shortest_arc)
            for i, t in targets.items()
        )
        value = dr / len(targets)
        return FitnessResult(value, value, 0.0, dr, dr)


class PoseFitness(FitnessFunction):
    """
    Randomly weighted blend of scaled position error and orientation error.

    The weight ``w ~ U(0, 1)`` is redrawn on every evaluation unless
    ``freeze_weight`` is set, in which case it is redrawn only when a
    solver starts a new generation. ``balanced_fitness`` always uses the
    fixed 0.5 / 0.5 blend.
    """

    mode = FitnessMode.POSE

    def __init__(self, shortest_arc: bool = False, freeze_weight: bool = False):
        super().__init__(shortest_arc=shortest_arc)
        self.freeze_weight = freeze_weight
        self.weight: Optional[float] = None

    def begin_generation(self, rng: np.random.Generator) -> None:
        if self.freeze_weight:
            self.weight = float(rng.random())

    def _draw_weight(self, rng: Optional[np.random.Generator]) -> float:
        if self.freeze_weight and self.weight is not None:
            return self.weight
        if rng is None:
            raise ValueError("PoseFitness needs a random generator to draw its weight")
        w = float(rng.random())
        if self.freeze_weight:
            self.weight = w
        return w

    def evaluate(self, structure, targets, rng=None):
        self._check_targets(targets)
        dt = 0.0
        dr = 0.0
        for index, target in targets.items():
            dt += position_error(structure, index, target, scaled=True)
            dr += orientation_error(structure, index, target, self.shortest_arc)
        n = len(targets)
        w = self._draw_weight(rng)
        fitness = (1 - w) * dt / n + w * dr / n
        balanced = 0.5 * dt / n + 0.5 * dr / n
        return FitnessResult(fitness, balanced, dt, dr, dt + dr)

    def __repr__(self) -> str:
        return f"PoseFitness(freeze_weight={self.freeze_weight})"


def create_fitness_function(
    mode: FitnessMode = FitnessMode.POSITION,
    shortest_arc: bool = False,
    freeze_pose_weight: bool = False,
) -> FitnessFunction:
    """
    Factory function to create a fitness function.

    Args:
        mode: FitnessMode (or its string value)
        shortest_arc: See FitnessFunction
        freeze_pose_weight: Only used in POSE mode

    Returns:
        FitnessFunction instance
    """
    mode = FitnessMode(mode)
    if mode == FitnessMode.POSITION:
        return PositionFitness(shortest_arc=shortest_arc)
    elif mode == FitnessMode.ORIENTATION:
        return OrientationFitness(shortest_arc=shortest_arc)
    elif mode == FitnessMode.POSE:
        return PoseFitness(shortest_arc=shortest_arc, freeze_weight=freeze_pose_weight)
    raise ValueError(f"Unknown fitness mode: {mode}")
