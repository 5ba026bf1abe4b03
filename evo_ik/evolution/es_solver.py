"""Single-individual evolutionary strategy with greedy acceptance."""

import logging
from typing import Any, List, Optional, Sequence

import numpy as np

from ..errors import MissingTargetError
from ..kinematics import quaternion as quat
from ..kinematics.chain import copy_chain, resolve_index, validate_chain
from ..kinematics.joint import Joint, Pose
from .config import ESConfig
from .solver import Solver

logger = logging.getLogger(__name__)


def power_law_step(u: np.ndarray, alpha: float) -> np.ndarray:
    """Inverse CDF of the heavy tailed step distribution: ``(1 - u) ** (1 / (1 - alpha))``."""
    return np.power(1.0 - u, 1.0 / (1.0 - alpha))


class ESSolver(Solver):
    """
    (1+1) evolutionary strategy.

    A single working copy of the chain is perturbed joint by joint every
    iteration and the perturbation is kept only if it brings the end
    effector strictly closer to the target. Only the target position is
    considered, and the end effector is always the last joint.
    """

    def __init__(
        self,
        chain: Sequence[Joint],
        config: Optional[ESConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        validate_chain(chain)
        super().__init__(config=config or ESConfig(), seed=seed, rng=rng)
        self._chain: List[Joint] = list(chain)
        self._x: List[Joint] = copy_chain(self._chain)
        self._target: Optional[Any] = None
        self._previous_target: Optional[Pose] = None

    @property
    def sigma(self) -> float:
        return self.config.sigma

    @property
    def alpha(self) -> float:
        return self.config.alpha

    @property
    def power_law(self) -> bool:
        return self.config.power_law

    @property
    def chain(self) -> List[Joint]:
        return self._chain

    @property
    def working_chain(self) -> List[Joint]:
        """The current working individual (not the live chain)."""
        return self._x

    @property
    def target(self) -> Optional[Any]:
        return self._target

    def head(self) -> Joint:
        return self._chain[0]

    def end_effector(self) -> Joint:
        return self._chain[-1]

    def set_target(self, *args: Any) -> None:
        """
        Set the target: ``set_target(target)`` or ``set_target(end_effector, target)``.

        The last call wins; the end effector argument is only validated.
        """
        if len(args) == 1:
            target = args[0]
        elif len(args) == 2:
            resolve_index(self._chain, args[0])
            target = args[1]
        else:
            raise TypeError(f"set_target expects 1 or 2 arguments, got {len(args)}")
        self._target = target

    def distance_to_target(self, chain: Sequence[Joint]) -> float:
        """Distance between the last joint of ``chain`` and the target."""
        if self._target is None:
            raise MissingTargetError("ESSolver has no target set")
        return float(np.linalg.norm(chain[-1].position - np.asarray(self._target.position)))

    def _perturb(self, chain: Sequence[Joint]) -> None:
        for joint in chain:
            sign = 1.0 if self.rng.random() >= 0.5 else -1.0
            if self.power_law:
                steps = sign * self.sigma * power_law_step(self.rng.random(3), self.alpha)
            else:
                steps = self.rng.normal(0.0, self.sigma, size=3)
            joint.rotate(quat.from_euler(*steps))

    def iterate(self) -> bool:
        candidate = copy_chain(self._x)
        self._perturb(candidate)

        d1 = self.distance_to_target(candidate)
        d2 = self.distance_to_target(self._x)
        if d1 < d2:
            self._x = candidate
            current = d1
        else:
            current = d2
        return current < self.config.min_distance

    def execute(self) -> np.ndarray:
        """
        Offline run: restart from the live chain and perform exactly
        ``max_iterations`` iterations.

        Returns:
            Distance to the target after each iteration
        """
        results = np.empty(self.config.max_iterations)
        self._x = copy_chain(self._chain)
        for k in range(self.config.max_iterations):
            self.iterate()
            results[k] = self.distance_to_target(self._x)
        logger.debug(
            "ES execute: %d iterations, distance %.6f -> %.6f",
            self.config.max_iterations, results[0], results[-1],
        )
        return results

    def update(self) -> None:
        for joint, solved in zip(self._chain, self._x):
            joint.set_rotation(solved.rotation, constrained=joint.constraint is not None)

    def changed(self) -> bool:
        if self._target is None:
            self._previous_target = None
            return False
        if self._previous_target is None:
            return True
        return not self._previous_target.matches(self._target)

    def reset(self) -> None:
        self._previous_target = None if self._target is None else Pose.of(self._target)
        self._x = copy_chain(self._chain)
        self._iterations = 0
        self._debug(f"reset, target at {None if self._target is None else self._target.position}")

    def error(self) -> float:
        return self.distance_to_target(self._chain)
