"""Base classes shared by the evolutionary IK solvers."""

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from ..errors import MissingTargetError
from ..kinematics.chain import resolve_index, validate_chain
from ..kinematics.joint import Joint, Pose
from .config import SolverConfig
from .individual import Individual

logger = logging.getLogger(__name__)


class Solver(ABC):
    """
    An iterative IK solver driven by an external per-tick loop.

    Subclasses implement one iteration (``iterate``), target change
    detection (``changed``), reinitialization (``reset``), the write-back
    onto the live chain (``update``) and an ``error`` diagnostic.
    ``solve`` ties them together the way an interactive driver calls it.
    """

    def __init__(
        self,
        config: Optional[SolverConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = config or SolverConfig()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.debug = False
        self._frame_counter = 0.0
        self._iterations = 0
        self._last_iteration = 0
        self._change_temp = False

    @property
    def iterations(self) -> int:
        return self._iterations

    @property
    def last_iteration(self) -> int:
        """Index of the last iteration run by solve()."""
        return self._last_iteration

    def set_debug(self, enabled: bool) -> None:
        """Enable or disable debug logging."""
        self.debug = enabled

    def _debug(self, msg: str) -> None:
        """Log a debug message if debug mode is enabled."""
        if self.debug:
            logger.debug("[%s] %s", self.__class__.__name__, msg)

    def change(self, changed: bool = True) -> None:
        """Force (or cancel) a reset on the next solve() tick."""
        self._change_temp = changed

    @abstractmethod
    def iterate(self) -> bool:
        """Run one iteration; return True when the convergence criterion holds."""
        pass

    @abstractmethod
    def update(self) -> None:
        """Write the best solution found so far onto the live chain."""
        pass

    @abstractmethod
    def changed(self) -> bool:
        """True if the target moved since the last reset."""
        pass

    @abstractmethod
    def reset(self) -> None:
        """Reinitialize the search for the current target."""
        pass

    @abstractmethod
    def error(self) -> float:
        """Current scalar error diagnostic."""
        pass

    @abstractmethod
    def set_target(self, *args: Any) -> None:
        pass

    def solve(self) -> bool:
        """
        One driver tick.

        Resets when the target changed, then runs as many iterations as the
        accumulated ``times_per_frame`` allows and writes the result back.
        Once ``error()`` is within ``max_error`` the remaining budget for
        the current target is dropped.

        Returns:
            True once the iteration budget for the current target is spent
        """
        if self.changed() or self._change_temp:
            self.reset()
            self._change_temp = False

        if self._iterations >= self.config.max_iterations:
            return True

        self._frame_counter += self.config.times_per_frame
        while math.floor(self._frame_counter) > 0:
            if self.iterate():
                self._last_iteration = self._iterations
                self._iterations = self.config.max_iterations
                logger.debug(
                    "%s converged after %d iterations (error %.6f)",
                    self.__class__.__name__, self._last_iteration, self.error(),
                )
                break
            self._last_iteration = self._iterations
            self._iterations += 1
            self._frame_counter -= 1

        self.update()
        error = self.error()
        if error <= self.config.max_error:
            # Good enough: spend the rest of the budget for this target
            self._iterations = self.config.max_iterations
            self._debug(f"error {error:.6f} within max_error, stopping")
        return False


class MultiTargetSolver(Solver):
    """
    Solver over a chain with any number of end-effector targets.

    Targets are kept by end-effector index; a snapshot of each target is
    cached at reset time so that moving a target is detected by changed().
    """

    def __init__(
        self,
        structure: Sequence[Joint],
        config: Optional[SolverConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        validate_chain(structure)
        super().__init__(config=config, seed=seed, rng=rng)
        self._structure: List[Joint] = list(structure)
        self._targets: Dict[int, Any] = {}
        self._previous_targets: Dict[int, Pose] = {}

    @property
    def structure(self) -> List[Joint]:
        return self._structure

    @property
    def targets(self) -> Dict[int, Any]:
        return self._targets

    def head(self) -> Joint:
        return self._structure[0]

    def end_effector(self) -> Joint:
        return self._structure[-1]

    def set_target(self, end_effector: Union[int, Joint], target: Any) -> None:
        """
        Register (or replace) the target of one end effector.

        Args:
            end_effector: Joint of the chain, or its index
            target: Anything exposing ``position`` and ``orientation``
        """
        self._targets[resolve_index(self._structure, end_effector)] = target

    def remove_target(self, end_effector: Union[int, Joint]) -> None:
        self._targets.pop(resolve_index(self._structure, end_effector), None)

    def _require_targets(self) -> None:
        if not self._targets:
            raise MissingTargetError(f"{self.__class__.__name__} has no target set")

    def changed(self) -> bool:
        if not self._targets:
            return False
        for index, target in self._targets.items():
            previous = self._previous_targets.get(index)
            if previous is None or not previous.matches(target):
                return True
        return False

    def _snapshot_targets(self) -> None:
        self._previous_targets = {
            index: Pose.of(target) for index, target in self._targets.items()
        }

    def _write_back(self, best: Optional[Individual]) -> None:
        if best is None:
            return
        for joint, solved in zip(self._structure, best.structure):
            joint.set_rotation(solved.rotation, constrained=joint.constraint is not None)
