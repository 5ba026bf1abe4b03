"""Candidate solution representation."""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from ..errors import InvalidChainError
from ..kinematics import quaternion as quat
from ..kinematics.chain import copy_chain, same_topology, validate_chain
from ..kinematics.joint import Joint
from .fitness import FitnessFunction, PositionFitness

_DEFAULT_FITNESS = PositionFitness()


@dataclass(eq=False)
class Individual:
    """
    A genome of the IK search: an independent snapshot of a chain's joints
    plus its cached evaluation (fitness is lower-is-better, NaN until
    evaluated).
    """
    structure: List[Joint]
    fitness: float = math.nan
    balanced_fitness: float = math.nan
    position_error: float = math.nan
    orientation_error: float = math.nan
    raw_error: float = math.nan
    generation: int = 0
    float_params: Dict[str, float] = field(default_factory=dict)
    array_params: Dict[str, np.ndarray] = field(default_factory=dict)

    @classmethod
    def from_chain(cls, chain: Sequence[Joint], copy: bool = True) -> "Individual":
        """
        Create an individual from a chain.

        Args:
            chain: The joints to wrap
            copy: Deep copy the chain (otherwise the individual aliases it)
        """
        validate_chain(chain)
        return cls(structure=copy_chain(chain) if copy else list(chain))

    @property
    def evaluated(self) -> bool:
        return not math.isnan(self.fitness)

    def update_fitness(
        self,
        targets: Mapping[int, Any],
        fitness_function: Optional[FitnessFunction] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> float:
        """Evaluate against ``targets``, caching fitness and raw errors."""
        function = fitness_function or _DEFAULT_FITNESS
        result = function.evaluate(self.structure, targets, rng)
        self.fitness = result.fitness
        self.balanced_fitness = result.balanced_fitness
        self.position_error = result.position_error
        self.orientation_error = result.orientation_error
        self.raw_error = result.raw_error
        return self.fitness

    def set_chain(self, chain: Sequence[Joint]) -> None:
        """Copy rotations and translations of a chain with the same topology."""
        if not same_topology(self.structure, chain):
            raise InvalidChainError(
                f"Cannot copy a chain of {len(chain)} joints into a genome of "
                f"{len(self.structure)} joints with a different layout"
            )
        for mine, theirs in zip(self.structure, chain):
            mine.set_translation(theirs.translation)
            mine.set_rotation(theirs.rotation, constrained=False)

    def _clone_attributes(self, other: "Individual") -> None:
        self.fitness = other.fitness
        self.balanced_fitness = other.balanced_fitness
        self.position_error = other.position_error
        self.orientation_error = other.orientation_error
        self.raw_error = other.raw_error
        self.generation = other.generation
        self.float_params = dict(other.float_params)
        self.array_params = {name: value.copy() for name, value in other.array_params.items()}

    def set(self, other: "Individual") -> None:
        """Overwrite this genome and its cached attributes with ``other``'s."""
        if other is self:
            return
        self.set_chain(other.structure)
        self._clone_attributes(other)

    def clone(self) -> "Individual":
        """Create an independent copy of this individual."""
        individual = Individual(structure=copy_chain(self.structure))
        individual._clone_attributes(self)
        return individual

    def __lt__(self, other: "Individual") -> bool:
        """Compare by fitness (lower is better)."""
        return self.fitness < other.fitness

    def __repr__(self) -> str:
        angles = ", ".join(
            str(np.round(np.degrees(quat.to_euler(joint.rotation)), 2).tolist())
            for joint in self.structure
        )
        return f"Individual([{angles}], fitness={self.fitness:.4f}, gen={self.generation})"
