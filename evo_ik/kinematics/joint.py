"""Joint (scene-graph node) representation for kinematic chains."""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import numpy as np

from . import quaternion as quat
from .constraint import Constraint


class Joint:
    """
    A node of a kinematic structure.

    Rotation, translation and scaling are local, i.e. expressed in the
    coordinate system of the ``reference`` joint. A joint without reference
    is defined in world space. World ``position`` and ``orientation`` are
    composed up the reference chain on every access.
    """

    def __init__(
        self,
        reference: Optional["Joint"] = None,
        translation: Optional[Sequence[float]] = None,
        rotation: Optional[Sequence[float]] = None,
        scaling: float = 1.0,
        constraint: Optional[Constraint] = None,
    ):
        self._reference = reference
        self._translation = (
            np.zeros(3) if translation is None else np.asarray(translation, dtype=float).copy()
        )
        self._rotation = quat.identity() if rotation is None else quat.normalize(quat.as_quaternion(rotation))
        self._scaling = float(scaling)
        self.constraint = constraint

    @classmethod
    def detach(
        cls,
        position: Sequence[float],
        orientation: Sequence[float],
        magnitude: float = 1.0,
    ) -> "Joint":
        """Create a root joint located at the given world pose."""
        joint = cls(translation=position, scaling=magnitude)
        joint.set_rotation(orientation, constrained=False)
        return joint

    # --- local state ---

    @property
    def reference(self) -> Optional["Joint"]:
        """Get the parent joint (None for a world-space joint)."""
        return self._reference

    def set_reference(self, reference: Optional["Joint"]) -> None:
        """Re-parent this joint, keeping its local transform."""
        node = reference
        while node is not None:
            if node is self:
                raise ValueError("A joint cannot be its own ancestor")
            node = node.reference
        self._reference = reference

    @property
    def rotation(self) -> np.ndarray:
        """Get a copy of the local rotation."""
        return self._rotation.copy()

    def set_rotation(self, rotation: Sequence[float], constrained: bool = True) -> None:
        """
        Set the local rotation.

        When a constraint is attached and ``constrained`` is True, the change
        from the current rotation is filtered by the constraint first. With
        ``constrained=False`` the value is stored as given (used to copy
        genomes without numerical drift).
        """
        rotation = quat.as_quaternion(rotation)
        if not constrained:
            self._rotation = rotation
        elif self.constraint is None:
            self._rotation = quat.normalize(rotation)
        else:
            delta = quat.multiply(quat.inverse(self._rotation), rotation)
            allowed = self.constraint.constrain_rotation(delta, self)
            self._rotation = quat.normalize(quat.multiply(self._rotation, allowed))

    def rotate(self, rotation: Sequence[float]) -> None:
        """Compose a local delta onto the rotation, honoring the constraint."""
        rotation = quat.as_quaternion(rotation)
        if self.constraint is not None:
            rotation = self.constraint.constrain_rotation(rotation, self)
        self._rotation = quat.normalize(quat.multiply(self._rotation, rotation))

    @property
    def translation(self) -> np.ndarray:
        """Get a copy of the local translation."""
        return self._translation.copy()

    def set_translation(self, translation: Sequence[float]) -> None:
        self._translation = np.asarray(translation, dtype=float).copy()

    @property
    def scaling(self) -> float:
        return self._scaling

    # --- world state ---

    @property
    def magnitude(self) -> float:
        """Accumulated scaling of this joint in world space."""
        if self._reference is None:
            return self._scaling
        return self._reference.magnitude * self._scaling

    @property
    def orientation(self) -> np.ndarray:
        """World orientation."""
        if self._reference is None:
            return self._rotation.copy()
        return quat.normalize(quat.multiply(self._reference.orientation, self._rotation))

    @property
    def position(self) -> np.ndarray:
        """World position."""
        if self._reference is None:
            return self._translation.copy()
        ref = self._reference
        offset = quat.rotate(ref.orientation, ref.magnitude * self._translation)
        return ref.position + offset

    def is_ancestor(self, other: Optional["Joint"]) -> bool:
        """True if ``other`` is this joint or one of its ancestors."""
        node: Optional[Joint] = self
        while node is not None:
            if node is other:
                return True
            node = node.reference
        return other is None

    def __repr__(self) -> str:
        euler = np.degrees(quat.to_euler(self._rotation))
        return (
            f"Joint(translation={np.round(self._translation, 3).tolist()}, "
            f"euler={np.round(euler, 1).tolist()})"
        )


@dataclass
class Pose:
    """Snapshot of a world-space pose, used as an IK target."""
    position: np.ndarray
    orientation: np.ndarray = field(default_factory=quat.identity)

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=float).copy()
        self.orientation = quat.as_quaternion(self.orientation)

    @classmethod
    def of(cls, target: Any) -> "Pose":
        """Snapshot any object exposing ``position`` and ``orientation``."""
        return cls(position=target.position, orientation=target.orientation)

    def matches(self, other: Any) -> bool:
        """Exact equality of position and orientation."""
        return bool(
            np.array_equal(self.position, other.position)
            and np.array_equal(self.orientation, other.orientation)
        )
