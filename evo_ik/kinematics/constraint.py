"""Rotation constraints that can be attached to joints."""

import math
from abc import ABC, abstractmethod
from typing import Sequence, TYPE_CHECKING

import numpy as np

from . import quaternion as quat

if TYPE_CHECKING:
    from .joint import Joint


class Constraint(ABC):
    """Abstract base class for joint constraints."""

    @abstractmethod
    def constrain_rotation(self, rotation: np.ndarray, joint: "Joint") -> np.ndarray:
        """
        Filter a rotation delta before it is applied to a joint.

        Args:
            rotation: Desired delta, expressed in the joint's local frame
            joint: The joint the delta will be composed onto

        Returns:
            The delta that is actually allowed
        """
        pass


class Hinge(Constraint):
    """
    Restricts a joint to twist about a single local axis.

    The twist angle is measured from the identity rotation and kept in
    ``[-min_angle, max_angle]``. Any swing component of a requested rotation
    is dropped.
    """

    def __init__(
        self,
        min_angle: float = math.pi,
        max_angle: float = math.pi,
        axis: Sequence[float] = (0.0, 0.0, 1.0),
    ):
        """
        Initialize the hinge.

        Args:
            min_angle: Allowed twist in the negative direction (radians, >= 0)
            max_angle: Allowed twist in the positive direction (radians, >= 0)
            axis: Twist axis in the joint's local frame
        """
        axis = np.asarray(axis, dtype=float)
        norm = np.linalg.norm(axis)
        if norm == 0:
            raise ValueError("Hinge axis must be non-zero")
        self.min_angle = min_angle
        self.max_angle = max_angle
        self.axis = axis / norm

    def twist_angle(self, rotation: np.ndarray) -> float:
        """Signed twist of ``rotation`` about the hinge axis, in ``(-pi, pi]``."""
        projection = float(np.dot(rotation[:3], self.axis))
        angle = 2.0 * math.atan2(projection, rotation[3])
        if angle > math.pi:
            angle -= 2 * math.pi
        elif angle <= -math.pi:
            angle += 2 * math.pi
        return angle

    def constrain_rotation(self, rotation: np.ndarray, joint: "Joint") -> np.ndarray:
        desired = quat.normalize(quat.multiply(joint.rotation, rotation))
        change = self.twist_angle(desired)

        if change < -self.min_angle or change > self.max_angle:
            # Snap to whichever limit is closer going around the circle
            wrapped = change + 2 * math.pi if change < 0 else change
            to_max = wrapped - self.max_angle
            to_min = (2 * math.pi - self.min_angle) - wrapped
            change = self.max_angle if to_max < to_min else -self.min_angle

        target = quat.from_axis_angle(self.axis, change)
        return quat.normalize(quat.multiply(quat.inverse(joint.rotation), target))

    def __repr__(self) -> str:
        return (
            f"Hinge(min={math.degrees(self.min_angle):.1f}deg, "
            f"max={math.degrees(self.max_angle):.1f}deg, axis={self.axis.tolist()})"
        )
