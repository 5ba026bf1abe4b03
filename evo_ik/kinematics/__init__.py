"""Kinematic chain model consumed by the evolutionary solvers."""

from . import quaternion
from .constraint import Constraint, Hinge
from .joint import Joint, Pose
from .chain import (
    build_chain, copy_chain, link_length, parent_indices,
    path, resolve_index, same_topology, validate_chain,
)

__all__ = [
    "quaternion",
    "Constraint",
    "Hinge",
    "Joint",
    "Pose",
    "build_chain",
    "copy_chain",
    "link_length",
    "parent_indices",
    "path",
    "resolve_index",
    "same_topology",
    "validate_chain",
]
