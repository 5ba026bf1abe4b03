"""Helpers for building, copying and inspecting kinematic chains.

A chain is an ordered list of joints where every joint references either
an earlier joint of the list or, for the first joint only, an arbitrary
external node (or nothing).
"""

from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from ..errors import InvalidChainError
from .constraint import Constraint
from .joint import Joint


def validate_chain(chain: Sequence[Joint]) -> None:
    """Raise InvalidChainError unless ``chain`` is a well formed chain."""
    if chain is None or len(chain) == 0:
        raise InvalidChainError("Chain must contain at least one joint")
    parent_indices(chain)


def parent_indices(chain: Sequence[Joint]) -> List[Optional[int]]:
    """
    Index of each joint's reference inside the chain.

    The first joint maps to None (its reference, if any, is external).
    """
    index_of: Dict[int, int] = {}
    indices: List[Optional[int]] = []
    for i, joint in enumerate(chain):
        ref = joint.reference
        if i == 0:
            indices.append(None)
        elif ref is not None and id(ref) in index_of:
            indices.append(index_of[id(ref)])
        else:
            raise InvalidChainError(
                f"Joint {i} must reference an earlier joint of the chain"
            )
        index_of[id(joint)] = i
    return indices


def same_topology(a: Sequence[Joint], b: Sequence[Joint]) -> bool:
    """True when both chains have the same length and parent layout."""
    return len(a) == len(b) and parent_indices(a) == parent_indices(b)


def copy_chain(chain: Sequence[Joint]) -> List[Joint]:
    """
    Deep copy a chain into an independent hierarchy.

    The external reference of the first joint is replaced by a detached
    node holding the same world pose, so the copy has identical world
    positions but shares no joints with the original. Constraints are
    shared (they are stateless).
    """
    validate_chain(chain)
    root_ref = chain[0].reference
    mapping: Dict[int, Optional[Joint]] = {}
    detached = None
    if root_ref is not None:
        detached = Joint.detach(root_ref.position, root_ref.orientation, root_ref.magnitude)

    copy: List[Joint] = []
    for i, joint in enumerate(chain):
        reference = detached if i == 0 else mapping[id(joint.reference)]
        new_joint = Joint(
            reference=reference,
            translation=joint.translation,
            scaling=joint.scaling,
            constraint=joint.constraint,
        )
        new_joint.set_rotation(joint.rotation, constrained=False)
        copy.append(new_joint)
        mapping[id(joint)] = new_joint
    return copy


def path(tail: Optional[Joint], tip: Joint) -> List[Joint]:
    """Joints from ``tail`` down to ``tip`` (empty if tail is not an ancestor)."""
    nodes: List[Joint] = []
    if not tip.is_ancestor(tail):
        return nodes
    node: Optional[Joint] = tip
    while node is not tail:
        nodes.insert(0, node)
        node = node.reference
    if tail is not None:
        nodes.insert(0, tail)
    return nodes


def link_length(chain: Sequence[Joint], index: int) -> float:
    """Sum of link lengths from the chain root to joint ``index``."""
    total = 0.0
    previous = None
    for joint in path(chain[0], chain[index]):
        if previous is not None:
            total += float(np.linalg.norm(joint.position - previous.position))
        previous = joint
    return total


def resolve_index(chain: Sequence[Joint], end_effector: Union[int, Joint]) -> int:
    """Map an end effector (index or joint) to its index in ``chain``."""
    if isinstance(end_effector, Joint):
        for i, joint in enumerate(chain):
            if joint is end_effector:
                return i
        raise InvalidChainError("End effector is not part of the chain")
    index = int(end_effector)
    if index < 0 or index >= len(chain):
        raise InvalidChainError(
            f"End effector index {index} out of range (chain has {len(chain)} joints)"
        )
    return index


def build_chain(
    lengths: Sequence[float],
    direction: Sequence[float] = (0.0, 1.0, 0.0),
    origin: Sequence[float] = (0.0, 0.0, 0.0),
    constraints: Optional[Sequence[Optional[Constraint]]] = None,
) -> List[Joint]:
    """
    Build a straight serial chain.

    Args:
        lengths: Length of each link; the chain has ``len(lengths) + 1`` joints
        direction: Local direction every link extends along
        origin: World position of the root joint
        constraints: Optional constraint per joint

    Returns:
        The list of joints, root first
    """
    direction = np.asarray(direction, dtype=float)
    norm = np.linalg.norm(direction)
    if norm == 0:
        raise ValueError("Link direction must be non-zero")
    direction = direction / norm

    num_joints = len(lengths) + 1
    if constraints is not None and len(constraints) != num_joints:
        raise InvalidChainError(
            f"Expected {num_joints} constraints, got {len(constraints)}"
        )

    root = Joint(translation=origin)
    chain = [root]
    for length in lengths:
        chain.append(Joint(reference=chain[-1], translation=direction * length))
    if constraints is not None:
        for joint, constraint in zip(chain, constraints):
            joint.constraint = constraint
    return chain
