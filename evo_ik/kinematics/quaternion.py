"""Quaternion helpers for joint rotations.

Quaternions are plain numpy arrays laid out as ``[x, y, z, w]``. All
functions return new arrays and never modify their arguments.
"""

import math
from typing import Sequence

import numpy as np


def identity() -> np.ndarray:
    """Get the identity rotation."""
    return np.array([0.0, 0.0, 0.0, 1.0])


def as_quaternion(values: Sequence[float]) -> np.ndarray:
    """Convert a 4-sequence to a float quaternion array."""
    q = np.asarray(values, dtype=float)
    if q.shape != (4,):
        raise ValueError(f"Quaternion must have 4 components, got shape {q.shape}")
    return q.copy()


def normalize(q: np.ndarray) -> np.ndarray:
    """Scale a quaternion to unit length (identity for a null quaternion)."""
    norm = np.linalg.norm(q)
    if norm == 0:
        return identity()
    return q / norm


def multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Hamilton product ``a * b`` (apply ``b`` first, then ``a``)."""
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return np.array([
        aw * bx + bw * ax + ay * bz - az * by,
        aw * by + bw * ay - ax * bz + az * bx,
        aw * bz + bw * az + ax * by - ay * bx,
        aw * bw - ax * bx - ay * by - az * bz,
    ])


def inverse(q: np.ndarray) -> np.ndarray:
    """Inverse rotation."""
    sq_norm = float(np.dot(q, q))
    if sq_norm == 0:
        return identity()
    return np.array([-q[0], -q[1], -q[2], q[3]]) / sq_norm


def dot(a: np.ndarray, b: np.ndarray) -> float:
    """4D dot product of two quaternions."""
    return float(np.dot(a, b))


def rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate a 3-vector by a unit quaternion."""
    u = q[:3]
    w = q[3]
    v = np.asarray(v, dtype=float)
    t = 2.0 * np.cross(u, v)
    return v + w * t + np.cross(u, t)


def from_axis_angle(axis: Sequence[float], angle: float) -> np.ndarray:
    """Rotation of ``angle`` radians about ``axis``."""
    axis = np.asarray(axis, dtype=float)
    norm = np.linalg.norm(axis)
    if norm == 0:
        return identity()
    half = 0.5 * angle
    xyz = axis / norm * math.sin(half)
    return np.array([xyz[0], xyz[1], xyz[2], math.cos(half)])


def from_euler(roll: float, pitch: float, yaw: float) -> np.ndarray:
    """
    Build a rotation from roll, pitch and yaw (about x, y and z).

    The rotations are composed in y, z, x order, which is the inverse
    of :func:`to_euler`.
    """
    qx = from_axis_angle((1.0, 0.0, 0.0), roll)
    qy = from_axis_angle((0.0, 1.0, 0.0), pitch)
    qz = from_axis_angle((0.0, 0.0, 1.0), yaw)
    return multiply(multiply(qy, qz), qx)


def to_euler(q: np.ndarray) -> np.ndarray:
    """
    Convert a unit quaternion to ``[roll, pitch, yaw]`` in radians.

    Near the poles (gimbal lock) roll is reported as zero.
    """
    x, y, z, w = q
    test = x * y + z * w
    if test > 0.499:
        return np.array([0.0, 2.0 * math.atan2(x, w), math.pi / 2])
    if test < -0.499:
        return np.array([0.0, -2.0 * math.atan2(x, w), -math.pi / 2])
    sqx, sqy, sqz = x * x, y * y, z * z
    pitch = math.atan2(2 * y * w - 2 * x * z, 1 - 2 * sqy - 2 * sqz)
    yaw = math.asin(2 * test)
    roll = math.atan2(2 * x * w - 2 * y * z, 1 - 2 * sqx - 2 * sqz)
    return np.array([roll, pitch, yaw])


def angle(q: np.ndarray) -> float:
    """Rotation angle of a unit quaternion, in ``[0, 2*pi]``."""
    return 2.0 * math.acos(float(np.clip(q[3], -1.0, 1.0)))
