"""Planar homogeneous matrices used to place grids.

Every placement handled by the merging pipeline is a 3x3 matrix of the
planar similarity group, acting on column vectors [x, y, 1]:

    T = [[s*cos(θ), -s*sin(θ), tx],
         [s*sin(θ),  s*cos(θ), ty],
         [       0,         0,  1]]

Metric placements (poses, grid origins) have s = 1. Pixel placements
returned by the alignment estimator may carry a scale when the grids
were built at different resolutions.

Functions:
    - wrap_angle: principal value of an angle
    - se2_to_matrix / se2_from_matrix: [x, y, yaw] ↔ matrix
    - se2_compose: chain two [x, y, yaw] poses, e.g. a grid origin and an
      offset expressed in that grid's frame
    - apply_matrix: map an (N, 2) batch of points
    - matrix_scale, is_identity: inspect a placement
"""

from typing import Union

import numpy as np

from gridmerge.coords.rotations import rotation_block_to_yaw

from .types import Pose2

PoseLike = Union[np.ndarray, Pose2]


def _pose_vector(p: PoseLike, name: str) -> np.ndarray:
    vec = p.to_array() if isinstance(p, Pose2) else np.asarray(p, dtype=np.float64)
    if vec.shape != (3,):
        raise ValueError(f"{name} must be [x, y, yaw], got shape {vec.shape}")
    return vec


def _check_matrix(T: np.ndarray) -> np.ndarray:
    T = np.asarray(T, dtype=np.float64)
    if T.shape != (3, 3):
        raise ValueError(f"expected a 3x3 matrix, got shape {T.shape}")
    return T


def wrap_angle(theta: float) -> float:
    """Return theta folded into [-π, π].

    Examples:
        >>> round(wrap_angle(3 * np.pi / 2), 6)
        -1.570796
    """
    return float(np.arctan2(np.sin(theta), np.cos(theta)))


def se2_to_matrix(p: PoseLike) -> np.ndarray:
    """
    Build the rigid placement matrix of a planar pose.

    Args:
        p: [x, y, yaw] array or Pose2.

    Returns:
        3x3 float64 matrix with unit scale.

    Examples:
        >>> se2_to_matrix(np.array([2.0, -1.0, 0.0]))[:2, 2]
        array([ 2., -1.])
    """
    x, y, yaw = _pose_vector(p, "p")
    c, s = np.cos(yaw), np.sin(yaw)
    T = np.eye(3)
    T[0, 0], T[0, 1], T[0, 2] = c, -s, x
    T[1, 0], T[1, 1], T[1, 2] = s, c, y
    return T


def se2_from_matrix(T: np.ndarray) -> np.ndarray:
    """
    Read [x, y, yaw] back from a placement matrix.

    The translation column is returned as is and the yaw is the angle of
    the rotation block, so a uniform scale does not affect the result.

    Raises:
        ValueError: If T is not 3x3.
    """
    T = _check_matrix(T)
    return np.array([T[0, 2], T[1, 2], rotation_block_to_yaw(T[:2, :2])])


def se2_compose(p1: PoseLike, p2: PoseLike) -> np.ndarray:
    """
    Chain two planar poses: p2 expressed in the frame of p1.

    The compositor uses this to move a grid origin by the canvas corner,
    which is measured in that grid's own frame.

    Args:
        p1: Outer pose [x, y, yaw] or Pose2.
        p2: Inner pose [x, y, yaw] or Pose2, relative to p1.

    Returns:
        [x, y, yaw] of the chained pose, yaw wrapped to [-π, π].

    Examples:
        >>> se2_compose(Pose2(x=1.0, y=0.0, yaw=0.0), np.array([0.5, 0.5, 0.0]))
        array([1.5, 0.5, 0. ])
    """
    a = _pose_vector(p1, "p1")
    b = _pose_vector(p2, "p2")
    c, s = np.cos(a[2]), np.sin(a[2])
    offset = np.array([c * b[0] - s * b[1], s * b[0] + c * b[1]])
    return np.array([a[0] + offset[0], a[1] + offset[1], wrap_angle(a[2] + b[2])])


def apply_matrix(T: np.ndarray, points: np.ndarray) -> np.ndarray:
    """
    Map 2D points through a placement matrix.

    Args:
        T: 3x3 placement.
        points: (N, 2) array; N may be zero.

    Returns:
        (N, 2) array of mapped points.

    Examples:
        >>> T = se2_to_matrix(np.array([0.0, 0.0, np.pi]))
        >>> np.round(apply_matrix(T, np.array([[1.0, 2.0]])), 6) + 0.0
        array([[-1., -2.]])
    """
    T = _check_matrix(T)
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 2:
        raise ValueError(f"points must have shape (N, 2), got {points.shape}")
    return points @ T[:2, :2].T + T[:2, 2]


def matrix_scale(T: np.ndarray) -> float:
    """Uniform scale s of a similarity placement (1.0 when rigid)."""
    T = _check_matrix(T)
    return float(np.hypot(T[0, 0], T[1, 0]))


def is_identity(T: np.ndarray, tol: float = 1e-12) -> bool:
    """True if T is a 3x3 matrix within ``tol`` of the identity, entry-wise."""
    T = np.asarray(T, dtype=np.float64)
    if T.shape != (3, 3):
        return False
    return bool(np.max(np.abs(T - np.eye(3))) <= tol)
