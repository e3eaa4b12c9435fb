"""Planar rotation representations and conversions.

This module provides the conversions between the rotation representations
used by the map merging pipeline:
- Yaw angles (rotation about the axis perpendicular to the grid plane)
- Quaternions (unit quaternions, q = [qx, qy, qz, qw])
- 2x2 rotation blocks of homogeneous planar transforms

Conventions:
- Quaternions: [qx, qy, qz, qw] where qw is the scalar part (scalar-last,
  the order used by rigid-transform messages and scipy's Rotation).
- Yaw: radians, counter-clockwise about +z, principal value in [-π, π].
- A planar quaternion has qx = qy = 0; it encodes a pure yaw rotation.
"""

import numpy as np
from numpy.typing import NDArray


def yaw_to_quat(yaw: float) -> NDArray[np.float64]:
    """Convert a yaw angle to a planar unit quaternion.

    Builds the quaternion of a rotation by ``yaw`` about the z-axis and
    normalizes it so the result is unit-norm to double precision.

    Args:
        yaw: Rotation angle ψ in radians (rotation about z-axis).

    Returns:
        Unit quaternion as numpy array [qx, qy, qz, qw] with qx = qy = 0.

    Example:
        >>> q = yaw_to_quat(np.pi / 2)  # 90° yaw
        >>> np.allclose(q, [0.0, 0.0, np.sqrt(0.5), np.sqrt(0.5)])
        True
        >>> float(np.linalg.norm(q))
        1.0
    """
    half = 0.5 * yaw
    q = np.array([0.0, 0.0, np.sin(half), np.cos(half)], dtype=np.float64)
    return quat_normalize(q)


def quat_to_yaw(q: NDArray[np.float64]) -> float:
    """Extract the yaw angle from a quaternion.

    Uses the ZYX yaw extraction, which for a planar quaternion reduces
    exactly to ``2 * atan2(qz, qw)``.

    Args:
        q: Quaternion as numpy array [qx, qy, qz, qw]. Need not be unit.

    Returns:
        Yaw angle in radians, in [-π, π].

    Raises:
        ValueError: If q is not a 4-element array.

    Example:
        >>> quat_to_yaw(np.array([0.0, 0.0, 0.0, 1.0]))
        0.0
    """
    q = np.asarray(q, dtype=np.float64)
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")

    qx, qy, qz, qw = q
    if qx == 0.0 and qy == 0.0:
        # Exact inverse of yaw_to_quat
        yaw = 2.0 * np.arctan2(qz, qw)
    else:
        sin_yaw_cos_pitch = 2.0 * (qw * qz + qx * qy)
        cos_yaw_cos_pitch = 1.0 - 2.0 * (qy * qy + qz * qz)
        yaw = np.arctan2(sin_yaw_cos_pitch, cos_yaw_cos_pitch)

    if abs(yaw) > np.pi:
        yaw = np.arctan2(np.sin(yaw), np.cos(yaw))
    return float(yaw)


def quat_normalize(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Scale a quaternion to unit length.

    Args:
        q: Quaternion as numpy array [qx, qy, qz, qw].

    Returns:
        Unit quaternion with the same direction.

    Raises:
        ValueError: If q is not a 4-element array or has zero norm.
    """
    q = np.asarray(q, dtype=np.float64)
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")

    norm = np.linalg.norm(q)
    if norm == 0.0 or not np.isfinite(norm):
        raise ValueError(f"Cannot normalize quaternion with norm {norm}")

    return q / norm


def quat_canonical(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return the representative of ±q with a non-negative scalar part.

    q and -q encode the same rotation; comparisons between quaternions are
    only meaningful after both are mapped to the same hemisphere.

    Args:
        q: Quaternion as numpy array [qx, qy, qz, qw].

    Returns:
        q if qw >= 0, otherwise -q.

    Example:
        >>> q = quat_canonical(np.array([0.0, 0.0, 0.6, -0.8]))
        >>> float(q[3])
        0.8
    """
    q = np.asarray(q, dtype=np.float64)
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")

    if q[3] < 0.0:
        return -q
    return q.copy()


def is_planar_quat(q: NDArray[np.float64], tol: float = 1e-9) -> bool:
    """Check whether a quaternion is a rotation about the z-axis only.

    Args:
        q: Quaternion as numpy array [qx, qy, qz, qw]. Need not be unit;
           it is normalized before the off-axis components are tested.
        tol: Largest accepted magnitude for the normalized qx and qy.

    Returns:
        True if both off-axis components are within ``tol`` of zero.
    """
    q_unit = quat_normalize(q)
    return bool(abs(q_unit[0]) <= tol and abs(q_unit[1]) <= tol)


def rotation_block_to_yaw(R: NDArray[np.float64]) -> float:
    """Extract the yaw angle from a 2x2 rotation (or similarity) block.

    Uniform scale cancels inside ``atan2``, so the angle of a similarity
    block ``s * R(ψ)`` is ψ for any s > 0.

    Args:
        R: Upper-left 2x2 block of a planar homogeneous transform.

    Returns:
        Yaw angle in radians, in [-π, π].

    Raises:
        ValueError: If R is not a 2x2 matrix.
    """
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (2, 2):
        raise ValueError(f"Expected 2x2 matrix, got shape {R.shape}")

    return float(np.arctan2(R[1, 0], R[0, 0]))
