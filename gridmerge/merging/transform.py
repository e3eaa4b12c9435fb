"""Conversion between internal planar transforms and external poses.

Internally each grid's placement is a 3x3 homogeneous matrix of the
planar similarity group (see ``se2``). Callers read and write placements
as rigid poses (translation + scalar-last quaternion). This module owns
both directions of that conversion and the mapping of estimator output,
which lives in raster pixel coordinates, into metric transforms.

Conventions:
    - Transform → Pose: yaw = atan2(T[1,0], T[0,0]), translation read from
      the last column, z = 0, quaternion (0, 0, sin(yaw/2), cos(yaw/2))
      normalized. Any uniform scale is dropped.
    - Pose → Transform: the quaternion must be a pure yaw rotation and the
      translation must lie in the plane; anything else is rejected with
      InvalidPoseError instead of being projected.
    - Round-trips are exact to floating-point precision once the
      quaternion sign is canonicalized (q ≡ -q).
"""

from typing import Optional

import numpy as np

from gridmerge.coords.rotations import (
    is_planar_quat,
    quat_canonical,
    quat_normalize,
    quat_to_yaw,
    rotation_block_to_yaw,
    yaw_to_quat,
)

from .errors import InvalidPoseError
from .se2 import se2_to_matrix
from .types import Pose, Quaternion, Transform, Vector3


def matrix_to_pose(T: Transform) -> Pose:
    """
    Decompose an internal transform into an external pose.

    Args:
        T: Planar homogeneous matrix of shape (3, 3).

    Returns:
        Pose with translation (T[0,2], T[1,2], 0) and a unit quaternion
        encoding the rotation angle of T's upper-left block.

    Raises:
        ValueError: If T is not a finite 3x3 matrix.

    Examples:
        >>> pose = matrix_to_pose(np.eye(3))
        >>> pose == Pose.identity()
        True
    """
    T = np.asarray(T, dtype=np.float64)
    if T.shape != (3, 3):
        raise ValueError(f"T must have shape (3, 3), got {T.shape}")
    if not np.all(np.isfinite(T)):
        raise ValueError("T must be finite")

    yaw = rotation_block_to_yaw(T[:2, :2])
    # Output poses always carry qw >= 0
    q = quat_canonical(yaw_to_quat(yaw))

    return Pose(
        translation=Vector3(x=float(T[0, 2]), y=float(T[1, 2]), z=0.0),
        rotation=Quaternion.from_array(q),
    )


def pose_to_matrix(
    pose: Pose, tol: float = 1e-9, index: int = 0
) -> Optional[Transform]:
    """
    Compose an external pose into an internal transform.

    Args:
        pose: Rigid pose to convert.
        tol: Largest accepted |z| translation and |qx|, |qy| of the
             normalized quaternion.
        index: Position of the pose in the caller's sequence, reported in
               errors.

    Returns:
        Matrix [[cosθ, -sinθ, tx], [sinθ, cosθ, ty], [0, 0, 1]], or None
        when the quaternion is all zeros or non-finite (the "no transform"
        marker).

    Raises:
        InvalidPoseError: If the pose rotates about any axis other than z
            or translates out of the plane.

    Examples:
        >>> T = pose_to_matrix(Pose.identity())
        >>> np.allclose(T, np.eye(3))
        True
    """
    if pose.rotation.is_null():
        return None

    t = pose.translation.to_array()
    if not np.all(np.isfinite(t)):
        raise InvalidPoseError(index, f"translation must be finite, got {t}")
    if abs(t[2]) > tol:
        raise InvalidPoseError(index, f"translation z = {t[2]} is out of plane")

    q = quat_normalize(pose.rotation.to_array())
    if not is_planar_quat(q, tol):
        raise InvalidPoseError(
            index, f"rotation has off-axis components qx={q[0]:.3g}, qy={q[1]:.3g}"
        )

    yaw = quat_to_yaw(q)
    return se2_to_matrix(np.array([t[0], t[1], yaw]))


def pixel_to_metric(
    T_pix: Transform, resolution: float, reference_resolution: float
) -> Transform:
    """
    Convert an estimator placement from pixel to metric coordinates.

    Estimators work on rasters where pixel (c, r) is the centre of cell
    (row r, col c). Transforms act on the grid's cell-plane metric frame,
    where that centre sits at ((c + 0.5) * res, (r + 0.5) * res). The
    placement of raster i into the reference raster's pixel frame becomes

        T = S_ref · H · T_pix · H⁻¹ · S_i⁻¹

    with S the resolution scaling and H the half-cell shift.

    Args:
        T_pix: Placement in pixel coordinates, shape (3, 3).
        resolution: Resolution of the placed grid (meters per cell).
        reference_resolution: Resolution of the reference grid.

    Returns:
        Metric transform of shape (3, 3).

    Examples:
        >>> T = pixel_to_metric(np.eye(3), 0.05, 0.05)
        >>> np.allclose(T, np.eye(3))
        True
    """
    T_pix = np.asarray(T_pix, dtype=np.float64)
    if T_pix.shape != (3, 3):
        raise ValueError(f"T_pix must have shape (3, 3), got {T_pix.shape}")
    if resolution <= 0 or reference_resolution <= 0:
        raise ValueError(
            f"resolutions must be positive, got {resolution} and {reference_resolution}"
        )

    S_ref = np.diag([reference_resolution, reference_resolution, 1.0])
    S_inv = np.diag([1.0 / resolution, 1.0 / resolution, 1.0])
    H = np.array([[1.0, 0.0, 0.5], [0.0, 1.0, 0.5], [0.0, 0.0, 1.0]])
    H_inv = np.array([[1.0, 0.0, -0.5], [0.0, 1.0, -0.5], [0.0, 0.0, 1.0]])

    T = S_ref @ H @ T_pix @ H_inv @ S_inv
    T[2, :] = [0.0, 0.0, 1.0]
    return T
