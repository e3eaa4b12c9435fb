"""Occupancy grid merging.

This module fuses several independently built occupancy grids of the same
area, each in its own local frame, into one globally consistent grid.

Main components:
    - OccupancyGrid, Pose2, Pose, Quaternion, Vector3: Core data structures
    - matrix_to_pose, pose_to_matrix: Internal transform ↔ external pose
    - grid_to_raster: Grid cells as an 8-bit image for alignment
    - AlignmentEstimator, FeatureAlignmentEstimator: Placement strategies
    - GridCompositor: Stitch aligned grids into one canvas
    - MergingPipeline: feed / estimate / get / set / compose orchestration

Example usage:
    >>> from gridmerge.merging import MergingPipeline
    >>> pipeline = MergingPipeline()
    >>> pipeline.feed([grid])  # doctest: +SKIP
    >>> pipeline.estimate_transform()  # doctest: +SKIP
    True
    >>> merged = pipeline.compose_grids()  # doctest: +SKIP
"""

from .compositor import GridCompositor
from .errors import (
    ArityMismatchError,
    EstimationFailedError,
    GridMergeError,
    InvalidPoseError,
)
from .estimation import AlignmentEstimator, FeatureAlignmentEstimator
from .pipeline import MergingPipeline
from .raster import UNKNOWN_INTENSITY, build_rasters, grid_to_raster
from .se2 import (
    apply_matrix,
    is_identity,
    matrix_scale,
    se2_compose,
    se2_from_matrix,
    se2_to_matrix,
    wrap_angle,
)
from .transform import matrix_to_pose, pixel_to_metric, pose_to_matrix
from .types import (
    FREE,
    OCCUPIED,
    UNKNOWN,
    OccupancyGrid,
    Pose,
    Pose2,
    Quaternion,
    Vector3,
)

__all__ = [
    # Core types
    "OccupancyGrid",
    "Pose2",
    "Pose",
    "Quaternion",
    "Vector3",
    "UNKNOWN",
    "FREE",
    "OCCUPIED",
    # Errors
    "GridMergeError",
    "InvalidPoseError",
    "ArityMismatchError",
    "EstimationFailedError",
    # SE(2) operations
    "se2_compose",
    "se2_to_matrix",
    "se2_from_matrix",
    "apply_matrix",
    "matrix_scale",
    "is_identity",
    "wrap_angle",
    # Transform conversion
    "matrix_to_pose",
    "pose_to_matrix",
    "pixel_to_metric",
    # Raster adapter
    "UNKNOWN_INTENSITY",
    "grid_to_raster",
    "build_rasters",
    # Estimation, composition, orchestration
    "AlignmentEstimator",
    "FeatureAlignmentEstimator",
    "GridCompositor",
    "MergingPipeline",
]
