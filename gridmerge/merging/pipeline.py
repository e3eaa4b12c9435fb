"""Merging pipeline: feed grids, estimate alignment, compose one map.

MergingPipeline owns one merging session:

    1. feed(grids): replace the input set and clear any alignment.
    2. estimate_transform(): place the grids relative to each other with
       an AlignmentEstimator (skipped for zero or one usable grid).
    3. get_transforms() / set_transforms(poses): read the alignment as
       external poses, or inject known placements instead of estimating.
    4. compose_grids(): stitch every aligned grid into one merged grid.

Transform store:
    ``_transforms`` is either empty (nothing estimated or set, or the
    estimator failed) or holds exactly one entry per fed grid: a 3x3
    metric transform, or None when that grid has no placement. Tests read
    it directly; it is not part of the public API.

Not thread-safe: serialize calls on one instance, or use one instance per
concurrent session.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from gridmerge.config import MergeConfig

from .compositor import GridCompositor
from .errors import ArityMismatchError, EstimationFailedError
from .estimation import AlignmentEstimator, FeatureAlignmentEstimator
from .raster import build_rasters
from .se2 import is_identity
from .transform import matrix_to_pose, pixel_to_metric, pose_to_matrix
from .types import OccupancyGrid, Pose, Transform

logger = logging.getLogger(__name__)


class MergingPipeline:
    """Batch pipeline merging several occupancy grids into one.

    Attributes:
        config: Pipeline parameters.
        estimator: Alignment strategy used by estimate_transform.
        compositor: Grid compositor used by compose_grids.

    Example:
        >>> pipeline = MergingPipeline()
        >>> pipeline.feed([grid_a, grid_b])  # doctest: +SKIP
        >>> if pipeline.estimate_transform():  # doctest: +SKIP
        ...     merged = pipeline.compose_grids()
    """

    def __init__(
        self,
        config: Optional[MergeConfig] = None,
        estimator: Optional[AlignmentEstimator] = None,
        compositor: Optional[GridCompositor] = None,
    ):
        self.config = config if config is not None else MergeConfig()
        self.estimator = (
            estimator
            if estimator is not None
            else FeatureAlignmentEstimator(self.config.estimator)
        )
        self.compositor = compositor if compositor is not None else GridCompositor()

        self._grids: List[Optional[OccupancyGrid]] = []
        self._transforms: List[Optional[Transform]] = []

    def feed(self, grids: Sequence[Optional[OccupancyGrid]]) -> None:
        """
        Start a new session with the given grids.

        Args:
            grids: Ordered grids. None entries and grids without cells keep
                   their slot but never receive a transform.
        """
        self._grids = list(grids)
        self._transforms = []
        logger.debug("fed %d grids", len(self._grids))

    def estimate_transform(self) -> bool:
        """
        Estimate the placement of every fed grid.

        Returns:
            True on success (including zero and one grid), False when the
            estimator failed; the transform store is then left empty.
        """
        self._transforms = []
        n = len(self._grids)
        if n == 0:
            return True

        rasters = build_rasters(self._grids)
        usable = [i for i, raster in enumerate(rasters) if raster is not None]

        if len(usable) < 2:
            if usable:
                transforms: List[Optional[Transform]] = [None] * n
                transforms[usable[0]] = np.eye(3)
                self._transforms = transforms
            logger.debug("%d usable grid(s), nothing to align", len(usable))
            return True

        try:
            placements = self.estimator.align([rasters[i] for i in usable])
        except EstimationFailedError as e:
            logger.warning("estimator failed to align %d grids: %s", len(usable), e)
            return False
        if placements is None:
            logger.warning("estimator failed to align %d grids", len(usable))
            return False
        if len(placements) != len(usable):
            raise ValueError(
                f"estimator returned {len(placements)} placements for {len(usable)} rasters"
            )

        self._transforms = self._to_metric(usable, placements)
        placed = sum(T is not None for T in self._transforms)
        logger.info("aligned %d of %d grids", placed, n)
        return True

    def _to_metric(
        self, usable: List[int], placements: List[Optional[Transform]]
    ) -> List[Optional[Transform]]:
        placed = [(i, T) for i, T in zip(usable, placements) if T is not None]
        transforms: List[Optional[Transform]] = [None] * len(self._grids)
        if len(placed) < 2:
            # Nothing connected: the first usable grid becomes the frame
            transforms[usable[0]] = np.eye(3)
            return transforms

        ref = next((i for i, T in placed if is_identity(T)), placed[0][0])
        ref_resolution = self._grids[ref].resolution
        for i, T in placed:
            if i == ref and is_identity(T):
                transforms[i] = np.eye(3)
            else:
                transforms[i] = pixel_to_metric(T, self._grids[i].resolution, ref_resolution)
        return transforms

    def get_transforms(self) -> List[Pose]:
        """
        Read the alignment as external poses.

        Returns:
            One pose per fed grid that has a transform, in feed order.
            Grids without a transform are skipped.
        """
        return [matrix_to_pose(T) for T in self._transforms if T is not None]

    def set_transforms(self, poses: Sequence[Optional[Pose]]) -> None:
        """
        Overwrite the alignment with known placements.

        Args:
            poses: One pose per fed grid, in feed order. None, or a pose
                   whose quaternion is all zeros or not finite, marks a
                   grid as having no transform.

        Raises:
            ArityMismatchError: If len(poses) differs from the number of
                fed grids.
            InvalidPoseError: If a pose is not planar.

        The store is only replaced when every pose converts.
        """
        poses = list(poses)
        if len(poses) != len(self._grids):
            raise ArityMismatchError(len(self._grids), len(poses))

        tol = self.config.planar_tolerance
        transforms = [
            None if pose is None else pose_to_matrix(pose, tol=tol, index=i)
            for i, pose in enumerate(poses)
        ]
        self._transforms = transforms

    def compose_grids(self) -> Optional[OccupancyGrid]:
        """
        Compose all aligned grids into one.

        Returns:
            Merged grid, or None when no grid has a transform.
        """
        pairs = [
            (grid, T)
            for grid, T in zip(self._grids, self._transforms)
            if T is not None and grid is not None and not grid.is_empty
        ]
        if not pairs:
            return None

        grids, transforms = zip(*pairs)
        merged = self.compositor.compose(grids, transforms)
        logger.info(
            "composed %d grids into %dx%d at %.4f m",
            len(pairs), merged.width, merged.height, merged.resolution,
        )
        return merged
