"""Pairwise alignment estimation for occupancy grid rasters.

The merging pipeline delegates the search for correspondences between
grids to an AlignmentEstimator. An estimator receives two or more rasters
(see ``raster``) and returns, for each raster, a 3x3 placement in pixel
coordinates mapping it into the pixel frame of a common reference raster,
or None when that raster could not be connected to the others.

FeatureAlignmentEstimator is the default implementation:
    1. ORB keypoints and descriptors per raster.
    2. Brute-force Hamming kNN matching with Lowe's ratio test.
    3. Per pair, a partial-affine (rotation + uniform scale + translation)
       RANSAC fit; pair confidence = inliers / (8 + 0.3 * matches).
    4. Pairs below the configured confidence are discarded; the largest
       connected component of the remaining match graph is kept.
    5. The most connected raster of that component is the reference; the
       other placements are chained along the maximum-confidence spanning
       tree.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import (
    breadth_first_order,
    connected_components,
    minimum_spanning_tree,
)

from gridmerge.config import EstimatorConfig

from .errors import EstimationFailedError
from .se2 import matrix_scale
from .types import Raster, Transform

logger = logging.getLogger(__name__)


class AlignmentEstimator(ABC):
    """Strategy interface for computing placements of rasters."""

    @abstractmethod
    def align(
        self, rasters: Sequence[Raster]
    ) -> Optional[List[Optional[Transform]]]:
        """
        Place rasters relative to each other.

        Args:
            rasters: Two or more uint8 rasters, shape (height, width) each.

        Returns:
            One entry per raster: a 3x3 pixel-space placement into the
            reference raster's frame (the reference itself gets identity),
            or None for rasters that could not be connected. Returns None
            overall when estimation failed.

        Raises:
            EstimationFailedError: May be raised instead of returning None;
                the pipeline treats both the same way.
        """


class FeatureAlignmentEstimator(AlignmentEstimator):
    """ORB feature matching with largest-component placement.

    Attributes:
        config: Estimator parameters.

    Example:
        >>> estimator = FeatureAlignmentEstimator(EstimatorConfig(confidence=0.5))
        >>> placements = estimator.align([raster_a, raster_b])  # doctest: +SKIP
    """

    def __init__(self, config: Optional[EstimatorConfig] = None):
        self.config = config if config is not None else EstimatorConfig()

    def align(
        self, rasters: Sequence[Raster]
    ) -> Optional[List[Optional[Transform]]]:
        if len(rasters) < 2:
            raise ValueError(f"align needs at least 2 rasters, got {len(rasters)}")

        try:
            return self._align(rasters)
        except EstimationFailedError as e:
            logger.warning("alignment estimation failed: %s", e)
            return None

    def _align(self, rasters: Sequence[np.ndarray]) -> List[Optional[np.ndarray]]:
        n = len(rasters)
        features = [self._detect(i, raster) for i, raster in enumerate(rasters)]
        pairs = self._match_pairs(features)

        component, labels = self._largest_component(n, pairs)
        placements: List[Optional[np.ndarray]] = [None] * n

        if len(component) == 1:
            # No pair could be connected: first raster becomes the frame
            logger.info("no raster pair reached confidence %.2f", self.config.confidence)
            placements[0] = np.eye(3)
            return placements

        ref = self._reference(component, pairs)
        logger.debug("reference raster %d, component %s", ref, component)

        tree = self._spanning_tree(n, pairs, labels, labels[ref])
        order, predecessors = breadth_first_order(
            tree, ref, directed=False, return_predecessors=True
        )

        placements[ref] = np.eye(3)
        for node in order[1:]:
            parent = predecessors[node]
            T = placements[parent] @ self._relative(pairs, node, parent)
            if not np.all(np.isfinite(T)):
                raise EstimationFailedError(f"degenerate placement for raster {node}")
            placements[node] = T

        unplaced = [i for i in range(n) if placements[i] is None]
        if unplaced:
            logger.warning("rasters %s could not be connected to the others", unplaced)
        return placements

    def _detect(
        self, index: int, raster: np.ndarray
    ) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """Detect ORB keypoints; returns (points (N, 2) float32, descriptors)."""
        orb = cv2.ORB_create(nfeatures=self.config.n_features)
        try:
            keypoints, descriptors = orb.detectAndCompute(np.ascontiguousarray(raster), None)
        except cv2.error as e:
            # Rasters one cell thick cannot build ORB's image pyramid
            logger.warning("raster %d %s: no features: %s", index, raster.shape, e)
            return np.empty((0, 2), dtype=np.float32), None
        points = np.array([kp.pt for kp in keypoints], dtype=np.float32).reshape(-1, 2)
        logger.debug("raster %d: %d features", index, len(points))
        return points, descriptors

    def _match_pairs(
        self, features: List[Tuple[np.ndarray, Optional[np.ndarray]]]
    ) -> Dict[Tuple[int, int], Tuple[float, np.ndarray]]:
        """Fit every raster pair; returns {(i, j): (confidence, T_i_to_j)}, i < j."""
        matcher = cv2.BFMatcher(cv2.NORM_HAMMING)
        pairs = {}

        for i in range(len(features)):
            for j in range(i + 1, len(features)):
                pts_i, des_i = features[i]
                pts_j, des_j = features[j]
                if des_i is None or des_j is None or len(des_i) < 2 or len(des_j) < 2:
                    continue

                try:
                    fit = self._fit_pair(matcher, pts_i, des_i, pts_j, des_j)
                except cv2.error as e:
                    logger.warning("pair (%d, %d) skipped: %s", i, j, e)
                    continue
                if fit is None:
                    continue

                confidence, T = fit
                logger.debug("pair (%d, %d): confidence %.3f", i, j, confidence)
                if confidence >= self.config.confidence and confidence > 0:
                    pairs[(i, j)] = (confidence, T)

        return pairs

    def _fit_pair(
        self,
        matcher: "cv2.BFMatcher",
        pts_i: np.ndarray,
        des_i: np.ndarray,
        pts_j: np.ndarray,
        des_j: np.ndarray,
    ) -> Optional[Tuple[float, np.ndarray]]:
        knn = matcher.knnMatch(des_i, des_j, k=2)
        good = [
            m[0] for m in knn
            if len(m) == 2 and m[0].distance < self.config.ratio * m[1].distance
        ]
        if len(good) < self.config.min_matches:
            return None

        src = pts_i[[m.queryIdx for m in good]]
        dst = pts_j[[m.trainIdx for m in good]]
        M, inliers = cv2.estimateAffinePartial2D(
            src,
            dst,
            method=cv2.RANSAC,
            ransacReprojThreshold=self.config.ransac_threshold,
        )
        if M is None or inliers is None:
            return None

        T = np.vstack([M.astype(np.float64), [0.0, 0.0, 1.0]])
        if self.config.rigid:
            scale = matrix_scale(T)
            if scale == 0.0:
                return None
            T[:2, :2] /= scale

        n_inliers = int(np.count_nonzero(inliers))
        confidence = n_inliers / (8.0 + 0.3 * len(good))
        return confidence, T

    @staticmethod
    def _largest_component(
        n: int, pairs: Dict[Tuple[int, int], Tuple[float, np.ndarray]]
    ) -> Tuple[List[int], np.ndarray]:
        rows = [i for i, _ in pairs]
        cols = [j for _, j in pairs]
        adjacency = csr_matrix((np.ones(len(pairs)), (rows, cols)), shape=(n, n))
        _, labels = connected_components(adjacency, directed=False)

        # argmax keeps the lowest label on ties, i.e. the component
        # holding the lowest raster index
        largest = int(np.argmax(np.bincount(labels)))
        component = [int(i) for i in np.flatnonzero(labels == largest)]
        return component, labels

    @staticmethod
    def _reference(
        component: List[int], pairs: Dict[Tuple[int, int], Tuple[float, np.ndarray]]
    ) -> int:
        degree = {i: 0 for i in component}
        for i, j in pairs:
            if i in degree:
                degree[i] += 1
                degree[j] += 1
        return max(component, key=lambda i: (degree[i], -i))

    @staticmethod
    def _spanning_tree(
        n: int,
        pairs: Dict[Tuple[int, int], Tuple[float, np.ndarray]],
        labels: np.ndarray,
        label: int,
    ) -> csr_matrix:
        """Maximum-confidence spanning tree of one component."""
        edges = [(i, j, conf) for (i, j), (conf, _) in pairs.items() if labels[i] == label]
        rows = [i for i, _, _ in edges]
        cols = [j for _, j, _ in edges]
        weights = [1.0 / conf for _, _, conf in edges]
        graph = csr_matrix((weights, (rows, cols)), shape=(n, n))
        return minimum_spanning_tree(graph)

    @staticmethod
    def _relative(
        pairs: Dict[Tuple[int, int], Tuple[float, np.ndarray]], node: int, parent: int
    ) -> np.ndarray:
        """Transform from node's pixel frame to parent's pixel frame."""
        if (node, parent) in pairs:
            return pairs[(node, parent)][1]
        T = pairs[(parent, node)][1]
        try:
            return np.linalg.inv(T)
        except np.linalg.LinAlgError as e:
            raise EstimationFailedError(
                f"cannot invert placement between rasters {parent} and {node}"
            ) from e
