"""Unit tests for gridmerge.merging.compositor module.

Covers canvas bounds and resolution, the signed-maximum merge rule,
gap-free coverage of rotated and magnified grids, and the merged origin.
"""

import numpy as np
import pytest

from gridmerge.merging import (
    FREE,
    OCCUPIED,
    UNKNOWN,
    GridCompositor,
    OccupancyGrid,
    Pose2,
    se2_to_matrix,
)


def translation(x: float, y: float) -> np.ndarray:
    return se2_to_matrix(np.array([x, y, 0.0]))


def filled(value: int, height: int, width: int, resolution: float = 0.05) -> OccupancyGrid:
    return OccupancyGrid.from_array(np.full((height, width), value), resolution=resolution)


class TestSingleGrid:
    """A single grid with the identity transform."""

    def test_byte_identical(self, small_grid):
        merged = GridCompositor().compose([small_grid], [np.eye(3)])
        assert merged.width == small_grid.width
        assert merged.height == small_grid.height
        assert merged.resolution == small_grid.resolution
        assert merged.data.tobytes() == small_grid.data.tobytes()

    def test_office_grid_byte_identical(self, office_grid):
        merged = GridCompositor(rows_per_chunk=7).compose([office_grid], [np.eye(3)])
        assert merged.data.tobytes() == office_grid.data.tobytes()

    def test_origin_kept(self):
        grid = OccupancyGrid.from_array(
            np.zeros((3, 3)), resolution=0.1, origin=Pose2(x=-4.0, y=2.5, yaw=0.3)
        )
        merged = GridCompositor().compose([grid], [np.eye(3)])
        assert merged.origin.x == pytest.approx(-4.0)
        assert merged.origin.y == pytest.approx(2.5)
        assert merged.origin.yaw == pytest.approx(0.3)


class TestTwoGrids:
    """Overlapping grids placed by translations and rotations."""

    def test_translation_union_bounds(self):
        a = filled(FREE, 10, 10)
        b = filled(OCCUPIED, 10, 10)
        merged = GridCompositor().compose([a, b], [np.eye(3), translation(0.25, 0.25)])

        assert (merged.width, merged.height) == (15, 15)
        cells = merged.as_array()
        np.testing.assert_array_equal(cells[5:15, 5:15], OCCUPIED)
        np.testing.assert_array_equal(cells[0:5, 0:10], FREE)
        np.testing.assert_array_equal(cells[5:10, 0:5], FREE)
        np.testing.assert_array_equal(cells[0:5, 10:15], UNKNOWN)
        np.testing.assert_array_equal(cells[10:15, 0:5], UNKNOWN)

    def test_negative_offset_moves_origin(self):
        a = OccupancyGrid.from_array(
            np.zeros((10, 10)), resolution=0.05, origin=Pose2(x=1.0, y=2.0, yaw=0.0)
        )
        b = filled(OCCUPIED, 10, 10)
        merged = GridCompositor().compose([a, b], [np.eye(3), translation(-0.25, -0.25)])

        assert merged.origin.x == pytest.approx(0.75)
        assert merged.origin.y == pytest.approx(1.75)
        assert merged.as_array()[0, 0] == OCCUPIED
        assert merged.as_array()[14, 14] == FREE

    def test_quarter_turn(self):
        a = filled(FREE, 10, 10)
        b = filled(OCCUPIED, 10, 20)
        T = se2_to_matrix(np.array([0.0, 0.0, np.pi / 2]))
        merged = GridCompositor().compose([a, b], [np.eye(3), T])

        assert (merged.width, merged.height) == (20, 20)
        cells = merged.as_array()
        np.testing.assert_array_equal(cells[:, :10], OCCUPIED)
        np.testing.assert_array_equal(cells[:10, 10:], FREE)
        np.testing.assert_array_equal(cells[10:, 10:], UNKNOWN)

    def test_arbitrary_rotation_has_no_holes(self):
        a = filled(FREE, 4, 4)
        b = filled(OCCUPIED, 30, 40)
        T = se2_to_matrix(np.array([0.6, 0.1, np.deg2rad(30.0)]))
        merged = GridCompositor().compose([a, b], [np.eye(3), T])

        # Canvas cells whose centre lies at least one cell inside b
        cells = merged.as_array()
        res = merged.resolution
        lower = np.array([merged.origin.x, merged.origin.y])
        rows, cols = np.mgrid[0:merged.height, 0:merged.width]
        centres = np.column_stack([(cols.ravel() + 0.5) * res, (rows.ravel() + 0.5) * res]) + lower
        local = (np.linalg.inv(T) @ np.column_stack([centres, np.ones(len(centres))]).T).T
        inside = (
            (local[:, 0] > res) & (local[:, 0] < 40 * 0.05 - res)
            & (local[:, 1] > res) & (local[:, 1] < 30 * 0.05 - res)
        )
        assert inside.sum() > 0
        assert np.all(cells.ravel()[inside] == OCCUPIED)

    def test_values_in_range(self, office_grid, small_grid):
        T = se2_to_matrix(np.array([1.3, -0.7, 2.2]))
        merged = GridCompositor().compose([office_grid, small_grid], [np.eye(3), T])
        assert merged.data.dtype == np.int8
        assert merged.data.min() >= UNKNOWN
        assert merged.data.max() <= OCCUPIED
        assert merged.data.size == merged.width * merged.height


class TestMergeRule:
    """Signed maximum: occupied over free over unknown."""

    def test_occupied_beats_free(self):
        merged = GridCompositor().compose(
            [filled(FREE, 3, 3), filled(OCCUPIED, 3, 3)], [np.eye(3), np.eye(3)]
        )
        np.testing.assert_array_equal(merged.data, OCCUPIED)

    def test_free_beats_unknown(self):
        merged = GridCompositor().compose(
            [filled(FREE, 3, 3), filled(UNKNOWN, 3, 3)], [np.eye(3), np.eye(3)]
        )
        np.testing.assert_array_equal(merged.data, FREE)

    def test_higher_confidence_wins(self):
        merged = GridCompositor().compose(
            [filled(70, 3, 3), filled(40, 3, 3)], [np.eye(3), np.eye(3)]
        )
        np.testing.assert_array_equal(merged.data, 70)

    def test_order_independent(self, office_grid, small_grid):
        T = se2_to_matrix(np.array([0.4, 0.9, -0.8]))
        compositor = GridCompositor()
        ab = compositor.compose([office_grid, small_grid], [np.eye(3), T])
        ba = compositor.compose([small_grid, office_grid], [T, np.eye(3)])
        assert (ab.width, ab.height) == (ba.width, ba.height)
        np.testing.assert_array_equal(ab.data, ba.data)
        assert ab.origin.to_array() == pytest.approx(ba.origin.to_array())


class TestResolution:
    """Grids at different resolutions."""

    def test_finest_resolution_used(self):
        fine = filled(FREE, 10, 10, resolution=0.05)
        coarse = OccupancyGrid.from_array(
            np.arange(25).reshape(5, 5) + 1, resolution=0.1
        )
        merged = GridCompositor().compose([fine, coarse], [np.eye(3), translation(0.5, 0.0)])

        assert merged.resolution == 0.05
        assert (merged.width, merged.height) == (20, 10)
        expected = np.repeat(np.repeat(coarse.as_array(), 2, axis=0), 2, axis=1)
        np.testing.assert_array_equal(merged.as_array()[:, 10:], expected)
        np.testing.assert_array_equal(merged.as_array()[:, :10], FREE)

    def test_coarse_only(self):
        coarse = filled(OCCUPIED, 4, 4, resolution=0.2)
        merged = GridCompositor().compose([coarse], [np.eye(3)])
        assert merged.resolution == 0.2
        assert (merged.width, merged.height) == (4, 4)


class TestValidation:
    """Input validation."""

    def test_empty_input(self):
        with pytest.raises(ValueError):
            GridCompositor().compose([], [])

    def test_length_mismatch(self, small_grid):
        with pytest.raises(ValueError):
            GridCompositor().compose([small_grid], [np.eye(3), np.eye(3)])

    def test_empty_grid(self):
        empty = OccupancyGrid(width=0, height=0, resolution=0.05, data=np.array([], dtype=np.int8))
        with pytest.raises(ValueError):
            GridCompositor().compose([empty], [np.eye(3)])

    def test_malformed_transform(self, small_grid):
        with pytest.raises(ValueError):
            GridCompositor().compose([small_grid], [np.eye(2)])
        bad = np.eye(3)
        bad[1, 2] = np.inf
        with pytest.raises(ValueError):
            GridCompositor().compose([small_grid], [bad])

    def test_rows_per_chunk_positive(self):
        with pytest.raises(ValueError):
            GridCompositor(rows_per_chunk=0)
