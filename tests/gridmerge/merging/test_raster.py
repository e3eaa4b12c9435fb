"""Unit tests for gridmerge.merging.raster module."""

import unittest

import numpy as np

from gridmerge.merging import (
    UNKNOWN_INTENSITY,
    OccupancyGrid,
    build_rasters,
    grid_to_raster,
)


class TestGridToRaster(unittest.TestCase):
    """Test suite for grid_to_raster."""

    def test_shape_and_dtype(self):
        grid = OccupancyGrid(width=3, height=2, resolution=0.1, data=np.zeros(6, dtype=np.int8))
        raster = grid_to_raster(grid)
        self.assertEqual(raster.shape, (2, 3))
        self.assertEqual(raster.dtype, np.uint8)

    def test_row_major_layout(self):
        data = np.array([0, 10, 20, 30, 40, 50], dtype=np.int8)
        grid = OccupancyGrid(width=3, height=2, resolution=0.1, data=data)
        raster = grid_to_raster(grid)
        self.assertEqual(raster[1, 0], 30)
        self.assertEqual(raster[0, 2], 20)

    def test_cell_values(self):
        grid = OccupancyGrid.from_array(np.array([[-1, 0, 1, 50, 100]]), resolution=0.05)
        raster = grid_to_raster(grid)
        np.testing.assert_array_equal(raster, [[UNKNOWN_INTENSITY, 0, 1, 50, 100]])

    def test_unknown_sentinel_outside_occupancy_range(self):
        self.assertGreater(UNKNOWN_INTENSITY, 100)

    def test_grid_unchanged(self):
        grid = OccupancyGrid.from_array(np.array([[-1, 0], [100, -1]]), resolution=0.05)
        before = grid.data.copy()
        grid_to_raster(grid)
        np.testing.assert_array_equal(grid.data, before)


class TestBuildRasters(unittest.TestCase):
    """Test suite for build_rasters."""

    def test_slots_preserved(self):
        grid = OccupancyGrid.from_array(np.zeros((2, 2)), resolution=0.05)
        empty = OccupancyGrid(width=0, height=0, resolution=0.05, data=np.array([], dtype=np.int8))
        rasters = build_rasters([None, grid, empty])
        self.assertEqual(len(rasters), 3)
        self.assertIsNone(rasters[0])
        self.assertEqual(rasters[1].shape, (2, 2))
        self.assertIsNone(rasters[2])

    def test_empty_input(self):
        self.assertEqual(build_rasters([]), [])


if __name__ == "__main__":
    unittest.main()
