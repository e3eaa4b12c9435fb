"""Raster adapter: occupancy grids as dense 8-bit images.

Alignment estimators operate on images. This module converts a grid's
row-major cell buffer into a (height, width) uint8 raster without any
resampling:

    - FREE (0) and occupancy confidences 1..100 keep their value, so
      intensity grows monotonically with occupancy.
    - UNKNOWN (-1) maps to UNKNOWN_INTENSITY (255), a value outside the
      occupancy range. This is the two's-complement reading of -1, the
      same bytes the grid already holds.
"""

from typing import List, Optional, Sequence

import numpy as np

from .types import UNKNOWN, OccupancyGrid, Raster


UNKNOWN_INTENSITY = 255


def grid_to_raster(grid: OccupancyGrid) -> Raster:
    """
    Convert an occupancy grid to a uint8 raster.

    Args:
        grid: Source grid.

    Returns:
        Array of shape (grid.height, grid.width), dtype uint8. Row r and
        column c hold cell data[r * width + c].

    Examples:
        >>> grid = OccupancyGrid(width=3, height=1, resolution=0.1,
        ...                      data=np.array([-1, 0, 100], dtype=np.int8))
        >>> grid_to_raster(grid)
        array([[255,   0, 100]], dtype=uint8)
    """
    cells = grid.as_array()
    raster = cells.astype(np.uint8)
    raster[cells == UNKNOWN] = UNKNOWN_INTENSITY
    return raster


def build_rasters(grids: Sequence[Optional[OccupancyGrid]]) -> List[Optional[Raster]]:
    """
    Build one raster per grid slot.

    Missing or empty grids yield None so indices stay aligned with the
    fed grids.
    """
    return [
        None if grid is None or grid.is_empty else grid_to_raster(grid)
        for grid in grids
    ]
