"""Occupancy grids as greyscale map images.

Reads and writes the map-server image convention used by most 2D SLAM
tools: dark pixels are occupied, light pixels are free, mid-grey is
unknown, and image row 0 is the top (max y) edge of the map.

Loading (``negate=False``):
    p = (255 - v) / 255
    p > occupied_thresh → OCCUPIED (100)
    p < free_thresh     → FREE (0)
    otherwise           → UNKNOWN (-1)

Saving:
    FREE → 254, UNKNOWN → 205, confidence c in 1..100 → round(254 * (1 - c/100)),
    capped at OCCUPIED_GREY_MAX (204) so no occupied cell is written
    lighter than unknown.

The image round trip is lossy: confidences keep only their thresholded
class on reload, and confidences too low to pass occupied_thresh (below
about 65 with the default thresholds) come back as UNKNOWN.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from gridmerge.merging.types import FREE, OCCUPIED, UNKNOWN, OccupancyGrid, Pose2

logger = logging.getLogger(__name__)

UNKNOWN_GREY = 205
FREE_GREY = 254
OCCUPIED_GREY_MAX = UNKNOWN_GREY - 1


def load_pgm_grid(
    path: Union[str, Path],
    resolution: float,
    origin: Optional[Pose2] = None,
    negate: bool = False,
    occupied_thresh: float = 0.65,
    free_thresh: float = 0.196,
) -> OccupancyGrid:
    """Load a greyscale map image as an occupancy grid.

    Args:
        path: Image file (PGM or any 8-bit format OpenCV reads).
        resolution: Cell edge length (meters per pixel).
        origin: Pose of the lower-left pixel corner; identity when omitted.
        negate: Treat light pixels as occupied instead of dark ones.
        occupied_thresh: Occupancy probability above which a cell is occupied.
        free_thresh: Occupancy probability below which a cell is free.

    Returns:
        Grid with one cell per pixel, row 0 at the bottom of the image.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file cannot be decoded or thresholds are invalid.
    """
    if not (0.0 <= free_thresh < occupied_thresh <= 1.0):
        raise ValueError(
            f"thresholds must satisfy 0 <= free < occupied <= 1, "
            f"got free={free_thresh}, occupied={occupied_thresh}"
        )

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Map image not found: {path}")

    image = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if image is None:
        raise ValueError(f"Cannot decode map image: {path}")

    pixels = np.flipud(image).astype(np.float64)
    p = pixels / 255.0 if negate else (255.0 - pixels) / 255.0

    cells = np.full(pixels.shape, UNKNOWN, dtype=np.int8)
    cells[p > occupied_thresh] = OCCUPIED
    cells[p < free_thresh] = FREE

    logger.debug("loaded %s: %dx%d", path, cells.shape[1], cells.shape[0])
    return OccupancyGrid.from_array(cells, resolution, origin)


def save_pgm_grid(path: Union[str, Path], grid: OccupancyGrid) -> None:
    """Save an occupancy grid as a greyscale map image.

    Raises:
        ValueError: If the grid has no cells.
        OSError: If the image cannot be written.
    """
    if grid.is_empty:
        raise ValueError("Cannot save an empty grid")

    cells = grid.as_array().astype(np.int16)
    image = np.full(cells.shape, UNKNOWN_GREY, dtype=np.uint8)
    image[cells == FREE] = FREE_GREY
    occupied = cells > FREE
    grey = np.rint(FREE_GREY * (1.0 - cells[occupied] / OCCUPIED))
    image[occupied] = np.minimum(grey, OCCUPIED_GREY_MAX).astype(np.uint8)

    path = Path(path)
    if not cv2.imwrite(str(path), np.ascontiguousarray(np.flipud(image))):
        raise OSError(f"Cannot write map image: {path}")
    logger.debug("saved %s: %dx%d", path, grid.width, grid.height)
