"""Shared fixtures: synthetic occupancy grids for merging tests."""

import numpy as np
import pytest

from gridmerge.merging.types import FREE, OCCUPIED, UNKNOWN, OccupancyGrid


def make_world(size: int = 240, seed: int = 7) -> np.ndarray:
    """Build an office-like map: outer walls, rooms with doors, clutter.

    Returns:
        int8 cells of shape (size, size), all known (FREE or OCCUPIED).
    """
    rng = np.random.default_rng(seed)
    cells = np.full((size, size), FREE, dtype=np.int8)

    cells[:2, :] = OCCUPIED
    cells[-2:, :] = OCCUPIED
    cells[:, :2] = OCCUPIED
    cells[:, -2:] = OCCUPIED

    # Interior walls at irregular spacing, each with one door gap
    for pos in (37, 83, 121, 168, 205):
        if pos >= size - 4:
            continue
        cells[pos:pos + 2, :] = OCCUPIED
        gap = int(rng.integers(10, size - 20))
        cells[pos:pos + 2, gap:gap + int(rng.integers(6, 12))] = FREE
    for pos in (51, 109, 146, 193):
        if pos >= size - 4:
            continue
        cells[:, pos:pos + 2] = OCCUPIED
        gap = int(rng.integers(10, size - 20))
        cells[gap:gap + int(rng.integers(6, 12)), pos:pos + 2] = FREE

    # Furniture: rectangles of varied size
    for _ in range(60):
        h, w = rng.integers(2, 9, size=2)
        r, c = rng.integers(4, size - 12, size=2)
        cells[r:r + h, c:c + w] = OCCUPIED

    # Clutter points
    for _ in range(300):
        r, c = rng.integers(3, size - 3, size=2)
        cells[r, c] = OCCUPIED

    return cells


@pytest.fixture
def world() -> np.ndarray:
    """A 240 x 240 synthetic office map."""
    return make_world()


@pytest.fixture
def small_grid() -> OccupancyGrid:
    """A 6 x 4 grid holding every cell state."""
    rng = np.random.default_rng(3)
    cells = rng.choice([UNKNOWN, FREE, 30, OCCUPIED], size=(4, 6)).astype(np.int8)
    return OccupancyGrid.from_array(cells, resolution=0.05)


@pytest.fixture
def office_grid(world) -> OccupancyGrid:
    """A 160 x 150 crop of the synthetic map with an unknown margin."""
    cells = np.full((160, 150), UNKNOWN, dtype=np.int8)
    cells[5:155, 5:145] = world[5:155, 5:145]
    return OccupancyGrid.from_array(cells, resolution=0.05)
