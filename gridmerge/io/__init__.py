"""Map image loading and saving."""

from gridmerge.io.pgm import load_pgm_grid, save_pgm_grid

__all__ = ["load_pgm_grid", "save_pgm_grid"]
