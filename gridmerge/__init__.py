"""Occupancy grid map merging.

This package fuses occupancy grids built independently (for example by
several robots exploring the same building) into a single map:
- coords: Planar rotation conversions (yaw, quaternions)
- merging: Grid types, transform conversion, alignment estimation,
  composition and the merging pipeline
- io: Map image loading and saving
"""

__version__ = "0.1.0"
