"""Planar rotation helpers for the map merging pipeline.

This module provides the conversions between yaw angles, scalar-last
quaternions and 2x2 rotation blocks used when translating internal
planar transforms to external rigid poses and back.
"""

from gridmerge.coords.rotations import (
    is_planar_quat,
    quat_canonical,
    quat_normalize,
    quat_to_yaw,
    rotation_block_to_yaw,
    yaw_to_quat,
)

__all__ = [
    "yaw_to_quat",
    "quat_to_yaw",
    "quat_normalize",
    "quat_canonical",
    "is_planar_quat",
    "rotation_block_to_yaw",
]
