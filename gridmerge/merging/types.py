"""Type definitions and data structures for occupancy grid merging.

This module defines the value types exchanged by the merging pipeline:
input and merged occupancy grids, the planar origin pose of a grid, and
the external rigid pose representation (translation + quaternion) used
to read and write the alignment of each grid.

Key types:
    - Pose2: planar pose [x, y, yaw] (grid origins)
    - Vector3, Quaternion, Pose: external rigid-transform representation
    - OccupancyGrid: row-major tri-state occupancy grid

Cell convention (robotics occupancy-grid standard):
    - UNKNOWN (-1): no information
    - FREE (0): observed free
    - 1..OCCUPIED (100): occupied with the given confidence
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np


UNKNOWN = -1
FREE = 0
OCCUPIED = 100

Transform = np.ndarray  # Shape (3, 3), planar homogeneous matrix (float64)
Raster = np.ndarray  # Shape (height, width), uint8 image derived from a grid


@dataclass
class Pose2:
    """
    Planar pose of a grid origin in its map frame.

    The origin is the outer corner of cell (0, 0); the grid's columns run
    along the pose's heading and its rows along the heading turned by +90°.

    Attributes:
        x, y: Corner position (meters).
        yaw: Heading (radians, counter-clockwise).

    Examples:
        >>> Pose2(x=-10.0, y=-10.0, yaw=0.0).to_array()
        array([-10., -10.,   0.])
    """

    x: float
    y: float
    yaw: float

    def __post_init__(self) -> None:
        for name in ("x", "y", "yaw"):
            value = getattr(self, name)
            if not np.isfinite(value):
                raise ValueError(f"origin {name} must be finite, got {value}")

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.yaw], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "Pose2":
        """Build an origin from [x, y, yaw]."""
        x, y, yaw = np.asarray(arr, dtype=np.float64).reshape(3)
        return cls(x=float(x), y=float(y), yaw=float(yaw))

    @classmethod
    def identity(cls) -> "Pose2":
        return cls(0.0, 0.0, 0.0)

    def __repr__(self) -> str:
        return f"Pose2({self.x:.3f}, {self.y:.3f}, {self.yaw:.3f})"


@dataclass(frozen=True)
class Vector3:
    """Translation component of an external pose (meters)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


@dataclass(frozen=True)
class Quaternion:
    """
    Rotation component of an external pose.

    Stored scalar-last, [x, y, z, w]. The default is the identity
    rotation. An all-zero quaternion is not a rotation; the pipeline reads
    it as "this grid has no transform".
    """

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    def to_array(self) -> np.ndarray:
        """Return [x, y, z, w] as a float64 array."""
        return np.array([self.x, self.y, self.z, self.w], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "Quaternion":
        """Create a Quaternion from an array [x, y, z, w]."""
        arr = np.asarray(arr, dtype=np.float64)
        if arr.shape != (4,):
            raise ValueError(f"Array must have shape (4,), got {arr.shape}")
        return cls(x=float(arr[0]), y=float(arr[1]), z=float(arr[2]), w=float(arr[3]))

    def norm(self) -> float:
        return float(np.linalg.norm(self.to_array()))

    def is_null(self) -> bool:
        """True for the all-zero or non-finite quaternion."""
        q = self.to_array()
        return bool(not np.all(np.isfinite(q)) or np.all(q == 0.0))


@dataclass(frozen=True)
class Pose:
    """
    External rigid pose: translation + unit quaternion.

    This is the representation callers use to read and override the
    alignment of each grid. Poses produced by the pipeline always have
    translation.z = 0 and rotation.x = rotation.y = 0 (planar motion).

    Attributes:
        translation: Translation (meters).
        rotation: Rotation quaternion, scalar-last.

    Examples:
        >>> Pose.identity()
        Pose(translation=Vector3(x=0.0, y=0.0, z=0.0), rotation=Quaternion(x=0.0, y=0.0, z=0.0, w=1.0))
    """

    translation: Vector3 = field(default_factory=Vector3)
    rotation: Quaternion = field(default_factory=Quaternion)

    @classmethod
    def identity(cls) -> "Pose":
        """Create the identity pose."""
        return cls(translation=Vector3(), rotation=Quaternion())


@dataclass
class OccupancyGrid:
    """
    Row-major occupancy grid.

    Used both for the grids fed to the pipeline and for the merged grid it
    produces. Cell (row, col) is stored at ``data[row * width + col]``;
    row 0 lies at the grid origin and rows grow along the origin's +y axis.

    Attributes:
        width: Number of columns (cells).
        height: Number of rows (cells).
        resolution: Cell edge length (meters per cell), positive.
        data: Flat int8 buffer of ``width * height`` cells, each UNKNOWN (-1),
              FREE (0) or an occupancy confidence in 1..100.
        origin: Pose of the grid's (0, 0) corner in its map frame.

    Examples:
        >>> grid = OccupancyGrid(width=2, height=1, resolution=0.05,
        ...                      data=np.array([-1, 100], dtype=np.int8))
        >>> grid.as_array().shape
        (1, 2)
    """

    width: int
    height: int
    resolution: float
    data: np.ndarray
    origin: Pose2 = field(default_factory=Pose2.identity)

    def __post_init__(self) -> None:
        """Validate grid dimensions and cell values."""
        if int(self.width) != self.width or self.width < 0:
            raise ValueError(f"width must be a non-negative integer, got {self.width}")
        if int(self.height) != self.height or self.height < 0:
            raise ValueError(f"height must be a non-negative integer, got {self.height}")
        self.width = int(self.width)
        self.height = int(self.height)

        if not np.isfinite(self.resolution) or self.resolution <= 0:
            raise ValueError(f"resolution must be positive, got {self.resolution}")
        self.resolution = float(self.resolution)

        data = np.asarray(self.data)
        if data.ndim != 1:
            data = data.ravel()
        if data.size and (data.min() < UNKNOWN or data.max() > OCCUPIED):
            raise ValueError(
                f"cell values must be in [{UNKNOWN}, {OCCUPIED}], "
                f"got range [{data.min()}, {data.max()}]"
            )
        self.data = data.astype(np.int8, copy=False)

        if self.data.size != self.width * self.height:
            raise ValueError(
                f"data has {self.data.size} cells, expected "
                f"{self.width} * {self.height} = {self.width * self.height}"
            )

    @property
    def is_empty(self) -> bool:
        """True when the grid has no cells."""
        return self.data.size == 0

    def as_array(self) -> np.ndarray:
        """Return the cells as a (height, width) int8 view."""
        return self.data.reshape(self.height, self.width)

    @classmethod
    def from_array(
        cls,
        cells: np.ndarray,
        resolution: float,
        origin: Optional[Pose2] = None,
    ) -> "OccupancyGrid":
        """
        Create a grid from a 2D array of cells, shape (height, width).

        Args:
            cells: Cell values, row 0 at the grid origin.
            resolution: Cell edge length (meters).
            origin: Grid origin pose; identity when omitted.
        """
        cells = np.asarray(cells)
        if cells.ndim != 2:
            raise ValueError(f"cells must be 2D (height, width), got shape {cells.shape}")
        height, width = cells.shape
        return cls(
            width=width,
            height=height,
            resolution=resolution,
            data=cells.astype(np.int8).ravel(),
            origin=origin if origin is not None else Pose2.identity(),
        )

    def __repr__(self) -> str:
        """Readable string representation."""
        return (
            f"OccupancyGrid(width={self.width}, height={self.height}, "
            f"resolution={self.resolution:.4f}, origin={self.origin!r})"
        )
