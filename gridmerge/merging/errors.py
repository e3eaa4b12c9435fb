"""Exceptions raised by the map merging pipeline."""


class GridMergeError(Exception):
    """Base class for map merging errors."""


class InvalidPoseError(GridMergeError, ValueError):
    """A supplied pose is not a planar (yaw-only, z = 0) placement."""

    def __init__(self, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(f"pose {index} is not planar: {reason}")


class ArityMismatchError(GridMergeError, ValueError):
    """The number of supplied transforms differs from the fed grid count."""

    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(f"expected {expected} transforms (one per fed grid), got {got}")


class EstimationFailedError(GridMergeError):
    """The alignment estimator could not place the rasters."""
