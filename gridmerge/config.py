"""Configuration for the map merging pipeline.

Parameters are grouped in frozen dataclasses validated on construction.
A configuration can be built in code, from a plain dictionary, or from a
JSON file:

    >>> cfg = MergeConfig.from_dict({"estimator": {"confidence": 0.5}})
    >>> cfg.estimator.confidence
    0.5
"""

import json
import warnings
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Union


@dataclass(frozen=True)
class EstimatorConfig:
    """Parameters of the feature-based alignment estimator.

    Attributes:
        n_features: Maximum number of ORB keypoints per raster.
        ratio: Lowe ratio-test threshold for descriptor matches.
        ransac_threshold: RANSAC reprojection threshold (pixels).
        confidence: Minimum pair confidence, inliers / (8 + 0.3 * matches),
                    for two rasters to be considered connected.
        min_matches: Minimum ratio-test survivors to attempt a pair fit.
        rigid: Lock placements to rotation + translation (drop scale).
    """

    n_features: int = 1500
    ratio: float = 0.75
    ransac_threshold: float = 3.0
    confidence: float = 1.0
    min_matches: int = 8
    rigid: bool = False

    def __post_init__(self) -> None:
        if self.n_features <= 0:
            raise ValueError(f"n_features must be positive, got {self.n_features}")
        if not (0.0 < self.ratio <= 1.0):
            raise ValueError(f"ratio must be in (0, 1], got {self.ratio}")
        if self.ransac_threshold <= 0:
            raise ValueError(
                f"ransac_threshold must be positive, got {self.ransac_threshold}"
            )
        if self.confidence < 0:
            raise ValueError(f"confidence must be non-negative, got {self.confidence}")
        if self.min_matches < 3:
            raise ValueError(f"min_matches must be at least 3, got {self.min_matches}")


@dataclass(frozen=True)
class MergeConfig:
    """Parameters of the merging pipeline.

    Attributes:
        planar_tolerance: Largest |z|, |qx|, |qy| accepted in poses given to
                          set_transforms before they are rejected as
                          non-planar.
        estimator: Settings of the default alignment estimator.
    """

    planar_tolerance: float = 1e-9
    estimator: EstimatorConfig = field(default_factory=EstimatorConfig)

    def __post_init__(self) -> None:
        if self.planar_tolerance < 0:
            raise ValueError(
                f"planar_tolerance must be non-negative, got {self.planar_tolerance}"
            )
        if self.planar_tolerance > 1e-3:
            warnings.warn(
                f"planar_tolerance of {self.planar_tolerance} is unusually large; "
                f"non-planar poses may be accepted and silently flattened.",
                UserWarning,
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MergeConfig":
        """Build a configuration from a (possibly nested) dictionary.

        Raises:
            ValueError: If the dictionary has keys that are not parameters.
        """
        data = dict(data)
        estimator = data.pop("estimator", {})
        _check_keys(cls, data, exclude=("estimator",))
        if isinstance(estimator, dict):
            _check_keys(EstimatorConfig, estimator)
            estimator = EstimatorConfig(**estimator)
        return cls(estimator=estimator, **data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "planar_tolerance": self.planar_tolerance,
            "estimator": {f.name: getattr(self.estimator, f.name) for f in fields(self.estimator)},
        }


def load_config(path: Union[str, Path]) -> MergeConfig:
    """Load a MergeConfig from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or has unknown keys.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config root must be an object, got {type(data).__name__}")
    return MergeConfig.from_dict(data)


def _check_keys(cls: type, data: Dict[str, Any], exclude: tuple = ()) -> None:
    known = {f.name for f in fields(cls)} - set(exclude)
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} parameters: {unknown}")
