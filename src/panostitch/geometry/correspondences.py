"""
Point correspondences between a base image and a target image.

Correspondences are produced by an external feature matcher; this module
only holds and validates them.  Points are stored as N x 2 float64 arrays
of (x, y) pixel coordinates (x = column, y = row, origin top-left).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np

Point = Tuple[float, float]


def _as_points(points) -> np.ndarray:
    array = np.asarray(points, dtype=np.float64)
    if array.ndim == 1 and array.size == 0:
        array = array.reshape(0, 2)
    if array.ndim != 2 or array.shape[1] != 2:
        raise ValueError(f"Points must have shape (N, 2), got {array.shape}")
    return array


@dataclass(frozen=True, eq=False)
class CorrespondenceSet:
    """Two index-aligned point arrays observing the same scene points.

    ``base_points[i]`` and ``target_points[i]`` are the same physical point
    seen in the base image and the target image.  No deduplication is done.
    """

    base_points: np.ndarray
    target_points: np.ndarray

    def __post_init__(self) -> None:
        base = _as_points(self.base_points)
        target = _as_points(self.target_points)
        if base.shape != target.shape:
            raise ValueError(
                f"Point arrays must have the same shape: {base.shape} != {target.shape}"
            )
        # frozen dataclass: bypass __setattr__ to store the converted arrays
        object.__setattr__(self, "base_points", base)
        object.__setattr__(self, "target_points", target)

    @classmethod
    def from_pairs(cls, base_points: Iterable[Point],
                   target_points: Iterable[Point]) -> "CorrespondenceSet":
        return cls(np.asarray(list(base_points), dtype=np.float64),
                   np.asarray(list(target_points), dtype=np.float64))

    @property
    def count(self) -> int:
        return self.base_points.shape[0]

    def __len__(self) -> int:
        return self.count

    def subset(self, indices: Sequence[int]) -> "CorrespondenceSet":
        idx = np.asarray(indices, dtype=int)
        return CorrespondenceSet(self.base_points[idx], self.target_points[idx])
