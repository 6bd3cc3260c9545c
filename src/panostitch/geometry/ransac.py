"""
RANSAC-based robust homography estimation.

Random Sample Consensus (RANSAC) handles outliers in feature matches by
repeatedly drawing minimal subsets, fitting a homography, and counting
geometrically consistent inliers.  The hypothesis with the highest inlier
count is returned.

Randomness comes only from the generator passed in, so a seeded run is
reproducible.
"""

import warnings
from dataclasses import dataclass

import numpy as np

from panostitch.errors import (
    DegenerateInputError,
    InsufficientCorrespondencesError,
    LowConfidenceEstimateWarning,
)
from panostitch.geometry.correspondences import CorrespondenceSet
from panostitch.geometry.homography import compute_homography, reprojection_errors


@dataclass
class RansacResult:
    """Best hypothesis found by :func:`ransac_homography`."""

    H: np.ndarray
    inliers: np.ndarray
    num_inliers: int
    num_matches: int
    iterations: int

    @property
    def inlier_rate(self) -> float:
        return self.num_inliers / self.num_matches if self.num_matches else 0.0


def count_inliers(H: np.ndarray, correspondences: CorrespondenceSet,
                  threshold: float = 10.0) -> np.ndarray:
    """Return the indices of correspondences consistent with homography *H*.

    Each target point is projected through *H* into the base frame.  A
    correspondence is an inlier when the squared reprojection error
    ``||H * t - b||²`` is below *threshold* (pixels squared).

    Parameters
    ----------
    H : np.ndarray
        3 x 3 homography mapping target to base coordinates.
    correspondences : CorrespondenceSet
        Full set of putative matches.
    threshold : float
        Maximum allowed squared reprojection error for an inlier.

    Returns
    -------
    np.ndarray
        Sorted integer indices of inlier correspondences.
    """
    errors = reprojection_errors(H, correspondences.target_points,
                                 correspondences.base_points)
    return np.flatnonzero(errors < threshold)


def draw_sample(rng: np.random.Generator, population: int,
                sample_size: int) -> np.ndarray:
    """Draw *sample_size* distinct indices from ``range(population)``.

    Indices are drawn uniformly and a draw that repeats an index already
    chosen is rejected and redrawn.
    """
    if population < sample_size:
        raise InsufficientCorrespondencesError(population, sample_size)

    chosen = []
    while len(chosen) < sample_size:
        idx = int(rng.integers(population))
        if idx not in chosen:
            chosen.append(idx)
    return np.array(chosen, dtype=int)


def ransac_homography(correspondences: CorrespondenceSet,
                      num_iterations: int = 1000,
                      threshold: float = 10.0,
                      sample_size: int = 4,
                      rng=None,
                      min_inliers: int = 0) -> RansacResult:
    """Estimate a robust target-to-base homography via RANSAC.

    Parameters
    ----------
    correspondences : CorrespondenceSet
        Putative matches to draw samples from.
    num_iterations : int
        Number of RANSAC iterations.  No early exit, no retries.
    threshold : float
        Inlier threshold on the squared reprojection error (pixels²).
    sample_size : int
        Correspondences per minimal sample (at least 4).
    rng : np.random.Generator, int or None
        Random generator, or a seed to build one from.
    min_inliers : int
        Consensus size below which a
        :class:`~panostitch.errors.LowConfidenceEstimateWarning` is issued.

    Returns
    -------
    RansacResult
        Best-scoring homography and its inlier indices.  Ties keep the
        first maximum found.  When no iteration finds any inlier the last
        evaluated candidate is returned with ``num_inliers == 0``.

    Raises
    ------
    InsufficientCorrespondencesError
        Fewer correspondences than *sample_size*.
    DegenerateInputError
        Every sampled subset was degenerate, so no candidate exists at all.
        This is a property of the whole set (e.g. all points collinear or
        duplicated), not of one sample, and is propagated to the caller.
        A single degenerate sample is only skipped.
    """
    n_matches = correspondences.count
    if sample_size < 4:
        raise ValueError(f"sample_size must be at least 4, got {sample_size}")
    if n_matches < sample_size:
        raise InsufficientCorrespondencesError(n_matches, sample_size)
    if num_iterations < 1:
        raise ValueError(f"num_iterations must be positive, got {num_iterations}")

    rng = np.random.default_rng(rng)

    print(f"  Running RANSAC ({num_iterations} iterations, "
          f"threshold={threshold}px²)...")

    best_H = None
    best_inliers = np.empty(0, dtype=int)
    last_H = None
    last_inliers = best_inliers
    degenerate = 0

    for _ in range(num_iterations):
        sample = correspondences.subset(draw_sample(rng, n_matches, sample_size))

        try:
            H = compute_homography(sample.target_points, sample.base_points)
        except DegenerateInputError:
            degenerate += 1
            continue

        inliers = count_inliers(H, correspondences, threshold)
        last_H, last_inliers = H, inliers

        if len(inliers) > len(best_inliers):
            best_H = H
            best_inliers = inliers

    if last_H is None:
        raise DegenerateInputError(
            f"All {num_iterations} RANSAC samples were degenerate"
        )
    if best_H is None:
        best_H, best_inliers = last_H, last_inliers

    n_in = len(best_inliers)
    rate = 100.0 * n_in / n_matches
    print(f"  Best H: {n_in} inliers / {n_matches} matches ({rate:.1f}%)"
          + (f", {degenerate} degenerate samples skipped" if degenerate else ""))

    if n_in < min_inliers:
        warnings.warn(
            f"RANSAC consensus of {n_in} inliers is below the minimum of "
            f"{min_inliers}; the homography may be unreliable",
            LowConfidenceEstimateWarning,
            stacklevel=2,
        )

    return RansacResult(H=best_H, inliers=best_inliers, num_inliers=n_in,
                        num_matches=n_matches, iterations=num_iterations)
