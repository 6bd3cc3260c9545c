"""
Panorama construction via inverse warping and alpha blending.

Given a homography that maps the target image into the coordinate frame of
the base image, the padded canvas is planned analytically, the base is
copied in, and every canvas pixel covered by the projected target is
inverse-mapped through H⁻¹ and sampled with nearest-neighbour lookup.
Where both images cover a pixel the target is alpha-blended over the base;
where only the target does, it is copied verbatim.

The merged canvas becomes the base for the next pairwise stitch.
"""

from dataclasses import dataclass
from typing import Callable, Sequence, Union

import numpy as np

from panostitch.config import StitchConfig
from panostitch.errors import InsufficientCorrespondencesError
from panostitch.geometry.correspondences import CorrespondenceSet
from panostitch.geometry.homography import apply_homography, invert_homography
from panostitch.geometry.ransac import RansacResult, ransac_homography
from panostitch.stitching.blending import (
    BLEND_MODES,
    DEFAULT_ALPHA,
    constant_alpha,
    distance_alpha,
    distance_to_border,
)
from panostitch.stitching.canvas import CanvasGeometry, plan_canvas

# Either a ready correspondence set or a matcher called as matcher(base, target).
CorrespondenceSource = Union[
    CorrespondenceSet,
    Callable[[np.ndarray, np.ndarray], CorrespondenceSet],
]


@dataclass
class StitchResult:
    image: np.ndarray
    H: np.ndarray
    geometry: CanvasGeometry
    inliers: np.ndarray
    num_inliers: int
    num_matches: int


def _as_color(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return np.repeat(img[:, :, np.newaxis], 3, axis=2)
    return img


def _to_native_depth(canvas: np.ndarray, dtype) -> np.ndarray:
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        return np.clip(np.rint(canvas), info.min, info.max).astype(dtype)
    return canvas.astype(dtype)


def composite(base: np.ndarray, target: np.ndarray, H: np.ndarray,
              geometry: CanvasGeometry, blend_alpha: float = DEFAULT_ALPHA,
              blend_mode: str = "constant") -> np.ndarray:
    """Merge *target* onto a padded copy of *base*.

    Parameters
    ----------
    base, target : np.ndarray
        H x W x C images (H x W grayscale is promoted to 3 channels).
    H : np.ndarray
        3 x 3 homography mapping target coordinates to base coordinates.
    geometry : CanvasGeometry
        Canvas plan from :func:`~panostitch.stitching.canvas.plan_canvas`.
    blend_alpha : float
        Weight of the target over already-filled canvas pixels.
    blend_mode : {"constant", "distance"}
        ``distance`` replaces the fixed alpha in the overlap by the ratio of
        the two images' distance-to-border fields.

    Returns
    -------
    np.ndarray
        Merged canvas of shape (geometry.height, geometry.width, C) in the
        dtype of *base*.
    """
    if blend_mode not in BLEND_MODES:
        raise ValueError(f"blend_mode must be one of {BLEND_MODES}, got {blend_mode!r}")

    base = _as_color(base)
    target = _as_color(target)
    if base.shape[2] != target.shape[2]:
        raise ValueError(
            f"Channel mismatch: base has {base.shape[2]}, target has {target.shape[2]}"
        )

    h_base, w_base = base.shape[:2]
    h_t, w_t = target.shape[:2]
    pad_left, pad_up = geometry.offset

    canvas = np.zeros((geometry.height, geometry.width, base.shape[2]), dtype=np.float64)
    canvas[pad_up:pad_up + h_base, pad_left:pad_left + w_base] = base
    target_f = target.astype(np.float64)

    x0, x1, y0, y1 = geometry.destination_bounds()
    if x0 > x1 or y0 > y1:
        return _to_native_depth(canvas, base.dtype)

    # Canvas pixels of the destination rectangle and their base-frame coords
    grid_x, grid_y = np.meshgrid(np.arange(x0, x1 + 1), np.arange(y0, y1 + 1))
    grid_x = grid_x.ravel()
    grid_y = grid_y.ravel()
    x_b = grid_x - pad_left
    y_b = grid_y - pad_up

    H_inv = invert_homography(H)
    src = apply_homography(H_inv, np.column_stack([x_b, y_b]))

    finite = np.all(np.isfinite(src), axis=1)
    x_near = np.rint(np.where(finite, src[:, 0], -1.0))
    y_near = np.rint(np.where(finite, src[:, 1], -1.0))
    in_target = (finite & (x_near >= 0) & (x_near < w_t)
                 & (y_near >= 0) & (y_near < h_t))
    in_base = (x_b >= 0) & (x_b < w_base) & (y_b >= 0) & (y_b < h_base)

    # -- Overlap: blend the target over the existing canvas content
    overlap = in_target & in_base
    cx, cy = grid_x[overlap], grid_y[overlap]
    tx = x_near[overlap].astype(int)
    ty = y_near[overlap].astype(int)
    current = canvas[cy, cx]
    sampled = target_f[ty, tx]

    if blend_mode == "distance":
        dist_t = distance_to_border(target)
        dist_b = distance_to_border(base)
        alpha = distance_alpha(dist_t[ty, tx], dist_b[y_b[overlap], x_b[overlap]])
    else:
        alpha = constant_alpha(current, blend_alpha)
    alpha = alpha[:, np.newaxis]
    canvas[cy, cx] = alpha * sampled + (1.0 - alpha) * current

    # -- Overflow: only the target covers these pixels
    overflow = in_target & ~in_base
    cx, cy = grid_x[overflow], grid_y[overflow]
    canvas[cy, cx] = target_f[y_near[overflow].astype(int), x_near[overflow].astype(int)]

    return _to_native_depth(canvas, base.dtype)


def estimate_homography(correspondences: CorrespondenceSet,
                        config: StitchConfig = None, rng=None) -> RansacResult:
    """Run RANSAC with the configured settings after the minimum-match check.

    Raises
    ------
    InsufficientCorrespondencesError
        Fewer matches than ``config.min_match_count``.
    """
    config = config or StitchConfig()
    if correspondences.count < config.min_match_count:
        raise InsufficientCorrespondencesError(
            correspondences.count, config.min_match_count, what="matches"
        )
    if rng is None:
        rng = config.seed

    return ransac_homography(
        correspondences,
        num_iterations=config.num_iterations,
        threshold=config.inlier_threshold,
        sample_size=config.sample_size,
        rng=rng,
        min_inliers=config.min_inliers,
    )


def stitch_pair(base: np.ndarray, target: np.ndarray,
                correspondences: CorrespondenceSet,
                config: StitchConfig = None, rng=None) -> StitchResult:
    """Estimate the target-to-base homography and merge *target* onto *base*.

    Parameters
    ----------
    base, target : np.ndarray
        H x W x 3 uint8 images.
    correspondences : CorrespondenceSet
        Matches between *base* (``base_points``) and *target*.
    config : StitchConfig, optional
        Estimation, canvas and blending settings.  Defaults are used when
        omitted.
    rng : np.random.Generator, int or None
        RANSAC sampling source.  Falls back to ``config.seed``.

    Returns
    -------
    StitchResult
        Merged image together with the homography and canvas plan used.

    Raises
    ------
    InsufficientCorrespondencesError
        Fewer matches than ``config.min_match_count``.
    """
    config = config or StitchConfig()
    result = estimate_homography(correspondences, config, rng=rng)

    print("  Computing panorama canvas bounds...")
    geometry = plan_canvas(base.shape, target.shape, result.H, padding=config.padding)
    print(f"  Canvas size: {geometry.width} x {geometry.height} px  "
          f"(pad L{geometry.pad_left} R{geometry.pad_right} "
          f"U{geometry.pad_up} D{geometry.pad_down})")

    print("  Blending images...")
    merged = composite(base, target, result.H, geometry,
                       blend_alpha=config.blend_alpha,
                       blend_mode=config.blend_mode)

    return StitchResult(image=merged, H=result.H, geometry=geometry,
                        inliers=result.inliers,
                        num_inliers=result.num_inliers,
                        num_matches=result.num_matches)


def stitch_sequence(base: np.ndarray, targets: Sequence[np.ndarray],
                    sources: Sequence[CorrespondenceSource],
                    config: StitchConfig = None, rng=None) -> list:
    """Stitch *targets* one at a time, each onto the previous merged canvas.

    Parameters
    ----------
    base : np.ndarray
        Starting image (e.g. the middle view).
    targets : sequence of np.ndarray
        Images to add, in order.
    sources : sequence
        One entry per target: a CorrespondenceSet already expressed in the
        frame of the canvas it is stitched onto, or a matcher called as
        ``matcher(canvas, target)``.
    config : StitchConfig, optional
    rng : np.random.Generator, int or None
        Shared by all pairwise estimates.

    Returns
    -------
    list of StitchResult
        One result per target; the last ``image`` is the final panorama.
    """
    if len(targets) != len(sources):
        raise ValueError("Each target image needs exactly one correspondence source")

    config = config or StitchConfig()
    rng = np.random.default_rng(config.seed if rng is None else rng)

    results = []
    canvas = base
    for target, source in zip(targets, sources):
        correspondences = source(canvas, target) if callable(source) else source
        result = stitch_pair(canvas, target, correspondences, config, rng=rng)
        results.append(result)
        canvas = result.image
    return results
