"""
Canvas planning for pairwise stitching.

The target image is projected into the base frame and the base canvas is
padded on whichever sides the projection spills over, so the warped target
is never clipped.  Only geometry is produced here; no pixel data.
"""

from dataclasses import dataclass
import math

import numpy as np

from panostitch.errors import DegenerateInputError
from panostitch.geometry.homography import apply_homography


DEFAULT_PADDING = 30


@dataclass(frozen=True)
class CanvasGeometry:
    """Size of the merged canvas and where the base image sits inside it.

    The ``min_*`` / ``max_*`` fields are the bounding box of the projected
    target corners in base-image coordinates.
    """

    width: int
    height: int
    pad_left: int
    pad_right: int
    pad_up: int
    pad_down: int
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def shape(self):
        return (self.height, self.width)

    @property
    def offset(self):
        """(x, y) position of the base image origin on the canvas."""
        return (self.pad_left, self.pad_up)

    def destination_bounds(self):
        """Integer canvas rectangle covering the projected target.

        Returns
        -------
        (x0, x1, y0, y1) : tuple of int
            Inclusive pixel bounds, clipped to the canvas.
        """
        x0 = max(0, math.floor(self.min_x) + self.pad_left)
        x1 = min(self.width - 1, math.ceil(self.max_x) + self.pad_left)
        y0 = max(0, math.floor(self.min_y) + self.pad_up)
        y1 = min(self.height - 1, math.ceil(self.max_y) + self.pad_up)
        return x0, x1, y0, y1


def project_corners(H: np.ndarray, target_shape: tuple) -> np.ndarray:
    """Project the four corner pixels of the target image through *H*.

    Parameters
    ----------
    H : np.ndarray
        3 x 3 homography mapping target to base coordinates.
    target_shape : tuple
        Shape of the target image; only (height, width) are used.

    Returns
    -------
    np.ndarray
        4 x 2 array of projected (x, y) corners in the order top-left,
        top-right, bottom-left, bottom-right.
    """
    h, w = target_shape[:2]
    corners = np.array([
        [0,     0],
        [w - 1, 0],
        [0,     h - 1],
        [w - 1, h - 1],
    ], dtype=float)
    return apply_homography(H, corners)


def plan_canvas(base_shape: tuple, target_shape: tuple, H: np.ndarray,
                padding: int = DEFAULT_PADDING) -> CanvasGeometry:
    """Compute the padded canvas that holds the base and the warped target.

    A side is expanded only when a projected corner falls beyond the base
    image's last pixel on that side; an expanded side always receives the
    extra *padding* margin.

    Parameters
    ----------
    base_shape, target_shape : tuple
        Image shapes; only (height, width) are used.
    H : np.ndarray
        3 x 3 homography mapping target to base coordinates.
    padding : int
        Margin in pixels added to every expanded side.

    Returns
    -------
    CanvasGeometry

    Raises
    ------
    DegenerateInputError
        A corner projects to infinity (the horizon crosses the target).
    """
    if padding < 0:
        raise ValueError(f"padding must be non-negative, got {padding}")

    h_base, w_base = base_shape[:2]
    corners = project_corners(H, target_shape)
    if not np.all(np.isfinite(corners)):
        raise DegenerateInputError("Target corners project to infinity")

    min_x, max_x = float(corners[:, 0].min()), float(corners[:, 0].max())
    min_y, max_y = float(corners[:, 1].min()), float(corners[:, 1].max())

    pad_right = pad_left = pad_down = pad_up = 0
    if max_x > w_base - 1:
        pad_right = max(0, math.ceil(max_x) - w_base) + padding
    if min_x < 0:
        pad_left = max(0, -math.floor(min_x)) + padding
    if max_y > h_base - 1:
        pad_down = max(0, math.ceil(max_y) - h_base) + padding
    if min_y < 0:
        pad_up = max(0, -math.floor(min_y)) + padding

    return CanvasGeometry(
        width=w_base + pad_left + pad_right,
        height=h_base + pad_up + pad_down,
        pad_left=pad_left,
        pad_right=pad_right,
        pad_up=pad_up,
        pad_down=pad_down,
        min_x=min_x,
        max_x=max_x,
        min_y=min_y,
        max_y=max_y,
    )
