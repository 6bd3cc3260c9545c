"""
Blend weights for the overlap between the base canvas and a warped target.

Two rules are available.  ``constant`` (the default) writes the target
verbatim over empty canvas pixels and mixes it in with a fixed alpha
elsewhere.  ``distance`` weights each side by its chessboard distance to
the nearest background or border pixel, which fades seams but is not
used unless asked for.
"""

import numpy as np
from scipy.ndimage import distance_transform_cdt

from panostitch.utils.image_io import to_grayscale

BLEND_MODES = ("constant", "distance")
DEFAULT_ALPHA = 0.3


def distance_to_border(img: np.ndarray) -> np.ndarray:
    """Chessboard distance of every pixel to the nearest zero pixel.

    Background (all-zero) pixels are zero, and the outermost rows and
    columns are forced to zero so the image border acts as background.

    Parameters
    ----------
    img : np.ndarray
        H x W x 3 or H x W image.

    Returns
    -------
    np.ndarray
        H x W int32 distance field.
    """
    gray = to_grayscale(img)
    foreground = gray != 0
    foreground[0, :] = False
    foreground[-1, :] = False
    foreground[:, 0] = False
    foreground[:, -1] = False
    return distance_transform_cdt(foreground, metric="chessboard").astype(np.int32)


def constant_alpha(canvas_pixels: np.ndarray, alpha: float) -> np.ndarray:
    """Alpha of 1 over empty canvas pixels, *alpha* over filled ones.

    Parameters
    ----------
    canvas_pixels : np.ndarray
        N x C current canvas values at the destination pixels.

    Returns
    -------
    np.ndarray
        Length-N alpha per destination pixel.
    """
    empty = np.all(canvas_pixels == 0, axis=-1)
    return np.where(empty, 1.0, alpha)


def distance_alpha(dist_target: np.ndarray, dist_base: np.ndarray) -> np.ndarray:
    """Per-pixel ``d_t / (d_t + d_b)``; zero where both distances are zero."""
    d_t = dist_target.astype(float)
    total = d_t + dist_base.astype(float)
    alpha = np.zeros_like(total)
    np.divide(d_t, total, out=alpha, where=total > 0)
    return alpha
