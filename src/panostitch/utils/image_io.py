"""
Image and correspondence I/O helpers.

Thin wrappers around PIL, scikit-image and numpy for consistent image
loading, colour conversion, correspondence files and output directory
management across the pipeline.
"""

import os

import numpy as np
from PIL import Image
from skimage.color import rgb2gray

from panostitch.geometry.correspondences import CorrespondenceSet


def load_image(path: str) -> np.ndarray:
    """Load an image as an H x W x 3 uint8 RGB array."""
    with Image.open(path) as img:
        return np.array(img.convert("RGB"))


def save_image(path: str, img: np.ndarray) -> None:
    """Write an H x W x 3 uint8 array, creating the parent directory."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    Image.fromarray(img).save(path)


def to_grayscale(img: np.ndarray) -> np.ndarray:
    """Convert an image to a float64 grayscale image in [0, 1].

    Parameters
    ----------
    img : np.ndarray
        H x W x 3 uint8 image, or an H x W image which is returned as float.

    Returns
    -------
    np.ndarray
        H x W float64 image.
    """
    if img.ndim == 2:
        return img.astype(np.float64)
    return rgb2gray(img)


def load_correspondences(path: str) -> CorrespondenceSet:
    """Read a CSV of ``xb, yb, xt, yt`` rows into a CorrespondenceSet.

    Lines starting with ``#`` are ignored.
    """
    data = np.loadtxt(path, delimiter=",", dtype=np.float64, ndmin=2)
    if data.shape[1] != 4:
        raise ValueError(
            f"{path}: correspondence file must have four columns (xb, yb, xt, yt)"
        )
    return CorrespondenceSet(data[:, :2], data[:, 2:])


def save_correspondences(path: str, correspondences: CorrespondenceSet) -> None:
    data = np.hstack([correspondences.base_points, correspondences.target_points])
    np.savetxt(path, data, delimiter=",", fmt="%.6f", header="xb,yb,xt,yt")


def ensure_output_dirs(scene_names, results_dir: str = "results") -> list:
    """Create ``<results_dir>/<scene>`` for every scene and return the paths."""
    paths = [os.path.join(results_dir, name) for name in scene_names]
    for path in paths:
        os.makedirs(path, exist_ok=True)
    return paths
