"""
Visualization utilities for the stitching pipeline.

All functions save figures to disk rather than displaying them interactively,
making the module suitable for headless execution.
"""

import os
import numpy as np
import matplotlib
matplotlib.use("Agg")          # non-interactive backend
import matplotlib.pyplot as plt


# ---------------------------------------------------------------------------
# RANSAC
# ---------------------------------------------------------------------------

def save_inlier_matches(base: np.ndarray, target: np.ndarray,
                        correspondences, inliers: np.ndarray,
                        scene: str, out_dir: str, step: int = 0,
                        n: int = 50) -> str:
    """Save a side-by-side image with inlier (green) and outlier (red) lines.

    At most *n* correspondences of each kind are drawn.
    """
    h1, w1 = base.shape[:2]
    h2, w2 = target.shape[:2]
    h = max(h1, h2)
    combined = np.zeros((h, w1 + w2, 3), dtype=np.uint8)
    combined[:h1, :w1] = base
    combined[:h2, w1:w1 + w2] = target

    is_inlier = np.zeros(correspondences.count, dtype=bool)
    is_inlier[inliers] = True

    fig, ax = plt.subplots(figsize=(16, 8))
    ax.imshow(combined)

    for mask, colour in ((~is_inlier, "r-"), (is_inlier, "g-")):
        idx = np.flatnonzero(mask)[:n]
        for i in idx:
            xb, yb = correspondences.base_points[i]
            xt, yt = correspondences.target_points[i]
            ax.plot([xb, xt + w1], [yb, yt], colour, linewidth=1, alpha=0.6)

    ax.set_title(f"{scene} step {step} – {is_inlier.sum()} inliers "
                 f"of {correspondences.count} correspondences")
    ax.axis("off")
    plt.tight_layout()
    path = os.path.join(out_dir, scene, f"step{step}_inliers.jpg")
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


# ---------------------------------------------------------------------------
# Panorama
# ---------------------------------------------------------------------------

def save_panorama(panorama: np.ndarray, scene: str, out_dir: str,
                  n_inliers: int, n_matches: int) -> str:
    """Save the stitched panorama as an annotated figure."""
    rate = 100.0 * n_inliers / n_matches if n_matches else 0.0
    plt.figure(figsize=(20, 10))
    plt.imshow(panorama)
    plt.title(f"{scene} panorama  |  {n_inliers}/{n_matches} inliers ({rate:.1f}%)")
    plt.axis("off")
    plt.tight_layout()
    path = os.path.join(out_dir, scene, "panorama_figure.jpg")
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close()
    return path
