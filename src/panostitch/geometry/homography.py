"""
Homography estimation from point correspondences.

A planar homography (projective transformation) maps points in one image to
corresponding points in another when the scene is planar or the camera
undergoes pure rotation.  The 3x3 matrix is estimated via Direct Linear
Transform (DLT) and solved with SVD.

All point arrays are N x 2 in (x, y) pixel order.
"""

import numpy as np

from panostitch.errors import DegenerateInputError, InsufficientCorrespondencesError

# Ratio between the second-smallest and the largest singular value of the
# normalised DLT matrix below which the null space is treated as more than 1-D.
RANK_TOLERANCE = 1e-10


def normalize_points(points: np.ndarray):
    """Similarity-normalise points to zero mean and sqrt(2) mean distance.

    Parameters
    ----------
    points : np.ndarray
        N x 2 array of (x, y) coordinates.

    Returns
    -------
    normalized : np.ndarray
        N x 2 normalised coordinates.
    T : np.ndarray
        3 x 3 similarity transform with ``normalized ~ T @ points``.
    """
    centroid = points.mean(axis=0)
    shifted = points - centroid
    mean_dist = np.mean(np.sqrt(np.sum(shifted ** 2, axis=1)))
    scale = np.sqrt(2.0) / mean_dist if mean_dist > 0 else 1.0

    T = np.array([
        [scale, 0.0,   -scale * centroid[0]],
        [0.0,   scale, -scale * centroid[1]],
        [0.0,   0.0,    1.0],
    ])
    return shifted * scale, T


def build_dlt_matrix(src_pts: np.ndarray, dst_pts: np.ndarray) -> np.ndarray:
    """Stack the two DLT rows contributed by every correspondence.

    Each pair ``(x, y) -> (x', y')`` encodes ``dst x (H src) = 0`` as

        [-x, -y, -1,  0,  0,  0, x x', y x', x']
        [ 0,  0,  0, -x, -y, -1, x y', y y', y']

    Returns
    -------
    np.ndarray
        2N x 9 coefficient matrix.
    """
    x, y = src_pts[:, 0], src_pts[:, 1]
    xp, yp = dst_pts[:, 0], dst_pts[:, 1]
    n = src_pts.shape[0]
    zeros = np.zeros(n)
    ones = np.ones(n)

    A = np.empty((2 * n, 9), dtype=float)
    A[0::2] = np.column_stack([-x, -y, -ones, zeros, zeros, zeros, x * xp, y * xp, xp])
    A[1::2] = np.column_stack([zeros, zeros, zeros, -x, -y, -ones, x * yp, y * yp, yp])
    return A


def _normalise_scale(H: np.ndarray) -> np.ndarray:
    if abs(H[2, 2]) > 1e-12:
        return H / H[2, 2]
    return H


def compute_homography(src_pts: np.ndarray, dst_pts: np.ndarray,
                       normalize: bool = False) -> np.ndarray:
    """Estimate a 3x3 homography from four or more point correspondences.

    Uses the Direct Linear Transform (DLT): each correspondence contributes
    two linear equations in the nine homography entries.  With four points
    the system is exactly determined (up to scale); with more it is the
    least-squares solution.  Either way ``h`` is the right-singular vector
    of the smallest singular value.

    Parameters
    ----------
    src_pts : np.ndarray
        N x 2 array of (x, y) source coordinates.
    dst_pts : np.ndarray
        N x 2 array of (x, y) destination coordinates.
    normalize : bool
        Solve in Hartley-normalised coordinates.  Improves conditioning for
        the over-determined case.  The degeneracy test always uses the
        normalised system, whatever this flag says.

    Returns
    -------
    H : np.ndarray
        3 x 3 homography (scaled so H[2, 2] == 1 where possible) such that
        ``dst ≈ H @ src`` in homogeneous coordinates.

    Raises
    ------
    InsufficientCorrespondencesError
        Fewer than four correspondences.
    DegenerateInputError
        Coincident or collinear points leave more than a 1-D null space.
    """
    src_pts = np.asarray(src_pts, dtype=float)
    dst_pts = np.asarray(dst_pts, dtype=float)
    if src_pts.shape != dst_pts.shape or src_pts.ndim != 2 or src_pts.shape[1] != 2:
        raise ValueError(
            f"Expected two N x 2 arrays of equal shape, got {src_pts.shape} and {dst_pts.shape}"
        )
    if src_pts.shape[0] < 4:
        raise InsufficientCorrespondencesError(src_pts.shape[0], 4)

    if not (np.all(np.isfinite(src_pts)) and np.all(np.isfinite(dst_pts))):
        raise DegenerateInputError("Correspondences contain non-finite coordinates")

    # The rank test runs on normalised coordinates: in raw pixel units the
    # singular values spread over many orders of magnitude with frame size.
    src_n, T_src = normalize_points(src_pts)
    dst_n, T_dst = normalize_points(dst_pts)
    _, s, Vt = np.linalg.svd(build_dlt_matrix(src_n, dst_n), full_matrices=True)
    # A has at most 9 singular values; s[7] is the second smallest when
    # 2N >= 9 and the smallest one for the 8 x 9 minimal system.
    if s[0] == 0 or s[7] <= RANK_TOLERANCE * s[0]:
        raise DegenerateInputError(
            "Point configuration is degenerate (coincident or collinear points)"
        )

    if normalize:
        H = np.linalg.inv(T_dst) @ Vt[-1].reshape(3, 3) @ T_src
    else:
        _, _, Vt = np.linalg.svd(build_dlt_matrix(src_pts, dst_pts), full_matrices=True)
        H = Vt[-1].reshape(3, 3)
    return _normalise_scale(H)


def apply_homography(H: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a homography to a set of (x, y) coordinates.

    Parameters
    ----------
    H : np.ndarray
        3 x 3 homography matrix.
    points : np.ndarray
        N x 2 array of (x, y) coordinates.

    Returns
    -------
    np.ndarray
        N x 2 array of transformed coordinates.  Points mapped to the line
        at infinity come back as ``inf``/``nan``.
    """
    points = np.asarray(points, dtype=float).reshape(-1, 2)
    homog = np.hstack([points, np.ones((points.shape[0], 1))])

    transformed = homog @ H.T
    with np.errstate(divide="ignore", invalid="ignore"):
        return transformed[:, :2] / transformed[:, 2:3]


def invert_homography(H: np.ndarray) -> np.ndarray:
    """Return ``H⁻¹`` scaled so its bottom-right entry is 1."""
    try:
        H_inv = np.linalg.inv(H)
    except np.linalg.LinAlgError as exc:
        raise DegenerateInputError("Homography is singular") from exc
    return _normalise_scale(H_inv)


def reprojection_errors(H: np.ndarray, src_pts: np.ndarray,
                        dst_pts: np.ndarray) -> np.ndarray:
    """Squared Euclidean distance between ``H(src)`` and ``dst`` per point."""
    projected = apply_homography(H, src_pts)
    errors = np.sum((projected - dst_pts) ** 2, axis=1)
    # unprojectable points can never be inliers
    return np.where(np.isfinite(errors), errors, np.inf)
