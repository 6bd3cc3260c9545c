"""
Error taxonomy for homography estimation and compositing.

Set-level problems (too few correspondences) are fatal and surface to the
caller.  Degenerate minimal samples are recoverable: RANSAC skips them and
moves on to the next iteration.  A weak consensus is reported as a warning
because the caller decides whether the estimate is still usable.
"""


class StitchingError(Exception):
    """Base class for all stitching failures."""


class InsufficientCorrespondencesError(StitchingError, ValueError):
    """Raised when a correspondence set is smaller than required.

    Parameters
    ----------
    count : int
        Number of correspondences supplied.
    required : int
        Minimum number needed by the operation.
    """

    def __init__(self, count: int, required: int, what: str = "correspondences"):
        self.count = count
        self.required = required
        super().__init__(
            f"{count} {what} supplied, at least {required} required"
        )


class DegenerateInputError(StitchingError, ArithmeticError):
    """Raised when points are coincident or collinear, or a matrix is singular."""


class LowConfidenceEstimateWarning(UserWarning):
    """Emitted when the best RANSAC consensus falls below the usability threshold."""
