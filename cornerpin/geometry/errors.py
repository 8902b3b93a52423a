"""
Exception hierarchy for the homography engine.

Soft degeneracies (a vanishing projective denominator, a near-zero pivot
in the linear solve) are absorbed locally and never show up here.
"""


class HomographyError(ValueError):
    """Base class for every failure raised by the geometry package."""


class InvalidArgumentError(HomographyError):
    """Wrong number or shape of points passed to an engine function."""


class SingularMatrixError(HomographyError):
    """A 3 x 3 matrix has (numerically) zero determinant."""


class DegenerateQuadError(HomographyError):
    """A corner set is too small or badly shaped to pin a frame into."""
