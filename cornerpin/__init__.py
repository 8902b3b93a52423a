"""Corner-pin compositing: planar homographies, quad geometry and inverse warping."""

from cornerpin.compositing.warp import bilinear_sample, composite, warp_into_quad
from cornerpin.geometry.errors import (
    DegenerateQuadError,
    HomographyError,
    InvalidArgumentError,
    SingularMatrixError,
)
from cornerpin.geometry.homography import (
    apply_homography,
    apply_homography_many,
    compute_homography,
    identity,
    invert_homography,
    reprojection_error,
)
from cornerpin.geometry.quad import point_in_quad, quad_area, validate_quad

__all__ = [
    "DegenerateQuadError",
    "HomographyError",
    "InvalidArgumentError",
    "SingularMatrixError",
    "apply_homography",
    "apply_homography_many",
    "bilinear_sample",
    "composite",
    "compute_homography",
    "identity",
    "invert_homography",
    "point_in_quad",
    "quad_area",
    "reprojection_error",
    "validate_quad",
    "warp_into_quad",
]
