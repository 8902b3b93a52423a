"""
Planar homography engine for corner-pin compositing.

A homography (projective transformation) maps the rectangle of a video
frame onto an arbitrary quadrilateral on a photo.  The 3x3 matrix is
estimated from four point correspondences by fixing ``h22 = 1`` and
solving the remaining eight unknowns through the normal equations.

Every function here is pure: matrices and points go in, matrices and
points come out.
"""

import numpy as np

from cornerpin.geometry.errors import (
    HomographyError,
    InvalidArgumentError,
    SingularMatrixError,
)
from cornerpin.geometry.linalg import EPS, solve_least_squares


def as_points(points, name: str = "points") -> np.ndarray:
    """Return *points* as an N x 2 float array, or raise InvalidArgumentError."""
    try:
        arr = np.asarray(points, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{name} must be a sequence of (x, y) pairs") from exc
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise InvalidArgumentError(
            f"{name} must have shape (N, 2), got {arr.shape}"
        )
    return arr


def as_matrix(H) -> np.ndarray:
    H = np.asarray(H, dtype=float)
    if H.shape != (3, 3):
        raise InvalidArgumentError(f"homography must be 3 x 3, got {H.shape}")
    return H


def identity() -> np.ndarray:
    """Return a fresh 3 x 3 identity homography."""
    return np.eye(3)


def _conditioning_transform(pts: np.ndarray, eps: float = EPS) -> np.ndarray:
    # Similarity moving the centroid to the origin with mean distance sqrt(2)
    centroid = pts.mean(axis=0)
    mean_dist = np.sqrt(((pts - centroid) ** 2).sum(axis=1)).mean()
    scale = np.sqrt(2) / mean_dist if mean_dist > eps else 1.0
    return np.array([
        [scale, 0,     -scale * centroid[0]],
        [0,     scale, -scale * centroid[1]],
        [0,     0,      1],
    ], dtype=float)


def _solve_eight_dof(src: np.ndarray, dst: np.ndarray, eps: float) -> np.ndarray:
    A = []
    b = []
    for (x, y), (u, v) in zip(src, dst):
        A.append([x, y, 1, 0, 0, 0, -u * x, -u * y])
        b.append(u)
        A.append([0, 0, 0, x, y, 1, -v * x, -v * y])
        b.append(v)

    h = solve_least_squares(A, b, eps=eps)
    return np.array([
        [h[0], h[1], h[2]],
        [h[3], h[4], h[5]],
        [h[6], h[7], 1.0],
    ])


def compute_homography(source_quad, dest_quad, eps: float = EPS,
                       normalize: bool = True) -> np.ndarray:
    """Estimate the homography mapping each source corner onto its destination.

    Each correspondence ``(x, y) -> (u, v)`` contributes the rows
    ``[x, y, 1, 0, 0, 0, -u*x, -u*y] = u`` and
    ``[0, 0, 0, x, y, 1, -v*x, -v*y] = v``; the eight unknowns are solved
    with Gaussian elimination on the normal equations.

    Collinear or coincident corners do not raise: the solver skips
    near-zero pivots and returns an approximate matrix.  Callers should
    gate on :func:`cornerpin.geometry.quad.quad_area` first.

    Parameters
    ----------
    source_quad : array_like
        4 x 2 array of (x, y) source corners (e.g. the video frame).
    dest_quad : array_like
        4 x 2 array of (x, y) destination corners (e.g. on the photo).
    eps : float
        Pivot tolerance passed to the linear solver.
    normalize : bool
        Condition both point sets (centroid at origin, mean distance
        sqrt(2)) before solving.  With ``False`` the system is built from
        raw pixel coordinates.

    Returns
    -------
    H : np.ndarray
        3 x 3 homography with ``H[2, 2] == 1``.

    Raises
    ------
    InvalidArgumentError
        If either argument does not hold exactly four points.
    """
    src = as_points(source_quad, "source_quad")
    dst = as_points(dest_quad, "dest_quad")
    if len(src) != 4 or len(dst) != 4:
        raise InvalidArgumentError(
            f"exactly 4 source and 4 destination points are required, "
            f"got {len(src)} and {len(dst)}"
        )

    if not normalize:
        return _solve_eight_dof(src, dst, eps)

    T_src = _conditioning_transform(src, eps)
    T_dst = _conditioning_transform(dst, eps)
    src_n = apply_homography_many(src, T_src, eps)
    dst_n = apply_homography_many(dst, T_dst, eps)

    H_n = _solve_eight_dof(src_n, dst_n, eps)

    # T_dst is a similarity, so its inverse is closed-form
    s = T_dst[0, 0]
    T_dst_inv = np.array([
        [1 / s, 0,     -T_dst[0, 2] / s],
        [0,     1 / s, -T_dst[1, 2] / s],
        [0,     0,      1],
    ])
    H = T_dst_inv @ H_n @ T_src
    if abs(H[2, 2]) >= eps:
        H = H / H[2, 2]
    return H


def apply_homography(point, H, eps: float = EPS) -> tuple:
    """Map a single (x, y) point through *H*.

    When the projective denominator ``w`` is smaller than *eps* the input
    point is returned unchanged.
    """
    H = as_matrix(H)
    x, y = float(point[0]), float(point[1])

    w = H[2, 0] * x + H[2, 1] * y + H[2, 2]
    if abs(w) < eps:
        return (x, y)

    return (
        (H[0, 0] * x + H[0, 1] * y + H[0, 2]) / w,
        (H[1, 0] * x + H[1, 1] * y + H[1, 2]) / w,
    )


def apply_homography_many(points, H, eps: float = EPS) -> np.ndarray:
    """Apply *H* to an N x 2 array of (x, y) points.

    Points whose projective denominator falls below *eps* are passed
    through unchanged, exactly as in :func:`apply_homography`.
    """
    H = as_matrix(H)
    pts = as_points(points)

    homog = np.hstack([pts, np.ones((len(pts), 1))])
    transformed = homog @ H.T
    w = transformed[:, 2]

    out = pts.copy()
    ok = np.abs(w) >= eps
    out[ok] = transformed[ok, :2] / w[ok, np.newaxis]
    return out


def invert_homography(H, eps: float = EPS) -> np.ndarray:
    """Invert a 3 x 3 homography via its adjugate.

    Raises
    ------
    SingularMatrixError
        If ``|det(H)| < eps``.
    """
    H = as_matrix(H)

    det = (H[0, 0] * (H[1, 1] * H[2, 2] - H[1, 2] * H[2, 1])
           - H[0, 1] * (H[1, 0] * H[2, 2] - H[1, 2] * H[2, 0])
           + H[0, 2] * (H[1, 0] * H[2, 1] - H[1, 1] * H[2, 0]))

    if abs(det) < eps:
        raise SingularMatrixError(
            f"homography is singular (|det| = {abs(det):.3e} < {eps:g})"
        )

    adj = np.array([
        [H[1, 1] * H[2, 2] - H[1, 2] * H[2, 1],
         H[0, 2] * H[2, 1] - H[0, 1] * H[2, 2],
         H[0, 1] * H[1, 2] - H[0, 2] * H[1, 1]],
        [H[1, 2] * H[2, 0] - H[1, 0] * H[2, 2],
         H[0, 0] * H[2, 2] - H[0, 2] * H[2, 0],
         H[0, 2] * H[1, 0] - H[0, 0] * H[1, 2]],
        [H[1, 0] * H[2, 1] - H[1, 1] * H[2, 0],
         H[0, 1] * H[2, 0] - H[0, 0] * H[2, 1],
         H[0, 0] * H[1, 1] - H[0, 1] * H[1, 0]],
    ])
    return adj / det


def reprojection_error(source_points, dest_points, H) -> float:
    """RMS pixel distance between ``H(source_points)`` and *dest_points*.

    Parameters
    ----------
    source_points, dest_points : array_like
        N x 2 arrays of corresponding (x, y) points.
    H : np.ndarray
        3 x 3 homography mapping source to destination.

    Returns
    -------
    float
        ``sqrt(mean(||H(src_i) - dst_i||^2))``.
    """
    src = as_points(source_points, "source_points")
    dst = as_points(dest_points, "dest_points")
    if len(src) != len(dst):
        raise InvalidArgumentError(
            f"point sets differ in length ({len(src)} vs {len(dst)})"
        )
    if len(src) == 0:
        raise InvalidArgumentError("at least one correspondence is required")

    predicted = apply_homography_many(src, H)
    sq = np.sum((predicted - dst) ** 2, axis=1)
    return float(np.sqrt(np.mean(sq)))


def normalize_homography(H, eps: float = EPS) -> np.ndarray:
    """Scale *H* so that ``H[2, 2] == 1``."""
    H = as_matrix(H)
    if abs(H[2, 2]) < eps:
        raise HomographyError("cannot normalise homography with H[2, 2] ~ 0")
    return H / H[2, 2]


def multiply(A, B) -> np.ndarray:
    """Compose two homographies: the result applies *B* first, then *A*."""
    return as_matrix(A) @ as_matrix(B)


def transformed_bounds(points, H) -> tuple:
    """Axis-aligned bounds ``(min_x, min_y, max_x, max_y)`` of ``H(points)``."""
    mapped = apply_homography_many(points, H)
    min_x, min_y = mapped.min(axis=0)
    max_x, max_y = mapped.max(axis=0)
    return float(min_x), float(min_y), float(max_x), float(max_y)


def matrix_to_string(H, precision: int = 6) -> str:
    """Format *H* one bracketed row per line, e.g. for logs or the clipboard."""
    H = as_matrix(H)
    rows = ["[" + ", ".join(f"{val:.{precision}f}" for val in row) + "]"
            for row in H]
    return ",\n".join(rows)
