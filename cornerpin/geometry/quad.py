"""
Quadrilateral geometry for corner-pin handles.

Corner sets are ordered (top-left, top-right, bottom-right, bottom-left)
and treated as a closed polygon.  The validation helpers here encode the
caller-side policy that the homography solver itself does not enforce.
"""

import numpy as np

from cornerpin.geometry.errors import DegenerateQuadError, InvalidArgumentError
from cornerpin.geometry.homography import as_points
from cornerpin.geometry.linalg import EPS

MIN_QUAD_AREA = 100.0   # px^2
HANDLE_RADIUS = 15.0    # px


def as_corners(corners) -> np.ndarray:
    pts = as_points(corners, "corners")
    if len(pts) != 4:
        raise InvalidArgumentError(f"a quad needs exactly 4 corners, got {len(pts)}")
    return pts


def quad_area(corners) -> float:
    """Area of the closed 4-gon via the shoelace formula."""
    pts = as_corners(corners)
    x, y = pts[:, 0], pts[:, 1]
    x_next, y_next = np.roll(x, -1), np.roll(y, -1)
    return float(abs(np.sum(x * y_next - x_next * y)) / 2.0)


def point_in_quad(point, corners) -> bool:
    """Even-odd ray-casting test of *point* against the quad outline."""
    pts = as_corners(corners)
    x, y = float(point[0]), float(point[1])

    inside = False
    j = len(pts) - 1
    for i in range(len(pts)):
        xi, yi = pts[i]
        xj, yj = pts[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def is_convex(corners, eps: float = EPS) -> bool:
    """True when every turn along the outline goes the same way.

    Collinear edges (cross product below *eps*) are ignored; a quad with no
    turn at all is not convex.
    """
    pts = as_corners(corners)
    edges = np.roll(pts, -1, axis=0) - pts
    nxt = np.roll(edges, -1, axis=0)
    cross = edges[:, 0] * nxt[:, 1] - edges[:, 1] * nxt[:, 0]

    signs = np.sign(cross[np.abs(cross) >= eps])
    return len(signs) > 0 and bool(np.all(signs == signs[0]))


def validate_quad(corners, min_area: float = MIN_QUAD_AREA,
                  require_convex: bool = False) -> np.ndarray:
    """Check that *corners* can host a frame and return them as a 4 x 2 array.

    Raises
    ------
    InvalidArgumentError
        If there are not exactly four corners.
    DegenerateQuadError
        If the area is below *min_area*, or *require_convex* is set and the
        quad is concave or self-intersecting.
    """
    pts = as_corners(corners)

    area = quad_area(pts)
    if area < min_area:
        raise DegenerateQuadError(
            f"corner pin area too small ({area:.1f} px^2 < {min_area:g} px^2)"
        )
    if require_convex and not is_convex(pts):
        raise DegenerateQuadError("corner pin is not a convex quadrilateral")
    return pts


def nearest_corner(point, corners, radius: float = HANDLE_RADIUS) -> int:
    """Index of the corner closest to *point* within *radius*, or -1."""
    pts = as_corners(corners)
    dists = np.hypot(pts[:, 0] - float(point[0]), pts[:, 1] - float(point[1]))
    idx = int(np.argmin(dists))
    return idx if dists[idx] < radius else -1


def frame_corners(width: float, height: float) -> np.ndarray:
    """Corners of a ``width`` x ``height`` frame in TL, TR, BR, BL order."""
    return np.array([
        [0,     0],
        [width, 0],
        [width, height],
        [0,     height],
    ], dtype=float)


def default_corners(canvas_size=None, frame_size=None, photo_size=None) -> np.ndarray:
    """A centred starting quad.

    With *photo_size* the quad is centred on the photo, in photo pixels,
    with half extents of 0.2 x width and 0.15 x height.  Otherwise it is
    centred on the canvas with half extents of a quarter of the frame size,
    capped at 200 x 150 px.
    """
    if photo_size is not None:
        photo_w, photo_h = photo_size
        cx, cy = photo_w / 2, photo_h / 2
        half_w = photo_w * 0.2
        half_h = photo_h * 0.15
    elif canvas_size is not None and frame_size is not None:
        canvas_w, canvas_h = canvas_size
        frame_w, frame_h = frame_size
        cx, cy = canvas_w / 2, canvas_h / 2
        half_w = min(200.0, frame_w / 4)
        half_h = min(150.0, frame_h / 4)
    else:
        raise InvalidArgumentError("either photo_size or canvas_size and frame_size is required")
    return np.array([
        [cx - half_w, cy - half_h],
        [cx + half_w, cy - half_h],
        [cx + half_w, cy + half_h],
        [cx - half_w, cy + half_h],
    ], dtype=float)
