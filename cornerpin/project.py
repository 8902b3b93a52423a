"""
Project documents: view state, corner pin and homography as plain JSON.
"""

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

import numpy as np

from cornerpin.geometry.homography import as_matrix
from cornerpin.geometry.quad import as_corners

PROJECT_VERSION = "1.0"
MIN_ZOOM = 0.1
MAX_ZOOM = 5.0


class ProjectFormatError(ValueError):
    """A project document is missing fields or holds malformed values."""


@dataclass
class ViewTransform:
    """Pan and zoom of the background photo on the canvas."""

    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0

    def canvas_to_photo(self, point) -> tuple:
        return ((point[0] - self.x) / self.scale, (point[1] - self.y) / self.scale)

    def photo_to_canvas(self, point) -> tuple:
        return (point[0] * self.scale + self.x, point[1] * self.scale + self.y)

    def fit(self, canvas_size, image_size) -> None:
        """Scale the photo to fit inside the canvas and centre it."""
        canvas_w, canvas_h = canvas_size
        image_w, image_h = image_size
        self.scale = min(canvas_w / image_w, canvas_h / image_h)
        self.x = (canvas_w - image_w * self.scale) / 2
        self.y = (canvas_h - image_h * self.scale) / 2

    def zoom_at(self, canvas_point, factor: float) -> bool:
        """Zoom by *factor* keeping *canvas_point* fixed.

        Returns False, leaving the view untouched, when the new scale would
        fall outside [MIN_ZOOM, MAX_ZOOM].
        """
        new_scale = self.scale * factor
        if new_scale < MIN_ZOOM or new_scale > MAX_ZOOM:
            return False
        cx, cy = canvas_point
        self.x = cx - (cx - self.x) * factor
        self.y = cy - (cy - self.y) * factor
        self.scale = new_scale
        return True


def build_project(background_size, frame_size, corners, H, view=None,
                  fps: float = 25, duration=None, export_settings=None) -> dict:
    """Assemble a JSON-compatible project document.

    Parameters
    ----------
    background_size, frame_size : tuple of (int, int)
        (width, height) of the photo and the overlay frame.
    corners : array_like
        4 x 2 corner pin in photo pixels.
    H : array_like
        3 x 3 frame-to-photo homography.
    view : ViewTransform, optional
        Canvas pan/zoom to persist alongside.
    """
    pts = as_corners(corners)
    H = as_matrix(H)
    view = view or ViewTransform()
    bg_w, bg_h = background_size
    fr_w, fr_h = frame_size

    return {
        "version": PROJECT_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "background": {
            "dimensions": {"width": int(bg_w), "height": int(bg_h)},
            "transform": asdict(view),
        },
        "video": {
            "dimensions": {"width": int(fr_w), "height": int(fr_h)},
            "fps": fps,
            "duration": duration,
            "cornerPoints": [{"x": float(x), "y": float(y)} for x, y in pts],
            "homographyMatrix": H.tolist(),
        },
        "exportSettings": dict(export_settings or {}),
    }


def save_project(project: dict, path: str) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(project, fh, indent=2)


def load_project(path: str) -> dict:
    """Read a project written by :func:`save_project`.

    The returned document additionally carries ``corners`` (4 x 2) and
    ``homography`` (3 x 3, or None when the document has no matrix and the
    caller must recompute it) as numpy arrays, and ``view`` as a
    :class:`ViewTransform`.

    Raises
    ------
    ProjectFormatError
        If required fields are missing or malformed.
    """
    with open(path, "r", encoding="utf-8") as fh:
        try:
            project = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ProjectFormatError(f"{path}: not valid JSON ({exc})") from exc

    try:
        video = project["video"]
        corners = np.array([[p["x"], p["y"]] for p in video["cornerPoints"]],
                           dtype=float)
        raw_H = video.get("homographyMatrix")
        H = None if raw_H is None else np.array(raw_H, dtype=float)
        background = project.get("background", {})
        if not isinstance(background, dict):
            raise TypeError("background must be an object")
        transform = background.get("transform", {})
        if not isinstance(transform, dict):
            raise TypeError("background.transform must be an object")
        view = ViewTransform(**transform)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ProjectFormatError(f"{path}: malformed project ({exc})") from exc

    if corners.shape != (4, 2):
        raise ProjectFormatError(f"{path}: expected 4 corner points, got {len(corners)}")
    if H is not None and H.shape != (3, 3):
        raise ProjectFormatError(f"{path}: homography must be 3 x 3, got {H.shape}")

    project["corners"] = corners
    project["homography"] = H
    project["view"] = view
    return project
