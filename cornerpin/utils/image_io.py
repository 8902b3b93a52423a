"""
Image I/O helpers.

Thin wrappers around PIL for loading photos and overlay frames as RGBA
arrays, saving composites, and managing output directories.
"""

import os
import numpy as np
from PIL import Image


def load_rgba(path: str) -> np.ndarray:
    """Load an image as a uint8 RGBA array.

    Parameters
    ----------
    path : str
        File path to the image.

    Returns
    -------
    np.ndarray
        H x W x 4 uint8 array.
    """
    with Image.open(path) as im:
        return np.array(im.convert("RGBA"))


def load_composite_inputs(background_path: str, overlay_path: str):
    """Load the background photo and overlay frame of a composite job.

    Returns
    -------
    background, overlay : np.ndarray
        H x W x 4 uint8 arrays.
    """
    return load_rgba(background_path), load_rgba(overlay_path)


def save_rgba(img: np.ndarray, path: str) -> None:
    """Write an H x W x 4 (or x 3) uint8 array to *path*; format from the suffix."""
    Image.fromarray(np.ascontiguousarray(img, dtype=np.uint8)).save(path)


def ensure_output_dirs(jobs: list, base: str = "results") -> None:
    """Create output subdirectories for each job name.

    Parameters
    ----------
    jobs : list of str
        Job identifiers (one subdirectory is created per job).
    base : str
        Root output directory.
    """
    for job in jobs:
        os.makedirs(os.path.join(base, job), exist_ok=True)
