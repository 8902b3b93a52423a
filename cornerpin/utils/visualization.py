"""
Visualization utilities for the corner-pin compositing pipeline.

All functions save figures to disk rather than displaying them interactively,
making the module suitable for headless execution.
"""

import os
import numpy as np
import matplotlib
matplotlib.use("Agg")          # non-interactive backend
import matplotlib.pyplot as plt

from cornerpin.geometry.homography import apply_homography_many


# ---------------------------------------------------------------------------
# Corner pin
# ---------------------------------------------------------------------------

def save_corner_pin(background: np.ndarray, corners: np.ndarray,
                    H: np.ndarray, frame_size: tuple,
                    job: str, out_dir: str, grid: int = 8) -> None:
    """Save the photo with the corner pin outline and the projected frame mesh."""
    fw, fh = frame_size
    fig, ax = plt.subplots(figsize=(12, 8))
    ax.imshow(background)

    # Frame grid lines pushed through H
    for t in np.linspace(0, 1, grid + 1):
        vert = np.column_stack([np.full(50, t * fw), np.linspace(0, fh, 50)])
        horz = np.column_stack([np.linspace(0, fw, 50), np.full(50, t * fh)])
        for line in (apply_homography_many(vert, H), apply_homography_many(horz, H)):
            ax.plot(line[:, 0], line[:, 1], "c-", linewidth=0.6, alpha=0.6)

    closed = np.vstack([corners, corners[:1]])
    ax.plot(closed[:, 0], closed[:, 1], "-", color="orange", linewidth=2)
    for idx, (x, y) in enumerate(corners):
        ax.plot(x, y, "wo", markersize=8, markeredgecolor="black")
        ax.text(x + 6, y - 6, ("TL", "TR", "BR", "BL")[idx], color="yellow",
                fontsize=9, weight="bold",
                bbox=dict(boxstyle="round,pad=0.2", facecolor="black", alpha=0.5))

    ax.set_title(f"{job} – corner pin")
    ax.axis("off")
    plt.tight_layout()
    plt.savefig(os.path.join(out_dir, job, "corner_pin.jpg"), dpi=150, bbox_inches="tight")
    plt.close()


# ---------------------------------------------------------------------------
# Composite
# ---------------------------------------------------------------------------

def save_composite_figure(composite: np.ndarray, job: str, out_dir: str,
                          error: float, area: float) -> None:
    """Save the composite with its reprojection error and quad area in the title."""
    plt.figure(figsize=(14, 9))
    plt.imshow(composite)
    plt.title(f"{job} composite  |  reprojection error {error:.3f}px  |  "
              f"area {area:.0f}px²")
    plt.axis("off")
    plt.tight_layout()
    plt.savefig(os.path.join(out_dir, job, "composite_preview.jpg"), dpi=150,
                bbox_inches="tight")
    plt.close()
