#!/usr/bin/env python3
"""
run_composite.py – Corner-pin compositing pipeline

Loads configuration from configs/default.yaml (or a user-specified file),
pins every configured overlay frame into its quadrilateral on the
background photo, and writes composites, diagnostic figures and project
files to the results directory.

Usage
-----
    python run_composite.py
    python run_composite.py --config configs/default.yaml
    python run_composite.py --jobs billboard
    python run_composite.py --no-figures --no-project
"""

import argparse
import os
import sys
import time

import numpy as np
import yaml

# Ensure the project root is on the Python path when invoked directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from cornerpin.compositing.warp import composite
from cornerpin.geometry.errors import HomographyError
from cornerpin.geometry.homography import (
    compute_homography,
    identity,
    matrix_to_string,
    reprojection_error,
)
from cornerpin.geometry.linalg import EPS
from cornerpin.geometry.quad import (
    MIN_QUAD_AREA,
    default_corners,
    frame_corners,
    quad_area,
    validate_quad,
)
from cornerpin.project import build_project, save_project
from cornerpin.utils.image_io import ensure_output_dirs, load_composite_inputs, save_rgba
from cornerpin.utils.visualization import save_composite_figure, save_corner_pin

DEFAULT_MAX_REPROJECTION_ERROR = 2.0


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def load_config(path: str) -> dict:
    with open(path, "r") as fh:
        return yaml.safe_load(fh) or {}


def banner(text: str) -> None:
    width = 60
    print("\n" + "─" * width)
    print(f"  {text}")
    print("─" * width)


def solve_corner_pin(frame_size, corners, eps: float = EPS,
                     max_error: float = DEFAULT_MAX_REPROJECTION_ERROR):
    """Homography from the frame rectangle onto *corners*, with identity fallback.

    Returns
    -------
    H : np.ndarray
        3 x 3 frame-to-photo homography (identity on fallback).
    error : float or None
        Reprojection error of the four corners, None if solving failed.
    fallback : bool
        True when the identity was substituted.
    """
    fw, fh = frame_size
    src = frame_corners(fw, fh)
    try:
        H = compute_homography(src, corners, eps=eps)
        error = reprojection_error(src, corners, H)
    except HomographyError as exc:
        print(f"  [WARN] Homography failed ({exc}) – using identity")
        return identity(), None, True

    print(f"    Reprojection error: {error:.3f}px")
    if not np.isfinite(error) or error > max_error:
        print(f"  [WARN] Reprojection error above {max_error}px – using identity")
        return identity(), error, True
    return H, error, False


# ──────────────────────────────────────────────────────────────────────────────
# Per-job pipeline
# ──────────────────────────────────────────────────────────────────────────────

def run_job(job_cfg: dict, cfg: dict, results_dir: str,
            save_figures: bool = True, save_proj: bool = True) -> dict:
    """Execute the compositing pipeline for one job and return summary metrics."""
    name = job_cfg["name"]
    banner(f"Job: {name}")

    eps = float(cfg.get("numerics", {}).get("eps", EPS))
    v_cfg = cfg.get("validation", {})
    min_area = float(v_cfg.get("min_area", MIN_QUAD_AREA))
    max_error = float(v_cfg.get("max_reprojection_error", DEFAULT_MAX_REPROJECTION_ERROR))
    require_convex = bool(v_cfg.get("require_convex", False))
    opacity = float(cfg.get("render", {}).get("opacity", 1.0))

    metrics = {
        "job": name,
        "area": None,
        "error": None,
        "fallback": None,
        "status": "skipped",
    }

    # ── 1. Load images ────────────────────────────────────────────────────────
    background, overlay = load_composite_inputs(job_cfg["background"], job_cfg["overlay"])
    bg_h, bg_w = background.shape[:2]
    fr_h, fr_w = overlay.shape[:2]
    print(f"  Loaded images  background {bg_w}×{bg_h}  /  overlay {fr_w}×{fr_h}")

    # ── 2. Validate corner pin ────────────────────────────────────────────────
    print("  Stage 1 – Corner pin validation")
    corners = job_cfg.get("corners")
    if corners is None:
        corners = default_corners(photo_size=(bg_w, bg_h))
        print("    No corners configured – using the centred default quad")
    try:
        corners = validate_quad(corners, min_area=min_area,
                                require_convex=require_convex)
    except HomographyError as exc:
        print(f"  [WARN] {exc} – job skipped")
        return metrics
    metrics["area"] = quad_area(corners)
    print(f"    Area: {metrics['area']:.1f}px²")

    # ── 3. Homography ─────────────────────────────────────────────────────────
    print("  Stage 2 – Homography")
    H, error, fallback = solve_corner_pin((fr_w, fr_h), corners, eps=eps,
                                          max_error=max_error)
    metrics["error"] = error
    metrics["fallback"] = fallback
    for line in matrix_to_string(H, precision=6).split("\n"):
        print(f"    {line}")

    # ── 4. Render ─────────────────────────────────────────────────────────────
    print("  Stage 3 – Perspective warp + composite")
    render_corners = frame_corners(fr_w, fr_h) if fallback else corners
    result = composite(background, overlay, render_corners, H=H,
                       opacity=opacity, eps=eps)
    out_path = os.path.join(results_dir, name, "composite.png")
    save_rgba(result, out_path)
    print(f"  Saved composite → {out_path}")

    if save_figures:
        save_corner_pin(background, corners, H, (fr_w, fr_h), name, results_dir)
        save_composite_figure(result, name, results_dir,
                              error if error is not None else float("nan"),
                              metrics["area"])

    if save_proj:
        project = build_project((bg_w, bg_h), (fr_w, fr_h), corners, H,
                                export_settings={"opacity": opacity})
        save_project(project, os.path.join(results_dir, name, "project.json"))

    metrics["status"] = "ok"
    return metrics


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Corner-pin an overlay frame onto a background photo"
    )
    p.add_argument(
        "--config", default="configs/default.yaml",
        help="Path to YAML configuration file (default: configs/default.yaml)",
    )
    p.add_argument(
        "--jobs", nargs="*", default=None,
        help="Subset of job names to process (default: all jobs in config)",
    )
    p.add_argument(
        "--no-figures", action="store_true",
        help="Skip the matplotlib diagnostic figures",
    )
    p.add_argument(
        "--no-project", action="store_true",
        help="Do not write project.json next to each composite",
    )
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    # Load configuration
    if not os.path.exists(args.config):
        print(f"[ERROR] Config file not found: {args.config}")
        sys.exit(1)
    cfg = load_config(args.config)

    results_dir = cfg.get("results_dir", "results")
    jobs = cfg.get("jobs", [])

    # Optionally restrict to a subset of jobs
    if args.jobs:
        jobs = [j for j in jobs if j["name"] in args.jobs]
        if not jobs:
            print(f"[ERROR] No matching jobs found for: {args.jobs}")
            sys.exit(1)

    # Validate that image files exist
    for job in jobs:
        for key in ("background", "overlay"):
            if not os.path.exists(job[key]):
                print(f"[ERROR] Image not found: {job[key]}")
                sys.exit(1)

    ensure_output_dirs([j["name"] for j in jobs], base=results_dir)

    banner("Corner-Pin Compositing Pipeline")
    print(f"  Config : {args.config}")
    print(f"  Jobs   : {[j['name'] for j in jobs]}")
    print(f"  Output : {results_dir}/")

    t0 = time.time()
    all_metrics = []

    for job in jobs:
        metrics = run_job(job, cfg, results_dir,
                          save_figures=not args.no_figures,
                          save_proj=not args.no_project)
        all_metrics.append(metrics)

    # ── Summary table ──────────────────────────────────────────────────────
    banner("Results Summary")
    header = f"{'Job':<14} {'Area':>10} {'Error':>9} {'Fallback':>9} {'Status':>8}"
    print(header)
    print("─" * len(header))
    for m in all_metrics:
        area = f"{m['area']:.0f}" if m["area"] is not None else "–"
        err = f"{m['error']:.3f}" if m["error"] is not None else "–"
        fb = ("yes" if m["fallback"] else "no") if m["fallback"] is not None else "–"
        print(f"{m['job']:<14} {area:>10} {err:>9} {fb:>9} {m['status']:>8}")

    elapsed = time.time() - t0
    print(f"\nPipeline complete in {elapsed:.1f}s")
    print(f"Results saved to: {os.path.abspath(results_dir)}/")


if __name__ == "__main__":
    main()
