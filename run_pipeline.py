#!/usr/bin/env python3
"""
run_pipeline.py – Pairwise Homography Stitching Pipeline

Loads configuration from configs/default.yaml (or a user-specified file)
and, for every scene, stitches each listed image onto the growing canvas
that starts from the scene's base image.  Correspondences come from CSV
files (xb, yb, xt, yt) produced by an external matcher.

Usage
-----
    python run_pipeline.py
    python run_pipeline.py --config configs/default.yaml
    python run_pipeline.py --scenes robot
    python run_pipeline.py --seed 7 --no-figures
"""

import argparse
import os
import sys
import time
import warnings

import numpy as np

# Ensure the package is importable when invoked from a source checkout
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))

from panostitch.config import StitchConfig, load_config
from panostitch.errors import LowConfidenceEstimateWarning, StitchingError
from panostitch.stitching.panorama import stitch_pair
from panostitch.utils.image_io import (
    ensure_output_dirs,
    load_correspondences,
    load_image,
    save_image,
)
from panostitch.utils.visualization import save_inlier_matches, save_panorama


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def banner(text: str) -> None:
    width = 60
    print("\n" + "─" * width)
    print(f"  {text}")
    print("─" * width)


# ──────────────────────────────────────────────────────────────────────────────
# Per-scene pipeline
# ──────────────────────────────────────────────────────────────────────────────

def run_scene(scene_cfg: dict, config: StitchConfig, results_dir: str,
              seed, save_figures: bool) -> dict:
    """Stitch every image of a scene into its base and return summary metrics."""
    name = scene_cfg["name"]
    banner(f"Scene: {name}")

    canvas = load_image(scene_cfg["base"])
    print(f"  Base image  {canvas.shape[1]}×{canvas.shape[0]}")

    metrics = {"scene": name, "stitched": 0, "skipped": 0,
               "matches": 0, "inliers": 0, "size": None}

    rng = np.random.default_rng(seed)

    pairs = zip(scene_cfg["images"], scene_cfg["correspondences"])
    for step, (img_path, corr_path) in enumerate(pairs, start=1):
        print(f"  Step {step} – {os.path.basename(img_path)}")
        target = load_image(img_path)
        correspondences = load_correspondences(corr_path)
        print(f"    {correspondences.count} correspondences")

        try:
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always", LowConfidenceEstimateWarning)
                result = stitch_pair(canvas, target, correspondences, config, rng=rng)
        except StitchingError as exc:
            print(f"    Step skipped – {exc}")
            metrics["skipped"] += 1
            continue

        for w in caught:
            print(f"    [WARN] {w.message}")

        if save_figures:
            save_inlier_matches(canvas, target, correspondences, result.inliers,
                                name, results_dir, step=step)

        canvas = result.image
        metrics["stitched"] += 1
        metrics["matches"] += result.num_matches
        metrics["inliers"] += result.num_inliers

    out_path = os.path.join(results_dir, name, "panorama.png")
    save_image(out_path, canvas)
    print(f"  Saved panorama → {out_path}")
    if save_figures:
        save_panorama(canvas, name, results_dir,
                      metrics["inliers"], metrics["matches"])

    metrics["size"] = f"{canvas.shape[1]}×{canvas.shape[0]}"
    return metrics


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def parse_args():
    p = argparse.ArgumentParser(
        description="Pairwise homography estimation and panorama stitching"
    )
    p.add_argument(
        "--config", default="configs/default.yaml",
        help="Path to YAML configuration file (default: configs/default.yaml)",
    )
    p.add_argument(
        "--scenes", nargs="*", default=None,
        help="Subset of scene names to process (default: all scenes in config)",
    )
    p.add_argument(
        "--seed", type=int, default=None,
        help="RANSAC seed (overrides ransac.seed from the config)",
    )
    p.add_argument(
        "--no-figures", action="store_true",
        help="Skip the matplotlib inlier and panorama figures",
    )
    return p.parse_args()


def main():
    args = parse_args()

    if not os.path.exists(args.config):
        print(f"[ERROR] Config file not found: {args.config}")
        sys.exit(1)
    cfg = load_config(args.config)
    try:
        config = StitchConfig.from_dict(cfg)
    except ValueError as exc:
        print(f"[ERROR] Invalid configuration: {exc}")
        sys.exit(1)

    results_dir = cfg.get("results_dir", "results")
    scenes = cfg.get("scenes", [])

    if args.scenes:
        scenes = [s for s in scenes if s["name"] in args.scenes]
        if not scenes:
            print(f"[ERROR] No matching scenes found for: {args.scenes}")
            sys.exit(1)

    for sc in scenes:
        if len(sc["images"]) != len(sc["correspondences"]):
            print(f"[ERROR] Scene {sc['name']}: one correspondence file "
                  f"is required per image")
            sys.exit(1)
        for path in [sc["base"], *sc["images"], *sc["correspondences"]]:
            if not os.path.exists(path):
                print(f"[ERROR] File not found: {path}")
                sys.exit(1)

    ensure_output_dirs([s["name"] for s in scenes], results_dir)

    seed = args.seed if args.seed is not None else config.seed

    banner("Pairwise Homography Stitching Pipeline")
    print(f"  Config  : {args.config}")
    print(f"  Scenes  : {[s['name'] for s in scenes]}")
    print(f"  RANSAC  : {config.num_iterations} iterations, "
          f"threshold {config.inlier_threshold}px², seed {seed}")
    print(f"  Output  : {results_dir}/")

    t0 = time.time()
    all_metrics = [
        run_scene(sc, config, results_dir, seed, not args.no_figures)
        for sc in scenes
    ]

    # ── Summary table ──────────────────────────────────────────────────────
    banner("Results Summary")
    header = (f"{'Scene':<12} {'Stitched':>9} {'Skipped':>8} "
              f"{'Matches':>9} {'Inliers':>9} {'Rate':>7} {'Size':>12}")
    print(header)
    print("─" * len(header))
    for m in all_metrics:
        rate = f"{100 * m['inliers'] / m['matches']:.1f}%" if m["matches"] else "–"
        print(f"{m['scene']:<12} {m['stitched']:>9} {m['skipped']:>8} "
              f"{m['matches']:>9} {m['inliers']:>9} {rate:>7} {m['size']:>12}")

    elapsed = time.time() - t0
    print(f"\nPipeline complete in {elapsed:.1f}s")
    print(f"Results saved to: {os.path.abspath(results_dir)}/")


if __name__ == "__main__":
    main()
