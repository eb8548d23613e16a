#!/usr/bin/env python3
"""Export county counts, grid counts and density surfaces for Georgia point data.

Loads point features (campgrounds, churches, ...), the state boundary and
optionally county regions and a hydrography layer, runs the binning and
density stages, and writes GeoJSON products for the map renderer.

Usage:
    # Run with defaults from pipeline_config.json (or built-in defaults)
    python run_density_export.py

    # Or with custom arguments
    python run_density_export.py --points data/ga_churches.csv --n-cols 20 --n-rows 20 --bandwidth 15000
"""

import argparse
import logging
import sys

from pipeline import load_config, validate_config, run_pipeline, write_outputs
from spatial import GeometryStore, PipelineError, load_points, load_regions, load_layer


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Export point counts and density surfaces for choropleth and gradient maps"
    )
    parser.add_argument(
        "--config",
        default="pipeline_config.json",
        help="Path to pipeline configuration JSON (default: pipeline_config.json)"
    )
    parser.add_argument("--points", help="Point table or vector file (overrides config paths.points)")
    parser.add_argument("--boundary", help="Boundary polygon file (overrides config paths.boundary)")
    parser.add_argument("--counties", help="County polygons file (overrides config paths.counties)")
    parser.add_argument("--hydrography", help="Hydrography layer file (overrides config paths.hydrography)")
    parser.add_argument("--out", help="Output directory (overrides config paths.outdir)")
    parser.add_argument("--category-col", help="Point attribute for per-category county counts")
    parser.add_argument("--n-cols", type=int, help="Grid columns")
    parser.add_argument("--n-rows", type=int, help="Grid rows")
    parser.add_argument("--resolution", type=int, help="Density raster cells per side")
    parser.add_argument("--bandwidth", type=float, help="KDE bandwidth in projected units (default: Silverman's rule)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Fold command-line overrides into the configuration."""
    overrides = {
        ("paths", "points"): args.points,
        ("paths", "boundary"): args.boundary,
        ("paths", "counties"): args.counties,
        ("paths", "hydrography"): args.hydrography,
        ("paths", "outdir"): args.out,
        ("points", "category_col"): args.category_col,
        ("grid", "n_cols"): args.n_cols,
        ("grid", "n_rows"): args.n_rows,
        ("density", "resolution"): args.resolution,
        ("density", "bandwidth"): args.bandwidth,
    }
    for (section, key), value in overrides.items():
        if value is not None:
            config[section][key] = value
    return config


def build_store(config: dict) -> GeometryStore:
    """Load points, boundary, counties and hydrography into a GeometryStore."""
    paths = config["paths"]
    source_crs = config["crs"]["source"]

    print(f"[INFO] Loading points from {paths['points']}...")
    points = load_points(
        paths["points"],
        x_col=config["points"]["x_col"],
        y_col=config["points"]["y_col"],
        crs=source_crs,
    )
    print(f"[INFO] Loaded {len(points)} points")

    layers = {}
    print(f"[INFO] Loading boundary from {paths['boundary']}...")
    layers["boundary"] = load_regions(paths["boundary"], default_crs=source_crs)

    regions = None
    if paths.get("counties"):
        try:
            regions = load_regions(paths["counties"], default_crs=source_crs)
            print(f"[INFO] Loaded {len(regions)} counties")
        except FileNotFoundError:
            print(f"[WARN] Counties file not found: {paths['counties']}; skipping county counts")

    if paths.get("hydrography"):
        try:
            layers["hydrography"] = load_layer(paths["hydrography"], default_crs=source_crs)
        except FileNotFoundError:
            print(f"[WARN] Hydrography file not found: {paths['hydrography']}; skipping overlay")

    return GeometryStore(points, regions=regions, layers=layers)


def main(argv=None) -> None:
    """Run the pipeline and export renderer inputs.

    Raises:
        SystemExit: If loading or any pipeline stage fails.
    """
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = apply_overrides(load_config(args.config), args)
        errors = validate_config(config)
        if errors:
            raise ValueError("Invalid overrides: " + "; ".join(errors))
    except ValueError as e:
        print(f"[ERROR] {e}")
        sys.exit(1)

    try:
        store = build_store(config)
    except (FileNotFoundError, ValueError) as e:
        print(f"[ERROR] Failed to load data: {e}")
        sys.exit(1)

    grid_cfg, density_cfg = config["grid"], config["density"]
    print(
        f"[INFO] Running pipeline: grid {grid_cfg['n_cols']}x{grid_cfg['n_rows']}, "
        f"raster {density_cfg['resolution']}x{density_cfg['resolution']}, "
        f"bandwidth {density_cfg['bandwidth'] or density_cfg['bandwidth_rule']}"
    )
    try:
        result = run_pipeline(store, config)
    except PipelineError as e:
        print(f"[ERROR] Stage '{e.stage}' failed: {e}")
        sys.exit(1)
    except KeyError as e:
        print(f"[ERROR] Missing input: {e}")
        sys.exit(1)
    except ValueError as e:
        print(f"[ERROR] Invalid input: {e}")
        sys.exit(1)

    surface = result.surface
    print(
        f"[INFO] Density surface: {surface.n_points} points, bandwidth {surface.bandwidth:.0f}, "
        f"mass ratio {surface.mass_ratio:.3f}"
    )
    if result.region_counts is not None:
        top = result.region_counts.sort_values("count", ascending=False).head(5)
        id_col = config["regions"].get("id_col")
        if id_col in top.columns:
            top = top.set_index(id_col)
        print(f"[INFO] Top regions by count: {top['count'].to_dict()}")

    outdir = config["paths"]["outdir"]
    print(f"[INFO] Writing outputs to {outdir}...")
    written = write_outputs(result, outdir)
    for path in written:
        print(f"[OK] {path}")

    print("[DONE] Density export complete.")


if __name__ == "__main__":
    main()
