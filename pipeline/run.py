"""Pipeline composition: reproject, bin, estimate, vectorize.

Each stage is a pure function of the previous stage's output and the
configuration passed in; nothing is read from module-level state.
"""
from __future__ import annotations

import os
import logging
from typing import Optional

import geopandas as gpd
from shapely.ops import unary_union

from binning import count_points, count_by_category, grid_counts
from density import SurfaceCache, make_estimator
from spatial.crs import validate_crs_units
from spatial.store import GeometryStore

logger = logging.getLogger(__name__)

OUTPUT_CRS = "EPSG:4326"


class PipelineResult:
    """Products of one pipeline run.

    Attributes:
        store: Reprojected GeometryStore.
        boundary: Boundary frame in the projected CRS.
        region_counts: Regions with ``count``/``density`` columns (or None).
        category_counts: Region x category table (or None).
        grid_counts: Clipped grid with ``count``/``density`` columns.
        surface: DensitySurface over the boundary.
        bands: Dissolved isodensity bands.
    """

    def __init__(self, store, boundary, region_counts, category_counts, grid_counts, surface, bands):
        self.store = store
        self.boundary = boundary
        self.region_counts = region_counts
        self.category_counts = category_counts
        self.grid_counts = grid_counts
        self.surface = surface
        self.bands = bands

    def frames(self) -> dict:
        """Renderer-facing vector products keyed by output name.

        Overlay layers carried by the store (boundary, hydrography, ...) are
        included under their layer name; the study-area boundary is always
        present as ``boundary``.
        """
        out = {
            "grid_counts": self.grid_counts,
            "density_cells": self.surface.to_geodataframe(),
            "density_bands": self.bands,
        }
        if self.region_counts is not None:
            out["region_counts"] = self.region_counts
        out["boundary"] = self.boundary
        for name, layer in self.store.layers.items():
            out.setdefault(name, layer)
        return out


def _boundary_of(store: GeometryStore) -> gpd.GeoDataFrame:
    if "boundary" in store.layers:
        return store.layer("boundary")
    if store.regions is not None:
        logger.info("No boundary layer, dissolving regions into one")
        regions = store.regions
        return gpd.GeoDataFrame(geometry=[unary_union(list(regions.geometry))], crs=regions.crs)
    raise KeyError("Store has neither a 'boundary' layer nor regions to derive one from")


def run_pipeline(
    store: GeometryStore,
    config: dict,
    cache: Optional[SurfaceCache] = None,
) -> PipelineResult:
    """Run every stage over a store.

    Args:
        store: Points plus optional regions and layers ("boundary",
            "hydrography", ...) in any CRS.
        config: Configuration dictionary (see pipeline.config).
        cache: Optional SurfaceCache reused across runs.

    Returns:
        PipelineResult.

    Raises:
        CrsError, GeometryError, InsufficientDataError: From the failing
            stage, with the stage name attached.
    """
    crs_cfg = config["crs"]
    validate_crs_units(crs_cfg["projected"], expected_units="m")

    logger.info("Reprojecting %d points to %s", len(store), crs_cfg["projected"])
    projected = store.reproject(crs_cfg["projected"], source_crs=crs_cfg.get("source"))
    points = projected.points
    boundary = _boundary_of(projected)

    region_counts = None
    category_counts = None
    regions = projected.regions
    if regions is not None:
        id_col = config["regions"].get("id_col")
        region_counts = count_points(points, regions, region_id_col=id_col)
        category_col = config["points"].get("category_col")
        if category_col:
            category_counts = count_by_category(points, regions, category_col, region_id_col=id_col)

    grid_cfg = config["grid"]
    grid = grid_counts(points, boundary, grid_cfg["n_cols"], grid_cfg["n_rows"])

    density_cfg = config["density"]
    estimator = make_estimator(
        "kde",
        kernel=density_cfg["kernel"],
        bandwidth=density_cfg.get("bandwidth"),
        bandwidth_rule=density_cfg["bandwidth_rule"],
        resolution=density_cfg["resolution"],
    )
    if cache is not None:
        surface = cache.get_or_estimate(estimator, points, boundary)
    else:
        surface = estimator.estimate(points, boundary)

    bands = surface.isodensity_bands(
        n_bands=density_cfg["n_bands"],
        scheme=density_cfg.get("band_scheme", "quantile"),
    )
    return PipelineResult(projected, boundary, region_counts, category_counts, grid, surface, bands)


def write_outputs(result: PipelineResult, outdir: str, crs: str = OUTPUT_CRS) -> list:
    """Write the renderer-facing products as GeoJSON files.

    Frames are converted to ``crs`` (lon/lat by default). Empty frames are
    skipped.

    Returns:
        List of written file paths.
    """
    os.makedirs(outdir, exist_ok=True)
    written = []
    for name, frame in result.frames().items():
        if frame is None or frame.empty:
            logger.warning("Skipping empty output %s", name)
            continue
        if frame.crs is not None:
            frame = frame.to_crs(crs)
        path = os.path.join(outdir, f"{name}.geojson")
        frame.to_file(path, driver="GeoJSON")
        written.append(path)
    return written
