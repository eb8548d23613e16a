"""Ingestion helpers for point tables and region layers.

Thin wrappers over pandas and geopandas readers used by the command-line
runner. The pipeline stages themselves only ever see GeoDataFrames.
"""

import os
import json
import logging

import pandas as pd
import geopandas as gpd

from spatial.crs import resolve_crs

logger = logging.getLogger(__name__)

TABLE_EXTENSIONS = (".csv", ".json", ".jsonl")


def load_points(
    path: str,
    x_col: str = "lon",
    y_col: str = "lat",
    crs="EPSG:4326",
) -> gpd.GeoDataFrame:
    """Load point features from a coordinate table or a vector file.

    CSV, JSON (array of objects) and JSONL files are read as tables with
    ``x_col``/``y_col`` coordinate columns in ``crs``. Any other extension is
    handed to ``geopandas.read_file``; a file without a CRS is tagged with
    ``crs``.

    Args:
        path: Path to the input file.
        x_col: Name of the longitude/x column for tables.
        y_col: Name of the latitude/y column for tables.
        crs: CRS of table coordinates, or fallback CRS for vector files.

    Returns:
        GeoDataFrame of Point features.

    Raises:
        FileNotFoundError: If the input file does not exist.
        ValueError: If coordinate columns are missing or the file has no
            point geometry.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input file not found: {path}")

    ext = os.path.splitext(path)[1].lower()
    if ext in TABLE_EXTENSIONS:
        if ext == ".csv":
            df = pd.read_csv(path)
        elif ext == ".jsonl":
            df = pd.read_json(path, lines=True)
        else:
            with open(path, "r", encoding="utf-8") as f:
                df = pd.DataFrame(json.load(f))

        missing = {x_col, y_col} - set(df.columns)
        if missing:
            raise ValueError(
                f"Missing required columns: {sorted(missing)}. "
                f"Available columns: {sorted(df.columns.tolist())}"
            )
        before = len(df)
        df[x_col] = pd.to_numeric(df[x_col], errors="coerce")
        df[y_col] = pd.to_numeric(df[y_col], errors="coerce")
        df = df.dropna(subset=[x_col, y_col]).reset_index(drop=True)
        if len(df) < before:
            logger.warning("Dropped %d rows without coordinates from %s", before - len(df), path)

        crs_obj = resolve_crs(crs, stage="load_points")
        if crs_obj.is_geographic:
            df = df[df[x_col].between(-180, 180) & df[y_col].between(-90, 90)].reset_index(drop=True)
        return gpd.GeoDataFrame(df, geometry=gpd.points_from_xy(df[x_col], df[y_col]), crs=crs_obj)

    gdf = gpd.read_file(path)
    if gdf.crs is None and crs is not None:
        gdf = gdf.set_crs(resolve_crs(crs, stage="load_points"))
    gdf = gdf[gdf.geometry.notna()]
    gdf = gdf[gdf.geometry.geom_type == "Point"].reset_index(drop=True)
    if gdf.empty:
        raise ValueError(f"No point features found in {path}")
    return gdf


def load_regions(path: str, default_crs="EPSG:4326") -> gpd.GeoDataFrame:
    """Load polygon regions (counties, state boundary) from a vector file.

    Non-polygonal rows are dropped. A file without a CRS is assumed to be in
    ``default_crs``.

    Raises:
        FileNotFoundError: If the input file does not exist.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input file not found: {path}")

    gdf = gpd.read_file(path)
    if gdf.crs is None and default_crs is not None:
        logger.warning("%s has no CRS, assuming %s", path, default_crs)
        gdf = gdf.set_crs(resolve_crs(default_crs, stage="load_regions"))
    gdf = gdf[gdf.geometry.notna()]
    gdf = gdf[gdf.geometry.geom_type.isin(["Polygon", "MultiPolygon"])]
    return gdf.reset_index(drop=True)


def load_layer(path: str, default_crs="EPSG:4326") -> gpd.GeoDataFrame:
    """Load an overlay layer (e.g. hydrography) without filtering geometry types."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input file not found: {path}")

    gdf = gpd.read_file(path)
    if gdf.crs is None and default_crs is not None:
        gdf = gdf.set_crs(resolve_crs(default_crs, stage="load_layer"))
    return gdf[gdf.geometry.notna()].reset_index(drop=True)
