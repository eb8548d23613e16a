"""Point-in-polygon assignment and per-region counts.

Assigns every point to at most one enclosing region and reduces the
assignment into counts for choropleth rendering. Candidate regions are
pruned with the geopandas spatial index before the exact test.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.validation import explain_validity

from spatial.errors import GeometryError
from spatial.store import as_geoseries, check_same_crs

logger = logging.getLogger(__name__)

# Square metres per square kilometre.
KM2 = 1e6


def _region_ids(regions: gpd.GeoDataFrame, region_id_col: Optional[str]) -> List[Any]:
    """Region identifiers in enumeration order."""
    if region_id_col is None:
        ids = regions.index.tolist()
    else:
        if region_id_col not in regions.columns:
            raise KeyError(
                f"Region id column '{region_id_col}' not found. "
                f"Available columns: {sorted(map(str, regions.columns))}"
            )
        ids = regions[region_id_col].tolist()

    if len(set(ids)) != len(ids):
        seen, dupes = set(), []
        for rid in ids:
            if rid in seen:
                dupes.append(rid)
            seen.add(rid)
        raise ValueError(f"Region ids must be unique, duplicated: {dupes[:5]}")
    return ids


def _check_valid(regions: gpd.GeoDataFrame, ids: List[Any]) -> None:
    """Raise GeometryError naming the first region with invalid geometry."""
    for rid, geom in zip(ids, regions.geometry):
        if geom is not None and not geom.is_empty and not geom.is_valid:
            raise GeometryError(
                f"region geometry is invalid: {explain_validity(geom)}",
                stage="assign",
                input_id=rid,
            )


def assign_points(
    points,
    regions: gpd.GeoDataFrame,
    region_id_col: Optional[str] = None,
) -> pd.Series:
    """Assign each point to the region that contains it.

    A point on a shared boundary, or inside overlapping regions, matches
    several regions; it is assigned to the one that comes first in the
    regions frame. Points on a region's edge count as inside.

    Args:
        points: Point collection (GeoDataFrame, GeoSeries, geometries or xy pairs).
        regions: GeoDataFrame of polygon regions.
        region_id_col: Column holding region identifiers (default: the index).

    Returns:
        Series aligned with the points holding the assigned region id, or
        None where no region covers the point.

    Raises:
        CrsError: If points and regions carry different CRSs.
        GeometryError: If a region geometry is invalid (e.g. self-intersecting).
        KeyError: If ``region_id_col`` is not a column of ``regions``.
    """
    pts = as_geoseries(points)
    check_same_crs(pts, regions, stage="assign")
    ids = _region_ids(regions, region_id_col)
    _check_valid(regions, ids)

    result = pd.Series([None] * len(pts), index=pts.index, dtype=object)
    if len(pts) == 0 or len(regions) == 0:
        return result

    # CRS already checked; drop it so sjoin does not warn on a one-sided CRS.
    left = gpd.GeoDataFrame({"_pt": np.arange(len(pts))}, geometry=list(pts))
    right = gpd.GeoDataFrame({"_rank": np.arange(len(regions))}, geometry=list(regions.geometry))

    joined = gpd.sjoin(left, right, how="inner", predicate="intersects")
    joined = joined.sort_values(["_pt", "_rank"], kind="mergesort")
    joined = joined.drop_duplicates(subset="_pt", keep="first")

    positions = joined["_pt"].to_numpy()
    result.iloc[positions] = [ids[r] for r in joined["_rank"].to_numpy()]
    return result


def assign(
    points,
    regions: gpd.GeoDataFrame,
    region_id_col: Optional[str] = None,
) -> Dict[Any, int]:
    """Count points per region.

    Every region appears in the result, zero counts included, in region
    order. The counts sum to at most ``len(points)``; they sum to exactly
    ``len(points)`` when every point falls inside some region.

    Args:
        points: Point collection.
        regions: GeoDataFrame of polygon regions.
        region_id_col: Column holding region identifiers (default: the index).

    Returns:
        Mapping of region id to point count.
    """
    assigned = assign_points(points, regions, region_id_col)
    counts = dict.fromkeys(_region_ids(regions, region_id_col), 0)
    for region_id, n in assigned[assigned.notna()].value_counts(sort=False).items():
        counts[region_id] = int(n)

    n_in = sum(counts.values())
    logger.info("Assigned %d of %d points to %d regions", n_in, len(assigned), len(counts))
    return counts


def count_points(
    points,
    regions: gpd.GeoDataFrame,
    region_id_col: Optional[str] = None,
    count_col: str = "count",
    density_col: str = "density",
    area_unit: float = KM2,
) -> gpd.GeoDataFrame:
    """Attach point counts and count densities to a regions frame.

    Args:
        points: Point collection.
        regions: GeoDataFrame of polygon regions.
        region_id_col: Column holding region identifiers (default: the index).
        count_col: Name of the output count column.
        density_col: Name of the output density column.
        area_unit: Area of one density unit in map units squared
            (default 1e6, i.e. points per km² for metre CRSs).

    Returns:
        Copy of ``regions`` with ``count_col`` and ``density_col`` added.
        Regions with empty geometry have count and density 0.
    """
    counts = assign(points, regions, region_id_col)
    out = regions.copy()
    out[count_col] = [counts[rid] for rid in _region_ids(regions, region_id_col)]

    if out.crs is not None and out.crs.is_geographic:
        logger.warning("Region densities computed in a geographic CRS (square degrees)")
    area = out.geometry.area.to_numpy()
    count = out[count_col].to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        out[density_col] = np.where(area > 0, count / (area / area_unit), 0.0)
    return out


def count_by_category(
    points: gpd.GeoDataFrame,
    regions: gpd.GeoDataFrame,
    category_col: str,
    region_id_col: Optional[str] = None,
) -> pd.DataFrame:
    """Cross-tabulate point categories per region.

    Args:
        points: GeoDataFrame of points carrying ``category_col``.
        regions: GeoDataFrame of polygon regions.
        category_col: Point attribute to break counts down by.
        region_id_col: Column holding region identifiers (default: the index).

    Returns:
        DataFrame indexed by region id (region order, every region present)
        with one integer column per category. Points without a category
        are left out of the table and reported with a warning.
    """
    if category_col not in points.columns:
        raise KeyError(f"Category column '{category_col}' not found in points")

    assigned = assign_points(points, regions, region_id_col)
    df = pd.DataFrame({
        "region": assigned.to_numpy(),
        "category": points[category_col].to_numpy(),
    })
    df = df[df["region"].notna()]
    n_missing = int(df["category"].isna().sum())
    if n_missing:
        logger.warning(
            "%d assigned points have no %s and are left out of the category table",
            n_missing, category_col,
        )
        df = df[df["category"].notna()]

    if df.empty:
        table = pd.DataFrame(index=pd.Index([], dtype=object))
    else:
        table = pd.crosstab(df["region"], df["category"])
    table = table.reindex(_region_ids(regions, region_id_col), fill_value=0)
    table.index.name = region_id_col or "region"
    table.columns.name = category_col
    return table.astype(int)
