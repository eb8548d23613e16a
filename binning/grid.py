"""Regular grid (fishnet) over a boundary.

Cells are laid out row-major from the north-west corner of the boundary's
bounding box and numbered from 1. Clipping keeps every cell, including
cells left empty, so cell ids stay stable through the pipeline.
"""

import logging

import numpy as np
import geopandas as gpd
from shapely.geometry import Polygon, MultiPolygon, box
from shapely.ops import unary_union

from spatial.store import as_polygon, check_same_crs, crs_of
from binning.join import count_points

logger = logging.getLogger(__name__)


def make_grid(boundary, n_cols: int, n_rows: int) -> gpd.GeoDataFrame:
    """Partition the bounding box of ``boundary`` into equal rectangles.

    Args:
        boundary: Boundary polygon (shapely geometry, GeoSeries or GeoDataFrame).
        n_cols: Number of columns (west to east).
        n_rows: Number of rows (north to south).

    Returns:
        GeoDataFrame with ``cell_id`` (1..n_cols*n_rows), ``row``, ``col``
        and rectangular cell geometry, in row-major order.

    Raises:
        ValueError: If ``n_cols`` or ``n_rows`` is less than 1.
        GeometryError: If the boundary is empty, invalid or has zero area.
    """
    if n_cols < 1 or n_rows < 1:
        raise ValueError(f"Grid dimensions must be >= 1, got {n_cols}x{n_rows}")

    geom = as_polygon(boundary, stage="make_grid")
    minx, miny, maxx, maxy = geom.bounds
    xs = np.linspace(minx, maxx, n_cols + 1)
    ys = np.linspace(maxy, miny, n_rows + 1)

    rows, cols, cells = [], [], []
    for r in range(n_rows):
        for c in range(n_cols):
            rows.append(r)
            cols.append(c)
            cells.append(box(xs[c], ys[r + 1], xs[c + 1], ys[r]))

    n_cells = n_cols * n_rows
    logger.debug("Built %dx%d grid over bounds %s", n_cols, n_rows, geom.bounds)
    return gpd.GeoDataFrame(
        {
            "cell_id": np.arange(1, n_cells + 1),
            "row": rows,
            "col": cols,
        },
        geometry=cells,
        crs=crs_of(boundary),
    )


def _polygonal(geom):
    """Keep only the polygonal part of an intersection result."""
    if geom.is_empty:
        return Polygon()
    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom
    parts = [g for g in getattr(geom, "geoms", []) if isinstance(g, (Polygon, MultiPolygon))]
    if not parts:
        return Polygon()
    return unary_union(parts)


def clip(grid: gpd.GeoDataFrame, boundary) -> gpd.GeoDataFrame:
    """Intersect every grid cell with ``boundary``.

    Cells that fall entirely outside the boundary keep their row with an
    empty geometry. Order and ``cell_id`` are unchanged, and clipping an
    already clipped grid gives the same geometries.

    Raises:
        GeometryError: If the boundary is empty, invalid or has zero area.
        CrsError: If grid and boundary carry different CRSs.
    """
    check_same_crs(grid, boundary, stage="clip", names=("grid", "boundary"))
    geom = as_polygon(boundary, stage="clip")

    clipped = [_polygonal(cell.intersection(geom)) for cell in grid.geometry]
    n_empty = sum(1 for g in clipped if g.is_empty)
    if n_empty:
        logger.debug("%d of %d cells fall outside the boundary", n_empty, len(clipped))

    return gpd.GeoDataFrame(
        grid.drop(columns=grid.geometry.name),
        geometry=clipped,
        crs=grid.crs,
    )


def grid_counts(points, boundary, n_cols: int, n_rows: int) -> gpd.GeoDataFrame:
    """Count points per clipped grid cell over ``boundary``.

    Returns:
        Clipped grid with ``count`` and ``density`` columns; empty cells
        have count 0.
    """
    grid = clip(make_grid(boundary, n_cols, n_rows), boundary)
    return count_points(points, grid, region_id_col="cell_id")
