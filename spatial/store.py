"""Geometry store for point features and polygon regions.

Holds the campground/church points, the administrative regions they are
aggregated into, and any extra overlay layers (state boundary, hydrography)
in one coordinate reference. Stores are never mutated: reprojection and
filtering return a new store.
"""

import logging
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.validation import explain_validity

from spatial.crs import resolve_crs
from spatial.errors import CrsError, GeometryError

logger = logging.getLogger(__name__)


def as_geoseries(obj, crs=None) -> gpd.GeoSeries:
    """Normalize a point collection into a GeoSeries.

    Accepts a GeoDataFrame, a GeoSeries, a sequence of shapely geometries,
    or an (n, 2) array / sequence of (x, y) pairs. When ``crs`` is given and
    the input carries none, the result is tagged with it.
    """
    if isinstance(obj, gpd.GeoDataFrame):
        series = obj.geometry.copy()
    elif isinstance(obj, gpd.GeoSeries):
        series = obj.copy()
    else:
        items = list(obj)
        if items and isinstance(items[0], BaseGeometry):
            series = gpd.GeoSeries(items)
        else:
            coords = np.asarray(items, dtype=float).reshape(-1, 2)
            series = gpd.GeoSeries(gpd.points_from_xy(coords[:, 0], coords[:, 1]))

    if crs is not None and series.crs is None:
        series = series.set_crs(crs)
    return series


def as_polygon(boundary, stage: str = "as_polygon", input_id=None) -> BaseGeometry:
    """Dissolve a boundary input into a single valid polygonal geometry.

    Args:
        boundary: shapely geometry, GeoSeries or GeoDataFrame.
        stage: Operation name reported in errors.
        input_id: Identifier reported in errors.

    Returns:
        Polygon or MultiPolygon with positive area.

    Raises:
        GeometryError: If the boundary is empty, invalid or has zero area.
    """
    if isinstance(boundary, (gpd.GeoDataFrame, gpd.GeoSeries)):
        series = boundary.geometry if isinstance(boundary, gpd.GeoDataFrame) else boundary
        parts = [g for g in series if g is not None and not g.is_empty]
        for idx, part in enumerate(parts):
            if not part.is_valid:
                raise GeometryError(
                    f"boundary part {idx} is invalid: {explain_validity(part)}",
                    stage=stage,
                    input_id=input_id,
                )
        geom = unary_union(parts) if parts else Polygon()
    elif isinstance(boundary, BaseGeometry):
        geom = boundary
    else:
        raise TypeError(f"Unsupported boundary type: {type(boundary).__name__}")

    if geom.is_empty:
        raise GeometryError("boundary is empty", stage=stage, input_id=input_id)
    if not geom.is_valid:
        raise GeometryError(
            f"boundary is invalid: {explain_validity(geom)}",
            stage=stage,
            input_id=input_id,
        )
    if geom.area <= 0:
        raise GeometryError(
            f"boundary is degenerate (zero area, {geom.geom_type})",
            stage=stage,
            input_id=input_id,
        )
    return geom


def crs_of(obj):
    """Return the CRS carried by a GeoSeries/GeoDataFrame, or None."""
    return getattr(obj, "crs", None)


def check_same_crs(a, b, stage: str, names: Tuple[str, str] = ("points", "regions")) -> None:
    """Raise CrsError when both inputs carry a CRS and the two differ."""
    crs_a, crs_b = crs_of(a), crs_of(b)
    if crs_a is None or crs_b is None:
        return
    if resolve_crs(crs_a, stage=stage) != resolve_crs(crs_b, stage=stage):
        raise CrsError(
            f"{names[0]} CRS {crs_a.to_string()} does not match {names[1]} CRS {crs_b.to_string()}",
            stage=stage,
            input_id=names[1],
        )


def _as_frame(obj, crs, name: str) -> gpd.GeoDataFrame:
    if isinstance(obj, gpd.GeoDataFrame):
        frame = obj.copy()
    elif isinstance(obj, gpd.GeoSeries):
        frame = gpd.GeoDataFrame(geometry=obj.copy())
    else:
        raise TypeError(f"{name} must be a GeoDataFrame or GeoSeries, got {type(obj).__name__}")

    if frame.crs is None and crs is not None:
        frame = frame.set_crs(resolve_crs(crs, stage="GeometryStore"))
    return frame


class GeometryStore:
    """Point features and polygon regions in a common coordinate reference.

    Attributes:
        points: GeoDataFrame of point features with their attributes.
        regions: GeoDataFrame of polygon regions (or None).
        layers: Extra named layers carried through reprojection.
    """

    def __init__(
        self,
        points,
        regions=None,
        layers: Optional[Dict[str, gpd.GeoDataFrame]] = None,
        crs=None,
    ):
        self._points = _as_frame(points, crs, "points")
        self._regions = _as_frame(regions, crs, "regions") if regions is not None else None
        self._layers = {
            name: _as_frame(frame, crs, name) for name, frame in (layers or {}).items()
        }

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        x_col: str = "lon",
        y_col: str = "lat",
        crs="EPSG:4326",
        regions=None,
        layers=None,
    ) -> "GeometryStore":
        """Build a store from a table of point coordinates.

        Rows with a missing coordinate are dropped; every other column is
        kept as a point attribute.
        """
        missing = {x_col, y_col} - set(df.columns)
        if missing:
            raise KeyError(f"Missing coordinate columns: {sorted(missing)}")
        df = df.dropna(subset=[x_col, y_col]).reset_index(drop=True)
        geometry = gpd.points_from_xy(df[x_col], df[y_col])
        points = gpd.GeoDataFrame(df, geometry=geometry, crs=crs)
        return cls(points, regions=regions, layers=layers)

    @property
    def points(self) -> gpd.GeoDataFrame:
        return self._points.copy()

    @property
    def regions(self) -> Optional[gpd.GeoDataFrame]:
        return None if self._regions is None else self._regions.copy()

    @property
    def layers(self) -> Dict[str, gpd.GeoDataFrame]:
        return {name: frame.copy() for name, frame in self._layers.items()}

    @property
    def crs(self):
        return self._points.crs

    def layer(self, name: str) -> gpd.GeoDataFrame:
        """Return a copy of a collection by name ("points", "regions" or a layer)."""
        return self._frame(name).copy()

    def _frame(self, name: str) -> gpd.GeoDataFrame:
        if name == "points":
            return self._points
        if name == "regions":
            if self._regions is None:
                raise KeyError("Store has no regions")
            return self._regions
        if name not in self._layers:
            raise KeyError(f"Unknown layer: {name}. Available: {sorted(self._layers)}")
        return self._layers[name]

    def reproject(self, target_crs, source_crs=None) -> "GeometryStore":
        """Transform every collection into ``target_crs``.

        Args:
            target_crs: Target CRS identifier.
            source_crs: CRS to assume for collections that carry none.

        Returns:
            New GeometryStore in the target CRS.

        Raises:
            CrsError: If a collection has no CRS and no ``source_crs`` is
                given, or if either CRS cannot be resolved.
        """
        target = resolve_crs(target_crs, stage="reproject")
        source = resolve_crs(source_crs, stage="reproject") if source_crs is not None else None

        def project(name: str, frame: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
            if frame.crs is None:
                if source is None:
                    raise CrsError(
                        "collection has no CRS and no source_crs was supplied",
                        stage="reproject",
                        input_id=name,
                    )
                frame = frame.set_crs(source)
            return frame.to_crs(target)

        points = project("points", self._points)
        regions = project("regions", self._regions) if self._regions is not None else None
        layers = {name: project(name, frame) for name, frame in self._layers.items()}
        logger.debug("Reprojected store (%d points) to %s", len(points), target.to_string())
        return GeometryStore(points, regions=regions, layers=layers)

    def bounds(self, layer: str = "points") -> Tuple[float, float, float, float]:
        """Minimal enclosing rectangle (minx, miny, maxx, maxy) of a collection.

        Raises:
            GeometryError: If the collection has no non-empty geometry.
            KeyError: If the layer does not exist.
        """
        frame = self._frame(layer)
        geoms = frame.geometry
        if frame.empty or geoms.is_empty.all():
            raise GeometryError("collection is empty", stage="bounds", input_id=layer)
        minx, miny, maxx, maxy = geoms[~geoms.is_empty].total_bounds
        return float(minx), float(miny), float(maxx), float(maxy)

    def select(self, column: str, value) -> "GeometryStore":
        """Keep only point features whose ``column`` equals ``value``."""
        if column not in self._points.columns:
            raise KeyError(f"Unknown point attribute: {column}")
        points = self._points[self._points[column] == value].reset_index(drop=True)
        return GeometryStore(points, regions=self._regions, layers=self._layers)

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        n_regions = 0 if self._regions is None else len(self._regions)
        return (
            f"GeometryStore(points={len(self._points)}, regions={n_regions}, "
            f"layers={sorted(self._layers)}, crs={self.crs})"
        )
