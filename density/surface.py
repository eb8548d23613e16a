"""Raster density surface and its vector forms.

A DensitySurface is a regular raster over the observation window's
bounding box. Row 0 is the northern edge. Values are intensities (points
per unit area); cells whose centre lies outside the window are zero and
flagged False in ``mask``.
"""

from typing import List, Optional, Tuple

import numpy as np
import geopandas as gpd
from shapely.geometry import Polygon, box
from shapely.ops import unary_union


class DensitySurface:
    """Kernel density surface on a regular raster.

    Attributes:
        values: Intensity per cell, shape (n_rows, n_cols), read-only.
        mask: True where the cell centre lies inside the window, read-only.
        bounds: (minx, miny, maxx, maxy) covered by the raster.
        crs: CRS of the bounds, or None.
        bandwidth: Kernel bandwidth in map units.
        n_points: Number of points that contributed to the surface.
        kernel: Kernel name.
    """

    def __init__(
        self,
        values: np.ndarray,
        bounds: Tuple[float, float, float, float],
        mask: Optional[np.ndarray] = None,
        crs=None,
        bandwidth: Optional[float] = None,
        n_points: int = 0,
        kernel: str = "gaussian",
    ):
        values = np.array(values, dtype=float)
        if values.ndim != 2:
            raise ValueError(f"values must be 2-D, got shape {values.shape}")
        if mask is None:
            mask = np.ones(values.shape, dtype=bool)
        mask = np.array(mask, dtype=bool)
        if mask.shape != values.shape:
            raise ValueError(f"mask shape {mask.shape} does not match values shape {values.shape}")

        values.flags.writeable = False
        mask.flags.writeable = False
        self.values = values
        self.mask = mask
        self.bounds = tuple(float(b) for b in bounds)
        self.crs = crs
        self.bandwidth = bandwidth
        self.n_points = n_points
        self.kernel = kernel

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    @property
    def cell_width(self) -> float:
        minx, _, maxx, _ = self.bounds
        return (maxx - minx) / self.values.shape[1]

    @property
    def cell_height(self) -> float:
        _, miny, _, maxy = self.bounds
        return (maxy - miny) / self.values.shape[0]

    @property
    def cell_area(self) -> float:
        return self.cell_width * self.cell_height

    @property
    def total_mass(self) -> float:
        """Sum of cell values times cell area (approximate point count)."""
        return float(self.values.sum() * self.cell_area)

    @property
    def mass_ratio(self) -> float:
        """Fraction of the kernel mass retained inside the window.

        Below 1 when kernels centred near the window edge spill outside it
        (truncation, no edge correction is applied).
        """
        if not self.n_points:
            return 0.0
        return self.total_mass / self.n_points

    def cell_centers(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return (X, Y) meshgrids of cell-centre coordinates."""
        minx, _, _, maxy = self.bounds
        n_rows, n_cols = self.values.shape
        xs = minx + (np.arange(n_cols) + 0.5) * self.cell_width
        ys = maxy - (np.arange(n_rows) + 0.5) * self.cell_height
        return np.meshgrid(xs, ys)

    def cell_polygon(self, row: int, col: int) -> Polygon:
        minx, _, _, maxy = self.bounds
        x0 = minx + col * self.cell_width
        y1 = maxy - row * self.cell_height
        return box(x0, y1 - self.cell_height, x0 + self.cell_width, y1)

    def _cells(self, include_masked: bool):
        n_rows, n_cols = self.values.shape
        for r in range(n_rows):
            for c in range(n_cols):
                if include_masked or self.mask[r, c]:
                    yield r, c

    def to_polygons(self, include_masked: bool = False) -> List[Tuple[Polygon, float]]:
        """Convert raster cells to (rectangle, density) pairs for rendering.

        Args:
            include_masked: Also emit cells outside the window (value 0).
        """
        return [
            (self.cell_polygon(r, c), float(self.values[r, c]))
            for r, c in self._cells(include_masked)
        ]

    def to_geodataframe(self, include_masked: bool = False) -> gpd.GeoDataFrame:
        """Raster cells as a GeoDataFrame with ``row``, ``col`` and ``density``."""
        cells = list(self._cells(include_masked))
        return gpd.GeoDataFrame(
            {
                "row": [r for r, _ in cells],
                "col": [c for _, c in cells],
                "density": [float(self.values[r, c]) for r, c in cells],
            },
            geometry=[self.cell_polygon(r, c) for r, c in cells],
            crs=self.crs,
        )

    def mass_threshold(self, mass: float) -> float:
        """Density level whose super-level set holds ``mass`` of the total.

        Cells are ranked from densest down and accumulated until the
        requested fraction of the in-window mass is reached; the density of
        the last cell taken is the threshold.

        Args:
            mass: Target probability mass in (0, 1].
        """
        if not 0 < mass <= 1:
            raise ValueError(f"mass must be in (0, 1], got {mass}")
        flat = self.values[self.mask]
        total = flat.sum()
        if flat.size == 0 or total <= 0:
            return 0.0

        order = np.argsort(flat, kind="mergesort")[::-1]
        cum = np.cumsum(flat[order]) / total
        idx = min(int(np.searchsorted(cum, mass)), len(order) - 1)
        return float(flat[order[idx]])

    def isodensity_bands(self, n_bands: int = 5, scheme: str = "quantile") -> gpd.GeoDataFrame:
        """Dissolve in-window cells into density bands for a gradient map.

        Args:
            n_bands: Number of classes.
            scheme: "quantile" (equal cell counts) or "equal" (equal intervals).

        Returns:
            GeoDataFrame with ``band`` (1 = lowest), ``lower``, ``upper`` and
            the dissolved band geometry. Bands without cells are omitted.
        """
        if n_bands < 1:
            raise ValueError(f"n_bands must be >= 1, got {n_bands}")

        cells = [(r, c) for r, c in self._cells(False) if self.values[r, c] > 0]
        columns = {"band": [], "lower": [], "upper": []}
        if not cells:
            return gpd.GeoDataFrame(columns, geometry=[], crs=self.crs)

        vals = np.array([self.values[r, c] for r, c in cells])
        if scheme == "quantile":
            edges = np.quantile(vals, np.linspace(0, 1, n_bands + 1))
        elif scheme == "equal":
            edges = np.linspace(vals.min(), vals.max(), n_bands + 1)
        else:
            raise ValueError(f"Unknown scheme: {scheme}")

        bands = np.searchsorted(edges[1:-1], vals, side="right")
        geometries = []
        for b in range(n_bands):
            members = [cells[i] for i in np.flatnonzero(bands == b)]
            if not members:
                continue
            columns["band"].append(b + 1)
            columns["lower"].append(float(edges[b]))
            columns["upper"].append(float(edges[b + 1]))
            geometries.append(unary_union([self.cell_polygon(r, c) for r, c in members]))

        return gpd.GeoDataFrame(columns, geometry=geometries, crs=self.crs)

    def __repr__(self) -> str:
        return (
            f"DensitySurface(shape={self.shape}, n_points={self.n_points}, "
            f"bandwidth={self.bandwidth}, total_mass={self.total_mass:.3f})"
        )
