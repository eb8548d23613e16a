"""Kernel density estimation constrained to an observation window.

Fits a scikit-learn KernelDensity model to the points that fall inside the
window, evaluates it at the centres of a regular raster over the window's
bounding box and zeroes the cells whose centre lies outside the window.
"""

import logging
from typing import Optional

import numpy as np
import shapely
from sklearn.neighbors import KernelDensity

from density.base import DensityEstimator
from density.bandwidth import bandwidth_selection, BANDWIDTH_RULES
from density.surface import DensitySurface
from spatial.errors import InsufficientDataError
from spatial.store import as_geoseries, as_polygon, check_same_crs, crs_of

logger = logging.getLogger(__name__)

MIN_POINTS = 2


class KDEDensity(DensityEstimator):
    """Windowed kernel density estimator.

    Args:
        kernel: scikit-learn kernel name (default: "gaussian").
        bandwidth: Fixed bandwidth in map units (default: None = data-driven).
        bandwidth_rule: Rule used when no bandwidth is given
            ("silverman", "scott" or "cv"; default: "silverman").
        resolution: Raster cells per side (default: 200).
        **kwargs: Additional parameters recorded in info().

    Output values are intensities: the fitted probability density times the
    number of in-window points, so that summing value * cell_area over the
    raster approximates the point count. Kernel mass that falls outside the
    window is dropped, which biases totals low for points near the edge.
    """

    def __init__(
        self,
        kernel: str = "gaussian",
        bandwidth: Optional[float] = None,
        bandwidth_rule: str = "silverman",
        resolution: int = 200,
        **kwargs
    ):
        super().__init__(**kwargs)
        if bandwidth_rule not in BANDWIDTH_RULES:
            raise ValueError(f"Unknown bandwidth_rule: {bandwidth_rule}. Must be one of: {', '.join(BANDWIDTH_RULES)}")
        self.kernel = kernel
        self.bandwidth = bandwidth
        self.bandwidth_rule = bandwidth_rule
        self.resolution = resolution
        self.method = "kde"
        self.model: Optional[KernelDensity] = None

        self.params.update({
            "kernel": kernel,
            "bandwidth": bandwidth,
            "bandwidth_rule": bandwidth_rule,
            "resolution": resolution,
        })

    def estimate(
        self,
        points,
        window,
        resolution: Optional[int] = None,
        bandwidth: Optional[float] = None,
    ) -> DensitySurface:
        """Estimate the point intensity surface over ``window``.

        Args:
            points: Point collection in the window's CRS.
            window: Observation window (shapely geometry, GeoSeries or GeoDataFrame).
            resolution: Raster cells per side (default: self.resolution).
            bandwidth: Bandwidth in map units (default: self.bandwidth, then
                the bandwidth rule).

        Returns:
            DensitySurface of shape (resolution, resolution).

        Raises:
            InsufficientDataError: If fewer than 2 points lie inside the window,
                or all in-window points coincide so no bandwidth can be derived.
            GeometryError: If the window is empty, invalid or has zero area.
            CrsError: If points and window carry different CRSs.
            ValueError: If resolution < 1 or the bandwidth is not positive.
        """
        resolution = self.resolution if resolution is None else resolution
        bandwidth = self.bandwidth if bandwidth is None else bandwidth
        if resolution < 1:
            raise ValueError(f"resolution must be >= 1, got {resolution}")
        if bandwidth is not None and bandwidth <= 0:
            raise ValueError(f"bandwidth must be positive, got {bandwidth}")

        pts = as_geoseries(points)
        check_same_crs(pts, window, stage="estimate", names=("points", "window"))
        geom = as_polygon(window, stage="estimate", input_id="window")

        pts = pts[pts.notna() & ~pts.is_empty]
        inside = pts[pts.covered_by(geom)]
        n = len(inside)
        if n < len(pts):
            logger.info("Discarded %d of %d points outside the window", len(pts) - n, len(pts))
        if n < MIN_POINTS:
            raise InsufficientDataError(
                f"density estimation needs at least {MIN_POINTS} points inside the window, got {n}",
                stage="estimate",
                input_id="points",
                n_points=n,
                n_required=MIN_POINTS,
            )

        X = np.column_stack([inside.x.to_numpy(dtype=float), inside.y.to_numpy(dtype=float)])
        if bandwidth is None:
            bandwidth = bandwidth_selection(X, method=self.bandwidth_rule, kernel=self.kernel)
            if bandwidth <= 0:
                raise InsufficientDataError(
                    f"all {n} points coincide; {self.bandwidth_rule} bandwidth is undefined",
                    stage="estimate",
                    input_id="points",
                    n_points=n,
                    n_required=MIN_POINTS,
                )

        self.model = KernelDensity(bandwidth=bandwidth, kernel=self.kernel).fit(X)
        self.last_bandwidth = float(bandwidth)
        self.n_points = n

        minx, miny, maxx, maxy = geom.bounds
        xs = minx + (np.arange(resolution) + 0.5) * (maxx - minx) / resolution
        ys = maxy - (np.arange(resolution) + 0.5) * (maxy - miny) / resolution
        X_grid, Y_grid = np.meshgrid(xs, ys)

        mask = shapely.contains_xy(geom, X_grid, Y_grid)
        values = np.zeros(X_grid.shape, dtype=float)
        if mask.any():
            centers = np.column_stack([X_grid[mask], Y_grid[mask]])
            values[mask] = np.exp(self.model.score_samples(centers)) * n

        surface = DensitySurface(
            values,
            bounds=(minx, miny, maxx, maxy),
            mask=mask,
            crs=crs_of(window) if crs_of(window) is not None else pts.crs,
            bandwidth=float(bandwidth),
            n_points=n,
            kernel=self.kernel,
        )
        logger.info(
            "KDE over %d points, bandwidth=%.4g, %dx%d raster, mass ratio %.3f",
            n, bandwidth, resolution, resolution, surface.mass_ratio,
        )
        return surface


def estimate(
    points,
    window,
    resolution: int = 200,
    bandwidth: Optional[float] = None,
    kernel: str = "gaussian",
    bandwidth_rule: str = "silverman",
) -> DensitySurface:
    """Convenience wrapper: build a KDEDensity and run one estimate."""
    estimator = KDEDensity(
        kernel=kernel,
        bandwidth=bandwidth,
        bandwidth_rule=bandwidth_rule,
        resolution=resolution,
    )
    return estimator.estimate(points, window)
