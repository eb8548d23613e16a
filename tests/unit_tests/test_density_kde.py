"""Unit tests for density.kde module."""

import numpy as np
import geopandas as gpd
import pytest
from shapely.geometry import LineString, Point, box

from density import KDEDensity, DensitySurface, estimate, make_estimator
from spatial import CrsError, GeometryError, InsufficientDataError


class TestKDEDensity:
    """Test suite for windowed kernel density estimation."""

    def test_too_few_points(self, unit_square):
        """Test that a single point raises InsufficientDataError."""
        with pytest.raises(InsufficientDataError) as excinfo:
            estimate([Point(0.5, 0.5)], unit_square, resolution=10)
        assert excinfo.value.n_points == 1
        assert excinfo.value.stage == "estimate"

    def test_no_points(self, unit_square):
        """Test that an empty point set raises InsufficientDataError."""
        with pytest.raises(InsufficientDataError):
            estimate([], unit_square, resolution=10)

    def test_points_outside_window_ignored(self, unit_square):
        """Test that only in-window points count toward the minimum."""
        points = [Point(0.5, 0.5), Point(3, 3), Point(-2, 0.5)]
        with pytest.raises(InsufficientDataError) as excinfo:
            estimate(points, unit_square, resolution=10)
        assert excinfo.value.n_points == 1

    def test_coincident_points(self, unit_square):
        """Test that coincident points leave the bandwidth undefined."""
        with pytest.raises(InsufficientDataError, match="coincide"):
            estimate([Point(0.5, 0.5)] * 3, unit_square, resolution=10)

    def test_coincident_points_with_fixed_bandwidth(self, unit_square):
        """Test that a fixed bandwidth makes coincident points usable."""
        surface = estimate([Point(0.5, 0.5)] * 3, unit_square, resolution=20, bandwidth=0.1)
        assert surface.n_points == 3
        assert surface.bandwidth == 0.1

    def test_mass_preserved(self, clustered_points, square_window):
        """Test sum of value * cell area matches n when the window holds all kernel mass."""
        surface = estimate(clustered_points, square_window, resolution=100)
        assert isinstance(surface, DensitySurface)
        assert surface.shape == (100, 100)
        assert surface.total_mass == pytest.approx(200, rel=0.01)
        assert surface.mass_ratio == pytest.approx(1.0, rel=0.01)

    def test_polygon_mass_preserved(self, clustered_points, square_window):
        """Test the vector cells carry the same mass as the raster."""
        surface = estimate(clustered_points, square_window, resolution=50)
        total = sum(poly.area * value for poly, value in surface.to_polygons())
        assert total == pytest.approx(200, rel=0.01)

    def test_edge_truncation(self, unit_square, corner_points):
        """Test that kernel mass spilling past the window is dropped."""
        surface = estimate(corner_points, unit_square, resolution=50)
        assert 0 < surface.total_mass < len(corner_points)
        assert 0 < surface.mass_ratio < 1

    def test_silverman_default(self, clustered_points, square_window):
        """Test the default bandwidth follows Silverman's rule."""
        xy = np.column_stack([clustered_points.x, clustered_points.y])
        expected = (200 * 4 / 4) ** (-1 / 6) * np.std(xy, axis=0).mean()
        surface = estimate(clustered_points, square_window, resolution=20)
        assert surface.bandwidth == pytest.approx(expected)

    def test_explicit_bandwidth(self, clustered_points, square_window):
        """Test that an explicit bandwidth is used as given."""
        surface = estimate(clustered_points, square_window, resolution=20, bandwidth=3.0)
        assert surface.bandwidth == 3.0

    def test_window_mask(self, clustered_points):
        """Test that cells outside a circular window are zero and masked."""
        window = Point(50, 50).buffer(45)
        surface = estimate(clustered_points, window, resolution=40)
        assert not surface.mask[0, 0]
        assert surface.values[0, 0] == 0.0
        assert surface.mask[20, 20]
        assert (surface.values >= 0).all()
        assert (surface.values[~surface.mask] == 0).all()

    def test_north_row_first(self):
        """Test that row 0 of the raster is the northern edge."""
        points = [Point(1, 9), Point(2, 9.5), Point(1.5, 8.5)]
        surface = estimate(points, box(0, 0, 10, 10), resolution=10, bandwidth=1.0)
        assert surface.values[0].sum() > surface.values[-1].sum()

    def test_deterministic(self, clustered_points, square_window):
        """Test that repeated estimates are identical."""
        a = estimate(clustered_points, square_window, resolution=30)
        b = estimate(clustered_points, square_window, resolution=30)
        assert np.array_equal(a.values, b.values)
        assert a.bandwidth == b.bandwidth

    def test_crs_mismatch(self, square_window):
        """Test that points and window in different CRSs are rejected."""
        points = gpd.GeoSeries([Point(10, 10), Point(20, 20)], crs="EPSG:26966")
        window = gpd.GeoSeries([square_window], crs="EPSG:5070")
        with pytest.raises(CrsError):
            estimate(points, window, resolution=10)

    def test_surface_crs_from_window(self, clustered_points, square_window):
        """Test the surface carries the window CRS."""
        window = gpd.GeoSeries([square_window], crs="EPSG:5070")
        surface = estimate(clustered_points.set_crs("EPSG:5070"), window, resolution=10)
        assert surface.crs.to_epsg() == 5070

    def test_degenerate_window(self, corner_points):
        """Test that a zero-area window raises GeometryError."""
        with pytest.raises(GeometryError):
            estimate(corner_points, LineString([(0, 0), (1, 1)]), resolution=10)

    def test_invalid_parameters(self, clustered_points, square_window):
        """Test parameter validation."""
        with pytest.raises(ValueError):
            estimate(clustered_points, square_window, resolution=0)
        with pytest.raises(ValueError):
            estimate(clustered_points, square_window, bandwidth=-1.0)
        with pytest.raises(ValueError):
            KDEDensity(bandwidth_rule="plug-in")

    def test_estimator_state(self, clustered_points, square_window):
        """Test the estimator records the last fit."""
        estimator = KDEDensity(resolution=20)
        surface = estimator.estimate(clustered_points, square_window)
        assert estimator.n_points == 200
        assert estimator.last_bandwidth == surface.bandwidth
        assert estimator.model is not None

    def test_per_call_overrides(self, clustered_points, square_window):
        """Test that resolution and bandwidth can be overridden per call."""
        estimator = KDEDensity(resolution=20)
        surface = estimator.estimate(clustered_points, square_window, resolution=15, bandwidth=4.0)
        assert surface.shape == (15, 15)
        assert surface.bandwidth == 4.0

    def test_epanechnikov_kernel(self, clustered_points, square_window):
        """Test a compact kernel also preserves mass."""
        surface = estimate(clustered_points, square_window, resolution=200, kernel="epanechnikov")
        assert surface.kernel == "epanechnikov"
        assert surface.total_mass == pytest.approx(200, rel=0.02)


class TestMakeEstimator:
    """Test suite for the estimator factory."""

    def test_make_kde(self):
        """Test creating a KDE estimator."""
        estimator = make_estimator("kde", bandwidth_rule="scott", resolution=64)
        assert isinstance(estimator, KDEDensity)
        assert estimator.resolution == 64

    def test_unknown_estimator(self):
        """Test that an unknown estimator name raises ValueError."""
        with pytest.raises(ValueError, match="Unknown estimator"):
            make_estimator("hexbin")

    def test_info(self):
        """Test info() exposes a stable parameter hash."""
        a = make_estimator("kde", bandwidth=5000.0).info()
        b = make_estimator("kde", bandwidth=5000.0).info()
        c = make_estimator("kde", bandwidth=2500.0).info()
        assert a["method"] == "kde"
        assert len(a["params_hash"]) == 10
        assert a["params_hash"] == b["params_hash"]
        assert a["params_hash"] != c["params_hash"]
        assert '"__method__":"kde"' in a["params_json"]
