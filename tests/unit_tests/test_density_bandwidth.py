"""Unit tests for density.bandwidth module."""

import numpy as np
import pytest

from density import bandwidth_selection


class TestBandwidthSelection:
    """Test suite for bandwidth rules."""

    def test_silverman_2d(self):
        """Test Silverman's rule on two points with unit spread."""
        X = np.array([[0.0, 0.0], [2.0, 2.0]])
        assert bandwidth_selection(X, method="silverman") == pytest.approx(2 ** (-1 / 6))

    def test_silverman_equals_scott_in_2d(self):
        """Test the two rules coincide for planar data."""
        rng = np.random.default_rng(0)
        X = rng.normal(size=(50, 2))
        assert bandwidth_selection(X, "silverman") == pytest.approx(bandwidth_selection(X, "scott"))

    def test_rules_differ_in_1d(self):
        """Test Silverman and Scott factors for one-dimensional data."""
        X = np.array([[0.0], [1.0], [2.0], [3.0]])
        sigma = np.std(X)
        assert bandwidth_selection(X, "silverman") == pytest.approx((4 * 3 / 4) ** (-1 / 5) * sigma)
        assert bandwidth_selection(X, "scott") == pytest.approx(4 ** (-1 / 5) * sigma)

    def test_scales_with_spread(self):
        """Test the bandwidth scales linearly with the data."""
        rng = np.random.default_rng(1)
        X = rng.normal(size=(40, 2))
        assert bandwidth_selection(X * 1000) == pytest.approx(bandwidth_selection(X) * 1000)

    def test_coincident_points(self):
        """Test that coincident points give a zero bandwidth."""
        X = np.array([[5.0, 5.0]] * 4)
        assert bandwidth_selection(X, "silverman") == 0.0
        assert bandwidth_selection(X, "cv") == 0.0

    def test_cross_validation(self):
        """Test the cross-validated bandwidth is within the search range."""
        rng = np.random.default_rng(2)
        X = rng.normal(size=(60, 2))
        h0 = bandwidth_selection(X, "silverman")
        h = bandwidth_selection(X, "cv")
        assert 0.1 * h0 - 1e-12 <= h <= 10 * h0 + 1e-12
        assert h == bandwidth_selection(X, "cv")

    def test_unknown_method(self):
        """Test that an unknown method raises ValueError."""
        with pytest.raises(ValueError, match="Unknown bandwidth selection method"):
            bandwidth_selection(np.zeros((3, 2)), method="plug-in")
