"""Pytest fixtures for density pipeline unit tests.

This module provides shared geometries, point sets and configuration
files for testing individual stages in isolation.
"""

import json

import numpy as np
import pandas as pd
import geopandas as gpd
import pytest
from shapely.geometry import Point, Polygon, box


@pytest.fixture
def unit_square():
    """Unit square boundary [0,1] x [0,1]."""
    return box(0.0, 0.0, 1.0, 1.0)


@pytest.fixture
def corner_points():
    """Four points, one in each quadrant of the unit square."""
    return gpd.GeoSeries([
        Point(0.1, 0.1),
        Point(0.1, 0.9),
        Point(0.9, 0.1),
        Point(0.9, 0.9),
    ])


@pytest.fixture
def triangle():
    """Lower-left half of the unit square (x + y <= 1)."""
    return Polygon([(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)])


@pytest.fixture
def split_regions():
    """Two regions sharing the edge x = 0.5."""
    return gpd.GeoDataFrame(
        {"name": ["west", "east"]},
        geometry=[box(0.0, 0.0, 0.5, 1.0), box(0.5, 0.0, 1.0, 1.0)],
    )


@pytest.fixture
def clustered_points():
    """200 points around (50, 50) with std 5, well inside box(0, 0, 100, 100)."""
    rng = np.random.default_rng(42)
    xy = rng.normal(loc=50.0, scale=5.0, size=(200, 2))
    return gpd.GeoSeries(gpd.points_from_xy(xy[:, 0], xy[:, 1]))


@pytest.fixture
def square_window():
    """100 x 100 observation window."""
    return box(0.0, 0.0, 100.0, 100.0)


@pytest.fixture
def campgrounds_df():
    """Sample campground table in lon/lat around Georgia."""
    return pd.DataFrame({
        "name": ["Cloudland Canyon", "Vogel", "Stephen Foster", "Skidaway Island", "Red Top", "Broken"],
        "category": ["state_park", "state_park", "state_park", "state_park", "private", "private"],
        "lon": [-85.48, -83.92, -82.36, -81.05, -84.67, np.nan],
        "lat": [34.83, 34.77, 30.83, 31.95, 34.12, 33.0],
    })


@pytest.fixture
def ga_boundary():
    """Rough Georgia bounding polygon in EPSG:4326."""
    return gpd.GeoDataFrame(
        {"NAME": ["Georgia"]},
        geometry=[box(-85.7, 30.3, -80.8, 35.1)],
        crs="EPSG:4326",
    )


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary config file for testing."""
    config_path = tmp_path / "test_config.json"
    config_data = {
        "paths": {"points": "test.csv"},
        "grid": {"n_cols": 4, "n_rows": 3},
        "density": {"resolution": 50},
    }
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config_data, f)
    return str(config_path)
