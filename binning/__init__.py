"""Spatial binning of point features.

Assigns points to administrative regions or to a regular grid clipped to a
boundary, and produces per-region counts for choropleth maps.
"""

from binning.join import (
    assign,
    assign_points,
    count_points,
    count_by_category,
    KM2,
)
from binning.grid import make_grid, clip, grid_counts

__all__ = [
    "assign",
    "assign_points",
    "count_points",
    "count_by_category",
    "KM2",
    "make_grid",
    "clip",
    "grid_counts",
]
