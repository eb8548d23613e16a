"""Geometry store, coordinate references and error types.

Modules:
    errors: CrsError, GeometryError and InsufficientDataError
    crs: CRS resolution, projection choice and unit checks
    store: GeometryStore plus point/boundary normalization helpers
    io: loaders for point tables and region layers
"""

from spatial.errors import (
    PipelineError,
    CrsError,
    GeometryError,
    InsufficientDataError,
)
from spatial.crs import (
    resolve_crs,
    choose_projected_crs,
    validate_crs_units,
    same_crs,
    crs_label,
    GA_EAST,
    GA_WEST,
    CONUS_ALBERS,
)
from spatial.store import (
    GeometryStore,
    as_geoseries,
    as_polygon,
    check_same_crs,
)
from spatial.io import load_points, load_regions, load_layer

__all__ = [
    "PipelineError",
    "CrsError",
    "GeometryError",
    "InsufficientDataError",
    "resolve_crs",
    "choose_projected_crs",
    "validate_crs_units",
    "same_crs",
    "crs_label",
    "GA_EAST",
    "GA_WEST",
    "CONUS_ALBERS",
    "GeometryStore",
    "as_geoseries",
    "as_polygon",
    "check_same_crs",
    "load_points",
    "load_regions",
    "load_layer",
]
