"""Coordinate reference helpers.

Resolves CRS identifiers through pyproj, picks a metre-based projection
for Georgia extents and checks that a projection is usable for area and
distance calculations.
"""

from typing import Tuple, Optional

from pyproj import CRS
from pyproj.exceptions import CRSError as PyprojCRSError

from spatial.errors import CrsError


GA_EAST = "EPSG:26966"   # NAD83 / Georgia East (m)
GA_WEST = "EPSG:26967"   # NAD83 / Georgia West (m)
CONUS_ALBERS = "EPSG:5070"  # NAD83 / Conus Albers, equal-area (m)

# Approximate longitude where the two Georgia State Plane zones meet.
_GA_ZONE_SPLIT_LON = -83.5
# Extents wider than this (degrees of longitude) are treated as statewide.
_ZONE_MAX_SPAN = 2.0


def resolve_crs(crs, stage: str = "resolve_crs") -> CRS:
    """Resolve a CRS identifier (EPSG/ESRI string, pyproj CRS, WKT) to a pyproj CRS.

    Raises:
        CrsError: If the identifier is missing or unknown to the registry.
    """
    if crs is None:
        raise CrsError("CRS is missing", stage=stage)
    try:
        return CRS.from_user_input(crs)
    except PyprojCRSError as e:
        raise CrsError(f"Unknown CRS: {e}", stage=stage, input_id=str(crs)) from e


def choose_projected_crs(bbox_lonlat: Tuple[float, float, float, float]) -> str:
    """Choose a metre-based projected CRS for a lon/lat bounding box.

    Args:
        bbox_lonlat: Bounding box as (minx, miny, maxx, maxy) in EPSG:4326.

    Returns:
        CRS code string.

    Selection rules:
        - Extent wider than one State Plane zone: EPSG:5070 (Conus Albers, equal-area)
        - Centre east of -83.5: EPSG:26966 (Georgia East)
        - Otherwise: EPSG:26967 (Georgia West)
    """
    minx, miny, maxx, maxy = bbox_lonlat
    if maxx - minx > _ZONE_MAX_SPAN:
        return CONUS_ALBERS

    center_lon = (minx + maxx) / 2.0
    if center_lon >= _GA_ZONE_SPLIT_LON:
        return GA_EAST
    return GA_WEST


def validate_crs_units(crs, expected_units: str = "m") -> bool:
    """Validate that a CRS is projected and uses the expected linear unit.

    Args:
        crs: CRS identifier (e.g. "EPSG:26966").
        expected_units: "m" for metres or "ft" for feet.

    Returns:
        True if the CRS is projected in the expected units.

    Raises:
        CrsError: If the CRS is unknown, geographic, or in other units.
    """
    crs_obj = resolve_crs(crs, stage="validate_crs_units")

    if not crs_obj.is_projected:
        raise CrsError(
            "CRS is geographic (degrees), not projected. "
            "Use a projected CRS for area and distance calculations.",
            stage="validate_crs_units",
            input_id=str(crs),
        )

    unit_name = ""
    if crs_obj.axis_info:
        unit_name = (crs_obj.axis_info[0].unit_name or "").lower()

    if expected_units == "m":
        ok = "metre" in unit_name or "meter" in unit_name
        wanted = "meters"
    elif expected_units == "ft":
        ok = "foot" in unit_name or "feet" in unit_name
        wanted = "feet"
    else:
        raise ValueError(f"Unknown expected_units: {expected_units}")

    if not ok:
        raise CrsError(
            f"CRS has units '{unit_name}', expected {wanted}",
            stage="validate_crs_units",
            input_id=str(crs),
        )
    return True


def same_crs(a, b) -> bool:
    """Return True when two CRS identifiers resolve to the same reference."""
    if a is None or b is None:
        return a is None and b is None
    return resolve_crs(a) == resolve_crs(b)


def crs_label(crs) -> Optional[str]:
    """Short printable label for a CRS (authority code where available)."""
    if crs is None:
        return None
    crs_obj = resolve_crs(crs)
    auth = crs_obj.to_authority()
    if auth:
        return f"{auth[0]}:{auth[1]}"
    return crs_obj.name
