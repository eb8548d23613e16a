"""Parameter hashing and input fingerprints for density estimation.

Canonical parameter JSON and short SHA-1 hashes identify an estimator
configuration; fingerprints of point sets and windows identify its inputs.
Together they key the surface cache.
"""

import json
import hashlib
from typing import Any, Dict, Set

import numpy as np

from spatial.store import as_geoseries, as_polygon, crs_of


HYPERPARAM_KEYS: Dict[str, Set[str]] = {
    "kde": {"kernel", "bandwidth", "bandwidth_rule", "resolution"},
}


def canonical_params_json(method: str, params: Dict[str, Any], include: Set[str]) -> str:
    """Create canonical JSON representation of hyperparameters.

    Args:
        method: Estimator method name (e.g. "kde").
        params: Dictionary of all parameters.
        include: Set of parameter keys to include.

    Returns:
        Canonical JSON string (sorted keys, compact separators).

    Note:
        Always includes __method__ so equal parameters of different
        estimators never collide.
    """
    filtered = {k: params[k] for k in sorted(params.keys()) if k in include}
    filtered["__method__"] = method
    return json.dumps(filtered, sort_keys=True, separators=(",", ":"))


def param_hash_from_json(params_json: str) -> str:
    """10-character hex digest of the SHA-1 of a canonical JSON string."""
    return hashlib.sha1(params_json.encode()).hexdigest()[:10]


def _crs_text(obj) -> str:
    crs = crs_of(obj)
    return "" if crs is None else crs.to_string()


def fingerprint_points(points) -> str:
    """SHA-1 of the point coordinates (in order) and their CRS."""
    pts = as_geoseries(points)
    pts = pts[pts.notna() & ~pts.is_empty]
    coords = np.column_stack([pts.x.to_numpy(dtype=float), pts.y.to_numpy(dtype=float)])
    digest = hashlib.sha1(np.ascontiguousarray(coords).tobytes())
    digest.update(_crs_text(points).encode())
    return digest.hexdigest()


def fingerprint_geometry(geometry, stage: str = "fingerprint") -> str:
    """SHA-1 of a dissolved boundary's WKB and its CRS.

    Raises:
        GeometryError: If the boundary is empty, invalid or has zero area,
            reported under ``stage``.
    """
    geom = as_polygon(geometry, stage=stage, input_id="window")
    digest = hashlib.sha1(geom.wkb)
    digest.update(_crs_text(geometry).encode())
    return digest.hexdigest()
