"""Density estimation over point patterns.

Provides a windowed kernel density estimator producing raster surfaces,
vector conversions of those surfaces for gradient maps, and a cache keyed
by inputs and parameters.
"""

from density.base import DensityEstimator
from density.kde import KDEDensity, estimate, MIN_POINTS
from density.surface import DensitySurface
from density.bandwidth import bandwidth_selection, BANDWIDTH_RULES
from density.cache import SurfaceCache
from density.utils import (
    canonical_params_json,
    param_hash_from_json,
    fingerprint_points,
    fingerprint_geometry,
    HYPERPARAM_KEYS,
)


def make_estimator(name: str, **kwargs) -> DensityEstimator:
    """Factory function to create density estimator instances.

    Args:
        name: Estimator name ("kde").
        **kwargs: Estimator-specific parameters.

    Returns:
        DensityEstimator instance.

    Raises:
        ValueError: If the estimator name is unknown.

    Examples:
        >>> estimator = make_estimator("kde", bandwidth_rule="silverman", resolution=200)
        >>> estimator = make_estimator("kde", bandwidth=5000.0, kernel="epanechnikov")
    """
    if name == "kde":
        return KDEDensity(**kwargs)
    else:
        raise ValueError(f"Unknown estimator: {name}. Must be one of: kde")


__all__ = [
    "DensityEstimator",
    "KDEDensity",
    "DensitySurface",
    "SurfaceCache",
    "estimate",
    "make_estimator",
    "bandwidth_selection",
    "BANDWIDTH_RULES",
    "MIN_POINTS",
    "canonical_params_json",
    "param_hash_from_json",
    "fingerprint_points",
    "fingerprint_geometry",
    "HYPERPARAM_KEYS",
]
