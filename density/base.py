"""Base interface for density estimators.

Defines the abstract base class DensityEstimator that every estimator
implements, providing a consistent estimate() call and reproducible
parameter hashing.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
from datetime import datetime

from density.utils import (
    canonical_params_json,
    param_hash_from_json,
    HYPERPARAM_KEYS,
)


class DensityEstimator(ABC):
    """Abstract base class for density estimators.

    Attributes:
        params: Dictionary of estimator parameters.
        method: Estimator name (set by subclasses).
        last_bandwidth: Bandwidth used by the most recent estimate() call.
        n_points: Points inside the window in the most recent estimate() call.
    """

    def __init__(self, **params):
        self.params = params
        self.method: Optional[str] = None
        self.last_bandwidth: Optional[float] = None
        self.n_points: Optional[int] = None

    @abstractmethod
    def estimate(self, points, window, resolution: Optional[int] = None, bandwidth: Optional[float] = None):
        """Estimate a density surface over ``window``.

        Args:
            points: Point collection in the window's CRS.
            window: Observation window polygon.
            resolution: Raster cells per side (default: estimator setting).
            bandwidth: Kernel bandwidth in map units (default: estimator setting).

        Returns:
            DensitySurface.
        """
        pass

    def info(self) -> Dict[str, Any]:
        """Return estimator information.

        Returns:
            Dictionary with method name, params, params_json, params_hash,
            n_points, last_bandwidth and timestamp.
        """
        if self.method is None:
            raise RuntimeError("Method name not set. This should not happen.")

        include = HYPERPARAM_KEYS.get(self.method, set())
        params_json = canonical_params_json(self.method, self.params, include)

        return {
            "method": self.method,
            "params": self.params,
            "params_json": params_json,
            "params_hash": param_hash_from_json(params_json),
            "n_points": self.n_points,
            "last_bandwidth": self.last_bandwidth,
            "timestamp": datetime.now().isoformat(),
        }
