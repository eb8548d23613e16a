"""Bandwidth selection for kernel density estimation."""

import numpy as np
from sklearn.model_selection import GridSearchCV, KFold
from sklearn.neighbors import KernelDensity

BANDWIDTH_RULES = ("silverman", "scott", "cv")


def _sigma(X: np.ndarray) -> float:
    # Mean of the per-axis population standard deviations.
    return float(np.std(X, axis=0).mean())


def bandwidth_selection(X: np.ndarray, method: str = "silverman", kernel: str = "gaussian") -> float:
    """Select a kernel bandwidth from the data.

    Args:
        X: Coordinate array in projected CRS (shape: (n_samples, n_features)).
        method: "silverman" (default), "scott" or "cv".
        kernel: Kernel used for the cross-validated search.

    Returns:
        Bandwidth in the units of X. Zero when all points coincide.

    Rules (n samples, d dimensions, sigma = mean per-axis std):
        silverman: h = (n * (d + 2) / 4) ** (-1 / (d + 4)) * sigma
        scott:     h = n ** (-1 / (d + 4)) * sigma
        cv:        maximum likelihood over 20 log-spaced multiples
                   (0.1x to 10x) of the Silverman bandwidth, k-fold
                   without shuffling
    """
    X = np.asarray(X, dtype=float)
    n, d = X.shape
    sigma = _sigma(X)

    if method == "silverman":
        return float((n * (d + 2) / 4) ** (-1.0 / (d + 4)) * sigma)

    elif method == "scott":
        return float(n ** (-1.0 / (d + 4)) * sigma)

    elif method == "cv":
        h0 = (n * (d + 2) / 4) ** (-1.0 / (d + 4)) * sigma
        if h0 <= 0:
            return 0.0
        grid = GridSearchCV(
            KernelDensity(kernel=kernel),
            {"bandwidth": h0 * np.logspace(-1, 1, 20)},
            cv=KFold(n_splits=min(5, n), shuffle=False),
        )
        grid.fit(X)
        return float(grid.best_params_["bandwidth"])

    else:
        raise ValueError(f"Unknown bandwidth selection method: {method}")
