"""
Post-solve statistics shared by the separable backends.
"""

from typing import Any
import warnings
import numpy as np
from numpy.typing import NDArray

from pyndlinear.separable._design import SeparableDesign


def total_sum_of_squares(design: SeparableDesign) -> float:
    """Total (weighted) sum of squares about the (weighted) mean of y."""
    y = design.y
    if not design.weighted:
        return float(np.sum((y - np.mean(y)) ** 2))
    w = design.weights
    w_sum = float(np.sum(w))
    if w_sum == 0:
        return 0.0
    y_mean = float(np.sum(w * y) / w_sum)
    return float(np.sum(w * (y - y_mean) ** 2))


def scale_covariance(
    gram_inv: NDArray[np.floating[Any]],
    design: SeparableDesign,
    rss: float,
    df_residual: int,
) -> NDArray[np.floating[Any]]:
    """
    Turn (X'WX)⁻¹ into the coefficient covariance.

    Weighted fits treat weights as inverse variances, so (X'WX)⁻¹ is the
    covariance as is. Unweighted fits scale (X'X)⁻¹ by s² = rss / df;
    with no residual degrees of freedom s² is undefined and the
    covariance is zero.
    """
    if design.weighted:
        cov = gram_inv
    elif df_residual > 0:
        cov = gram_inv * (rss / df_residual)
    else:
        cov = np.zeros_like(gram_inv)
    return 0.5 * (cov + cov.T)


def check_residual_dof(n: int, p: int, df_residual: int, run_warnings: list[str]) -> None:
    """
    Warn (and record) when the fit has no residual degrees of freedom.

    Called from a backend's solve() inside fit(); the warning points at
    the caller of fit().
    """
    if df_residual > 0:
        return
    message = (
        f"No residual degrees of freedom (n={n}, p={p}); "
        f"the fit interpolates the data and residual variance cannot be estimated"
    )
    warnings.warn(message, RuntimeWarning, stacklevel=4)
    run_warnings.append(message)
