"""
Model evaluation for fitted separable models.

calc, est and predict rebuild the design row at the requested point(s)
with the same row builder used for fitting, so coefficient indexing
always matches the design matrix the coefficients were solved from.
"""

from __future__ import annotations

from typing import Any
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyndlinear.core.validation import check_array, check_finite, check_1d, check_2d, check_length
from pyndlinear.core.exceptions import DimensionMismatchError
from pyndlinear.separable.workspace import Workspace
from pyndlinear.separable._rows import build_row, check_vars, rows


def _check_coefficients(workspace: Workspace, coefficients: ArrayLike) -> NDArray[np.floating[Any]]:
    c = check_array(coefficients, 'coefficients')
    check_1d(c, 'coefficients')
    check_length(c, workspace.total_coefficients, 'coefficients', what='coefficients')
    return c


def _check_covariance(workspace: Workspace, covariance: ArrayLike) -> NDArray[np.floating[Any]]:
    cov = check_array(covariance, 'covariance')
    check_2d(cov, 'covariance')
    p = workspace.total_coefficients
    if cov.shape != (p, p):
        raise DimensionMismatchError(
            f"covariance: expected shape ({p}, {p}), got {cov.shape}",
            name='covariance',
            expected=(p, p),
            actual=cov.shape,
        )
    check_finite(cov, 'covariance')
    return cov


def calc(workspace: Workspace, x: ArrayLike, coefficients: ArrayLike) -> float:
    """
    Evaluate the fitted model at one point.

    Args:
        workspace: Workspace the coefficients were fitted with
        x: Point coordinates, one per dimension
        coefficients: Coefficient vector (total_coefficients,)

    Returns:
        Model value dot(build_row(x), coefficients)

    Raises:
        DimensionMismatchError: If x or coefficients has the wrong length
        UseAfterFreeError: If the workspace was freed
    """
    c = _check_coefficients(workspace, coefficients)
    return float(build_row(workspace, x) @ c)


def est(
    workspace: Workspace,
    x: ArrayLike,
    coefficients: ArrayLike,
    covariance: ArrayLike,
) -> tuple[float, float]:
    """
    Evaluate the model and its standard error at one point.

    The variance of the prediction is the quadratic form row' Σ row over
    the design row; round-off can make it slightly negative for a PSD Σ,
    so it is clipped at zero before the square root.

    Args:
        workspace: Workspace the coefficients were fitted with
        x: Point coordinates, one per dimension
        coefficients: Coefficient vector (total_coefficients,)
        covariance: Coefficient covariance (total_coefficients, total_coefficients)

    Returns:
        (value, standard_error)

    Raises:
        DimensionMismatchError: If x, coefficients or covariance has the
            wrong shape
        UseAfterFreeError: If the workspace was freed
    """
    c = _check_coefficients(workspace, coefficients)
    cov = _check_covariance(workspace, covariance)
    row = build_row(workspace, x)

    value = float(row @ c)
    variance = float(row @ cov @ row)
    return value, float(np.sqrt(max(variance, 0.0)))


def predict(workspace: Workspace, vars: ArrayLike, coefficients: ArrayLike) -> NDArray[np.floating[Any]]:
    """
    Evaluate the model at many points.

    Args:
        workspace: Workspace the coefficients were fitted with
        vars: Points, shape (ndata, dimension_count)
        coefficients: Coefficient vector (total_coefficients,)

    Returns:
        Model values, shape (ndata,)
    """
    c = _check_coefficients(workspace, coefficients)
    V = check_vars(workspace, vars)
    return rows(workspace, V) @ c
