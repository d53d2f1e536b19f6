"""
Design-row construction for separable models.

A row is the expansion of one observation into every coefficient's basis
product: with b_d the outputs of dimension d's callback at x[d],

    row[j] = prod_d b_d[i_d(j)],   (i_0, ..., i_{n-1}) = unflatten(j)

Step 1 costs one callback per dimension. Step 2 is a multi-way outer
product; it gathers b_d through the workspace's cached multi-index table,
so it is exactly the per-j unflatten rule, vectorized.
"""

from __future__ import annotations

from typing import Any
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyndlinear.core.exceptions import ValidationError
from pyndlinear.core.validation import (
    check_array,
    check_finite,
    check_1d,
    check_2d,
    check_length,
    check_nonnegative,
)
from pyndlinear.separable.workspace import Workspace


def evaluate_bases(workspace: Workspace, x: NDArray[np.floating[Any]]) -> list[NDArray[np.floating[Any]]]:
    """
    Call every dimension's basis callback at its coordinate.

    Each call gets a freshly allocated buffer, so concurrent callers never
    share scratch space. Buffers start as NaN; a term the callback leaves
    unset fails the finite check.

    Returns:
        One filled buffer per dimension, buffer d of length term_counts[d]
    """
    outputs = []
    for d, (callback, count, params) in enumerate(zip(
        workspace.basis_callbacks, workspace.term_counts, workspace.basis_params
    )):
        scratch = np.full(count, np.nan, dtype=np.float64)
        callback(float(x[d]), scratch, params)
        if not np.all(np.isfinite(scratch)):
            raise ValidationError(
                f"basis_callbacks[{d}] produced non-finite values at x={float(x[d])!r} "
                f"(every term in out must be set)"
            )
        outputs.append(scratch)
    return outputs


def expand_row(
    workspace: Workspace,
    bases: list[NDArray[np.floating[Any]]],
) -> NDArray[np.floating[Any]]:
    """Multiply per-dimension basis values into a full design row."""
    table = workspace.mapper.table()
    row = bases[0][table[:, 0]].copy()
    for d in range(1, len(bases)):
        row *= bases[d][table[:, d]]
    return row


def check_point(workspace: Workspace, x: ArrayLike, name: str = 'x') -> NDArray[np.floating[Any]]:
    """Validate one point: a finite vector with one entry per dimension."""
    x_arr = check_array(x, name)
    if x_arr.ndim == 0:
        x_arr = x_arr.reshape(1)
    check_1d(x_arr, name)
    check_length(x_arr, workspace.dimension_count, name, what='coordinates')
    check_finite(x_arr, name)
    return x_arr


def build_row(workspace: Workspace, x: ArrayLike) -> NDArray[np.floating[Any]]:
    """
    Build one design-matrix row.

    Args:
        workspace: Allocated workspace
        x: Point coordinates, one per dimension (a scalar is accepted
            when the workspace has a single dimension)

    Returns:
        Row of length workspace.total_coefficients

    Raises:
        DimensionMismatchError: If x does not have dimension_count entries
        ValidationError: If x or a callback's output is non-finite
        UseAfterFreeError: If the workspace was freed
    """
    x_arr = check_point(workspace, x)
    return expand_row(workspace, evaluate_bases(workspace, x_arr))


def check_vars(workspace: Workspace, vars: ArrayLike, name: str = 'vars') -> NDArray[np.floating[Any]]:
    """
    Validate an observation matrix: (ndata, n), finite.

    A 1-D array is accepted as (ndata, 1) for single-dimension workspaces.
    """
    n = workspace.dimension_count
    V = check_array(vars, name)
    if V.ndim == 1 and n == 1:
        V = V.reshape(-1, 1)
    check_2d(V, name)
    check_length(V.T, n, name, what='columns (one per dimension)')
    check_finite(V, name)
    return V


def check_weights(weights: ArrayLike, ndata: int, name: str = 'weights') -> NDArray[np.floating[Any]]:
    """Validate a weight vector: length ndata, finite, non-negative."""
    w = check_array(weights, name)
    check_1d(w, name)
    check_length(w, ndata, name, what='weights (one per observation)')
    check_finite(w, name)
    check_nonnegative(w, name)
    return w


def rows(workspace: Workspace, V: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """Build the unweighted design matrix for a validated observation matrix."""
    X = np.empty((V.shape[0], workspace.total_coefficients), dtype=np.float64)
    for i in range(V.shape[0]):
        X[i] = expand_row(workspace, evaluate_bases(workspace, V[i]))
    return X


def design(
    workspace: Workspace,
    vars: ArrayLike,
    weights: ArrayLike | None = None,
) -> NDArray[np.floating[Any]]:
    """
    Build the design matrix for a set of observations.

    Args:
        workspace: Allocated workspace
        vars: Observation coordinates, shape (ndata, dimension_count)
        weights: Optional per-observation weights (ndata,). Row i is
            scaled by sqrt(weights[i]), as weighted least squares expects.

    Returns:
        Design matrix of shape (ndata, total_coefficients)

    Raises:
        DimensionMismatchError: If vars has the wrong number of columns
            or weights the wrong length
        ValidationError: Non-finite inputs or negative weights
        UseAfterFreeError: If the workspace was freed

    Example:
        >>> X = design(ws, np.array([[2.0, 3.0]]))
        >>> X
        array([[1., 3., 2., 6.]])
    """
    V = check_vars(workspace, vars)
    w = None
    if weights is not None:
        w = check_weights(weights, V.shape[0])

    X = rows(workspace, V)
    if w is not None:
        X *= np.sqrt(w)[:, np.newaxis]
    return X
