"""
Separable N-dimensional linear models.

A separable model writes the fitted function as a sum over coefficients
of products of one-dimensional basis terms:

    f(x) = Σ_j c_j Π_d b_d[i_d(j)](x_d)

Each dimension d has term_counts[d] terms, evaluated together by a
user-supplied callback. The flat coefficient index j and the
per-dimension term indices (i_0, ..., i_{n-1}) are related by a
mixed-radix encoding with the last dimension varying fastest.

Public API:
    alloc(n, term_counts, callbacks, params) -> Workspace
    design(ws, vars, weights=None) -> design matrix
    calc(ws, x, c) -> value
    est(ws, x, c, cov) -> (value, standard_error)
    predict(ws, vars, c) -> values
    fit(ws, vars, y, ...) -> SeparableSolution
    free(ws)

Example:
    >>> from pyndlinear.separable import alloc, design, calc
    >>> def line(x, out, params):
    ...     out[0] = 1.0
    ...     out[1] = x
    >>> ws = alloc(2, [2, 2], [line, line])
    >>> design(ws, [[2.0, 3.0]])
    array([[1., 3., 2., 6.]])
    >>> calc(ws, [2.0, 3.0], [1, 0, 0, 1])
    7.0
"""

from pyndlinear.separable._index import IndexMapper
from pyndlinear.separable.workspace import Workspace, alloc, free
from pyndlinear.separable._rows import build_row, design
from pyndlinear.separable._evaluate import calc, est, predict
from pyndlinear.separable._design import SeparableDesign
from pyndlinear.separable.solution import SeparableSolution, SeparableParams
from pyndlinear.separable.solvers import fit

__all__ = [
    "IndexMapper",
    "Workspace",
    "alloc",
    "free",
    "build_row",
    "design",
    "calc",
    "est",
    "predict",
    "fit",
    "SeparableDesign",
    "SeparableSolution",
    "SeparableParams",
]
