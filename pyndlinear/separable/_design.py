"""
Separable fit design.

SeparableDesign expands observations through a Workspace into the design
matrix and response a least-squares backend consumes. The workspace knows
the basis; the backend only ever sees plain matrices.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyndlinear.core.validation import (
    check_array,
    check_finite,
    check_1d,
    check_consistent_length,
    check_min_samples,
)
from pyndlinear.separable.workspace import Workspace
from pyndlinear.separable._rows import check_vars, check_weights, rows


@dataclass(frozen=True)
class SeparableDesign:
    """
    Design matrix and response for a separable least-squares fit.

    Immutable after construction. Build with SeparableDesign.build().

    X and y are the unweighted design and response; Xw and yw are the
    same scaled row-wise by sqrt(weights), which is what a solver should
    minimise ||yw - Xw β||² over. Without weights Xw is X and yw is y.
    """
    _X: NDArray[np.floating[Any]]
    _y: NDArray[np.floating[Any]]
    _Xw: NDArray[np.floating[Any]]
    _yw: NDArray[np.floating[Any]]
    _weights: NDArray[np.floating[Any]] | None
    _vars: NDArray[np.floating[Any]]
    _n: int
    _p: int

    @classmethod
    def build(
        cls,
        workspace: Workspace,
        vars: ArrayLike,
        y: ArrayLike,
        weights: ArrayLike | None = None,
    ) -> SeparableDesign:
        """
        Validate observations and expand them into a design.

        Args:
            workspace: Allocated workspace defining the basis
            vars: Observation coordinates (ndata, dimension_count)
            y: Responses (ndata,)
            weights: Optional per-observation weights (ndata,), e.g. 1/σ²

        Returns:
            SeparableDesign ready for a backend

        Raises:
            DimensionMismatchError: vars/y/weights shapes disagree with each
                other or with the workspace
            ValidationError: Non-finite data, negative weights, or fewer
                observations than coefficients
        """
        V = check_vars(workspace, vars)

        y_arr = check_array(y, 'y')
        if y_arr.ndim == 2 and y_arr.shape[1] == 1:
            y_arr = y_arr.ravel()
        check_1d(y_arr, 'y')
        check_finite(y_arr, 'y')
        check_consistent_length(V, y_arr, names=('vars', 'y'))

        p = workspace.total_coefficients
        check_min_samples(V, p, 'vars')

        X = rows(workspace, V)

        if weights is None:
            return cls(
                _X=X, _y=y_arr, _Xw=X, _yw=y_arr, _weights=None,
                _vars=V, _n=V.shape[0], _p=p,
            )

        w = check_weights(weights, V.shape[0])
        sqrt_w = np.sqrt(w)
        return cls(
            _X=X,
            _y=y_arr,
            _Xw=X * sqrt_w[:, np.newaxis],
            _yw=y_arr * sqrt_w,
            _weights=w,
            _vars=V,
            _n=V.shape[0],
            _p=p,
        )

    # === Properties ===

    @property
    def X(self) -> NDArray[np.floating[Any]]:
        """Unweighted design matrix (n x p)."""
        return self._X

    @property
    def y(self) -> NDArray[np.floating[Any]]:
        """Response vector (n,)."""
        return self._y

    @property
    def Xw(self) -> NDArray[np.floating[Any]]:
        """Design matrix with rows scaled by sqrt(weights)."""
        return self._Xw

    @property
    def yw(self) -> NDArray[np.floating[Any]]:
        """Response scaled by sqrt(weights)."""
        return self._yw

    @property
    def weights(self) -> NDArray[np.floating[Any]] | None:
        return self._weights

    @property
    def weighted(self) -> bool:
        return self._weights is not None

    @property
    def vars(self) -> NDArray[np.floating[Any]]:
        """Observation coordinates (n x dimension_count)."""
        return self._vars

    @property
    def n(self) -> int:
        """Number of observations."""
        return self._n

    @property
    def p(self) -> int:
        """Number of coefficients."""
        return self._p
