"""
Separable fit solution types.

Contains the parameter payload and user-facing solution wrapper.
"""

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyndlinear.core.result import Result
from pyndlinear.separable import _evaluate

if TYPE_CHECKING:
    from pyndlinear.separable._design import SeparableDesign
    from pyndlinear.separable.workspace import Workspace


@dataclass(frozen=True)
class SeparableParams:
    """
    Parameter payload for a separable least-squares fit.

    This is the immutable data computed by backends. rss is the weighted
    residual sum of squares (chi-squared) when the design is weighted.
    """
    coefficients: NDArray[np.floating[Any]]
    covariance: NDArray[np.floating[Any]]
    residuals: NDArray[np.floating[Any]]
    fitted_values: NDArray[np.floating[Any]]
    rss: float
    tss: float
    rank: int
    df_residual: int


@dataclass
class SeparableSolution:
    """
    User-facing separable fit results.

    Wraps the backend Result and evaluates the fitted model through the
    same workspace the design was built from.
    """
    _result: Result[SeparableParams]
    _design: 'SeparableDesign'
    _workspace: 'Workspace'

    _standard_errors: NDArray[np.floating[Any]] | None = None

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self._result.params.coefficients

    @property
    def covariance(self) -> NDArray[np.floating[Any]]:
        return self._result.params.covariance

    @property
    def residuals(self) -> NDArray[np.floating[Any]]:
        """Unweighted residuals y - Xβ."""
        return self._result.params.residuals

    @property
    def fitted_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.fitted_values

    @property
    def rss(self) -> float:
        return self._result.params.rss

    @property
    def chisq(self) -> float:
        """Weighted residual sum of squares (equals rss when unweighted)."""
        return self._result.params.rss

    @property
    def tss(self) -> float:
        return self._result.params.tss

    @property
    def r_squared(self) -> float:
        if self.tss == 0:
            return 1.0 if self.rss == 0 else 0.0
        return 1.0 - (self.rss / self.tss)

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        """Coefficient standard errors, sqrt(diag(covariance))."""
        if self._standard_errors is None:
            self._standard_errors = np.sqrt(np.clip(np.diag(self.covariance), 0.0, None))
        return self._standard_errors

    @property
    def rank(self) -> int:
        return self._result.params.rank

    @property
    def df_residual(self) -> int:
        return self._result.params.df_residual

    @property
    def weighted(self) -> bool:
        return self._design.weighted

    @property
    def workspace(self) -> 'Workspace':
        return self._workspace

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # === Evaluation ===

    def calc(self, x: ArrayLike) -> float:
        """Fitted model value at one point."""
        return _evaluate.calc(self._workspace, x, self.coefficients)

    def est(self, x: ArrayLike) -> tuple[float, float]:
        """Fitted model value and its standard error at one point."""
        return _evaluate.est(self._workspace, x, self.coefficients, self.covariance)

    def predict(self, vars: ArrayLike) -> NDArray[np.floating[Any]]:
        """Fitted model values at many points, shape (ndata,)."""
        return _evaluate.predict(self._workspace, vars, self.coefficients)

    def summary(self) -> str:
        """Generate a text summary of the fit."""
        mapper = self._workspace.mapper
        lines = [
            "Separable Linear Fit Results",
            "=" * 60,
            f"Observations: {self._design.n}",
            f"Dimensions: {self._workspace.dimension_count}",
            f"Term counts: {self._workspace.term_counts}",
            f"Coefficients: {self._design.p}",
            f"Weighted: {'yes' if self.weighted else 'no'}",
            f"Chi-squared: {self.chisq:.6g} on {self.df_residual} DF",
            f"R-squared: {self.r_squared:.6f}",
            "",
            f"{'Term':<20} {'Estimate':>14} {'Std.Error':>12}",
            "-" * 60,
        ]

        for j, (coef, se) in enumerate(zip(self.coefficients, self.standard_errors)):
            term = str(mapper.unflatten(j))
            lines.append(f"{term:<20} {coef:14.6g} {se:12.6g}")

        lines.append("-" * 60)
        lines.append(f"Backend: {self.backend_name}")
        if self.timing:
            lines.append(f"Time: {self.timing.get('total_seconds', 0):.4f}s")
        for w in self.warnings:
            lines.append(f"Warning: {w}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"SeparableSolution(n={self._design.n}, p={self._design.p}, "
            f"chisq={self.chisq:.4g}, r_squared={self.r_squared:.4f})"
        )
