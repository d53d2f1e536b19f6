"""
CPU reference backend for separable least squares.

Factors the (weighted) design matrix with QR via LAPACK, solves for the
coefficients and derives the coefficient covariance from the R factor.
"""

from typing import Any

from pyndlinear.core.result import Result
from pyndlinear.core.compute.timing import Timer
from pyndlinear.core.compute.linalg.qr import qr_cpu, qr_solve_cpu, qr_inverse_gram_cpu
from pyndlinear.separable._design import SeparableDesign
from pyndlinear.separable.solution import SeparableParams
from pyndlinear.separable.backends._common import (
    total_sum_of_squares,
    scale_covariance,
    check_residual_dof,
)


class CPUQRBackend:
    """
    CPU backend using QR decomposition.

    Implements the Backend protocol for SeparableDesign -> SeparableParams.
    This is the reference implementation the GPU backend is validated
    against.

    Covariance convention:
        unweighted: s² (X'X)⁻¹ with s² = rss / (n - p)
        weighted:   (X'WX)⁻¹, weights taken as inverse variances
    """

    @property
    def name(self) -> str:
        return 'cpu_qr'

    def solve(self, design: SeparableDesign) -> Result[SeparableParams]:
        """
        Solve the (weighted) least-squares problem via QR.

        Algorithm:
            1. QR decomposition of the weighted design: Xw = QR
            2. β = R⁻¹ Q'yw
            3. Covariance from (R'R)⁻¹, scaled for unweighted fits

        Args:
            design: Validated separable design

        Returns:
            Result containing SeparableParams

        Raises:
            SingularMatrixError: If the design matrix is rank-deficient
        """
        timer = Timer()
        timer.start()

        Xw, yw = design.Xw, design.yw
        n, p = design.n, design.p
        run_warnings: list[str] = []

        with timer.section('qr_decomposition'):
            qr_result = qr_cpu(Xw, mode='reduced')

        with timer.section('solve'):
            coefficients = qr_solve_cpu(Xw, yw, check_rank=True, qr_result=qr_result)

        with timer.section('residuals'):
            fitted_values = design.X @ coefficients
            residuals = design.y - fitted_values
            weighted_residuals = yw - Xw @ coefficients
            rss = float(weighted_residuals @ weighted_residuals)
            tss = total_sum_of_squares(design)

        df_residual = n - qr_result.rank

        with timer.section('covariance'):
            covariance = scale_covariance(
                qr_inverse_gram_cpu(qr_result.R), design, rss, df_residual
            )

        check_residual_dof(n, p, df_residual, run_warnings)

        timer.stop()

        params = SeparableParams(
            coefficients=coefficients,
            covariance=covariance,
            residuals=residuals,
            fitted_values=fitted_values,
            rss=rss,
            tss=tss,
            rank=qr_result.rank,
            df_residual=df_residual,
        )

        info: dict[str, Any] = {
            'method': 'qr',
            'rank': qr_result.rank,
            'weighted': design.weighted,
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(run_warnings),
        )
