"""
GPU backend for separable least squares using PyTorch.

Performance path for large designs, validated against the CPU QR
reference. Supports CUDA (Linux/Windows) and MPS (macOS Apple Silicon).
"""

from typing import Any
import numpy as np

from pyndlinear.core.result import Result
from pyndlinear.core.exceptions import NumericalError, SingularMatrixError
from pyndlinear.core.compute.timing import Timer
from pyndlinear.core.compute.tolerances import GPU_CONDITION_THRESHOLD
from pyndlinear.separable._design import SeparableDesign
from pyndlinear.separable.solution import SeparableParams
from pyndlinear.separable.backends._common import (
    total_sum_of_squares,
    scale_covariance,
    check_residual_dof,
)


class GPUCholeskyBackend:
    """
    GPU backend solving the normal equations by Cholesky decomposition.

    Faster than QR for well-conditioned designs, but squares the condition
    number, so ill-conditioned designs are refused unless force=True.
    The coefficient covariance comes straight from the Cholesky factor.

    FP32 by default for consumer GPUs; FP64 on request (CUDA only).
    """

    def __init__(self, use_fp64: bool = False, device: str = 'cuda'):
        """
        Args:
            use_fp64: If True, use FP64 (slow on consumer GPUs)
            device: GPU device type ('cuda', 'cuda:0', 'mps')
        """
        import torch

        if device.startswith('cuda'):
            if not torch.cuda.is_available():
                raise RuntimeError(
                    "CUDA not available. Install PyTorch with CUDA support, "
                    "or use backend='cpu'."
                )
            self.device = torch.device(device)
            self.dtype = torch.float64 if use_fp64 else torch.float32
            self.use_fp64 = use_fp64
            self.device_name = torch.cuda.get_device_properties(self.device).name

        elif device == 'mps':
            if not (hasattr(torch.backends, 'mps') and torch.backends.mps.is_available()):
                raise RuntimeError(
                    "MPS not available. Requires macOS with Apple Silicon "
                    "and PyTorch with MPS support."
                )
            if use_fp64:
                raise RuntimeError(
                    "MPS does not support float64. Use use_fp64=False "
                    "or use backend='cpu' for double precision."
                )
            self.device = torch.device('mps')
            self.dtype = torch.float32
            self.use_fp64 = False
            self.device_name = 'Apple Silicon GPU (MPS)'

        else:
            raise ValueError(
                f"Unknown GPU device: {device!r}. Use 'cuda' or 'mps'."
            )

    @property
    def name(self) -> str:
        precision = "fp64" if self.use_fp64 else "fp32"
        return f'gpu_cholesky_{precision}'

    def solve(self, design: SeparableDesign, force: bool = False) -> Result[SeparableParams]:
        """
        Solve the (weighted) least-squares problem on GPU.

        Args:
            design: Separable design
            force: Proceed even if the design is ill-conditioned

        Raises:
            NumericalError: If the design is ill-conditioned and force=False
            SingularMatrixError: If X'X is not positive definite
        """
        import torch

        timer = Timer(sync_cuda=self.device.type == 'cuda')
        timer.start()

        n, p = design.n, design.p
        run_warnings: list[str] = []

        with timer.section('data_transfer_to_gpu'):
            X = torch.from_numpy(design.Xw).to(device=self.device, dtype=self.dtype)
            y = torch.from_numpy(design.yw).to(device=self.device, dtype=self.dtype)

        # svdvals is not implemented on MPS
        with timer.section('condition_check'):
            try:
                sv = torch.linalg.svdvals(X)
            except (NotImplementedError, RuntimeError):
                sv = torch.linalg.svdvals(X.cpu()).to(X.device)
            sv_min = float(sv[-1].item())
            sv_max = float(sv[0].item())
            cond = sv_max / sv_min if sv_min > 0 else float('inf')

        if cond > GPU_CONDITION_THRESHOLD and not force:
            timer.stop()
            raise NumericalError(
                f"Design matrix is ill-conditioned (condition number: {cond:.2e}). "
                f"Cholesky decomposition on normal equations likely to be "
                f"numerically unstable.\n"
                f"Options:\n"
                f"  - Use backend='cpu' for QR decomposition\n"
                f"  - Use fewer basis terms or better-spread sample points\n"
                f"  - Pass force=True to proceed with Cholesky anyway"
            )

        with timer.section('normal_equations'):
            XtX = X.T @ X
            Xty = X.T @ y

        with timer.section('cholesky_solve'):
            try:
                L = torch.linalg.cholesky(XtX)
            except torch.linalg.LinAlgError as e:
                timer.stop()
                raise SingularMatrixError(
                    f"X'X is not positive definite on {self.device}: {e}",
                    matrix_name="X'X",
                    condition_number=cond,
                    expected_rank=p,
                ) from e
            coef_gpu = torch.cholesky_solve(Xty.unsqueeze(1), L).squeeze(1)

        with timer.section('covariance'):
            cov_gpu = torch.cholesky_inverse(L)

        with timer.section('data_transfer_to_cpu'):
            coefficients = coef_gpu.cpu().numpy().astype(np.float64)
            covariance = cov_gpu.cpu().numpy().astype(np.float64)

        with timer.section('residuals'):
            fitted_values = design.X @ coefficients
            residuals = design.y - fitted_values
            weighted_residuals = design.yw - design.Xw @ coefficients
            rss = float(weighted_residuals @ weighted_residuals)
            tss = total_sum_of_squares(design)

        df_residual = n - p
        covariance = scale_covariance(covariance, design, rss, df_residual)
        check_residual_dof(n, p, df_residual, run_warnings)

        timer.stop()

        params = SeparableParams(
            coefficients=coefficients,
            covariance=covariance,
            residuals=residuals,
            fitted_values=fitted_values,
            rss=rss,
            tss=tss,
            rank=p,
            df_residual=df_residual,
        )

        info: dict[str, Any] = {
            'method': 'cholesky',
            'weighted': design.weighted,
            'device': str(self.device),
            'dtype': str(self.dtype),
            'device_name': self.device_name,
            'condition_number': cond,
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(run_warnings),
        )
