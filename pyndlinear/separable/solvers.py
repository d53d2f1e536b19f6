"""
Solver dispatch for separable fits.

This module provides the fit() function (public API) and backend selection.
"""

from typing import Literal
from numpy.typing import ArrayLike

from pyndlinear.core.compute.device import select_device
from pyndlinear.separable.workspace import Workspace
from pyndlinear.separable._design import SeparableDesign
from pyndlinear.separable.solution import SeparableSolution
from pyndlinear.separable.backends.cpu import CPUQRBackend


BackendChoice = Literal['auto', 'cpu', 'cpu_qr', 'gpu', 'gpu_fp64']


def fit(
    workspace: Workspace,
    vars: ArrayLike,
    y: ArrayLike,
    *,
    weights: ArrayLike | None = None,
    backend: BackendChoice = 'cpu',
) -> SeparableSolution:
    """
    Fit a separable linear model.

    Expands every observation through the workspace's basis callbacks,
    then solves

        min_β Σ_i w_i (y_i - Σ_j β_j Π_d b_d[i_d(j)](x_id))²

    with w_i = 1 when no weights are given.

    Args:
        workspace: Allocated workspace defining the separable basis
        vars: Observation coordinates (ndata, dimension_count)
        y: Responses (ndata,)
        weights: Optional per-observation weights (ndata,), taken as
            inverse variances when computing the covariance
        backend: Computational backend to use:
            - 'cpu' / 'cpu_qr': QR decomposition (reference, default)
            - 'gpu': PyTorch Cholesky in FP32 (CUDA or MPS)
            - 'gpu_fp64': PyTorch Cholesky in FP64 (CUDA)
            - 'auto': GPU if available, else CPU

    Returns:
        SeparableSolution with coefficients, covariance, and
        calc()/est()/predict() evaluators

    Raises:
        DimensionMismatchError: If vars, y or weights disagree in shape
            with each other or with the workspace
        ValidationError: Non-finite data, negative weights, or fewer
            observations than coefficients
        SingularMatrixError: If the design matrix is rank-deficient
        UseAfterFreeError: If the workspace was freed

    Example:
        >>> ws = alloc(2, [4, 4], [legendre, legendre])
        >>> sol = fit(ws, vars, y)
        >>> sol.est([0.1, -0.3])
    """
    # === Construct Design ===
    # This is the boundary - validate here, trust everywhere else
    design = SeparableDesign.build(workspace, vars, y, weights=weights)

    # === Select Backend ===
    backend_impl = _get_backend(backend)

    # === Solve ===
    result = backend_impl.solve(design)

    # === Wrap and Return ===
    return SeparableSolution(_result=result, _design=design, _workspace=workspace)


def _get_backend(choice: BackendChoice):
    """
    Select and instantiate the appropriate backend.

    Raises:
        ValueError: If unknown backend specified
        RuntimeError: If GPU requested but unavailable
    """
    if choice in ('cpu', 'cpu_qr'):
        return CPUQRBackend()

    if choice == 'auto':
        device = select_device('auto')
        if device.is_gpu:
            from pyndlinear.separable.backends.gpu import GPUCholeskyBackend
            return GPUCholeskyBackend(device=device.device_type)
        return CPUQRBackend()

    if choice in ('gpu', 'gpu_fp64'):
        device = select_device('gpu')
        from pyndlinear.separable.backends.gpu import GPUCholeskyBackend
        return GPUCholeskyBackend(
            use_fp64=(choice == 'gpu_fp64'),
            device=device.device_type,
        )

    raise ValueError(f"Unknown backend: {choice!r}")
