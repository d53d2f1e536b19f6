"""
QR decomposition and QR-based least squares.

CPU implementations via LAPACK (NumPy/SciPy). This is the least-squares
kernel the separable fit pipeline hands its design matrix to.
"""

from dataclasses import dataclass
from typing import Literal, Any
import numpy as np
from numpy.typing import NDArray
from scipy.linalg import solve_triangular

from pyndlinear.core.exceptions import SingularMatrixError


@dataclass(frozen=True)
class QRResult:
    """
    Result of QR decomposition.

    Attributes:
        Q: Orthogonal matrix (n x k where k = min(n, p) for reduced mode)
        R: Upper triangular matrix (k x p)
        rank: Numerical rank determined from R diagonal
    """
    Q: NDArray[np.floating[Any]]
    R: NDArray[np.floating[Any]]
    rank: int


def qr_cpu(
    X: NDArray[np.floating[Any]],
    mode: Literal['reduced', 'complete'] = 'reduced'
) -> QRResult:
    """
    QR decomposition using LAPACK (via NumPy).

    Args:
        X: Matrix to decompose (n x p)
        mode: 'reduced' for economy QR, 'complete' for full QR

    Returns:
        QRResult with Q, R, and numerical rank
    """
    Q, R = np.linalg.qr(X, mode=mode)

    diag_R = np.abs(np.diag(R))
    if len(diag_R) > 0 and diag_R.max() > 0:
        tol = max(X.shape) * np.finfo(X.dtype).eps * diag_R.max()
        rank = int(np.sum(diag_R > tol))
    else:
        rank = 0

    return QRResult(Q=Q, R=R, rank=rank)


def _require_full_rank(qr_result: QRResult, p: int, matrix_name: str) -> None:
    if qr_result.rank < p:
        raise SingularMatrixError(
            f"{matrix_name} is rank-deficient: rank={qr_result.rank}, expected={p}. "
            f"Some basis terms are linearly dependent on the sampled points.",
            matrix_name=matrix_name,
            rank=qr_result.rank,
            expected_rank=p,
        )


def qr_solve_cpu(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    check_rank: bool,
    qr_result: QRResult | None = None,
) -> NDArray[np.floating[Any]]:
    """
    Solve least squares via QR decomposition (CPU).

    Solves min_β ||y - Xβ||² as β = R⁻¹ Q'y.

    Args:
        X: Design matrix (n x p), must have n >= p
        y: Response vector (n,)
        check_rank: If True, raise SingularMatrixError on rank-deficient X
        qr_result: Precomputed reduced QR of X, to avoid factoring twice

    Returns:
        Coefficient vector β (p,)

    Raises:
        SingularMatrixError: If X is rank-deficient and check_rank=True
    """
    n, p = X.shape
    if qr_result is None:
        qr_result = qr_cpu(X, mode='reduced')

    if check_rank:
        _require_full_rank(qr_result, p, 'X')

    Qty = qr_result.Q.T @ y
    return solve_triangular(qr_result.R[:p, :p], Qty[:p], lower=False)


def qr_inverse_gram_cpu(R: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """
    Compute (X'X)⁻¹ from the R factor of X.

    X'X = R'R, so (X'X)⁻¹ = R⁻¹ R⁻ᵀ. Avoids forming X'X explicitly.

    Args:
        R: Upper triangular factor (p x p, full rank)

    Returns:
        Symmetric p x p matrix (X'X)⁻¹

    Raises:
        SingularMatrixError: If R has a zero on its diagonal
    """
    p = R.shape[1]
    R = R[:p, :p]
    if np.any(np.diag(R) == 0):
        raise SingularMatrixError(
            "R factor has a zero diagonal entry; X'X is not invertible",
            matrix_name="X'X",
            expected_rank=p,
        )
    R_inv = solve_triangular(R, np.eye(p), lower=False)
    gram_inv = R_inv @ R_inv.T
    return 0.5 * (gram_inv + gram_inv.T)
