"""
Linear algebra kernels for pyndlinear.

All functions follow these conventions:
    - CPU functions use NumPy/SciPy (LAPACK under the hood)
    - Each decomposition returns a structured result dataclass
    - Errors are raised immediately with clear messages
"""

from pyndlinear.core.compute.linalg.qr import (
    QRResult,
    qr_cpu,
    qr_solve_cpu,
    qr_inverse_gram_cpu,
)

__all__ = [
    "QRResult",
    "qr_cpu",
    "qr_solve_cpu",
    "qr_inverse_gram_cpu",
]
