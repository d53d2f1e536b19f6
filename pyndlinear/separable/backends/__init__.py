"""
Separable fit backends.

Available backends:
    CPUQRBackend: CPU reference implementation using QR decomposition
    GPUCholeskyBackend: PyTorch normal-equations solve (import from
        pyndlinear.separable.backends.gpu; needs the 'gpu' extra)
"""

from pyndlinear.separable.backends.cpu import CPUQRBackend

__all__ = [
    "CPUQRBackend",
]
