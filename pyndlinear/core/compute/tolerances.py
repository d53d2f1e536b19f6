"""
Tolerance tiers for numerical comparison.

- CPU FP64 (reference): QR solve in double precision
- GPU FP64: Cholesky on normal equations in double precision
- GPU FP32: relaxed for single-precision arithmetic

Used by the test suite and the GPU backend's condition check.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


CPU_FP64 = ToleranceTier(
    rtol=1e-10,
    atol=1e-12,
    name='cpu_fp64',
    description='CPU double precision QR reference',
)

# Normal equations square the condition number, so FP64 on GPU loses
# a few digits relative to QR
GPU_FP64 = ToleranceTier(
    rtol=1e-8,
    atol=1e-10,
    name='gpu_fp64',
    description='GPU double precision Cholesky',
)

GPU_FP32 = ToleranceTier(
    rtol=1e-3,
    atol=1e-4,
    name='gpu_fp32',
    description='GPU single precision Cholesky',
)

# At cond(X) = 1e6, cond(X'X) = 1e12: near float64 epsilon and well past
# float32 usability.
GPU_CONDITION_THRESHOLD = 1e6


def select_tolerance(backend_name: str) -> ToleranceTier:
    """Select the tolerance tier matching a backend name."""
    if 'gpu' in backend_name:
        if 'fp64' in backend_name:
            return GPU_FP64
        return GPU_FP32
    return CPU_FP64
