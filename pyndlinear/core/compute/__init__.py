"""
Shared compute infrastructure for pyndlinear.

Hardware detection, timing, tolerance tiers and linear algebra kernels.
Domain-specific backends live in {domain}/backends/, not here.

Submodules:
    device: Hardware detection and device selection
    timing: Execution timing utilities
    tolerances: Numerical tolerance tiers per backend
    linalg: Linear algebra kernels (QR least squares)
"""

from pyndlinear.core.compute.device import (
    DeviceInfo,
    detect_gpu,
    get_cpu_info,
    select_device,
)
from pyndlinear.core.compute.timing import Timer

__all__ = [
    "DeviceInfo",
    "detect_gpu",
    "get_cpu_info",
    "select_device",
    "Timer",
]
