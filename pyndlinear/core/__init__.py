"""
Core infrastructure for pyndlinear.

Shared abstractions used by the separable model code and its backends.

Key components:
    protocols: BasisFunction, Backend protocols
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Hardware detection, timing, linear algebra kernels
"""

from pyndlinear.core.protocols import BasisFunction, Backend
from pyndlinear.core.result import Result
from pyndlinear.core.exceptions import (
    PyNDLinearError,
    ValidationError,
    InvalidDimensionError,
    DimensionMismatchError,
    InvalidIndexError,
    UseAfterFreeError,
    NumericalError,
    SingularMatrixError,
)

__all__ = [
    # Protocols
    "BasisFunction",
    "Backend",
    # Result
    "Result",
    # Exceptions
    "PyNDLinearError",
    "ValidationError",
    "InvalidDimensionError",
    "DimensionMismatchError",
    "InvalidIndexError",
    "UseAfterFreeError",
    "NumericalError",
    "SingularMatrixError",
]
