"""
Exception hierarchy for pyndlinear.

All exceptions inherit from PyNDLinearError to allow catching any
library-specific error. Domain-specific exceptions should inherit from
the appropriate base class here.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""

from typing import Any


class PyNDLinearError(Exception):
    """Base exception for all pyndlinear errors."""
    pass


class ValidationError(PyNDLinearError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class InvalidDimensionError(ValidationError):
    """
    Workspace dimensions are invalid.

    Raised at allocation time for a non-positive dimension count or term
    count, ragged per-dimension inputs, or a coefficient count that cannot
    be indexed.

    Attributes:
        dimension: Offending dimension, if the problem is per-dimension
        value: The rejected value
    """

    def __init__(
        self,
        message: str,
        dimension: int | None = None,
        value: Any = None,
    ):
        super().__init__(message)
        self.dimension = dimension
        self.value = value


class DimensionMismatchError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when an array's shape doesn't match the workspace (dimension
    count, coefficient count) or when several arrays disagree in length.

    Attributes:
        name: Parameter name of the offending array
        expected: Expected shape or length
        actual: Observed shape or length
    """

    def __init__(
        self,
        message: str,
        name: str | None = None,
        expected: Any = None,
        actual: Any = None,
    ):
        super().__init__(message)
        self.name = name
        self.expected = expected
        self.actual = actual


class InvalidIndexError(PyNDLinearError, IndexError):
    """
    Coefficient index is out of range.

    Internal consistency check for flat and multi-index conversion.
    A correct caller never sees this.

    Attributes:
        index: The rejected flat index or multi-index
        bounds: Valid upper bound(s), exclusive
    """

    def __init__(
        self,
        message: str,
        index: Any = None,
        bounds: Any = None,
    ):
        super().__init__(message)
        self.index = index
        self.bounds = bounds


class UseAfterFreeError(PyNDLinearError, RuntimeError):
    """
    Operation invoked on a workspace that was already freed.

    This is a programming error, not a recoverable condition.
    """
    pass


class NumericalError(PyNDLinearError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or nearly singular.

    Raised when a matrix operation requires invertibility but the matrix
    is singular or numerically rank-deficient.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        condition_number: Estimated condition number, if available
        rank: Numerical rank, if computed
        expected_rank: Expected rank (typically min(n, p))
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        condition_number: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.condition_number = condition_number
        self.rank = rank
        self.expected_rank = expected_rank
