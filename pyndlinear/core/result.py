"""
Generic result container for pyndlinear solvers.

Every backend returns a Result wrapping its own parameter payload, so
timing, warnings and backend identity travel the same way regardless of
which solver produced the numbers.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (method, rank, weighting)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) for reproducibility
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for a least-squares solve.

    Type Parameters:
        P: The domain-specific parameter payload type

    Attributes:
        params: Solver output (coefficients, covariance, residuals, ...)
        info: Structured metadata (method, rank, weighted)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the backend that produced this result
        warnings: Non-fatal issues encountered during computation

    Example:
        >>> Result(
        ...     params=SeparableParams(...),
        ...     info={'method': 'qr', 'rank': 9, 'weighted': False},
        ...     timing={'total_seconds': 0.01},
        ...     backend_name='cpu_qr',
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
