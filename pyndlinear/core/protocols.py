"""
Core protocols for pyndlinear.

These define structural interfaces that implementations must satisfy.
We use Protocol (structural typing) rather than ABC (nominal typing) so
plain functions, closures and callable objects all qualify.
"""

from typing import Protocol, TypeVar, Any, runtime_checkable, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from pyndlinear.core.result import Result

D = TypeVar('D', contravariant=True)  # Design type
P = TypeVar('P', covariant=True)  # Parameter payload type


@runtime_checkable
class BasisFunction(Protocol):
    """
    Evaluates every basis term of one dimension at a scalar coordinate.

    Called as ``basis(x, out, params)``. Implementations must write term
    ``i``'s value at ``x`` into ``out[i]`` for every ``i`` in
    ``range(len(out))``. The return value is ignored.

    The callback must be a pure function of ``(x, params)``: no state kept
    between calls, no mutation of ``params``. Rows may be built from several
    threads at once, each with its own ``out`` buffer.

    Example:
        >>> def monomials(x, out, params):
        ...     out[:] = x ** np.arange(len(out))
    """

    def __call__(self, x: float, out: NDArray[np.floating[Any]], params: Any) -> None:
        ...


@runtime_checkable
class Backend(Protocol[D, P]):
    """
    Protocol for computational backends.

    Each backend takes a design and produces a Result over its parameter
    payload. Backends are stateless beyond construction-time settings
    (device, precision).
    """

    @property
    def name(self) -> str:
        """
        Backend identifier.

        Convention: '{device}_{algorithm}', e.g. 'cpu_qr', 'gpu_cholesky_fp64'.
        """
        ...

    def solve(self, design: D) -> 'Result[P]':
        """
        Execute the least-squares solve.

        Raises:
            NumericalError: If numerical issues prevent a solution
            ValidationError: If design is invalid for this backend
        """
        ...
