"""
Separable basis workspace.

The Workspace is the registry a separable fit is built around: how many
independent variables there are, how many basis terms each one has, and
the callback (plus its opaque params) that evaluates those terms. It is
created once with alloc(), shared read-only by design/calc/est, and
released with free().

Scratch buffers are not kept on the workspace. Each row build allocates
its own, so one workspace can serve several threads at once.
"""

from __future__ import annotations

from typing import Any, Sequence
import numpy as np

from pyndlinear.core.exceptions import (
    InvalidDimensionError,
    UseAfterFreeError,
    ValidationError,
)
from pyndlinear.core.protocols import BasisFunction
from pyndlinear.separable._index import IndexMapper, _is_integer

# Largest coefficient count that can still index a NumPy array
MAX_COEFFICIENTS = int(np.iinfo(np.intp).max)


def _as_tuple(seq: Any, name: str, n: int) -> tuple:
    """Per-dimension sequence as a tuple; non-sequences are a dimension error."""
    try:
        return tuple(seq)
    except TypeError:
        raise InvalidDimensionError(
            f"{name}: expected a sequence of {n} entries (one per dimension), "
            f"got {type(seq).__name__}",
            value=seq,
        ) from None


class Workspace:
    """
    Immutable registry of per-dimension basis functions.

    Construct via alloc() (or Workspace.allocate), not directly.

    Attributes are read-only. After free() every accessor and every
    operation taking the workspace raises UseAfterFreeError.

    Usage:
        with alloc(2, [4, 3], [legendre, legendre]) as ws:
            X = design(ws, vars)
            ...
    """

    __slots__ = (
        '_dimension_count',
        '_term_counts',
        '_callbacks',
        '_params',
        '_mapper',
        '_freed',
    )

    def __init__(
        self,
        dimension_count: int,
        term_counts: tuple[int, ...],
        basis_callbacks: tuple[BasisFunction, ...],
        basis_params: tuple[Any, ...],
        mapper: IndexMapper,
    ):
        self._dimension_count = dimension_count
        self._term_counts = term_counts
        self._callbacks = basis_callbacks
        self._params = basis_params
        self._mapper = mapper
        self._freed = False

    @classmethod
    def allocate(
        cls,
        dimension_count: int,
        term_counts: Sequence[int],
        basis_callbacks: Sequence[BasisFunction],
        basis_params: Sequence[Any] | None = None,
    ) -> Workspace:
        """
        Validate inputs and build a workspace.

        Args:
            dimension_count: Number of independent variables n, >= 1
            term_counts: Basis term count per dimension, each >= 1
            basis_callbacks: One BasisFunction per dimension
            basis_params: Opaque per-dimension context passed to each
                callback. None means None for every dimension.

        Returns:
            Allocated Workspace

        Raises:
            InvalidDimensionError: Non-positive counts, ragged inputs, or a
                coefficient count too large to index
            ValidationError: A callback is not callable
        """
        if not _is_integer(dimension_count) or dimension_count < 1:
            raise InvalidDimensionError(
                f"dimension_count must be a positive integer, got {dimension_count!r}",
                value=dimension_count,
            )
        n = int(dimension_count)

        term_counts = _as_tuple(term_counts, 'term_counts', n)
        basis_callbacks = _as_tuple(basis_callbacks, 'basis_callbacks', n)
        if basis_params is None:
            basis_params = (None,) * n
        else:
            basis_params = _as_tuple(basis_params, 'basis_params', n)

        for name, seq in (
            ('term_counts', term_counts),
            ('basis_callbacks', basis_callbacks),
            ('basis_params', basis_params),
        ):
            if len(seq) != n:
                raise InvalidDimensionError(
                    f"{name}: expected {n} entries (one per dimension), got {len(seq)}",
                    value=len(seq),
                )

        for d, count in enumerate(term_counts):
            if not _is_integer(count) or count < 1:
                raise InvalidDimensionError(
                    f"term_counts[{d}] must be a positive integer, got {count!r}",
                    dimension=d,
                    value=count,
                )
        term_counts = tuple(int(k) for k in term_counts)

        total = 1
        for count in term_counts:
            total *= count
            if total > MAX_COEFFICIENTS:
                raise InvalidDimensionError(
                    f"term_counts {term_counts}: coefficient count exceeds "
                    f"the largest indexable size {MAX_COEFFICIENTS}",
                    value=term_counts,
                )

        for d, callback in enumerate(basis_callbacks):
            if not callable(callback):
                raise ValidationError(
                    f"basis_callbacks[{d}] is not callable: {type(callback).__name__}"
                )

        return cls(
            dimension_count=n,
            term_counts=term_counts,
            basis_callbacks=basis_callbacks,
            basis_params=basis_params,
            mapper=IndexMapper(term_counts),
        )

    def _require_allocated(self) -> None:
        if self._freed:
            raise UseAfterFreeError("workspace has been freed")

    # === Properties ===

    @property
    def dimension_count(self) -> int:
        """Number of independent variables."""
        self._require_allocated()
        return self._dimension_count

    @property
    def term_counts(self) -> tuple[int, ...]:
        """Basis term count per dimension."""
        self._require_allocated()
        return self._term_counts

    @property
    def basis_callbacks(self) -> tuple[BasisFunction, ...]:
        self._require_allocated()
        return self._callbacks

    @property
    def basis_params(self) -> tuple[Any, ...]:
        self._require_allocated()
        return self._params

    @property
    def total_coefficients(self) -> int:
        """Length of the coefficient vector: product of the term counts."""
        self._require_allocated()
        return self._mapper.size

    @property
    def mapper(self) -> IndexMapper:
        """Flat <-> multi-index mapping for this workspace's coefficients."""
        self._require_allocated()
        return self._mapper

    @property
    def is_freed(self) -> bool:
        return self._freed

    # === Lifecycle ===

    def free(self) -> None:
        """Release callbacks, params and index tables. Idempotent."""
        if self._freed:
            return
        self._callbacks = ()
        self._params = ()
        self._mapper = None
        self._freed = True

    def __enter__(self) -> Workspace:
        self._require_allocated()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.free()

    def __repr__(self) -> str:
        if self._freed:
            return "Workspace(freed)"
        return (
            f"Workspace(dimension_count={self._dimension_count}, "
            f"term_counts={self._term_counts}, "
            f"total_coefficients={self._mapper.size})"
        )


def alloc(
    dimension_count: int,
    term_counts: Sequence[int],
    basis_callbacks: Sequence[BasisFunction],
    basis_params: Sequence[Any] | None = None,
) -> Workspace:
    """
    Allocate a separable basis workspace.

    Shorthand for Workspace.allocate(); see there for arguments and errors.

    Example:
        >>> def line(x, out, params):
        ...     out[0] = 1.0
        ...     out[1] = x
        >>> ws = alloc(2, [2, 2], [line, line])
        >>> ws.total_coefficients
        4
    """
    return Workspace.allocate(dimension_count, term_counts, basis_callbacks, basis_params)


def free(workspace: Workspace) -> None:
    """Release a workspace. Later use raises UseAfterFreeError."""
    workspace.free()
