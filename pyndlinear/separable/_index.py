"""
Flat <-> multi-index mapping for separable coefficient vectors.

A coefficient of the separable model is identified either by its flat
position j in the coefficient vector or by the tuple (i_0, ..., i_{n-1})
of per-dimension term indices. The two are related by a mixed-radix
encoding in which the LAST dimension varies fastest (C order):

    stride[n-1] = 1
    stride[d]   = stride[d+1] * term_counts[d+1]
    j           = sum_d i_d * stride[d]

Design rows, model evaluation and prediction all go through this one
mapping, so coefficients are indexed identically everywhere.
"""

from __future__ import annotations

from typing import Any, Sequence
import numpy as np
from numpy.typing import NDArray

from pyndlinear.core.exceptions import InvalidIndexError


def _is_integer(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))


class IndexMapper:
    """
    Bidirectional mapping between flat and per-dimension coefficient indices.

    Args:
        term_counts: Number of basis terms per dimension, all >= 1.
            Validated by the owning Workspace.

    Example:
        >>> m = IndexMapper((2, 3))
        >>> m.flatten((1, 2))
        5
        >>> m.unflatten(5)
        (1, 2)
    """

    def __init__(self, term_counts: Sequence[int]):
        self._term_counts = tuple(int(k) for k in term_counts)
        strides = [1] * len(self._term_counts)
        for d in range(len(self._term_counts) - 2, -1, -1):
            strides[d] = strides[d + 1] * self._term_counts[d + 1]
        self._strides = tuple(strides)
        self._size = strides[0] * self._term_counts[0] if self._term_counts else 0
        self._table: NDArray[np.intp] | None = None

    @property
    def term_counts(self) -> tuple[int, ...]:
        return self._term_counts

    @property
    def strides(self) -> tuple[int, ...]:
        """Flat-index step per unit of each dimension's term index."""
        return self._strides

    @property
    def size(self) -> int:
        """Number of flat indices (product of term counts)."""
        return self._size

    def flatten(self, multi_index: Sequence[int]) -> int:
        """
        Convert a per-dimension multi-index to its flat index.

        Raises:
            InvalidIndexError: If the multi-index has the wrong length,
                holds a non-integer, or any component is out of range
        """
        multi_index = tuple(multi_index)
        if len(multi_index) != len(self._term_counts):
            raise InvalidIndexError(
                f"multi-index {multi_index} has {len(multi_index)} components, "
                f"expected {len(self._term_counts)}",
                index=multi_index,
                bounds=self._term_counts,
            )

        j = 0
        for d, (i, count, stride) in enumerate(
            zip(multi_index, self._term_counts, self._strides)
        ):
            if not _is_integer(i) or not 0 <= i < count:
                raise InvalidIndexError(
                    f"multi-index {multi_index}: component {d} is {i!r}, "
                    f"expected an integer in [0, {count})",
                    index=multi_index,
                    bounds=self._term_counts,
                )
            j += int(i) * stride
        return j

    def unflatten(self, j: int) -> tuple[int, ...]:
        """
        Convert a flat index to its per-dimension multi-index.

        Raises:
            InvalidIndexError: If j is not an integer in [0, size)
        """
        if not _is_integer(j) or not 0 <= j < self._size:
            raise InvalidIndexError(
                f"flat index {j!r} out of range, expected an integer in [0, {self._size})",
                index=j,
                bounds=self._size,
            )
        j = int(j)
        return tuple(
            (j // stride) % count
            for stride, count in zip(self._strides, self._term_counts)
        )

    def table(self) -> NDArray[np.intp]:
        """
        Multi-indices of every flat index, as a (size, n) integer array.

        Row j equals unflatten(j). Computed once and cached; the returned
        array is read-only.
        """
        if self._table is None:
            j = np.arange(self._size, dtype=np.intp)[:, np.newaxis]
            strides = np.asarray(self._strides, dtype=np.intp)
            counts = np.asarray(self._term_counts, dtype=np.intp)
            table = (j // strides) % counts
            table.setflags(write=False)
            self._table = table
        return self._table

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"IndexMapper(term_counts={self._term_counts}, size={self._size})"
