"""
Shared basis callbacks and workspaces for separable model tests.

Basis families live here, not in the library: the library only defines
the calling contract.
"""

import numpy as np
import pytest
from scipy.special import eval_legendre

from pyndlinear.separable import alloc


def _monomial(x, out, params):
    """out[k] = x**k"""
    out[:] = x ** np.arange(len(out))


def _legendre(x, out, params):
    """out[k] = P_k(x), Legendre polynomials on [-1, 1]."""
    for k in range(len(out)):
        out[k] = eval_legendre(k, x)


def _cosine(x, out, params):
    """out[k] = cos(k * x * params['scale'])"""
    out[:] = np.cos(np.arange(len(out)) * x * params['scale'])


@pytest.fixture
def monomial():
    return _monomial


@pytest.fixture
def legendre():
    return _legendre


@pytest.fixture
def cosine():
    return _cosine


@pytest.fixture
def bilinear_ws(monomial):
    """Two dimensions with basis [1, v] each: the bilinear model."""
    ws = alloc(2, [2, 2], [monomial, monomial])
    yield ws
    ws.free()


@pytest.fixture
def mixed_ws(monomial, legendre, cosine):
    """Three dimensions with different bases, params and term counts."""
    ws = alloc(
        3,
        [3, 4, 2],
        [monomial, legendre, cosine],
        [None, None, {'scale': 0.5}],
    )
    yield ws
    ws.free()
