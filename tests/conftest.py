"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def simple_lstsq_data(rng):
    """Overdetermined full-rank least-squares problem."""
    n, p = 100, 3
    X = rng.standard_normal((n, p))
    beta_true = np.array([1.0, -2.0, 0.5])
    y = X @ beta_true + rng.standard_normal(n) * 0.1
    return X, y, beta_true


@pytest.fixture
def collinear_matrix(rng):
    """Matrix with perfect collinearity."""
    n = 100
    x1 = rng.standard_normal(n)
    x2 = rng.standard_normal(n)
    return np.column_stack([x1, x2, x1 + x2])
