"""
pyndlinear: separable N-dimensional linear least squares.

Fits multi-dimensional data with linear models whose basis functions are
products of one-dimensional terms, one per independent variable.

Submodules:
    separable: Workspace, design matrices, model evaluation, fit()
    core: Exceptions, validation, result envelope, compute kernels
"""

__version__ = "0.1.0"

from pyndlinear import separable
from pyndlinear.separable import alloc, free, design, calc, est, fit

__all__ = [
    "__version__",
    "separable",
    "alloc",
    "free",
    "design",
    "calc",
    "est",
    "fit",
]
