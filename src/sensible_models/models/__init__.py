"""Built-in models."""

from .multivariate_normal import multivariate_normal
from .normal import normal
from .ols import gls, ols
from .pmf import pmf

__all__ = ["normal", "multivariate_normal", "pmf", "ols", "gls"]
