"""Exception taxonomy and the shared warn-or-raise error channel."""
from __future__ import annotations

from typing import Type
from warnings import warn

__all__ = [
    "ModelError",
    "InvalidArgument",
    "UnsupportedOperation",
    "NumericalFailure",
    "UnsupportedOperationWarning",
    "ConvergenceWarning",
    "warn_or_raise",
]


class ModelError(Exception):
    """Base class for every error raised by sensible_models."""


class InvalidArgument(ModelError, ValueError):
    """A NULL model/data where one is required, or an unsizable model."""


class UnsupportedOperation(ModelError, NotImplementedError):
    """The model offers neither a native operation nor a usable fallback."""


class NumericalFailure(ModelError, ArithmeticError):
    """Singular covariance, non-finite objective or non-convergent optimizer."""


class UnsupportedOperationWarning(UserWarning):
    """Soft report of an unsupported operation (a sentinel value was returned)."""


class ConvergenceWarning(UserWarning):
    """The optimizer stopped without reporting convergence."""


def warn_or_raise(
    strict: bool,
    message: str,
    *,
    error: Type[ModelError] = UnsupportedOperation,
    category: Type[Warning] = UnsupportedOperationWarning,
    stacklevel: int = 3,
) -> None:
    """Warn or raise based on strict mode."""
    if strict:
        raise error(message)
    warn(message, category, stacklevel=stacklevel)
