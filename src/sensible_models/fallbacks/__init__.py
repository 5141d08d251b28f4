"""Numerical fallbacks + registry."""

from __future__ import annotations

from typing import Any, Callable, Dict

from ..model import Capability
from .arms import arms_draw
from .bootstrap import bootstrap_cov
from .impute import ml_impute
from .mle import maximum_likelihood, numerical_gradient
from .montecarlo import mc_cdf
from .parameter_model import parameter_model_fallback

__all__ = [
    "arms_draw",
    "bootstrap_cov",
    "maximum_likelihood",
    "mc_cdf",
    "ml_impute",
    "numerical_gradient",
    "parameter_model_fallback",
    "get_fallback",
    "AVAILABLE_FALLBACKS",
]

_FALLBACKS: Dict[Capability, Callable[..., Any]] = {
    Capability.ESTIMATE: maximum_likelihood,
    Capability.SCORE: numerical_gradient,
    Capability.DRAW: arms_draw,
    Capability.PREDICT: ml_impute,
    Capability.CDF: mc_cdf,
    Capability.PARAMETER_MODEL: parameter_model_fallback,
}


def get_fallback(capability: Capability) -> Callable[..., Any]:
    """Return the fallback algorithm serving a capability."""
    try:
        return _FALLBACKS[Capability(capability)]
    except (KeyError, ValueError) as e:
        raise ValueError(
            f"No fallback for {capability!r}. Available: {tuple(c.value for c in _FALLBACKS)}"
        ) from e


AVAILABLE_FALLBACKS = tuple(_FALLBACKS.keys())
