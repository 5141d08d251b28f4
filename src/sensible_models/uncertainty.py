from __future__ import annotations

from typing import Any, Dict

import numpy as np

try:
    import uncertainties
except Exception:  # pragma: no cover - optional at import time
    uncertainties = None

from .data import COVARIANCE_PAGE
from .errors import InvalidArgument

__all__ = ["parameter_uncertainties"]


def parameter_uncertainties(model: Any) -> Dict[str, Any]:
    """Parameters of an estimated model as correlated ``uncertainties`` values.

    Keys are the parameter row names (``p0``, ``p1``, ... where unnamed), in
    packed order. Needs the optional ``uncertainties`` package and a
    covariance page on the parameters.
    """
    if uncertainties is None:
        raise ImportError(
            "parameter_uncertainties needs the 'uncertainties' package: "
            "pip install sensible-models[uncertainties]"
        )
    if model is None or model.parameters is None:
        raise InvalidArgument("parameter_uncertainties needs an estimated model.")
    cov = model.parameters.pages.get(COVARIANCE_PAGE)
    if cov is None:
        raise InvalidArgument(f"Model {model.name!r} has no covariance page.")

    values = model.parameters.pack()
    names = list(model.parameters.names.rows)
    names += [f"p{i}" for i in range(len(names), values.shape[0])]
    cov_arr = np.asarray(cov.matrix, dtype=float)
    if cov_arr.shape != (values.shape[0], values.shape[0]):
        raise InvalidArgument(
            f"The covariance page is {cov_arr.shape}; expected one row per parameter."
        )
    corr = uncertainties.correlated_values(values.tolist(), cov_arr)
    return dict(zip(names, corr))
