from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np

from ..data import Data
from ..errors import InvalidArgument
from ..settings import ParameterModelSettings, settings_for
from .bootstrap import bootstrap_cov

logger = logging.getLogger(__name__)


def _check_index(index: int, k: int) -> int:
    index = int(index)
    if index != -1 and not 0 <= index < k:
        raise InvalidArgument(
            f"Parameter index {index} is out of range for a model with {k} parameters."
        )
    return index


def gaussian_parameter_model(mean: np.ndarray, cov: np.ndarray, index: int) -> Any:
    """Multivariate normal over all parameters, or the normal marginal of one of them."""
    from ..lifecycle import prepare, set_parameters
    from ..models import multivariate_normal, normal

    mean = np.asarray(mean, dtype=float).reshape(-1)
    cov = np.atleast_2d(np.asarray(cov, dtype=float))
    k = mean.shape[0]
    if _check_index(index, k) == -1:
        out = multivariate_normal().with_sizes(
            vector_base=k, matrix1_base=k, matrix2_base=k, output_size=k
        )
        prepare(None, out)
        out.parameters.vector[:] = mean
        out.parameters.matrix[:] = cov
        return out
    return set_parameters(normal(), mean[index], np.sqrt(cov[index, index]))


def parameter_model_fallback(data: Optional[Data], model: Any) -> Any:
    """Distribution of the parameters of ``model``.

    With data: a normal approximation centred on the current parameters, with
    the bootstrap covariance of the estimates. Without data: the empirical
    distribution (a PMF) of the parameters over repeated runs of the
    estimation, for stochastic models.
    """
    from ..dispatch import estimate
    from ..lifecycle import free
    from ..models import pmf

    settings = settings_for(model, ParameterModelSettings, base=model)
    k = model.parameters.packed_size
    index = _check_index(settings.index, k)
    draws = int(settings.draws)

    if data is not None:
        cov = bootstrap_cov(data, model, settings.rng.generator, draws)
        return gaussian_parameter_model(model.parameters.pack(), cov.matrix, index)

    if draws < 1:
        raise InvalidArgument(f"The parameter model needs at least one draw, got {draws}.")
    logger.debug("re-running %r %d times for its parameter distribution", model.name, draws)
    table = np.empty((draws, k), dtype=float)
    for i in range(draws):
        est = estimate(None, model)
        table[i] = est.parameters.pack()
        free(est)
    if index == -1:
        return estimate(Data(matrix=table), pmf())
    return estimate(Data(vector=table[:, index]), pmf())
