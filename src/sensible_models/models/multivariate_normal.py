from __future__ import annotations

from typing import Optional

import numpy as np
from scipy import stats

from ..data import Data
from ..errors import InvalidArgument, NumericalFailure
from ..model import DERIVE_FROM_DATA, Model
from ..util import sample_mvn


def _observations(data: Optional[Data], k: int) -> np.ndarray:
    if data is None:
        raise InvalidArgument("The multivariate normal needs a data set.")
    x = data.matrix if data.matrix is not None else data.rows()
    if x.shape[1] != k:
        raise InvalidArgument(f"Expected {k} columns of observations, got {x.shape[1]}.")
    return x


def _estimate(data: Data, model: Model) -> Model:
    k = model.parameters.vector.shape[0]
    x = _observations(data, k)
    if x.shape[0] < 2:
        raise InvalidArgument("Estimating a covariance needs at least two observations.")
    model.parameters.vector[:] = x.mean(axis=0)
    model.parameters.matrix[:] = np.atleast_2d(np.cov(x, rowvar=False))
    model.info.set_value("log likelihood", _log_likelihood(data, model))
    return model


def _log_likelihood(data: Data, model: Model) -> float:
    mean = model.parameters.vector
    cov = model.parameters.matrix
    x = _observations(data, mean.shape[0])
    try:
        dist = stats.multivariate_normal(mean=mean, cov=cov)
    except (np.linalg.LinAlgError, ValueError) as e:
        raise NumericalFailure(
            f"The covariance matrix of {model.name!r} is singular or not positive definite."
        ) from e
    return float(np.sum(dist.logpdf(x)))


def _draw(rng: np.random.Generator, model: Model) -> np.ndarray:
    return sample_mvn(model.parameters.vector, model.parameters.matrix, rng)


def multivariate_normal(name: str = "Multivariate normal distribution") -> Model:
    """Multivariate normal: the parameter vector is the mean, the matrix the covariance.

    Sizes are taken from the column count of the data it is prepared with; use
    ``with_sizes`` to fix them for a model built without data.
    """
    return Model(
        name=name,
        vector_base=DERIVE_FROM_DATA,
        matrix1_base=DERIVE_FROM_DATA,
        matrix2_base=DERIVE_FROM_DATA,
        output_size=DERIVE_FROM_DATA,
        estimate=_estimate,
        log_likelihood=_log_likelihood,
        draw=_draw,
    )
