from __future__ import annotations

from typing import Optional

import numpy as np
from scipy import stats

from ..data import COVARIANCE_PAGE, Data
from ..errors import InvalidArgument
from ..lifecycle import clear
from ..model import Model


def _values(data: Optional[Data]) -> np.ndarray:
    if data is None or data.packed_size == 0:
        raise InvalidArgument("The Normal model needs a data set.")
    return data.pack()


def _mu_sigma(model: Model):
    v = model.parameters.vector
    return float(v[0]), float(v[1])


def _prep(data: Optional[Data], model: Model) -> None:
    clear(data, model)
    model.parameters.names.rows = ("mu", "sigma")


def _estimate(data: Data, model: Model) -> Model:
    x = _values(data)
    n = x.shape[0]
    mu = float(np.mean(x))
    sigma = float(np.std(x))
    model.parameters.vector[:] = (mu, sigma)

    cov = Data(matrix=np.diag([sigma**2 / n, sigma**2 / (2.0 * n)]))
    cov.names.title = COVARIANCE_PAGE
    cov.names.rows = cov.names.cols = ("mu", "sigma")
    model.parameters.pages[COVARIANCE_PAGE] = cov
    model.info.set_value("log likelihood", _log_likelihood(data, model))
    return model


def _log_likelihood(data: Data, model: Model) -> float:
    mu, sigma = _mu_sigma(model)
    if not sigma > 0:
        return -np.inf
    return float(np.sum(stats.norm.logpdf(_values(data), loc=mu, scale=sigma)))


def _score(data: Data, model: Model) -> np.ndarray:
    mu, sigma = _mu_sigma(model)
    dev = _values(data) - mu
    return np.array(
        [np.sum(dev) / sigma**2, np.sum(dev**2) / sigma**3 - dev.shape[0] / sigma]
    )


def _draw(rng: np.random.Generator, model: Model) -> np.ndarray:
    mu, sigma = _mu_sigma(model)
    return np.array([rng.normal(mu, sigma)])


def _cdf(data: Data, model: Model) -> float:
    mu, sigma = _mu_sigma(model)
    return float(stats.norm.cdf(data.row(0)[0], loc=mu, scale=sigma))


def normal(name: str = "Normal distribution") -> Model:
    """Univariate normal; parameters are the vector ``[mu, sigma]``.

    Every element of the data (vector and matrix) is one observation.
    """
    return Model(
        name=name,
        vector_base=2,
        output_size=1,
        estimate=_estimate,
        log_likelihood=_log_likelihood,
        score=_score,
        draw=_draw,
        cdf=_cdf,
        prep=_prep,
    )
