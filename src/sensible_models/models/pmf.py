from __future__ import annotations

import numpy as np

from ..data import Data
from ..errors import InvalidArgument, NumericalFailure
from ..model import Model


def _table(model: Model) -> Data:
    if model.data is None or model.data.n_rows == 0:
        raise InvalidArgument(f"PMF {model.name!r} has no observations; estimate it first.")
    return model.data


def _weights(table: Data) -> np.ndarray:
    w = np.ones(table.n_rows) if table.weights is None else table.weights
    total = float(np.sum(w))
    if not total > 0:
        raise NumericalFailure("The PMF weights do not sum to a positive number.")
    return w / total


def _estimate(data: Data, model: Model) -> Model:
    if data is None:
        raise InvalidArgument("A PMF is estimated from a table of observations.")
    model.data = data
    model.info.set_value("observations", data.n_rows)
    return model


def _p(data: Data, model: Model) -> float:
    table = _table(model)
    support = table.rows()
    w = _weights(table)
    prob = 1.0
    for row in data.rows():
        prob *= float(w[np.all(support == row, axis=1)].sum())
    return prob


def _draw(rng: np.random.Generator, model: Model) -> np.ndarray:
    table = _table(model)
    i = int(rng.choice(table.n_rows, p=_weights(table)))
    return table.row(i)


def pmf(name: str = "PMF") -> Model:
    """Empirical distribution over the rows of its data (weighted if the data has weights).

    Estimating keeps a reference to the data; the model has no parameters.
    """
    return Model(name=name, estimate=_estimate, p=_p, draw=_draw)
