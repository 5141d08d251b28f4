from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np

from ..config import new_rng
from ..data import COVARIANCE_PAGE, Data
from ..errors import InvalidArgument, NumericalFailure

logger = logging.getLogger(__name__)


def bootstrap_cov(
    data: Data,
    model: Any,
    rng: Optional[np.random.Generator] = None,
    draws: int = 1000,
) -> Data:
    """Covariance of the packed parameter estimates over bootstrap resamples.

    Each resample draws ``n_rows`` rows of ``data`` with replacement and
    re-estimates ``model`` on it through the dispatcher.
    """
    from ..dispatch import estimate
    from ..lifecycle import free

    if data is None:
        raise InvalidArgument("The bootstrap needs a data set to resample.")
    if model is None:
        raise InvalidArgument("model is a NULL model.")
    draws = int(draws)
    if draws < 2:
        raise InvalidArgument(f"The bootstrap needs at least two draws, got {draws}.")
    n = data.n_rows
    if n == 0:
        raise InvalidArgument("Cannot bootstrap an empty data set.")
    rng = new_rng() if rng is None else rng

    logger.debug("bootstrapping %r: %d resamples of %d rows", model.name, draws, n)
    rows = []
    for _ in range(draws):
        est = estimate(data.take_rows(rng.integers(0, n, size=n)), model)
        rows.append(est.parameters.pack())
        free(est)
    table = np.vstack(rows)
    if not np.all(np.isfinite(table)):
        raise NumericalFailure(
            f"Some bootstrap estimates of model {model.name!r} are not finite."
        )

    out = Data(matrix=np.atleast_2d(np.cov(table, rowvar=False)))
    out.names.title = COVARIANCE_PAGE
    return out
