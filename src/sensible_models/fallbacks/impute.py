"""Maximum-likelihood imputation of missing (NaN) values."""
from __future__ import annotations

import logging
from typing import Any, Tuple

import numpy as np

from ..data import Data
from ..errors import InvalidArgument
from ..settings import ImputeSettings, MLESettings, add_settings, settings_for

logger = logging.getLogger(__name__)


def _share_more(more: Tuple[Any, np.ndarray]) -> Tuple[Any, np.ndarray]:
    # The base model is borrowed: copies of the imputation model point at it too.
    return more


def _imputation_log_likelihood(data: Data, model: Any) -> float:
    from ..dispatch import log_likelihood

    base, missing = model.more
    trial = data.copy()
    packed = trial.pack()
    packed[missing] = model.parameters.pack()
    trial.fill(packed)
    return log_likelihood(trial, base)


def _starting_values(data: Data, missing: np.ndarray) -> np.ndarray:
    """Observed mean of the column each missing entry sits in (1.0 if none observed)."""
    vsize = 0 if data.vector is None else int(data.vector.shape[0])
    ncols = data.n_cols
    out = np.ones(missing.shape[0], dtype=float)
    for j, pos in enumerate(missing):
        if pos < vsize:
            column = data.vector
        else:
            column = data.matrix[:, (pos - vsize) % ncols]
        observed = column[np.isfinite(column)]
        if observed.size:
            out[j] = float(observed.mean())
    return out


def _impute_once(filled: Data, base: Any, missing: np.ndarray) -> None:
    from ..dispatch import estimate
    from ..lifecycle import free
    from ..model import Model

    imputer = Model(
        name=f"imputation for {base.name}",
        vector_base=int(missing.shape[0]),
        log_likelihood=_imputation_log_likelihood,
        copy_more=_share_more,
        more=(base, missing),
    )
    add_settings(
        imputer, MLESettings(starting_point=_starting_values(filled, missing), want_cov=False)
    )
    est = estimate(filled, imputer)
    packed = filled.pack()
    packed[missing] = est.parameters.pack()
    filled.fill(packed)
    free(est)


def ml_impute(data: Data, model: Any) -> Data:
    """Fill the NaNs of ``data`` with their most likely values under ``model``.

    Returns a filled copy; ``data`` is not modified. With
    ``ImputeSettings.reestimate`` the model is re-estimated on the filled data
    and the values imputed again until its parameters settle.
    """
    from ..dispatch import estimate
    from ..lifecycle import free

    if data is None:
        raise InvalidArgument("Imputation needs a data set with missing values.")
    settings = settings_for(model, ImputeSettings)

    filled = data.copy()
    missing = np.flatnonzero(np.isnan(filled.pack()))
    if missing.size == 0:
        return filled

    _impute_once(filled, model, missing)
    if not settings.reestimate:
        return filled

    base = model
    for round_ in range(int(settings.max_iter)):
        updated = estimate(filled, base)
        moved = float(np.max(np.abs(updated.parameters.pack() - base.parameters.pack()), initial=0.0))
        if base is not model:
            free(base)
        base = updated
        _impute_once(filled, base, missing)
        logger.debug("imputation round %d: parameters moved by %g", round_ + 1, moved)
        if moved < settings.tolerance:
            break
    if base is not model:
        free(base)
    return filled
