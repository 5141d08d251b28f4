"""The uniform model interface.

Every function here takes a model, calls its native operation when it has
one and otherwise falls back to a generic numerical method (see
:mod:`sensible_models.fallbacks`). Which of the two serves each capability
is the model's capability table, resolved when the model is prepared.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .config import new_rng, options
from .data import COVARIANCE_PAGE, Data
from .errors import InvalidArgument, UnsupportedOperation, warn_or_raise
from .fallbacks import get_fallback
from .lifecycle import copy, prepare
from .model import Capability, Model, Resolution
from .settings import ParameterModelSettings, settings_for
from .util import parameter_lines

__all__ = [
    "estimate",
    "p",
    "log_likelihood",
    "score",
    "draw",
    "predict",
    "cdf",
    "parameter_model",
    "show",
]

logger = logging.getLogger(__name__)


def _check_model(model: Optional[Model], op: str) -> None:
    if model is None:
        raise InvalidArgument(f"{op}: model is a NULL model.")


def _check_parameters(model: Model, op: str) -> None:
    if model.parameters is None:
        raise InvalidArgument(
            f"{op}: model {model.name!r} has NULL parameters. "
            "Estimate it or set its parameters first."
        )


def _unsupported(model: Model, op: str) -> UnsupportedOperation:
    return UnsupportedOperation(
        f"{op}: model {model.name!r} has no native {op} and neither p nor "
        "log_likelihood to fall back on."
    )


def estimate(data: Optional[Data], model: Model) -> Model:
    """Estimate a copy of ``model`` on ``data``; ``model`` itself is left as is.

    Without a native ``estimate`` the parameters are found by maximum
    likelihood, which needs ``p`` or ``log_likelihood``.
    """
    _check_model(model, "estimate")
    if model.capabilities()[Capability.ESTIMATE] is Resolution.UNSUPPORTED:
        raise _unsupported(model, "estimate")
    out = copy(model)
    prepare(data, out)
    how = out.capabilities()[Capability.ESTIMATE]
    if how is Resolution.NATIVE:
        result = out.estimate(data, out)
        return out if result is None else result
    if how is Resolution.UNSUPPORTED:
        raise _unsupported(model, "estimate")
    logger.debug("estimate %r: maximum likelihood fallback", model.name)
    return get_fallback(Capability.ESTIMATE)(data, out)


def p(data: Optional[Data], model: Model) -> float:
    """Likelihood of ``data`` under ``model``.

    A model with neither ``p`` nor ``log_likelihood`` gets an
    :class:`UnsupportedOperationWarning` and 0.0 (an exception in strict mode).
    """
    _check_model(model, "p")
    _check_parameters(model, "p")
    how = model.capabilities()[Capability.P]
    if how is Resolution.NATIVE:
        return float(model.p(data, model))
    if how is Resolution.FALLBACK:
        return float(np.exp(model.log_likelihood(data, model)))
    warn_or_raise(
        options.strict,
        f"You asked for the likelihood of model {model.name!r}, which has neither "
        "p nor log_likelihood. Returning 0.",
    )
    return 0.0


def log_likelihood(data: Optional[Data], model: Model) -> float:
    """Log-likelihood of ``data`` under ``model``; same error policy as :func:`p`."""
    _check_model(model, "log_likelihood")
    _check_parameters(model, "log_likelihood")
    how = model.capabilities()[Capability.LOG_LIKELIHOOD]
    if how is Resolution.NATIVE:
        return float(model.log_likelihood(data, model))
    if how is Resolution.FALLBACK:
        with np.errstate(divide="ignore"):
            return float(np.log(model.p(data, model)))
    warn_or_raise(
        options.strict,
        f"You asked for the log likelihood of model {model.name!r}, which has neither "
        "p nor log_likelihood. Returning 0.",
    )
    return 0.0


def score(data: Optional[Data], model: Model, out: Optional[np.ndarray] = None) -> np.ndarray:
    """Gradient of the log-likelihood with respect to the packed parameters.

    Written into ``out`` when given (which must have one entry per parameter).
    """
    _check_model(model, "score")
    _check_parameters(model, "score")
    how = model.capabilities()[Capability.SCORE]
    if how is Resolution.NATIVE:
        grad = np.asarray(model.score(data, model), dtype=float).reshape(-1)
    elif how is Resolution.FALLBACK:
        grad = get_fallback(Capability.SCORE)(data, model)
    else:
        raise _unsupported(model, "score")
    return _into(grad, out, "score")


def draw(rng: Optional[np.random.Generator], model: Model, out: Optional[np.ndarray] = None) -> np.ndarray:
    """One random draw from ``model``; written into ``out`` when given.

    Without a native ``draw`` the model must be univariate and have a density:
    draws then come from adaptive rejection Metropolis sampling.
    """
    _check_model(model, "draw")
    _check_parameters(model, "draw")
    if rng is None:
        rng = new_rng()
    how = model.capabilities()[Capability.DRAW]
    if how is Resolution.NATIVE:
        value = np.asarray(model.draw(rng, model), dtype=float).reshape(-1)
    elif how is Resolution.FALLBACK:
        value = get_fallback(Capability.DRAW)(rng, model)
    else:
        raise UnsupportedOperation(
            f"draw: model {model.name!r} has no draw method and no univariate density to sample from."
        )
    return _into(value, out, "draw")


def _into(values: np.ndarray, out: Optional[np.ndarray], op: str) -> np.ndarray:
    if out is None:
        return values
    if out.size != values.size:
        raise InvalidArgument(
            f"{op}: the output array has {out.size} entries, the result has {values.size}."
        )
    out[...] = values.reshape(out.shape)
    return out


def predict(data: Optional[Data], model: Model) -> Data:
    """Fill in the missing (NaN) values of ``data`` with their expected values.

    With no data, a one-row data set of ``output_size`` NaNs is filled in. A
    native ``predict`` may return None to hand over to ML imputation. Data
    without missing values is returned unchanged.
    """
    _check_model(model, "predict")
    _check_parameters(model, "predict")
    if data is None:
        width = int(model.output_size)
        if width <= 0:
            raise InvalidArgument(
                f"predict: model {model.name!r} has no output size; pass a data set to fill in."
            )
        data = Data(matrix=np.full((1, width), np.nan))
    how = model.capabilities()[Capability.PREDICT]
    if how is Resolution.HYBRID:
        result = model.predict(data, model)
        if result is not None:
            return result
        logger.debug("predict %r: native predict deferred to imputation", model.name)
    if not data.has_missing():
        return data
    return get_fallback(Capability.PREDICT)(data, model)


def cdf(data: Data, model: Model) -> float:
    """Probability that a draw is componentwise at or below row 0 of ``data``.

    Without a native ``cdf`` this is estimated from random draws, using the
    RNG stream and draw count of the model's :class:`~.settings.CdfSettings`.
    """
    _check_model(model, "cdf")
    _check_parameters(model, "cdf")
    if data is None:
        raise InvalidArgument("cdf: no data set holding the point to evaluate.")
    how = model.capabilities()[Capability.CDF]
    if how is Resolution.NATIVE:
        return float(model.cdf(data, model))
    if how is Resolution.UNSUPPORTED:
        raise UnsupportedOperation(
            f"cdf: model {model.name!r} has no cdf, no draw and no density."
        )
    return float(get_fallback(Capability.CDF)(data, model))


def parameter_model(data: Optional[Data], model: Model) -> Model:
    """A model describing the distribution of the parameters of ``model``.

    Configure it with :class:`~.settings.ParameterModelSettings` (attached
    with defaults on first use).
    """
    _check_model(model, "parameter_model")
    _check_parameters(model, "parameter_model")
    settings_for(model, ParameterModelSettings, base=model)
    if model.capabilities()[Capability.PARAMETER_MODEL] is Resolution.NATIVE:
        return model.parameter_model(data, model)
    return get_fallback(Capability.PARAMETER_MODEL)(data, model)


def show(model: Model, digits: int = 4) -> str:
    """Return a text rendering of the model: parameters, covariance and info."""
    _check_model(model, "show")
    if model.show is not None:
        return str(model.show(model))

    lines = [model.name or "<unnamed model>"]
    params = model.parameters
    if params is None:
        lines.append("(no parameters)")
    else:
        cov = params.pages.get(COVARIANCE_PAGE)
        values = params.pack()
        if cov is not None and params.matrix is None and cov.n_rows == values.shape[0]:
            lines.append("Parameters:")
            lines.extend(parameter_lines(values, np.diag(cov.matrix), params.names.rows))
        else:
            lines.append("Parameters:")
            lines.append(params.summary(digits))
        if cov is not None:
            lines.append(cov.summary(digits))
    if model.info is not None and model.info.packed_size:
        lines.append(model.info.summary(digits))
    return "\n".join(lines)
