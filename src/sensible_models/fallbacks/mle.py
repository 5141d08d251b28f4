from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import numpy as np
from scipy.optimize import minimize

from ..config import options
from ..data import COVARIANCE_PAGE, Data
from ..errors import ConvergenceWarning, InvalidArgument, NumericalFailure, warn_or_raise
from ..settings import MLESettings, settings_for
from ..util import numdiff_hessian, relative_steps

logger = logging.getLogger(__name__)

# Methods that do not accept a Jacobian.
_GRADIENT_FREE = frozenset({"nelder-mead", "powell", "cobyla"})


@contextmanager
def parameters_at(model: Any, theta: np.ndarray) -> Iterator[Any]:
    """Evaluate ``model`` at packed parameters ``theta`` inside the block."""
    saved = model.parameters
    trial = saved.copy()
    trial.fill(theta)
    model.parameters = trial
    try:
        yield model
    finally:
        model.parameters = saved


def numerical_gradient(data: Optional[Data], model: Any, *, delta: Optional[float] = None) -> np.ndarray:
    """Central-difference gradient of the log-likelihood in the packed parameters."""
    from ..dispatch import log_likelihood

    if model.parameters is None:
        raise InvalidArgument(f"Model {model.name!r} has NULL parameters.")
    if delta is None:
        delta = settings_for(model, MLESettings).delta
    theta = model.parameters.pack()
    eps = relative_steps(theta, delta)
    grad = np.empty_like(theta)
    for i in range(theta.shape[0]):
        step = np.zeros_like(theta)
        step[i] = eps[i]
        with parameters_at(model, theta + step):
            up = log_likelihood(data, model)
        with parameters_at(model, theta - step):
            down = log_likelihood(data, model)
        grad[i] = (up - down) / (2.0 * eps[i])
    return grad


def maximum_likelihood(data: Optional[Data], model: Any) -> Any:
    """Fit ``model`` by maximising its log-likelihood with scipy.optimize.minimize.

    ``model`` is modified in place and returned: parameters hold the optimum,
    info holds the log likelihood, AIC/BIC (when there is data), optimizer
    status and iteration count, and with ``MLESettings.want_cov`` the
    parameters get a covariance page from the inverse numerical Hessian.
    """
    from ..dispatch import log_likelihood, score
    from ..lifecycle import prepare

    if model is None:
        raise InvalidArgument("model is a NULL model.")
    if model.parameters is None:
        prepare(data, model)
    settings = settings_for(model, MLESettings)

    params = model.parameters
    k = params.packed_size
    if settings.starting_point is None:
        x0 = np.ones(k, dtype=float)
    else:
        x0 = np.asarray(settings.starting_point, dtype=float).reshape(-1)
        if x0.shape[0] != k:
            raise InvalidArgument(
                f"The starting point has {x0.shape[0]} values; model {model.name!r} has {k} parameters."
            )

    def objective(theta: np.ndarray) -> float:
        params.fill(theta)
        with np.errstate(all="ignore"):
            ll = float(log_likelihood(data, model))
        return -ll if np.isfinite(ll) else np.inf

    if not np.isfinite(objective(x0)):
        raise NumericalFailure(
            f"The log-likelihood of model {model.name!r} is not finite at the starting point {x0}."
        )

    method = str(settings.method)
    jac = None
    if model.score is not None and method.lower() not in _GRADIENT_FREE:

        def jac(theta: np.ndarray) -> np.ndarray:
            params.fill(theta)
            return -np.asarray(score(data, model), dtype=float)

    if k == 0:
        theta = x0
        fun = objective(theta)
        success, message, nit = True, "no free parameters", 0
    else:
        res = minimize(
            lambda v: objective(np.asarray(v, dtype=float)),
            x0,
            method=method,
            jac=jac,
            tol=float(settings.tolerance),
            options={"maxiter": int(settings.max_iterations)},
        )
        theta = np.asarray(res.x, dtype=float)
        fun = float(res.fun)
        success, message, nit = bool(res.success), str(res.message), int(getattr(res, "nit", -1))

    logger.debug(
        "maximum likelihood for %r with %s: success=%s after %d iterations (%s)",
        model.name, method, success, nit, message,
    )

    if settings.want_cov and k > 0:
        hess = numdiff_hessian(objective, theta, settings.delta)
        cov = None
        if hess is not None:
            try:
                cov = np.linalg.pinv(hess)
            except np.linalg.LinAlgError:
                cov = None
        if cov is not None and np.all(np.isfinite(cov)):
            page = Data(matrix=cov)
            page.names.title = COVARIANCE_PAGE
            params.pages[COVARIANCE_PAGE] = page
        else:
            logger.debug("no covariance for %r: the Hessian is not usable", model.name)
    params.fill(theta)

    ll = -fun
    if model.info is None:
        model.info = Data()
        model.info.names.title = "Info"
    model.info.set_value("log likelihood", ll)
    if data is not None and data.n_rows > 0:
        model.info.set_value("AIC", 2.0 * k - 2.0 * ll)
        model.info.set_value("BIC", k * np.log(data.n_rows) - 2.0 * ll)
    model.info.set_value("status", 0.0 if success else 1.0)
    model.info.set_value("iterations", float(nit))

    if not success:
        warn_or_raise(
            options.strict,
            f"Maximum likelihood for model {model.name!r} did not converge: {message}",
            error=NumericalFailure,
            category=ConvergenceWarning,
        )
    return model
