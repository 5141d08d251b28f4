"""Least-squares regression: OLS (optionally weighted) and GLS.

The first column of the data's matrix is the dependent variable; the other
columns are regressors, and the first column is replaced by an intercept
column of ones when the design matrix is built.
"""
from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from ..data import COVARIANCE_PAGE, Data
from ..errors import InvalidArgument, NumericalFailure
from ..lifecycle import clear
from ..model import DERIVE_FROM_DATA, Model
from ..settings import LSSettings, ParameterModelSettings, get_settings, settings_for

PREDICTED_PAGE = "<Predicted>"


def _design(data: Optional[Data]) -> Tuple[np.ndarray, np.ndarray]:
    if data is None or data.matrix is None or data.n_cols < 1:
        raise InvalidArgument(
            "Least squares needs a matrix whose first column is the dependent variable."
        )
    y = data.matrix[:, 0].copy()
    X = data.matrix.copy()
    X[:, 0] = 1.0
    return X, y


def _whitener(data: Data, model: Model) -> Optional[np.ndarray]:
    """Matrix W with W' W equal to the inverse residual covariance (None: identity)."""
    n = data.n_rows
    if model.more == "gls":
        ls = get_settings(model, LSSettings)
        if ls is None or ls.sigma is None:
            raise InvalidArgument(
                "GLS needs the residual covariance: attach LSSettings(sigma=...) to the model."
            )
        sigma = np.asarray(ls.sigma, dtype=float)
        if sigma.shape != (n, n):
            raise InvalidArgument(f"sigma must be {n}x{n}, got {sigma.shape}.")
        try:
            L = np.linalg.cholesky(sigma)
        except np.linalg.LinAlgError as e:
            raise NumericalFailure("sigma is not positive definite.") from e
        return np.linalg.inv(L)
    if data.weights is not None:
        return np.diag(np.sqrt(data.weights))
    return None


def _prep(data: Optional[Data], model: Model) -> None:
    clear(data, model)
    if data is not None and data.names.cols:
        model.parameters.names.rows = ("1",) + tuple(data.names.cols[1:])


def _estimate(data: Data, model: Model) -> Model:
    ls = settings_for(model, LSSettings)
    X, y = _design(data)
    n, k = X.shape
    W = _whitener(data, model)
    Xw, yw = (X, y) if W is None else (W @ X, W @ y)

    xtx = Xw.T @ Xw
    try:
        beta = np.linalg.solve(xtx, Xw.T @ yw)
    except np.linalg.LinAlgError as e:
        raise NumericalFailure("X'X is singular; the regressors are collinear.") from e
    model.parameters.vector[:] = beta

    fitted = X @ beta
    resid_w = yw - Xw @ beta
    sse = float(resid_w @ resid_w)
    ones = np.ones(n) if W is None else W @ np.ones(n)
    ybar = float(ones @ yw) / float(ones @ ones)
    sst = float(np.sum((yw - ybar * ones) ** 2))
    df = n - k

    info = model.info
    info.set_value("R squared", 1.0 - sse / sst if sst > 0 else np.nan)
    info.set_value(
        "adjusted R squared",
        1.0 - (sse / df) / (sst / (n - 1)) if (sst > 0 and df > 0) else np.nan,
    )
    info.set_value("SSE", sse)
    info.set_value("SSR", sst - sse)
    info.set_value("SST", sst)
    info.set_value("df", float(df))
    info.set_value("log likelihood", _profile_log_likelihood(sse, n))

    if ls.want_cov and df > 0:
        cov = Data(matrix=(sse / df) * np.linalg.inv(xtx))
        cov.names.title = COVARIANCE_PAGE
        cov.names.rows = cov.names.cols = model.parameters.names.rows
        model.parameters.pages[COVARIANCE_PAGE] = cov
    if ls.want_expected_value:
        page = Data(matrix=np.column_stack([y, fitted, y - fitted]))
        page.names.title = PREDICTED_PAGE
        page.names.cols = ("observed", "predicted", "residual")
        info.pages[PREDICTED_PAGE] = page
    return model


def _profile_log_likelihood(sse: float, n: int) -> float:
    if not sse > 0:
        return np.inf
    return -0.5 * n * (np.log(2.0 * np.pi * sse / n) + 1.0)


def _log_likelihood(data: Data, model: Model) -> float:
    """Normal log-likelihood of the residuals, at the variance that maximises it."""
    X, y = _design(data)
    W = _whitener(data, model)
    resid = y - X @ model.parameters.vector
    if W is not None:
        resid = W @ resid
    return float(_profile_log_likelihood(float(resid @ resid), y.shape[0]))


def _predict(data: Data, model: Model) -> Optional[Data]:
    if data.matrix is None or not np.isnan(data.matrix[:, 0]).any():
        return None
    out = data.copy()
    X, y = _design(out)
    missing = np.isnan(y)
    out.matrix[missing, 0] = X[missing] @ model.parameters.vector
    return out


def _parameter_model(data: Optional[Data], model: Model) -> Model:
    from ..fallbacks.parameter_model import gaussian_parameter_model

    cov = model.parameters.pages.get(COVARIANCE_PAGE)
    if cov is None:
        raise InvalidArgument(
            f"Model {model.name!r} has no covariance page; estimate it with want_cov set."
        )
    index = settings_for(model, ParameterModelSettings, base=model).index
    return gaussian_parameter_model(model.parameters.vector, cov.matrix, index)


def _least_squares(name: str, kind: str) -> Model:
    return Model(
        name=name,
        vector_base=DERIVE_FROM_DATA,
        output_size=DERIVE_FROM_DATA,
        estimate=_estimate,
        log_likelihood=_log_likelihood,
        predict=_predict,
        parameter_model=_parameter_model,
        prep=_prep,
        more=kind,
    )


def ols(name: str = "Ordinary Least Squares") -> Model:
    """OLS regression; data weights turn it into weighted least squares."""
    return _least_squares(name, "ols")


def gls(sigma: Optional[np.ndarray] = None, name: str = "GLS") -> Model:
    """Generalized least squares with known residual covariance ``sigma``.

    ``sigma`` may also be attached later as ``LSSettings(sigma=...)``.
    """
    model = _least_squares(name, "gls")
    if sigma is not None:
        model.settings.add(LSSettings(sigma=np.asarray(sigma, dtype=float)))
    return model
