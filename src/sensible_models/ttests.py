from __future__ import annotations

from typing import Any

import numpy as np
from scipy import stats

from .data import COVARIANCE_PAGE, Data
from .errors import InvalidArgument

__all__ = ["t_test", "paired_t_test", "parameter_t_tests"]


def _report(diff: float, stat: float, df: float) -> Data:
    one_tail = float(stats.t.sf(abs(stat), df))
    out = Data()
    out.names.title = "t test"
    out.set_value("mean left - right", diff)
    out.set_value("t statistic", stat)
    out.set_value("df", df)
    out.set_value("p value, 1 tail", one_tail)
    out.set_value("confidence, 1 tail", 1.0 - one_tail)
    out.set_value("p value, 2 tail", 2.0 * one_tail)
    out.set_value("confidence, 2 tail", 1.0 - 2.0 * one_tail)
    return out


def _column(x: Any, label: str) -> np.ndarray:
    x = np.asarray(x, dtype=float).reshape(-1)
    if x.shape[0] < 2:
        raise InvalidArgument(f"{label} needs at least two observations.")
    return x


def t_test(a: Any, b: Any) -> Data:
    """Are the means of ``a`` and ``b`` different?

    Unequal-variance t statistic with ``len(a) + len(b) - 2`` degrees of freedom.
    """
    a, b = _column(a, "a"), _column(b, "b")
    diff = float(a.mean() - b.mean())
    se = np.sqrt(a.var(ddof=1) / a.shape[0] + b.var(ddof=1) / b.shape[0])
    return _report(diff, diff / se, float(a.shape[0] + b.shape[0] - 2))


def paired_t_test(a: Any, b: Any) -> Data:
    """Is the mean of the paired differences ``a - b`` zero?"""
    a, b = _column(a, "a"), _column(b, "b")
    if a.shape != b.shape:
        raise InvalidArgument("A paired t test needs columns of the same length.")
    d = a - b
    diff = float(d.mean())
    se = np.sqrt(d.var(ddof=1) / d.shape[0])
    return _report(diff, diff / se, float(d.shape[0] - 1))


def parameter_t_tests(model: Any) -> Data:
    """Test each parameter against zero using the estimate's covariance page.

    Adds ``"<name> t statistic"`` and ``"<name> p value"`` entries to the
    model's info and returns it. Degrees of freedom are the observations minus
    the parameters when the model remembers its data; otherwise the normal
    distribution is used.
    """
    if model is None or model.parameters is None:
        raise InvalidArgument("parameter_t_tests needs an estimated model.")
    cov = model.parameters.pages.get(COVARIANCE_PAGE)
    if cov is None:
        raise InvalidArgument(f"Model {model.name!r} has no covariance page.")
    values = model.parameters.pack()
    k = values.shape[0]
    se = np.sqrt(np.diag(cov.matrix))
    dist = stats.norm
    if model.data is not None and model.data.n_rows > k:
        dist = stats.t(model.data.n_rows - k)

    labels = list(model.parameters.names.rows)
    labels += [f"p{i}" for i in range(len(labels), k)]
    for label, v, s in zip(labels, values, se):
        stat = v / s if s > 0 else np.inf * np.sign(v)
        model.info.set_value(f"{label} t statistic", stat)
        model.info.set_value(f"{label} p value", float(2.0 * dist.sf(abs(stat))))
    return model.info
