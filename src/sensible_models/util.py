from __future__ import annotations

import math
from typing import Callable, List, Optional, Sequence

import numpy as np


def mvn_factor(cov: np.ndarray) -> np.ndarray:
    """A matrix L with L @ L.T == cov; singular covariances go through eigh."""
    cov = np.asarray(cov, dtype=float)
    cov = 0.5 * (cov + cov.T)
    try:
        return np.linalg.cholesky(cov)
    except np.linalg.LinAlgError:
        w, v = np.linalg.eigh(cov)
        return v * np.sqrt(np.clip(w, 0.0, None))


def sample_mvn(
    mean: np.ndarray,
    cov: np.ndarray,
    rng: np.random.Generator,
    size: Optional[int] = None,
) -> np.ndarray:
    """Draws from MVN(mean, cov): shape (P,) when size is None, else (size, P)."""
    mean = np.asarray(mean, dtype=float)
    L = mvn_factor(cov)
    z = rng.standard_normal((1 if size is None else int(size), mean.shape[0]))
    draws = mean[None, :] + z @ L.T
    return draws[0] if size is None else draws


def relative_steps(x0: np.ndarray, step: float) -> np.ndarray:
    """Finite-difference steps scaled to the magnitude of each coordinate."""
    return float(step) * (np.abs(np.asarray(x0, dtype=float)) + 1.0)


def numdiff_hessian(
    func: Callable[[np.ndarray], float], x0: np.ndarray, step: Optional[float] = None
) -> Optional[np.ndarray]:
    """Central-difference Hessian of ``func`` at ``x0``; None if any evaluation is non-finite."""
    x0 = np.asarray(x0, dtype=float)
    npar = int(x0.shape[0])
    eps = relative_steps(x0, 1e-4 if step is None else step)

    f0 = float(func(x0))
    if not np.isfinite(f0):
        return None
    hess = np.zeros((npar, npar), dtype=float)
    for i in range(npar):
        ei = np.zeros(npar, dtype=float)
        ei[i] = eps[i]
        fpp = float(func(x0 + ei))
        fmm = float(func(x0 - ei))
        hess[i, i] = (fpp - 2.0 * f0 + fmm) / (eps[i] ** 2)
        for j in range(i + 1, npar):
            ej = np.zeros(npar, dtype=float)
            ej[j] = eps[j]
            fpp = float(func(x0 + ei + ej))
            fpm = float(func(x0 + ei - ej))
            fmp = float(func(x0 - ei + ej))
            fmm = float(func(x0 - ei - ej))
            hij = (fpp - fpm - fmp + fmm) / (4.0 * eps[i] * eps[j])
            hess[i, j] = hij
            hess[j, i] = hij
    if not np.all(np.isfinite(hess)):
        return None
    return hess


def _last_place(err: float, sig: Optional[int]) -> int:
    # Decimal exponent of the last quoted digit of the uncertainty.
    exp = int(math.floor(math.log10(err)))
    if sig is None:
        sig = 2 if int(err / 10.0**exp + 1e-12) == 1 else 1
    return exp - max(1, int(sig)) + 1


def value_with_error(x: float, err: float, sig: int | str | None = "auto") -> str:
    """Render x +/- err in parenthesis notation, e.g. ``1.23(7)`` or ``-1.23(1)e-5``.

    ``sig`` is the number of significant digits quoted for the error; "auto"
    quotes two when the leading digit is 1 and one otherwise. The shorter of
    the fixed and scientific forms wins.
    """
    if isinstance(sig, str):
        sig = None
    x = float(x)
    err = abs(float(err))
    if math.isnan(x) or math.isnan(err):
        return "NaN"
    if math.isinf(x) or math.isinf(err):
        return "inf"
    if err == 0.0:
        return f"{x:.{sig or 6}g}(0)"

    last = _last_place(err, sig)
    quoted = int(round(err / 10.0**last))

    decimals = max(0, -last)
    rounded = round(x / 10.0**last) * 10.0**last
    fixed = f"{rounded:.{decimals}f}({quoted * 10 ** max(0, last)})"

    exp = int(math.floor(math.log10(abs(x)))) if abs(x) >= err else int(math.floor(math.log10(err)))
    scientific = f"{x / 10.0**exp:.{exp - last}f}({quoted})e{exp}"

    return fixed if len(fixed) <= len(scientific) else scientific


def parameter_lines(values: np.ndarray, variances: np.ndarray, labels: Sequence[str]) -> List[str]:
    """One ``label: value(error)`` line per parameter; missing labels become p0, p1, ..."""
    labels = list(labels) + [f"p{i}" for i in range(len(labels), len(values))]
    return [
        f"{label:>12s}: {value_with_error(v, math.sqrt(max(float(var), 0.0)))}"
        for label, v, var in zip(labels, values, variances)
    ]
