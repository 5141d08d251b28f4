"""Adaptive rejection Metropolis sampling for univariate models.

The hull is a piecewise-constant log-envelope over sorted knots: on each
interval it equals the larger of the two endpoint log-densities. Candidates
come from the envelope by rejection sampling, rejected points refine the
hull, and a Metropolis step against the previous draw corrects for the
places where the envelope dips under the density.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Tuple

import numpy as np

from ..data import Data
from ..errors import InvalidArgument, NumericalFailure
from ..settings import ArmsSettings, settings_for

logger = logging.getLogger(__name__)

# Probe grid for locating the support: 0 plus +/- logspace(-3, 6).
_PROBES = np.logspace(-3, 6, 37)
# Region kept around the best probe, in log units.
_LOG_SPAN = 50.0


class _Hull:
    def __init__(self, x: np.ndarray, lf: np.ndarray):
        order = np.argsort(x)
        self.x = np.asarray(x, dtype=float)[order]
        self.lf = np.asarray(lf, dtype=float)[order]
        self._refresh()

    @property
    def n_knots(self) -> int:
        return int(self.x.shape[0])

    def _refresh(self) -> None:
        self.h = np.maximum(self.lf[:-1], self.lf[1:])
        finite = np.isfinite(self.h)
        if not finite.any():
            raise NumericalFailure("The density is zero everywhere on the hull.")
        top = float(np.max(self.h[finite]))
        area = np.zeros_like(self.h)
        area[finite] = np.diff(self.x)[finite] * np.exp(self.h[finite] - top)
        total = float(area.sum())
        if not total > 0.0:
            raise NumericalFailure("The hull encloses no probability mass.")
        self.cum = np.cumsum(area) / total

    def sample(self, rng: np.random.Generator) -> Tuple[float, float]:
        """A point from the envelope and the envelope's log height there."""
        i = int(np.searchsorted(self.cum, rng.uniform(), side="right"))
        i = min(i, self.h.shape[0] - 1)
        x = self.x[i] + rng.uniform() * (self.x[i + 1] - self.x[i])
        return float(x), float(self.h[i])

    def log_envelope(self, x: float) -> float:
        if x < self.x[0] or x > self.x[-1]:
            return -np.inf
        i = int(np.searchsorted(self.x, x, side="right")) - 1
        i = min(max(i, 0), self.h.shape[0] - 1)
        return float(self.h[i])

    def add(self, x: float, lfx: float) -> None:
        i = int(np.searchsorted(self.x, x))
        if i < self.n_knots and self.x[i] == x:
            return
        self.x = np.insert(self.x, i, x)
        self.lf = np.insert(self.lf, i, lfx)
        self._refresh()


def _locate_support(logf: Callable[[float], float], xl: float, xr: float) -> Tuple[float, float, float]:
    probes = np.concatenate([-_PROBES[::-1], [0.0], _PROBES])
    probes = probes[(probes >= xl) & (probes <= xr)]
    probes = np.unique(np.concatenate([[xl, xr], probes]))
    lf = np.array([logf(x) for x in probes])
    finite = np.isfinite(lf)
    if not finite.any():
        raise NumericalFailure(
            f"The density is zero at every probe point in [{xl:g}, {xr:g}]."
        )
    best = int(np.argmax(np.where(finite, lf, -np.inf)))
    keep = np.flatnonzero(finite & (lf > lf[best] - _LOG_SPAN))
    lo = probes[max(int(keep[0]) - 1, 0)]
    hi = probes[min(int(keep[-1]) + 1, probes.shape[0] - 1)]
    return float(lo), float(hi), float(probes[best])


def _build_hull(logf: Callable[[float], float], settings: ArmsSettings) -> _Hull:
    xl, xr = float(settings.xl), float(settings.xr)
    if not xl < xr:
        raise InvalidArgument(f"ARMS needs xl < xr, got [{xl:g}, {xr:g}].")
    if int(settings.n_init) < 3:
        raise InvalidArgument("ARMS needs at least three initial knots.")
    lo, hi, best = _locate_support(logf, xl, xr)
    knots = np.unique(np.concatenate([np.linspace(lo, hi, int(settings.n_init)), [best]]))
    hull = _Hull(knots, np.array([logf(x) for x in knots]))
    logger.debug("built ARMS hull on [%g, %g] with %d knots", lo, hi, hull.n_knots)
    return hull


def arms_draw(rng: np.random.Generator, model: Any) -> np.ndarray:
    """One draw from a univariate model known only through its likelihood.

    Successive calls on the same model form a Markov chain whose state (and
    hull) lives in the model's :class:`ArmsSettings`; a change of parameters
    discards both.
    """
    from ..dispatch import log_likelihood

    if model.output_size not in (0, 1):
        raise InvalidArgument(
            f"ARMS draws scalars; model {model.name!r} has output_size {model.output_size}."
        )
    settings = settings_for(model, ArmsSettings)

    def logf(x: float) -> float:
        with np.errstate(all="ignore"):
            v = float(log_likelihood(Data(matrix=np.array([[x]])), model))
        return v if np.isfinite(v) else -np.inf

    fingerprint = model.parameters.pack().tobytes()
    if settings.hull is None or settings.fingerprint != fingerprint:
        settings.reset()
        settings.hull = _build_hull(logf, settings)
        settings.fingerprint = fingerprint
    hull: _Hull = settings.hull

    for _ in range(int(settings.max_tries)):
        x, h = hull.sample(rng)
        lfx = logf(x)
        if np.log(rng.uniform()) <= lfx - h:
            break
        if hull.n_knots < int(settings.max_knots):
            hull.add(x, lfx)
    else:
        raise NumericalFailure(
            f"ARMS for model {model.name!r} rejected {settings.max_tries} candidates in a row."
        )

    if settings.xprev is not None:
        xc, lfc = settings.xprev, settings.lfprev
        hc = hull.log_envelope(xc)
        hx = hull.log_envelope(x)
        log_alpha = lfx + min(lfc, hc) - lfc - min(lfx, hx)
        if not np.log(rng.uniform()) <= log_alpha:
            x, lfx = xc, lfc
    settings.xprev, settings.lfprev = x, lfx
    return np.array([x], dtype=float)
