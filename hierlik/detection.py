"""Distance sampling detection functions and distance-class probabilities."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from scipy.stats import norm

_TRAP_STEPS = 100
_SURVEYS = ("line", "point")


@dataclass(frozen=True)
class DetExp:
    """Negative exponential detection function; ``point`` weights by distance."""

    rate: float
    point: bool = False

    def __call__(self, x):
        adjust = x if self.point else 1.0
        return np.exp(-x / self.rate) * adjust


@dataclass(frozen=True)
class DetHaz:
    """Hazard rate detection function; ``point`` weights by distance."""

    shape: float
    scale: float
    point: bool = False

    def __call__(self, x):
        with np.errstate(divide="ignore"):
            core = 1.0 - np.exp(-np.power(np.float64(x) / self.shape, -self.scale))
        adjust = x if self.point else 1.0
        return core * adjust


def trap_rule(f, a, b):
    """Integrate ``f`` over [a, b] with the trapezoidal rule on 100 steps."""
    h = (b - a) / _TRAP_STEPS
    interior = sum(f(a + i * h) for i in range(1, _TRAP_STEPS))
    return float(h / 2 * (f(a) + 2 * interior + f(b)))


def _integrate_bins(f, db):
    return np.array([trap_rule(f, lo, hi) for lo, hi in zip(db[:-1], db[1:])])


def _check_survey(survey):
    if survey not in _SURVEYS:
        raise ValueError(f"invalid survey: {survey!r}")


def _p_halfnorm(sigma, survey, db, w, a, n_bins):
    if survey == "line":
        f0 = 2 * norm.pdf(0.0, 0.0, sigma)
        cdf = norm.cdf(db, 0.0, sigma)
        return 2 * np.diff(cdf) / f0 / w[:n_bins]
    s2 = sigma**2
    cum = 1 - np.exp(-(db**2) / (2 * s2))
    return (s2 * cum[1:] - s2 * cum[:-1]) * 2 * math.pi / a[:n_bins]


def _p_exp(rate, survey, db, w, a, n_bins):
    if survey == "line":
        cum = rate * (1 - np.exp(-db / rate))
        return np.diff(cum) / w[:n_bins]
    return _integrate_bins(DetExp(rate, True), db) * 2 * math.pi / a[:n_bins]


def _p_hazard(shape, scale, survey, db, w, a, n_bins):
    if survey == "line":
        return _integrate_bins(DetHaz(shape, scale, False), db) / w[:n_bins]
    return (
        _integrate_bins(DetHaz(shape, scale, True), db) * 2 * math.pi / a[:n_bins]
    )


def distprob(keyfun, param1, param2, survey, db, w, a):
    """Detection probability in each distance class.

    ``param1`` is sigma, rate or shape depending on ``keyfun``; ``param2`` is
    the hazard scale. ``db`` holds the class breaks, ``w`` the class widths
    (line surveys) and ``a`` the class areas (point surveys).
    """
    db = np.asarray(db, dtype=float)
    w = np.asarray(w, dtype=float)
    a = np.asarray(a, dtype=float).ravel()
    n_bins = db.size - 1
    if keyfun == "uniform":
        return np.ones(n_bins)
    if keyfun not in ("halfnorm", "exp", "hazard"):
        raise ValueError(f"invalid keyfun: {keyfun!r}")
    _check_survey(survey)
    if keyfun == "halfnorm":
        return _p_halfnorm(param1, survey, db, w, a, n_bins)
    if keyfun == "exp":
        return _p_exp(param1, survey, db, w, a, n_bins)
    return _p_hazard(param1, param2, survey, db, w, a, n_bins)