"""Distance sampling likelihood with Poisson abundance."""

from __future__ import annotations

import math
import sys

import numpy as np
from scipy.stats import norm, poisson

from hierlik.detection import DetExp, DetHaz, trap_rule

_LN_MIN = math.log(sys.float_info.min)


def _point_integral(keyfun, sigma, scale, lower, upper):
    if keyfun == "halfnorm":
        s2 = sigma * sigma
        return s2 * (1 - math.exp(-upper * upper / (2 * s2))) - s2 * (
            1 - math.exp(-lower * lower / (2 * s2))
        )
    if keyfun == "exp":
        return trap_rule(DetExp(sigma, True), lower, upper)
    if keyfun == "hazard":
        return trap_rule(DetHaz(sigma, scale, True), lower, upper)
    return 0.0


def _line_integral(keyfun, sigma, scale, lower, upper):
    if keyfun == "halfnorm":
        f0 = norm.pdf(0.0, 0.0, sigma)
        return (norm.cdf(upper, 0.0, sigma) - norm.cdf(lower, 0.0, sigma)) / f0
    if keyfun == "exp":
        return sigma * (1 - math.exp(-upper / sigma)) - sigma * (
            1 - math.exp(-lower / sigma)
        )
    if keyfun == "hazard":
        return trap_rule(DetHaz(sigma, scale, False), lower, upper)
    return 0.0


def nll_distsamp(y, lam, sig, scale, a, u, w, db, keyfun, survey):
    """Negative log-likelihood of distance sampling counts.

    Each site/class term is floored at the log of the smallest normal double.
    """
    y = np.atleast_2d(np.asarray(y, dtype=float))
    a = np.atleast_2d(np.asarray(a, dtype=float))
    u = np.atleast_2d(np.asarray(u, dtype=float))
    w = np.asarray(w, dtype=float)
    db = np.asarray(db, dtype=float)
    ll = 0.0
    for i, row in enumerate(y):
        for j, count in enumerate(row):
            lower, upper = float(db[j]), float(db[j + 1])
            cp = 0.0
            if keyfun == "uniform":
                cp = u[i, j]
            elif survey == "point":
                result = _point_integral(keyfun, sig[i], scale, lower, upper)
                cp = result * 2 * math.pi / a[i, j] * u[i, j]
            elif survey == "line":
                result = _line_integral(keyfun, sig[i], scale, lower, upper)
                cp = result / w[j] * u[i, j]
            ll += max(float(poisson.logpmf(count, lam[i] * cp)), _LN_MIN)
    return -ll