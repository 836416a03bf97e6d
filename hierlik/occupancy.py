"""Single-season occupancy likelihoods: standard, penalized and Royle-Nichols."""

from __future__ import annotations

import sys

import numpy as np
from scipy.stats import binom, poisson

from hierlik.utils import beta_sub, inv_logit

_DBL_MIN = sys.float_info.min


def _linear(X, beta, offset):
    X = np.atleast_2d(np.asarray(X, dtype=float))
    return X @ np.asarray(beta, dtype=float) + np.asarray(offset, dtype=float)


def _occu_loglik(y, p, psi, nd, known_occ, navec):
    n_sites = psi.size
    y = np.asarray(y, dtype=float).reshape(n_sites, -1)
    p = p.reshape(n_sites, -1)
    missing = np.asarray(navec, dtype=bool).reshape(n_sites, -1)
    with np.errstate(invalid="ignore", divide="ignore"):
        terms = p**y * (1 - p) ** (1 - y)
        cp = np.where(missing, 1.0, terms).prod(axis=1)
        psi = np.where(np.asarray(known_occ, dtype=bool), 1.0, psi)
        nd = np.asarray(nd, dtype=np.int64)
        detected = np.log(cp * psi + _DBL_MIN)
        undetected = np.log(cp * psi + (1 - psi) + _DBL_MIN)
    per_site = np.where(nd == 0, detected, np.where(nd == 1, undetected, 0.0))
    return float(per_site.sum())


def nll_occu(y, X, V, beta_psi, beta_p, nd, known_occ, navec, X_offset, V_offset,
             link_psi):
    """Negative log-likelihood of the single-season occupancy model.

    ``link_psi`` is "cloglog" or anything else for the logit link.
    """
    psi_lp = _linear(X, beta_psi, X_offset)
    if link_psi == "cloglog":
        psi = 1 - np.exp(-np.exp(psi_lp))
    else:
        psi = np.asarray(inv_logit(psi_lp), dtype=float)
    p = np.asarray(inv_logit(_linear(V, beta_p, V_offset)), dtype=float)
    return -_occu_loglik(y, p, psi, nd, known_occ, navec)


def nll_occu_pen(y, X, V, beta_psi, beta_p, nd, known_occ, navec, X_offset,
                 V_offset, penalty):
    """Occupancy negative log-likelihood plus a fixed ``penalty``."""
    psi = np.asarray(inv_logit(_linear(X, beta_psi, X_offset)), dtype=float)
    p = np.asarray(inv_logit(_linear(V, beta_p, V_offset)), dtype=float)
    return -(_occu_loglik(y, p, psi, nd, known_occ, navec) - penalty)


def _lp_site_rn(y_row, lam, q, K, k_min):
    finite = np.isfinite(y_row)
    if not finite.any():
        return 0.0
    ys, qs = y_row[finite], q[finite]
    total = 0.0
    for k in range(int(k_min), K + 1):
        g = binom.logpmf(ys, 1, 1 - qs**k).sum()
        total += poisson.pmf(k, lam) * np.exp(g)
    return float(np.log(total + _DBL_MIN))


def nll_occu_rn(beta, n_param, y, X, V, X_offset, V_offset, K, Kmin):
    """Negative log-likelihood of the Royle-Nichols abundance-occupancy model."""
    y = np.atleast_2d(np.asarray(y, dtype=float))
    n_visits = y.shape[1]
    lam = np.exp(_linear(X, beta_sub(beta, n_param, 0), X_offset))
    q = 1 - np.asarray(
        inv_logit(_linear(V, beta_sub(beta, n_param, 1), V_offset)), dtype=float
    ).reshape(-1, n_visits)
    return -sum(
        _lp_site_rn(row, lam_i, q_i, K, k_min)
        for row, lam_i, q_i, k_min in zip(y, lam, q, np.asarray(Kmin))
    )