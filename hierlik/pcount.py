"""N-mixture (point count) likelihoods, including the generalized form."""

from __future__ import annotations

import math
import sys

import numpy as np
from scipy.stats import binom, nbinom, poisson

from hierlik.distr import dzip, n_density
from hierlik.utils import beta_sub, inv_logit

_DBL_MIN = sys.float_info.min


def _linear(X, beta, offset):
    X = np.atleast_2d(np.asarray(X, dtype=float))
    return X @ np.asarray(beta, dtype=float) + np.asarray(offset, dtype=float)


def _lp_site(y_row, mixture, lam, log_alpha, p, K, k_min):
    finite = np.isfinite(y_row)
    if not finite.any():
        return 0.0
    ys, ps = y_row[finite], p[finite]
    total = 0.0
    for k in range(int(k_min), K + 1):
        f = n_density(mixture, k, lam, log_alpha)
        total += f * np.exp(binom.logpmf(ys, k, ps).sum())
    return float(np.log(total + _DBL_MIN))


def nll_pcount(beta, n_param, y, X, V, X_offset, V_offset, K, Kmin, mixture):
    """Negative log-likelihood of the N-mixture model truncated at ``K``."""
    y = np.atleast_2d(np.asarray(y, dtype=float))
    n_visits = y.shape[1]
    lam = np.exp(_linear(X, beta_sub(beta, n_param, 0), X_offset))
    p = np.asarray(
        inv_logit(_linear(V, beta_sub(beta, n_param, 1), V_offset)), dtype=float
    ).reshape(-1, n_visits)
    log_alpha = float(beta_sub(beta, n_param, 2)[0])
    return -sum(
        _lp_site(row, mixture, lam_i, log_alpha, p_i, K, k_min)
        for row, lam_i, p_i, k_min in zip(y, lam, p, np.asarray(Kmin))
    )


def _log_abundance(mixture, counts, lam, alpha):
    if mixture == "P":
        return poisson.logpmf(counts, lam)
    if mixture == "NB":
        return nbinom.logpmf(counts, alpha, alpha / (alpha + lam))
    if mixture == "ZIP":
        with np.errstate(divide="ignore"):
            return np.log([dzip(int(c), lam, alpha) for c in counts])
    return np.zeros(counts.size)


def nll_gpcount(ym, Xlam, Xphi, Xp, beta_lam, beta_phi, beta_p, log_alpha,
                Xlam_offset, Xphi_offset, Xp_offset, M, mixture, T):
    """Negative log-likelihood of the generalized N-mixture model.

    ``ym`` has one row per site and ``J * T`` columns, occasion by occasion;
    ``M`` is the largest superpopulation size considered.
    """
    ym = np.atleast_2d(np.asarray(ym, dtype=float))
    n_sites = ym.shape[0]
    n_visits = ym.shape[1] // T
    alpha = 0.0
    if mixture == "NB":
        alpha = math.exp(log_alpha)
    elif mixture == "ZIP":
        alpha = 1.0 / (1.0 + math.exp(-log_alpha))
    lam = np.exp(_linear(Xlam, beta_lam, Xlam_offset))
    phi = np.asarray(inv_logit(_linear(Xphi, beta_phi, Xphi_offset)),
                     dtype=float).reshape(n_sites, T)
    p = np.asarray(inv_logit(_linear(Xp, beta_p, Xp_offset)),
                   dtype=float).reshape(n_sites, T, n_visits)
    y = ym.reshape(n_sites, T, n_visits)
    y_max = np.fmax.reduce(ym, axis=1)
    counts = np.arange(M + 1)
    n_col = counts[:, None]
    m_row = counts[None, :]

    loglik = 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        for i in range(n_sites):
            too_small = counts < y_max[i]
            f = np.where(too_small, -np.inf,
                         _log_abundance(mixture, counts, lam[i], alpha))
            ghi = np.zeros(M + 1)
            for t in range(T):
                if np.isfinite(phi[i, t]):
                    g = binom.logpmf(n_col, m_row, phi[i, t])
                else:
                    g = np.zeros((M + 1, M + 1))
                finite = np.isfinite(y[i, t])
                h = binom.logpmf(y[i, t, finite][None, :], n_col,
                                 p[i, t, finite][None, :]).sum(axis=1)
                gh = g + h[:, None]
                gh[(n_col > m_row) | too_small[None, :]] = -np.inf
                ghi += np.log(np.exp(gh).sum(axis=0))
            loglik += np.log(np.exp(f + ghi).sum())
    return float(-loglik)