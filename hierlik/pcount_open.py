"""Open-population N-mixture (Dail-Madsen) likelihood."""

from __future__ import annotations

import math
import sys

import numpy as np
from scipy.stats import binom, nbinom, poisson

from hierlik.distr import dzip
from hierlik.open_models import open_rates
from hierlik.tranprobs import transition_matrix
from hierlik.utils import inv_logit

_DBL_MIN = sys.float_info.min


def _linear(X, beta, offset):
    X = np.asarray(X, dtype=float)
    if X.ndim == 1:
        X = X[:, None]
    return X @ np.asarray(beta, dtype=float).ravel() + np.asarray(
        offset, dtype=float
    ).ravel()


def _abundance(mixture, counts, lam, alpha, psi):
    if mixture == "P":
        return poisson.pmf(counts, lam)
    if mixture == "NB":
        return nbinom.pmf(counts, alpha, alpha / (alpha + lam))
    if mixture == "ZIP":
        return np.array([dzip(int(k), lam, psi) for k in counts])
    return np.zeros(counts.size)


def nll_pcount_open(ym, Xlam, Xgam, Xom, Xp, Xiota, beta_lam, beta_gam, beta_om,
                    beta_p, beta_iota, log_alpha, Xlam_offset, Xgam_offset,
                    Xom_offset, Xp_offset, Xiota_offset, ytna, ynam, lk, mixture,
                    first, last, M, J, T, delta, dynamics, fix, go_dims,
                    immigration, trans):
    """Negative log-likelihood of the open-population N-mixture model.

    ``ym`` and ``ynam`` are sites by ``J * T`` columns, occasion by occasion;
    ``ytna`` flags occasions with no data. ``first`` and ``last`` are
    one-based occasions. Abundance is summed over 0..lk-1.
    """
    alpha = psi = 0.0
    if mixture == "NB":
        alpha = math.exp(log_alpha)
    elif mixture == "ZIP":
        psi = 1.0 / (1.0 + math.exp(-log_alpha))

    lam = np.exp(_linear(Xlam, beta_lam, Xlam_offset))
    om_lp = gam_lp = None
    if fix != "omega" and dynamics != "trend":
        om_lp = _linear(Xom, beta_om, Xom_offset)
    if dynamics != "notrend" and fix != "gamma":
        gam_lp = _linear(Xgam, beta_gam, Xgam_offset)
    om, gam = open_rates(dynamics, fix, lam, om_lp, gam_lp, M, T)
    iota = np.zeros((M, T - 1))
    if immigration:
        iota = np.exp(_linear(Xiota, beta_iota, Xiota_offset)).reshape(M, T - 1)
    p = np.asarray(inv_logit(_linear(Xp, beta_p, Xp_offset)), dtype=float)
    p = p.ravel()[: M * J * T].reshape(M, T, J)

    y = np.atleast_2d(np.asarray(ym, dtype=float))[:, : J * T].reshape(M, T, J)
    missing = np.atleast_2d(np.asarray(ynam))[:, : J * T].reshape(M, T, J) != 0
    ytna = np.atleast_2d(np.asarray(ytna))
    delta = np.atleast_2d(np.asarray(delta, dtype=np.int64))
    first = [int(f) for f in np.ravel(first)[:M]]
    last = [int(v) for v in np.ravel(last)[:M]]
    first1 = next((i for i, f in enumerate(first) if f == 1), 0)
    counts = np.arange(lk)

    def tp(i, t):
        return np.asarray(
            transition_matrix(dynamics, lk, gam[i, t], om[i, t], iota[i, t], trans),
            dtype=float,
        )

    g3 = np.zeros((lk, lk))
    slices = []
    if T > 1:
        if go_dims == "scalar":
            g3 = tp(first1, 0)
        elif go_dims == "rowvec":
            slices = [
                np.zeros((lk, lk)) if ytna[first1, t] == 1 else tp(first1, t)
                for t in range(T - 1)
            ]

    def detection(i, t):
        keep = ~missing[i, t]
        logp = binom.logpmf(y[i, t, keep][None, :], counts[:, None],
                            p[i, t, keep][None, :]).sum(axis=1)
        return np.exp(logp)

    ll = 0.0
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        for i in range(M):
            first_i, last_i = first[i] - 1, last[i] - 1
            g_star = np.ones(lk)
            for t in range(last_i, first_i, -1):
                if ytna[i, t] == 1:
                    continue
                g1_t_star = detection(i, t) * g_star
                if go_dims == "matrix":
                    g3 = tp(i, t - 1)
                elif go_dims == "rowvec":
                    g3 = slices[t - 1]
                power = max(int(delta[i, t]), 1)
                g_star = np.linalg.matrix_power(g3, power) @ g1_t_star

            g1 = detection(i, first_i)
            g2 = _abundance(mixture, counts, lam[i], alpha, psi)
            delta0 = int(delta[i, 0])
            if delta0 > 1:
                g1_star = g1 * g_star
                g_star = np.linalg.matrix_power(g3, delta0 + 1) @ g1_star
                ll_i = float(g2 @ g_star)
            elif delta0 == 1:
                ll_i = float(np.sum(g1 * g2 * g_star))
            else:
                ll_i = 0.0
            ll += math.log(ll_i + _DBL_MIN)
    return -ll