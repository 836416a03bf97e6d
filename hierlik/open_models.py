"""Open-population distance sampling and multinomial-mixture likelihoods."""

from __future__ import annotations

import math
import sys

import numpy as np
from scipy.stats import nbinom, poisson

from hierlik.detection import distprob
from hierlik.distr import dzip
from hierlik.pifun import pi_fun
from hierlik.tranprobs import transition_matrix
from hierlik.utils import inv_logit

_DBL_MIN = sys.float_info.min
_SURVIVAL_LOGIT = ("constant", "autoreg", "notrend")
_SURVIVAL_LOG = ("ricker", "gompertz")

# Rows of ``bi`` shared by both open models.
_LAM_ROW, _GAM_ROW, _OM_ROW, _IOTA_ROW = 0, 1, 2, 4


def _linear(X, beta, offset):
    X = np.asarray(X, dtype=float)
    if X.ndim == 1:
        X = X[:, None]
    return X @ beta + np.asarray(offset, dtype=float).ravel()


def _block(beta, bi, row):
    start, stop = int(bi[row, 0]), int(bi[row, 1])
    return beta[start : stop + 1]


def open_rates(dynamics, fix, lam, om_lp, gam_lp, M, T):
    """Survival (omega) and recruitment (gamma) matrices, each M by T-1.

    ``om_lp`` and ``gam_lp`` are linear predictors ordered site by site; a
    predictor that the dynamics need must not be None.
    """
    om = np.ones(M * (T - 1))
    if fix != "omega" and dynamics != "trend":
        if dynamics in _SURVIVAL_LOG or dynamics in _SURVIVAL_LOGIT:
            if om_lp is None:
                raise ValueError(f"{dynamics!r} dynamics need an omega predictor")
            lp = np.asarray(om_lp, dtype=float).ravel()
            if dynamics in _SURVIVAL_LOG:
                om = np.exp(lp)
            else:
                om = np.asarray(inv_logit(lp), dtype=float).ravel()
    om = om.reshape(M, T - 1)

    if dynamics == "notrend":
        gam = (1 - om) * np.asarray(lam, dtype=float).ravel()[:, None]
    elif fix != "gamma":
        if gam_lp is None:
            raise ValueError(f"{dynamics!r} dynamics need a gamma predictor")
        gam = np.exp(np.asarray(gam_lp, dtype=float).ravel()).reshape(M, T - 1)
    else:
        gam = np.zeros((M, T - 1))
    return om, gam


def _rates(dynamics, fix, immigration, lam, beta, bi, designs, M, T):
    (Xgam, gam_off), (Xom, om_off), (Xiota, iota_off) = designs
    om_lp = None
    if fix != "omega" and dynamics != "trend":
        om_lp = _linear(Xom, _block(beta, bi, _OM_ROW), om_off)
    gam_lp = None
    if dynamics != "notrend" and fix != "gamma":
        gam_lp = _linear(Xgam, _block(beta, bi, _GAM_ROW), gam_off)
    om, gam = open_rates(dynamics, fix, lam, om_lp, gam_lp, M, T)
    iota = np.zeros((M, T - 1))
    if immigration:
        iota = np.exp(
            _linear(Xiota, _block(beta, bi, _IOTA_ROW), iota_off)
        ).reshape(M, T - 1)
    return om, gam, iota


def _mixture_params(mixture, beta, bi, row):
    alpha = psi = 0.0
    if mixture == "NB":
        alpha = math.exp(beta[bi[row, 0]])
    elif mixture == "ZIP":
        psi = 1.0 / (1.0 + math.exp(-beta[bi[row, 0]]))
    return alpha, psi


def _abundance(mixture, lk, lam, alpha, psi):
    counts = np.arange(lk)
    if mixture == "P":
        return poisson.pmf(counts, lam)
    if mixture == "NB":
        return nbinom.pmf(counts, alpha, alpha / (alpha + lam))
    if mixture == "ZIP":
        return np.array([dzip(int(c), lam, psi) for c in counts])
    return np.zeros(lk)


def _transitions(go_dims, dynamics, lk, gam, om, iota, trans, ytna, first1, T):
    """Initial transition matrix and a lookup for occasion ``t`` of site ``i``.

    The lookup returns None when the transition matrix is left unchanged.
    """

    def tp(i, t):
        return transition_matrix(dynamics, lk, gam[i, t], om[i, t], iota[i, t], trans)

    empty = np.zeros((lk, lk))
    if go_dims == "scalar":
        fixed = tp(first1, 0) if T > 1 else empty

        def step(i, t):
            return fixed

        return fixed, step
    if go_dims == "rowvec":
        slices = [
            empty if ytna[first1, t] == 1 else tp(first1, t) for t in range(T - 1)
        ]

        def step(i, t):
            return slices[t - 1]

        return empty, step
    if go_dims == "matrix":

        def step(i, t):
            return tp(i, t - 1)

        return empty, step

    def step(i, t):
        return None

    return empty, step


def _nll(site_det, abundance, first, last, delta, ytna, g3, step):
    lk = g3.shape[0]
    g1_t = np.zeros(lk)
    ll = 0.0
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        for i, (first_i, last_i) in enumerate(zip(first, last)):
            first_i, last_i = int(first_i), int(last_i)
            g_star = np.ones(lk)
            for t in range(last_i, first_i, -1):
                g1_t = np.zeros(lk)
                if ytna[i, t] == 1:
                    continue
                g1_t = site_det(i, t)
                g1_t_star = g1_t * g_star
                new = step(i, t)
                if new is not None:
                    g3 = new
                power = max(int(delta[i, t]), 1)
                g_star = np.linalg.matrix_power(g3, power) @ g1_t_star

            g1 = site_det(i, first_i)
            delta0 = int(delta[i, 0])
            g2 = abundance(i)
            if delta0 > 1:
                g1_star = g1_t * g_star
                g_star = np.linalg.matrix_power(g3, delta0 + 1) @ g1_star
                ll_i = float(np.sum(g2 * g_star))
            elif delta0 == 1:
                ll_i = float(np.sum(g1 * g2 * g_star))
            else:
                ll_i = 0.0
            ll += float(np.log(ll_i + _DBL_MIN))
    return -ll


def nll_distsamp_open(y, Xlam, Xgam, Xom, Xsig, Xiota, beta, bi, Xlam_offset,
                      Xgam_offset, Xom_offset, Xsig_offset, Xiota_offset, ytna, lk,
                      mixture, first, last, first1, M, T, delta, dynamics, survey,
                      fix, go_dims, immigration, trans, a, u, w, db, keyfun, lfac_k,
                      kmyt, lfac_kmyt, fin, A):
    """Negative log-likelihood of the open-population distance sampling model.

    ``y``, ``kmyt``, ``lfac_kmyt`` and ``fin`` are indexed site, occasion,
    then distance class or abundance; ``a`` is site by class and ``u`` class
    by site. ``first`` and ``last`` are zero-based occasions. Rows of ``bi``:
    abundance, gamma, omega, detection, immigration, hazard scale, mixture.
    """
    beta = np.asarray(beta, dtype=float).ravel()
    bi = np.asarray(bi, dtype=np.int64).reshape(-1, 2)
    lam = np.exp(_linear(Xlam, _block(beta, bi, _LAM_ROW), Xlam_offset))
    lam = lam * np.asarray(A, dtype=float).ravel()
    alpha, psi = _mixture_params(mixture, beta, bi, 6)
    designs = ((Xgam, Xgam_offset), (Xom, Xom_offset), (Xiota, Xiota_offset))
    om, gam, iota = _rates(dynamics, fix, immigration, lam, beta, bi, designs, M, T)

    if keyfun != "uniform":
        sig = np.exp(_linear(Xsig, _block(beta, bi, 3), Xsig_offset)).reshape(M, T)
    else:
        sig = np.zeros((M, T))
    scale = math.exp(beta[bi[5, 0]]) if keyfun == "hazard" else 0.0

    y = np.asarray(y, dtype=float)
    ytna = np.asarray(ytna, dtype=np.int64)
    delta = np.asarray(delta, dtype=np.int64)
    a = np.atleast_2d(np.asarray(a, dtype=float))
    u = np.atleast_2d(np.asarray(u, dtype=float))
    lfac_k = np.asarray(lfac_k, dtype=float).ravel()
    kmyt = np.asarray(kmyt, dtype=float)
    lfac_kmyt = np.asarray(lfac_kmyt, dtype=float)
    fin = np.asarray(fin, dtype=float)

    def site_det(i, t):
        ysub = y[i, t]
        cp = distprob(keyfun, sig[i, t], scale, survey, db, w, a[i]) * u[:, i]
        ycp = np.sum(ysub * np.log(cp))
        lkmyt = lfac_kmyt[i, t]
        if keyfun == "uniform":
            kint = int(ysub.sum())
            out = np.zeros(lk)
            out[kint] = np.exp(lfac_k[kint] - lkmyt[kint] + ycp)
            return out
        cp_rest = 1 - cp.sum()
        return np.exp(lfac_k - lkmyt + ycp + np.log(cp_rest) * kmyt[i, t]) * fin[i, t]

    def abundance(i):
        return _abundance(mixture, lk, lam[i], alpha, psi)

    g3, step = _transitions(go_dims, dynamics, lk, gam, om, iota, trans, ytna,
                            first1, T)
    return _nll(site_det, abundance, first[:M], last[:M], delta, ytna, g3, step)


def nll_multmix_open(y, Xlam, Xgam, Xom, Xp, Xiota, beta, bi, Xlam_offset,
                     Xgam_offset, Xom_offset, Xp_offset, Xiota_offset, ytna, yna, lk,
                     mixture, first, last, first1, M, T, J, R, delta, dynamics, fix,
                     go_dims, immigration, trans, pi_fun_name, lfac_k, kmyt,
                     lfac_kmyt, fin):
    """Negative log-likelihood of the open-population multinomial-mixture model.

    ``y`` and ``yna`` are site by occasion by the ``J`` observation cells;
    detection rows are ordered by occasion, site, then the ``R`` per-visit
    probabilities. Rows of ``bi``: abundance, gamma, omega, detection,
    immigration, mixture.
    """
    beta = np.asarray(beta, dtype=float).ravel()
    bi = np.asarray(bi, dtype=np.int64).reshape(-1, 2)
    lam = np.exp(_linear(Xlam, _block(beta, bi, _LAM_ROW), Xlam_offset))
    alpha, psi = _mixture_params(mixture, beta, bi, 5)
    designs = ((Xgam, Xgam_offset), (Xom, Xom_offset), (Xiota, Xiota_offset))
    om, gam, iota = _rates(dynamics, fix, immigration, lam, beta, bi, designs, M, T)

    p = np.asarray(
        inv_logit(_linear(Xp, _block(beta, bi, 3), Xp_offset)), dtype=float
    ).ravel()[: R * M * T].reshape(T, M, R)

    y = np.asarray(y, dtype=float).reshape(M, T, J)
    missing = np.asarray(yna, dtype=bool).reshape(M, T, J)
    ytna = np.asarray(ytna, dtype=np.int64)
    delta = np.asarray(delta, dtype=np.int64)
    lfac_k = np.asarray(lfac_k, dtype=float).ravel()
    kmyt = np.asarray(kmyt, dtype=float)
    lfac_kmyt = np.asarray(lfac_kmyt, dtype=float)
    fin = np.asarray(fin, dtype=float)

    def site_det(i, t):
        keep = ~missing[i, t]
        cp = np.asarray(pi_fun(p[t, i], pi_fun_name), dtype=float)[keep]
        ycp = np.sum(y[i, t][keep] * np.log(cp))
        cp_rest = 1 - cp.sum()
        terms = lfac_k - lfac_kmyt[i, t] + ycp + np.log(cp_rest) * kmyt[i, t]
        return np.exp(terms) * fin[i, t]

    def abundance(i):
        return _abundance(mixture, lk, lam[i], alpha, psi)

    g3, step = _transitions(go_dims, dynamics, lk, gam, om, iota, trans, ytna,
                            first1, T)
    return _nll(site_det, abundance, first[:M], last[:M], delta, ytna, g3, step)