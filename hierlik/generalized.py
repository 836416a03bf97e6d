"""Generalized (temporary emigration) distance, removal and multinomial models."""

from __future__ import annotations

import math
import sys

import numpy as np
from scipy.stats import binom

from hierlik.detection import distprob
from hierlik.distr import n_density
from hierlik.pifun import pi_fun, removal_pi
from hierlik.utils import beta_sub, dmultinom, inv_logit

_DBL_MIN = sys.float_info.min


def _matrix(X):
    X = np.asarray(X, dtype=float)
    return X[:, None] if X.ndim == 1 else X


def _vector(x):
    return np.asarray(x, dtype=float).ravel()


def _linear(X, beta, offset=None):
    out = _matrix(X) @ beta
    return out if offset is None else out + _vector(offset)


def _abundance_probs(mixture, k_min, K, lam, log_alpha):
    return np.array(
        [n_density(mixture, k, lam, log_alpha) for k in range(k_min, K + 1)]
    )


def _availability(Xphi, beta, n_param, idx, M, T, offset=None):
    if T > 1:
        phi = np.asarray(
            inv_logit(_linear(Xphi, beta_sub(beta, n_param, idx), offset)), dtype=float
        )
    else:
        phi = np.ones(M * T)
    return phi.reshape(M, T)


def nll_gdistsamp(beta, n_param, y, mixture, keyfun, survey, Xlam, Xlam_offset, A,
                  Xphi, Xphi_offset, Xdet, Xdet_offset, db, a, u, w, k, lfac_k,
                  lfac_kmyt, kmyt, Kmin):
    """Negative log-likelihood of the generalized distance sampling model.

    ``y`` is site by occasion by distance class, flattened; ``u`` is class by
    site and ``a`` site by class; ``lfac_kmyt`` and ``kmyt`` are site by
    occasion by abundance. Parameter groups in ``n_param``: abundance,
    availability, detection, hazard scale, mixture.
    """
    beta = _vector(beta)
    Xlam = _matrix(Xlam)
    M = Xlam.shape[0]
    T = _matrix(Xphi).shape[0] // M
    y = _vector(y)
    J = y.size // M // T
    K = len(k) - 1

    lam = np.exp(_linear(Xlam, beta_sub(beta, n_param, 0), Xlam_offset)) * _vector(A)
    log_alpha = float(beta_sub(beta, n_param, 4)[0])
    phi = _availability(Xphi, beta, n_param, 1, M, T, Xphi_offset)
    if keyfun != "uniform":
        det_param = np.exp(_linear(Xdet, beta_sub(beta, n_param, 2), Xdet_offset))
    else:
        det_param = np.ones(M * T)
    det_param = det_param.reshape(M, T)
    scale = math.exp(beta_sub(beta, n_param, 3)[0])

    y = y[: M * T * J].reshape(M, T, J)
    a = _matrix(a)
    u = _matrix(u)
    lfac_k = _vector(lfac_k)
    lfac_kmyt = np.asarray(lfac_kmyt, dtype=float)
    kmyt = np.asarray(kmyt, dtype=float)

    loglik = 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        for i, k_min in enumerate(np.asarray(Kmin).astype(int)[:M]):
            mn = np.zeros((K + 1, T))
            for t in range(T):
                y_sub = y[i, t]
                if not np.isfinite(y_sub).all():
                    continue
                p = distprob(keyfun, det_param[i, t], scale, survey, db, w, a[i])
                p3 = p * u[:, i] * phi[i, t]
                mn[:, t] = (lfac_k - lfac_kmyt[i, t] + np.sum(y_sub * np.log(p3))
                            + kmyt[i, t] * np.log(1 - p3.sum()))
            f = _abundance_probs(mixture, k_min, K, lam[i], log_alpha)
            site_lp = float(f @ np.exp(mn[k_min:].sum(axis=1)))
            loglik += math.log(site_lp + _DBL_MIN)
    return -loglik


def nll_gdistremoval(beta, n_param, y_distance, y_removal, ysum, mixture, keyfun,
                     Xlam, A, Xphi, Xrem, Xdist, db, a, u, w, pl, K, Kmin):
    """Negative log-likelihood of the combined distance-removal model.

    Distance classes are point-survey classes. Parameter groups in
    ``n_param``: abundance, mixture, availability, distance, hazard scale,
    removal. ``pl`` gives the length of each removal period.
    """
    beta = _vector(beta)
    Xlam = _matrix(Xlam)
    M = Xlam.shape[0]
    T = _matrix(Xphi).shape[0] // M
    y_distance = _vector(y_distance)
    y_removal = _vector(y_removal)
    j_dist = y_distance.size // M // T
    j_rem = y_removal.size // M // T

    lam = np.exp(_linear(Xlam, beta_sub(beta, n_param, 0))) * _vector(A)
    log_alpha = float(beta_sub(beta, n_param, 1)[0])
    phi = _availability(Xphi, beta, n_param, 2, M, T)
    if keyfun != "uniform":
        dist_param = np.exp(_linear(Xdist, beta_sub(beta, n_param, 3)))
    else:
        dist_param = np.ones(M * T)
    dist_param = dist_param.reshape(M, T)
    scale = math.exp(beta_sub(beta, n_param, 4)[0])
    rem_p = np.asarray(
        inv_logit(_linear(Xrem, beta_sub(beta, n_param, 5))), dtype=float
    ).reshape(M, T, j_rem)

    yd = y_distance[: M * T * j_dist].reshape(M, T, j_dist)
    yr = y_removal[: M * T * j_rem].reshape(M, T, j_rem)
    ysum = np.atleast_2d(np.asarray(ysum, dtype=float))
    a = _matrix(a)
    u = _matrix(u)
    times = np.asarray(pl)

    loglik = 0.0
    for i, k_min in enumerate(np.asarray(Kmin).astype(int)[:M]):
        counts = np.arange(k_min, K + 1)
        f = _abundance_probs(mixture, k_min, K, lam[i], log_alpha)
        g = np.ones(counts.size)
        site_lp = 0.0
        for t in range(T):
            if not (np.isfinite(yd[i, t]).all() and np.isfinite(yr[i, t]).all()):
                continue
            cpd = distprob(keyfun, dist_param[i, t], scale, "point", db, w, a[i])
            cpd = cpd * u[:, i]
            pdist = cpd.sum()
            cpr = removal_pi(rem_p[i, t], times)
            prem = cpr.sum()
            site_lp += dmultinom(yd[i, t], cpd / pdist)
            site_lp += dmultinom(yr[i, t], cpr / prem)
            g = g * binom.pmf(ysum[i, t], counts, pdist * prem * phi[i, t])
        with np.errstate(divide="ignore"):
            site_lp += float(np.log(np.sum(f * g)))
        loglik += site_lp + _DBL_MIN
    return -loglik


def nll_gmultmix(beta, n_param, y, mixture, pi_fun_name, Xlam, Xlam_offset, Xphi,
                 Xphi_offset, Xdet, Xdet_offset, k, lfac_k, lfac_kmyt, kmyt, Kmin):
    """Negative log-likelihood of the generalized multinomial-mixture model.

    Parameter groups in ``n_param``: abundance, availability, detection,
    mixture. Once an occasion has no observed cells, the site's later
    occasions are not used.
    """
    beta = _vector(beta)
    Xlam = _matrix(Xlam)
    M = Xlam.shape[0]
    T = _matrix(Xphi).shape[0] // M
    J = _matrix(Xdet).shape[0] // (M * T)
    y = _vector(y)
    R = y.size // (M * T)
    K = len(k) - 1

    lam = np.exp(_linear(Xlam, beta_sub(beta, n_param, 0), Xlam_offset))
    log_alpha = float(beta_sub(beta, n_param, 3)[0])
    phi = _availability(Xphi, beta, n_param, 1, M, T, Xphi_offset)
    p = np.asarray(
        inv_logit(_linear(Xdet, beta_sub(beta, n_param, 2), Xdet_offset)), dtype=float
    ).reshape(M, T, J)
    y = y[: M * T * R].reshape(M, T, R)
    lfac_k = _vector(lfac_k)
    lfac_kmyt = np.asarray(lfac_kmyt, dtype=float)
    kmyt = np.asarray(kmyt, dtype=float)

    loglik = 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        for i, k_min in enumerate(np.asarray(Kmin).astype(int)[:M]):
            terms = np.zeros((K + 1, T))
            for t in range(T):
                observed = np.isfinite(y[i, t])
                if not observed.any():
                    break
                p3 = np.asarray(pi_fun(p[i, t], pi_fun_name)) * phi[i, t]
                ys, ps = y[i, t, observed], p3[observed]
                terms[:, t] = (lfac_k - lfac_kmyt[i, t] + np.sum(ys * np.log(ps))
                               + kmyt[i, t] * np.log(1 - ps.sum()))
            f = _abundance_probs(mixture, k_min, K, lam[i], log_alpha)
            loglik += math.log(float(f @ np.exp(terms[k_min:].sum(axis=1))))
    return -loglik