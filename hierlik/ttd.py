"""Time-to-detection likelihoods for N-mixture and dynamic occupancy models."""

from __future__ import annotations

import math

import numpy as np
from scipy.stats import nbinom, poisson


def _block(beta, bounds):
    start, stop = int(bounds[0]), int(bounds[1])
    return beta[start : stop + 1]


def _event_density(lam, y, delta, tdist, shape):
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        if tdist == "weibull":
            return (shape * lam * (lam * y) ** (shape - 1)) ** delta * np.exp(
                -((lam * y) ** shape)
            )
        return lam**delta * np.exp(-lam * y)


def nll_nmix_ttd(beta, y, delta, W, V, pinds, mixture, tdist, N, J, K, naflag):
    """Negative log-likelihood of the N-mixture time-to-detection model."""
    beta = np.asarray(beta, dtype=float)
    pinds = np.asarray(pinds, dtype=np.int64)
    lam_n = np.exp(np.atleast_2d(np.asarray(W, float)) @ _block(beta, pinds[0]))
    lam_p = np.exp(np.atleast_2d(np.asarray(V, float)) @ _block(beta, pinds[1]))
    alpha = math.exp(beta[pinds[2, 0]]) if mixture == "NB" else 1.0
    shape = math.exp(beta[pinds[3, 0]]) if tdist == "weibull" else 1.0
    counts = np.arange(K + 1)
    y = np.asarray(y, dtype=float).reshape(N, J)
    delta = np.asarray(delta, dtype=float).reshape(N, J)
    missing = np.asarray(naflag, dtype=bool).reshape(N, J)
    lam_p = lam_p.reshape(N, J)

    loglik = 0.0
    for n in range(N):
        if mixture == "P":
            p_k = poisson.pmf(counts, lam_n[n])
        elif mixture == "NB":
            p_k = nbinom.pmf(counts, alpha, alpha / (alpha + lam_n[n]))
        else:
            raise ValueError(f"unknown mixture: {mixture!r}")
        keep = ~missing[n]
        d, lam, ys = delta[n, keep], lam_p[n, keep], y[n, keep]
        p_y = np.empty(K + 1)
        p_y[0] = 1.0 - float(np.any(d))
        for k in range(1, K + 1):
            p_y[k] = np.prod(_event_density(lam * k, ys, d, tdist, shape))
        loglik += math.log(float(p_k @ p_y))
    return -loglik


def _py(e_lamt, delta, missing):
    keep = ~missing
    return np.array([1.0 - float(np.any(delta[keep])), np.prod(e_lamt[keep])])


def nll_occu_ttd(beta, y, delta, W, V, Xgam, Xeps, pind, dind, cind, eind, lpsi,
                 tdist, N, T, J, naflag):
    """Negative log-likelihood of the (dynamic) time-to-detection occupancy model.

    With a Weibull ``tdist`` the last coefficient is the log shape.
    """
    beta = np.asarray(beta, dtype=float)
    raw_psi = np.atleast_2d(np.asarray(W, float)) @ _block(beta, pind)
    if lpsi == "cloglog":
        raw_psi = 1 - np.exp(-np.exp(raw_psi))
    else:
        raw_psi = 1 / (1 + np.exp(-raw_psi))
    psi = np.column_stack([1 - raw_psi, raw_psi])
    lam = np.exp(np.atleast_2d(np.asarray(V, float)) @ _block(beta, dind))
    shape = math.exp(beta[-1]) if tdist == "weibull" else 1.0
    y = np.asarray(y, dtype=float)
    delta = np.asarray(delta, dtype=float)
    e_lamt = _event_density(lam, y, delta, tdist, shape).reshape(N, T, J)
    delta = delta.reshape(N, T, J)
    missing = np.asarray(naflag, dtype=bool).reshape(N, T, J)

    if T > 1:
        col = 1 / (1 + np.exp(-(np.atleast_2d(np.asarray(Xgam, float))
                                @ _block(beta, cind))))
        ext = 1 / (1 + np.exp(-(np.atleast_2d(np.asarray(Xeps, float))
                                @ _block(beta, eind))))
        phi = np.stack([1 - col, col, ext, 1 - ext], axis=1).reshape(N, T - 1, 2, 2)

    total = 0.0
    for n in range(N):
        phi_prod = np.eye(2)
        for t in range(T - 1):
            py_t = _py(e_lamt[n, t], delta[n, t], missing[n, t])
            phi_prod = phi_prod @ (np.diag(py_t) @ phi[n, t])
        py_last = _py(e_lamt[n, -1], delta[n, -1], missing[n, -1])
        total += math.log(float((psi[n] @ phi_prod) @ py_last))
    return -total