"""Random-effects objectives for N-mixture and multinomial-Poisson models."""

from __future__ import annotations

import math
import sys

import numpy as np
from scipy.stats import binom, nbinom, poisson

from hierlik.distr import dzip
from hierlik.tmb_common import add_ranef, pifun
from hierlik.utils import inv_logit

_DBL_MIN = sys.float_info.min


def _design(X):
    X = np.asarray(X, dtype=float)
    return X[:, None] if X.ndim == 1 else X


def _vector(x):
    return np.asarray(x, dtype=float).ravel()


def _predictor(data, parameters, name):
    lp = _design(data[f"X_{name}"]) @ _vector(parameters[f"beta_{name}"])
    offset = data.get(f"offset_{name}")
    if offset is not None:
        lp = lp + _vector(offset)
    return add_ranef(
        lp,
        parameters.get(f"b_{name}", ()),
        data.get(f"Z_{name}"),
        parameters.get(f"lsigma_{name}", ()),
        data.get(f"n_group_vars_{name}", 0),
        data.get(f"n_grouplevels_{name}", ()),
    )


def _abundance(mixture, counts, lam, log_alpha):
    if mixture == 2:
        alpha = math.exp(log_alpha)
        return nbinom.pmf(counts, alpha, alpha / (alpha + lam))
    if mixture == 3:
        zero_weight = inv_logit(log_alpha)
        return np.array([dzip(int(k), lam, zero_weight) for k in counts])
    return poisson.pmf(counts, lam)


def lp_site_pcount(y, mixture, lam, p, log_alpha, K, Kmin):
    """Log-likelihood of one site's counts, summed over abundance Kmin..K.

    Mixture codes: 2 negative binomial, 3 zero-inflated Poisson, anything
    else Poisson. Missing (NaN) counts are skipped.
    """
    y = _vector(y)
    p = _vector(p)
    observed = ~np.isnan(y)
    ys, ps = y[observed], p[: y.size][observed]
    counts = np.arange(int(Kmin), int(K) + 1)
    f = _abundance(int(mixture), counts, lam, log_alpha)
    g = binom.logpmf(ys[None, :], counts[:, None], ps[None, :]).sum(axis=1)
    return float(np.log(np.sum(f * np.exp(g)) + _DBL_MIN))


def tmb_pcount(data, parameters):
    """Objective of the N-mixture model with optional random effects.

    ``data`` holds ``y`` (sites by visits), ``K``, ``Kmin``, ``mixture`` and
    the ``state``/``det`` design entries; ``beta_scale`` carries the log
    dispersion or logit zero weight for mixtures 2 and 3.
    """
    y = np.atleast_2d(np.asarray(data["y"], dtype=float))
    K = int(data["K"])
    k_min = np.asarray(data["Kmin"], dtype=np.int64).ravel()
    mixture = int(data["mixture"])
    lam_lp, pen_lam = _predictor(data, parameters, "state")
    lam = np.exp(lam_lp)
    p_lp, pen_p = _predictor(data, parameters, "det")
    p = np.asarray(inv_logit(p_lp), dtype=float).ravel()
    scale = float(_vector(parameters["beta_scale"])[0]) if mixture > 1 else 0.0

    n_visits = y.shape[1]
    loglik = pen_lam + pen_p
    for i, row in enumerate(y):
        psub = p[i * n_visits : (i + 1) * n_visits]
        loglik -= lp_site_pcount(row, mixture, lam[i], psub, scale, K, k_min[i])
    return float(loglik)


def tmb_multinom_pois(data, parameters):
    """Objective of the multinomial-Poisson model with optional random effects.

    ``pifun_type`` selects the pi function (see :func:`pifun`); the detection
    design has one row per detection probability, site by site.
    """
    y = np.atleast_2d(np.asarray(data["y"], dtype=float))
    n_sites, n_cells = y.shape
    pifun_type = int(data["pifun_type"])
    lam_lp, pen_lam = _predictor(data, parameters, "state")
    lam = np.exp(lam_lp)
    p_lp, pen_p = _predictor(data, parameters, "det")
    p = np.asarray(inv_logit(p_lp), dtype=float).ravel()
    per_site = p.size // n_sites

    loglik = pen_lam + pen_p
    for i, row in enumerate(y):
        psub = p[i * per_site : (i + 1) * per_site]
        pi_lam = np.asarray(pifun(psub, pifun_type), dtype=float)[:n_cells] * lam[i]
        keep = ~np.isnan(row)
        loglik -= float(poisson.logpmf(row[keep], pi_lam[keep]).sum())
    return float(loglik)