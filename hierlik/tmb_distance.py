"""Random-effects objectives for distance sampling and combined distance-removal."""

from __future__ import annotations

import math

import numpy as np
from scipy.stats import binom, nbinom, poisson

from hierlik.distr import dzip
from hierlik.pifun import removal_pi
from hierlik.tmb_common import add_ranef, distance_prob
from hierlik.utils import dmultinom, inv_logit

_POINT = 1


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


def _hazard_scale(keyfun_type, parameters):
    if keyfun_type == 3:
        return math.exp(_vector(parameters["beta_scale"])[0])
    return 0.0


def tmb_distsamp(data, parameters):
    """Objective of the distance sampling model with optional random effects.

    ``data`` holds ``y`` (sites by distance classes), ``survey_type``
    (0 line, 1 point), ``keyfun_type`` (0 uniform, 1 half-normal,
    2 exponential, 3 hazard), ``A``, ``db``, ``a`` and ``u`` (sites by
    classes), ``w``, and the ``state``/``det`` design entries. A site with
    any missing count is left out.
    """
    y = np.atleast_2d(np.asarray(data["y"], dtype=float))
    n_sites, n_classes = y.shape
    survey_type = int(data["survey_type"])
    keyfun_type = int(data["keyfun_type"])
    scale = _hazard_scale(keyfun_type, parameters)

    lam_lp, loglik = _predictor(data, parameters, "state")
    lam = np.exp(lam_lp) * _vector(data["A"])
    if keyfun_type > 0:
        dp_lp, pen_dp = _predictor(data, parameters, "det")
        dp = np.exp(dp_lp)
        loglik += pen_dp
    else:
        dp = np.ones(n_sites)

    db = _vector(data["db"])
    w = _vector(data["w"])
    a = np.atleast_2d(np.asarray(data["a"], dtype=float))
    u = np.atleast_2d(np.asarray(data["u"], dtype=float))

    for i, row in enumerate(y):
        cp = distance_prob(keyfun_type, dp[i], scale, survey_type, db, w, a[i], u[i])
        if np.isnan(row).any():
            continue
        loglik -= float(poisson.logpmf(row, lam[i] * cp[:n_classes]).sum())
    return float(loglik)


def _abundance(mixture, counts, lam, log_alpha):
    if mixture == 2:
        alpha = math.exp(log_alpha)
        return nbinom.pmf(counts, alpha, alpha / (alpha + lam))
    if mixture == 3:
        # The zero weight is the inverse logit of zero, whatever beta_alpha holds.
        zero_weight = inv_logit(0.0)
        return np.array([dzip(int(k), lam, zero_weight) for k in counts])
    return poisson.pmf(counts, lam)


def tmb_gdistremoval(data, parameters):
    """Objective of the combined distance-removal model with random effects.

    ``y_dist`` and ``y_rem`` are flattened site by period by class; ``y_sum``
    is sites by periods. Distance classes are point-survey classes; ``u`` and
    ``a`` are sites by classes and ``per_len`` gives the removal period
    lengths. Mixture codes: 2 negative binomial, 3 zero-inflated Poisson
    (with a zero weight of one half), anything else Poisson. A period with a
    missing count is left out.
    """
    y_dist = _vector(data["y_dist"])
    y_rem = _vector(data["y_rem"])
    y_sum = np.atleast_2d(np.asarray(data["y_sum"], dtype=float))
    mixture = int(data["mixture"])
    K = int(data["K"])
    k_min = np.asarray(data["Kmin"], dtype=np.int64).ravel()
    T = int(data["T"])
    keyfun_type = int(data["keyfun_type"])

    lam_lp, loglik = _predictor(data, parameters, "lambda")
    lam = np.exp(lam_lp) * _vector(data["A"])
    n_sites = lam.size
    j_dist = y_dist.size // n_sites // T
    j_rem = y_rem.size // n_sites // T

    log_alpha = 0.0
    if mixture > 1:
        log_alpha = float(_vector(parameters["beta_alpha"])[0])

    if T > 1:
        phi_lp, pen_phi = _predictor(data, parameters, "phi")
        phi = np.asarray(inv_logit(phi_lp), dtype=float).ravel()
        loglik += pen_phi
    else:
        phi = np.ones(n_sites * T)

    if keyfun_type > 0:
        dp_lp, pen_dp = _predictor(data, parameters, "dist")
        dp = np.exp(dp_lp)
        loglik += pen_dp
    else:
        dp = np.ones(n_sites * T)
    scale = _hazard_scale(keyfun_type, parameters)

    rp_lp, pen_rem = _predictor(data, parameters, "rem")
    rp = np.asarray(inv_logit(rp_lp), dtype=float).ravel()
    loglik += pen_rem

    db = _vector(data["db"])
    w = _vector(data["w"])
    a = np.atleast_2d(np.asarray(data["a"], dtype=float))
    u = np.atleast_2d(np.asarray(data["u"], dtype=float))
    per_len = np.asarray(data["per_len"])

    with np.errstate(divide="ignore", invalid="ignore"):
        for i in range(n_sites):
            counts = np.arange(int(k_min[i]), K + 1)
            f = _abundance(mixture, counts, lam[i], log_alpha)
            g = np.ones(counts.size)
            site_lp = 0.0
            for t in range(T):
                period = i * T + t
                yd = y_dist[period * j_dist : (period + 1) * j_dist]
                yr = y_rem[period * j_rem : (period + 1) * j_rem]
                if np.isnan(yd).any() or np.isnan(yr).any():
                    continue
                cpd = distance_prob(keyfun_type, dp[period], scale, _POINT, db, w,
                                    a[i], u[i])
                pdist = float(cpd.sum())
                site_lp += dmultinom(yd, cpd / pdist)
                cpr = removal_pi(rp[period * j_rem : (period + 1) * j_rem], per_len)
                prem = float(cpr.sum())
                site_lp += dmultinom(yr, cpr / prem)
                g = g * binom.pmf(y_sum[i, t], counts, pdist * prem * phi[period])
            site_lp += float(np.log(np.sum(f * g)))
            loglik -= site_lp
    return float(loglik)