"""Multinomial-Poisson mixture likelihood."""

from __future__ import annotations

import numpy as np
from scipy.stats import poisson

from hierlik.pifun import pi_fun
from hierlik.utils import inv_logit


def nll_multinom_pois(beta, pi_fun_name, Xlam, Xlam_offset, Xdet, Xdet_offset,
                      y, navec, nP, nAP):
    """Negative log-likelihood of the multinomial-Poisson model.

    The first ``nAP`` coefficients are for abundance, the rest up to ``nP``
    for detection. ``navec`` flags missing observations.
    """
    beta = np.asarray(beta, dtype=float)
    Xlam = np.atleast_2d(np.asarray(Xlam, dtype=float))
    Xdet = np.atleast_2d(np.asarray(Xdet, dtype=float))
    n_sites = Xlam.shape[0]
    lam = np.exp(Xlam @ beta[:nAP] + np.asarray(Xlam_offset, dtype=float))
    p = np.asarray(
        inv_logit(Xdet @ beta[nAP:nP] + np.asarray(Xdet_offset, dtype=float)),
        dtype=float,
    ).reshape(n_sites, -1)
    y = np.asarray(y, dtype=float).reshape(n_sites, -1)
    missing = np.asarray(navec, dtype=bool).reshape(n_sites, -1)
    total = 0.0
    for lam_i, p_i, y_i, na_i in zip(lam, p, y, missing):
        if na_i.all():
            continue
        pi_lam = np.asarray(pi_fun(p_i, pi_fun_name)) * lam_i
        keep = ~na_i
        total += poisson.logpmf(y_i[keep], pi_lam[keep]).sum()
    return float(-total)