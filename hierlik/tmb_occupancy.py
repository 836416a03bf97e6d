"""Random-effects objectives for single-season and multi-scale occupancy."""

from __future__ import annotations

import numpy as np
from scipy.stats import binom

from hierlik.tmb_common import add_ranef, cloglog
from hierlik.utils import inv_logit


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


def tmb_occu(data, parameters):
    """Objective of the occupancy model with optional random effects.

    ``data`` holds ``y`` (sites by visits, NaN for missing), ``no_detect``,
    ``link`` (1 for cloglog) and the ``X_``/``Z_``/``offset_`` and grouping
    entries for ``state`` and ``det``. Missing visits do not consume a
    detection probability: later visits of the site use the next one.
    """
    y = np.atleast_2d(np.asarray(data["y"], dtype=float))
    no_detect = _vector(data["no_detect"])
    psi_lp, pen_psi = _predictor(data, parameters, "state")
    if int(data.get("link", 0)) == 1:
        psi = cloglog(psi_lp)
    else:
        psi = np.asarray(inv_logit(psi_lp), dtype=float).ravel()
    p_lp, pen_p = _predictor(data, parameters, "det")
    p = np.asarray(inv_logit(p_lp), dtype=float).ravel()

    n_visits = y.shape[1]
    loglik = pen_psi + pen_p
    with np.errstate(divide="ignore", invalid="ignore"):
        for i, row in enumerate(y):
            observed = row[~np.isnan(row)]
            probs = p[i * n_visits : i * n_visits + observed.size]
            cp = float(np.prod(probs**observed * (1 - probs) ** (1 - observed)))
            loglik -= float(np.log(psi[i] * cp + (1 - psi[i]) * no_detect[i]))
    return float(loglik)


def _obs_lp(ys, ps):
    keep = ~np.isnan(ys)
    return float(binom.logpmf(ys[keep], 1, ps[keep]).sum())


def tmb_goccu(data, parameters):
    """Objective of the multi-scale occupancy model.

    ``y`` has ``T * J`` columns per site, session by session. Sites flagged
    in ``known_present`` use ``known_available``; the others are summed over
    the ``n_possible`` availability patterns in ``alpha_potential``. With
    ``link`` 1 the occupancy predictor is used as a probability unchanged.
    """
    y = np.atleast_2d(np.asarray(data["y"], dtype=float))
    T = int(data["T"])
    n_visits = y.shape[1] // T
    psi = _design(data["Xpsi"]) @ _vector(parameters["beta_psi"])
    if int(data.get("link", 0)) != 1:
        psi = np.asarray(inv_logit(psi), dtype=float).ravel()
    phi = np.asarray(
        inv_logit(_design(data["Xphi"]) @ _vector(parameters["beta_phi"])), dtype=float
    ).ravel()
    p = np.asarray(
        inv_logit(_design(data["Xp"]) @ _vector(parameters["beta_p"])), dtype=float
    ).ravel()

    n_possible = int(data["n_possible"])
    alpha_potential = np.atleast_2d(np.asarray(data["alpha_potential"]))
    known_present = _vector(data["known_present"])
    known_available = np.atleast_2d(np.asarray(data["known_available"]))
    missing_session = np.atleast_2d(np.asarray(data["missing_session"]))

    loglik = 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        for i, ysite in enumerate(y):
            psite = p[i * T * n_visits : (i + 1) * T * n_visits]
            sessions = [
                (
                    t,
                    phi[i * T + t],
                    _obs_lp(
                        ysite[t * n_visits : (t + 1) * n_visits],
                        psite[t * n_visits : (t + 1) * n_visits],
                    ),
                )
                for t in range(T)
                if missing_session[i, t] != 1
            ]
            if known_present[i] == 1:
                for t, phi_t, obs in sessions:
                    lp = np.log(phi_t) + obs
                    if known_available[i, t] == 1:
                        loglik += lp
                    else:
                        loglik += np.log(np.exp(lp) + (1 - phi_t))
                loglik += np.log(psi[i])
            else:
                total = 0.0
                for k in range(n_possible):
                    lp = np.log(psi[i])
                    for t, phi_t, obs in sessions:
                        if alpha_potential[k, t] == 0:
                            lp += np.log(1 - phi_t)
                        else:
                            lp += np.log(phi_t) + obs
                    total += np.exp(lp)
                total += 1 - psi[i]
                loglik += np.log(total)
    return float(-loglik)