"""Shared pieces of the random-effects objectives: links, random effects,
distance key functions and pi functions selected by integer codes."""

from __future__ import annotations

import numpy as np
from scipy.stats import norm

from hierlik.detection import distprob
from hierlik.pifun import dep_double_pi, double_pi, removal_pi

_SURVEY_NAMES = {0: "line", 1: "point"}


def _survey(survey_type):
    try:
        return _SURVEY_NAMES[int(survey_type)]
    except KeyError:
        raise ValueError(f"invalid survey type: {survey_type!r}") from None


def cloglog(x):
    """Inverse complementary log-log link: 1 - exp(-exp(x))."""
    return 1.0 - np.exp(-np.exp(np.asarray(x, dtype=float)))


def add_ranef(par, b, Z, lsigma, n_group_vars, n_grouplevels):
    """Add random effects ``Z @ b`` to the linear predictor ``par``.

    Each grouping variable ``i`` has ``n_grouplevels[i]`` normal effects with
    standard deviation ``exp(lsigma[i])``. Returns the new predictor and the
    negative log density of ``b``, which belongs in the objective.
    """
    par = np.asarray(par, dtype=float).ravel()
    n_group_vars = int(n_group_vars)
    if n_group_vars == 0:
        return par, 0.0
    b = np.asarray(b, dtype=float).ravel()
    sigma = np.exp(np.asarray(lsigma, dtype=float).ravel())
    levels = np.asarray(n_grouplevels, dtype=np.int64).ravel()[:n_group_vars]
    if sigma.size < n_group_vars or levels.size < n_group_vars:
        raise ValueError("every grouping variable needs a sigma and a level count")
    scales = np.repeat(sigma[:n_group_vars], levels)
    if b.size < scales.size:
        raise ValueError(
            f"{scales.size} random effects are declared, b has {b.size}"
        )
    penalty = -float(norm.logpdf(b[: scales.size], 0.0, scales).sum())
    if Z is None:
        raise ValueError("random effects need a design matrix Z")
    if not hasattr(Z, "toarray"):
        Z = np.atleast_2d(np.asarray(Z, dtype=float))
    return par + np.asarray(Z @ b, dtype=float).ravel(), penalty


def key_halfnorm(sigma, survey_type, db, w, a):
    """Half-normal class probabilities; survey type 0 is line, 1 is point."""
    return distprob("halfnorm", sigma, 0.0, _survey(survey_type), db, w, a)


def key_exp(rate, survey_type, db, w, a):
    """Negative exponential class probabilities."""
    return distprob("exp", rate, 0.0, _survey(survey_type), db, w, a)


def key_hazard(shape, scale, survey_type, db, w, a):
    """Hazard rate class probabilities."""
    return distprob("hazard", shape, scale, _survey(survey_type), db, w, a)


def distance_prob(keyfun_type, param1, param2, survey_type, db, w, a, u):
    """Class probabilities weighted by ``u``.

    Key function codes: 0 uniform, 1 half-normal, 2 exponential, 3 hazard.
    """
    n_bins = np.asarray(db).size - 1
    keyfun_type = int(keyfun_type)
    if keyfun_type == 0:
        p = np.ones(n_bins)
    elif keyfun_type == 1:
        p = key_halfnorm(param1, survey_type, db, w, a)
    elif keyfun_type == 2:
        p = key_exp(param1, survey_type, db, w, a)
    elif keyfun_type == 3:
        p = key_hazard(param1, param2, survey_type, db, w, a)
    else:
        raise ValueError("invalid keyfun")
    return p * np.asarray(u, dtype=float).ravel()


_PIFUNS = {0: removal_pi, 1: double_pi, 2: dep_double_pi}


def pifun(p, pifun_type):
    """Cell probabilities: 0 removal, 1 double observer, 2 dependent double."""
    try:
        func = _PIFUNS[int(pifun_type)]
    except KeyError:
        raise ValueError("invalid pifun") from None
    return func(p)