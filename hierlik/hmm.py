"""Detection vectors for the hidden Markov (multi-state) occupancy model."""

from __future__ import annotations

import math

import numpy as np

_MISSING = 99


def _factors_two(y, mp):
    e0 = math.exp(mp[0])
    den = 1 + e0
    if y == 0:
        return np.array([1.0, 1 / den])
    return np.array([0.0, e0 / den])


def _factors_four(y, mp):
    e = np.exp(np.asarray(mp[:6], dtype=float))
    den2 = 1 + e[0]
    den3 = 1 + e[1] + e[2]
    den4 = 1 + e[3] + e[4] + e[5]
    table = {
        0: (1.0, e[0] / den2, e[1] / den3, e[3] / den4),
        1: (0.0, 1 / den2, e[2] / den3, e[4] / den4),
        2: (0.0, 0.0, 1 / den3, e[5] / den4),
        3: (0.0, 0.0, 0.0, 1 / den4),
    }
    return np.array(table.get(y, (1.0, 1.0, 1.0, 1.0)))


_FACTORS = {2: _factors_two, 4: _factors_four}


def single_det_vec(y, mp, K):
    """Probability of observation ``y`` given each of the K+1 true states.

    Only two and four states are modelled; other sizes give ones.
    """
    n_states = K + 1
    factor_fn = _FACTORS.get(n_states)
    if factor_fn is None:
        return np.ones(n_states)
    return factor_fn(int(y), np.asarray(mp, dtype=float).ravel())


def det_vecs(y, mp, J_i, t, K):
    """Detection vectors for every site at zero-based occasion ``t``.

    ``y`` has shape (sites, occasions, visits), ``mp`` has shape
    (params, visits, occasions, sites), ``J_i`` gives the number of visits per
    site. Observations equal to 99 are missing. Returns (sites, K+1).
    """
    n_states = K + 1
    factor_fn = _FACTORS.get(n_states)
    if factor_fn is None:
        raise ValueError(f"unsupported number of states: {n_states}")
    obs = np.asarray(y)
    params = np.asarray(mp, dtype=float)
    n_sites = params.shape[3]
    out = np.ones((n_sites, n_states))
    for site, n_visits in enumerate(np.asarray(J_i, dtype=np.int64)[:n_sites]):
        for visit in range(n_visits):
            value = int(obs[site, t, visit])
            if value != _MISSING:
                out[site] *= factor_fn(value, params[:, visit, t, site])
    return out