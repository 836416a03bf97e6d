"""Multi-state (dynamic) occupancy likelihood."""

from __future__ import annotations

import numpy as np

from hierlik.utils import inv_logit


def _design(X):
    X = np.asarray(X, dtype=float)
    return X[:, None] if X.ndim == 1 else X


def _unknown(prm, what):
    return ValueError(f"Invalid parameterization passed to {what}: {prm!r}")


def get_param(dm_list, beta, ind):
    """Linear predictors, one column per design matrix.

    Row ``i`` of ``ind`` holds the first and last (inclusive) positions in
    ``beta`` used with design matrix ``i``.
    """
    if len(dm_list) == 0:
        raise ValueError("get_param needs at least one design matrix")
    beta = np.asarray(beta, dtype=float)
    bounds = np.asarray(ind, dtype=np.int64).reshape(-1, 2)
    columns = [
        _design(X) @ beta[start : stop + 1]
        for X, (start, stop) in zip(dm_list, bounds)
    ]
    return np.column_stack(columns)


def multinom_logit(lp):
    """Multinomial logit with the first category as reference."""
    e = np.exp(np.asarray(lp, dtype=float).ravel())
    total = e.sum() + 1
    return np.concatenate([[1 / total], e / total])


def get_psi(lp, prm):
    """Initial state probabilities, one row per site."""
    lp = np.atleast_2d(np.asarray(lp, dtype=float))
    if prm == "multinomial":
        e = np.exp(lp)
        total = e.sum(axis=1, keepdims=True) + 1
        return np.hstack([1 / total, e / total])
    if prm == "condbinom":
        raw = np.asarray(inv_logit(lp), dtype=float)
        occupied, second = raw[:, 0], raw[:, 1]
        return np.column_stack(
            [1 - occupied, occupied * (1 - second), occupied * second]
        )
    raise _unknown(prm, "get_psi")


def get_phi(S, lp, prm):
    """State transition matrix for one site and season."""
    lp = np.asarray(lp, dtype=float).ravel()
    if prm == "multinomial":
        out = np.ones((S, S))
        out[~np.eye(S, dtype=bool)] = np.exp(lp[: S * (S - 1)])
        return out / out.sum(axis=1, keepdims=True)
    if prm == "condbinom":
        probs = np.asarray(inv_logit(lp), dtype=float)
        first, second = probs[:S], probs[3 : 3 + S]
        out = np.zeros((S, S))
        out[:, 0] = 1 - first
        out[:, 1] = first * (1 - second)
        out[:, 2] = first * second
        return out
    raise _unknown(prm, "get_phi")


def get_sdp(S, lp, guide, prm):
    """State-dependent detection matrix: rows true state, columns observed."""
    lp = np.asarray(lp, dtype=float).ravel()
    out = np.zeros((S, S))
    if prm == "multinomial":
        cells = np.asarray(guide, dtype=np.int64).reshape(-1, 2)[: lp.size]
        out[cells[:, 0], cells[:, 1]] = np.exp(lp)
        out[:, 0] = 1.0
        return out / out.sum(axis=1, keepdims=True)
    if prm == "condbinom":
        probs = np.asarray(inv_logit(lp), dtype=float)
        out[0, 0] = 1.0
        out[1, 0] = 1 - probs[0]
        out[1, 1] = probs[0]
        out[2, 0] = 1 - probs[1]
        out[2, 1] = probs[1] * (1 - probs[2])
        out[2, 2] = probs[1] * probs[2]
        return out
    raise _unknown(prm, "get_sdp")


def get_ph(S, y, probs, navec, guide, prm):
    """Probability of a season's observations given each true state."""
    probs = np.atleast_2d(np.asarray(probs, dtype=float))
    out = np.ones(S)
    for value, row, missing in zip(np.ravel(y), probs, np.ravel(navec)):
        if not missing:
            out = out * get_sdp(S, row, guide, prm)[:, int(value)]
    return out


def nll_occu_ms(beta, y, dm_state, dm_phi, dm_det, sind, pind, dind, prm, S, T,
                J, N, naflag, guide):
    """Negative log-likelihood of the multi-state occupancy model.

    ``y`` and ``naflag`` have one row per site and ``T * J`` columns; the
    detection design matrices have ``N * T * J`` rows and the transition
    design matrices ``N * (T - 1)``.
    """
    beta = np.asarray(beta, dtype=float)
    psi = get_psi(get_param(dm_state, beta, sind), prm)
    p = get_param(dm_det, beta, dind).reshape(N, T, J, -1)
    if T > 1:
        raw_phi = get_param(dm_phi, beta, pind).reshape(N, T - 1, -1)
    y = np.atleast_2d(np.asarray(y, dtype=float))[:, : T * J].reshape(N, T, J)
    missing = np.atleast_2d(np.asarray(naflag, dtype=bool))[:, : T * J]
    missing = missing.reshape(N, T, J)

    lik = np.empty(N)
    for n in range(N):
        phi_prod = np.eye(S)
        for t in range(T - 1):
            ph_t = get_ph(S, y[n, t], p[n, t], missing[n, t], guide, prm)
            phi_prod = phi_prod @ (np.diag(ph_t) @ get_phi(S, raw_phi[n, t], prm))
        ph_last = get_ph(S, y[n, T - 1], p[n, T - 1], missing[n, T - 1], guide, prm)
        lik[n] = (psi[n] @ phi_prod) @ ph_last
    with np.errstate(divide="ignore"):
        return float(-np.log(lik).sum())