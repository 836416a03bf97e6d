"""Multi-species occupancy likelihood."""

from __future__ import annotations

import numpy as np


def _dense(matrix):
    if hasattr(matrix, "toarray"):
        return np.asarray(matrix.toarray(), dtype=float)
    return np.atleast_2d(np.asarray(matrix, dtype=float))


def nll_occu_multi_loglik(f_start, f_stop, dmF, dm_occ, beta, dm_det, d_start,
                          d_stop, y, y_start, y_stop, Iy0, z, fixed0):
    """Per-site log-likelihoods of the multi-species occupancy model.

    ``dmF`` maps natural parameters to the latent states listed in ``z``;
    natural parameters flagged in ``fixed0`` are held at zero.
    """
    beta = np.asarray(beta, dtype=float)
    dmF = _dense(dmF)
    y = np.atleast_2d(np.asarray(y, dtype=float))
    Iy0 = np.atleast_2d(np.asarray(Iy0, dtype=float))
    z = np.atleast_2d(np.asarray(z, dtype=float))
    n_sites = len(y_start)

    columns = []
    designs = iter(zip(dm_occ, f_start, f_stop))
    for fixed in fixed0:
        if fixed:
            columns.append(np.zeros(n_sites))
        else:
            X, start, stop = next(designs)
            columns.append(_dense(X) @ beta[start : stop + 1])
    f = np.column_stack(columns)
    psi = np.exp(f @ dmF)
    psi /= psi.sum(axis=1, keepdims=True)

    p = np.column_stack([
        1.0 / (1.0 + np.exp(-(_dense(X) @ beta[start : stop + 1])))
        for X, start, stop in zip(dm_det, d_start, d_stop)
    ])

    out = np.empty(n_sites)
    for i, (start, stop) in enumerate(zip(y_start, y_stop)):
        ysub = y[start : stop + 1]
        psub = p[start : stop + 1]
        cdp = np.exp((ysub * np.log(psub) + (1 - ysub) * np.log(1 - psub)).sum(axis=0))
        prd = np.prod(z * cdp + (1 - z) * Iy0[i], axis=1)
        out[i] = np.log(np.sum(psi[i] * prd))
    return out


def nll_occu_multi(f_start, f_stop, dmF, dm_occ, beta, dm_det, d_start, d_stop,
                   y, y_start, y_stop, Iy0, z, fixed0, penalty):
    """Negative log-likelihood with a ridge penalty on ``beta``."""
    loglik = nll_occu_multi_loglik(f_start, f_stop, dmF, dm_occ, beta, dm_det,
                                   d_start, d_stop, y, y_start, y_stop, Iy0, z,
                                   fixed0)
    pen = penalty * 0.5 * float(np.sum(np.asarray(beta, dtype=float) ** 2))
    return -(float(loglik.sum()) - pen)