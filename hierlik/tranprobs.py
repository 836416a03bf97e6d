"""Transition probability matrices for open-population abundance models."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.stats import binom, poisson


@dataclass(frozen=True)
class LikTrans:
    """Index lookups for the constant (survival + recruitment) model.

    ``I`` lists (N_prev, N_next) pairs, ``I1`` (survivors, N_prev) pairs;
    ``Ib[s]`` indexes rows of ``I1`` and ``Ip[s]`` recruit counts for row
    ``s`` of ``I``.
    """

    I: np.ndarray
    I1: np.ndarray
    Ib: tuple
    Ip: tuple


def get_lik_trans(I, I1):
    """Build the lookup tables used by :func:`tp_constant`."""
    states = np.asarray(I, dtype=np.int64).reshape(-1, 2)
    survivals = np.asarray(I1, dtype=np.int64).reshape(-1, 2)
    ib, ip = [], []
    for prev, nxt in states:
        min_i = min(prev, nxt)
        ib.append(
            np.flatnonzero((survivals[:, 0] <= min_i) & (survivals[:, 1] == prev))
        )
        ip.append(nxt - np.arange(min_i + 1))
    return LikTrans(states, survivals, tuple(ib), tuple(ip))


def tp_constant(lk, trans, gam, om):
    """Constant model: binomial survival plus Poisson recruitment.

    Entries are filled in column-major order following the rows of ``trans.I``.
    """
    log_pois = poisson.logpmf(np.arange(lk), gam)
    log_bin = binom.logpmf(trans.I1[:, 0], trans.I1[:, 1], om)
    flat = np.zeros(lk * lk)
    for s, (ib, ip) in enumerate(zip(trans.Ib, trans.Ip)):
        flat[s] += np.exp(log_bin[ib] + log_pois[ip]).sum()
    return flat.reshape((lk, lk), order="F")


def tp_autoreg(lk, gam, om, imm):
    """Autoregressive model with immigration; rows index the earlier state."""
    out = np.zeros((lk, lk))
    n2 = np.arange(lk)[None, :]
    for n1 in range(lk):
        c = np.arange(n1 + 1)[:, None]
        terms = binom.logpmf(c, n1, om) + poisson.logpmf(n2 - c, gam * n1 + imm)
        out[n1] = np.exp(terms).sum(axis=0)
    return out


def _poisson_rows(means, lk):
    return poisson.pmf(np.arange(lk)[None, :], np.asarray(means)[:, None])


def tp_trend(lk, gam, imm):
    """Exponential trend model with immigration."""
    n1 = np.arange(lk, dtype=float)
    return _poisson_rows(n1 * gam + imm, lk)


def tp_ricker(lk, gam, om, imm):
    """Ricker model with immigration."""
    n1 = np.arange(lk, dtype=float)
    return _poisson_rows(n1 * np.exp(gam * (1 - n1 / om)) + imm, lk)


def tp_gompertz(lk, gam, om, imm):
    """Gompertz model with immigration."""
    n1 = np.arange(lk, dtype=float)
    means = n1 * np.exp(gam * (1 - np.log(n1 + 1) / np.log(om + 1))) + imm
    return _poisson_rows(means, lk)


def transition_matrix(dynamics, lk, gam, om, imm=0.0, trans=None):
    """Transition matrix for the named population dynamics."""
    if dynamics in ("constant", "notrend"):
        if trans is None:
            raise ValueError(f"{dynamics!r} dynamics need LikTrans lookups")
        return tp_constant(lk, trans, gam, om)
    if dynamics == "autoreg":
        return tp_autoreg(lk, gam, om, imm)
    if dynamics == "trend":
        return tp_trend(lk, gam, imm)
    if dynamics == "ricker":
        return tp_ricker(lk, gam, om, imm)
    if dynamics == "gompertz":
        return tp_gompertz(lk, gam, om, imm)
    raise ValueError(f"unknown dynamics: {dynamics!r}")