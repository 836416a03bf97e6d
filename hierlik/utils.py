"""Small numeric helpers shared by the likelihood functions."""

from __future__ import annotations

import numpy as np
from scipy.special import gammaln


def inv_logit(x):
    """Inverse logit; a float for scalar input, an array otherwise."""
    arr = np.asarray(x, dtype=float)
    with np.errstate(over="ignore"):
        out = 1.0 / (1.0 + np.exp(-arr))
    return float(out) if out.ndim == 0 else out


def beta_sub(beta, n_param, idx):
    """Return the block of ``beta`` belonging to parameter group ``idx``.

    ``n_param`` holds the number of coefficients of each group, in order.
    An empty group yields a single zero.
    """
    beta = np.asarray(beta, dtype=float)
    counts = np.asarray(n_param, dtype=np.int64)
    count = int(counts[idx])
    if count == 0:
        return np.zeros(1)
    end = int(counts[: idx + 1].sum())
    if end > beta.size:
        raise IndexError(
            f"parameter group {idx} needs {end} coefficients, beta has {beta.size}"
        )
    return beta[end - count : end].copy()


def dmultinom(x, prob):
    """Log probability of counts ``x`` under a multinomial with ``prob``."""
    counts = np.asarray(x, dtype=float)
    probs = np.asarray(prob, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        terms = counts * np.log(probs) - gammaln(counts + 1)
    return float(gammaln(counts.sum() + 1) + terms.sum())