"""Abundance distributions used by the N-mixture style likelihoods."""

from __future__ import annotations

import math
from enum import IntEnum

from scipy.stats import nbinom, poisson

from hierlik.utils import inv_logit


class Mixture(IntEnum):
    """Latent abundance distribution."""

    P = 1
    NB = 2
    ZIP = 3


def dzip(x, lam, psi):
    """Zero-inflated Poisson probability of ``x`` with zero weight ``psi``."""
    if x == 0:
        return psi + (1.0 - psi) * math.exp(-lam)
    if x > 0:
        return (1.0 - psi) * float(poisson.pmf(x, lam))
    return 0.0


def _dnbinom_mu(x, size, mu):
    return float(nbinom.pmf(x, size, size / (size + mu)))


def n_density(mixture, x, lam, log_alpha):
    """Probability of abundance ``x`` under the chosen mixture.

    ``log_alpha`` is the log size for the negative binomial and the logit
    zero weight for the zero-inflated Poisson. Unknown mixtures give 0.
    """
    try:
        kind = Mixture(mixture)
    except ValueError:
        return 0.0
    if kind is Mixture.P:
        return float(poisson.pmf(x, lam))
    if kind is Mixture.NB:
        return _dnbinom_mu(x, math.exp(log_alpha), lam)
    return dzip(x, lam, inv_logit(log_alpha))