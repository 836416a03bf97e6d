"""Cell probability ("pi") functions for multinomial observation designs."""

from __future__ import annotations

from itertools import accumulate

import numpy as np


def _removal_step(previous, pair):
    before, current = pair
    return previous / before * (1.0 - before) * current


def removal_pi(p, times=None):
    """Removal sampling cell probabilities.

    With ``times``, each per-interval probability is first expanded to an
    interval of that many unit periods.
    """
    probs = np.asarray(p, dtype=float)
    if probs.size == 0:
        raise ValueError("removal_pi needs at least one probability")
    if times is not None:
        probs = 1.0 - (1.0 - probs) ** np.asarray(times, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        steps = accumulate(
            zip(probs[:-1], probs[1:]), _removal_step, initial=probs[0]
        )
        return np.fromiter(steps, dtype=float, count=probs.size)


def double_pi(p):
    """Independent double observer cell probabilities (two observers)."""
    p1, p2 = float(p[0]), float(p[1])
    return np.array([p1 * (1.0 - p2), p2 * (1.0 - p1), p1 * p2])


def dep_double_pi(p):
    """Dependent double observer cell probabilities (two observers)."""
    p1, p2 = float(p[0]), float(p[1])
    return np.array([p1, p2 * (1.0 - p1)])


_PI_FUNCTIONS = {
    "removalPiFun": removal_pi,
    "doublePiFun": double_pi,
    "depDoublePiFun": dep_double_pi,
}


def pi_fun(p, name):
    """Apply the pi function called ``name`` to ``p``."""
    try:
        func = _PI_FUNCTIONS[name]
    except KeyError:
        raise ValueError(f"Invalid pifun type: {name!r}") from None
    return func(p)