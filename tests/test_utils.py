import itertools

import numpy as np
import pytest
from scipy.stats import multinomial

from hierlik.utils import beta_sub, dmultinom, inv_logit


def test_inv_logit_at_zero():
    assert inv_logit(0.0) == pytest.approx(0.5)


def test_inv_logit_symmetry_on_arrays():
    x = np.linspace(-6, 6, 13)
    assert np.allclose(inv_logit(x) + inv_logit(-x), 1.0)
    assert np.all(np.diff(inv_logit(x)) > 0)


def test_inv_logit_extremes_stay_in_unit_interval():
    out = inv_logit(np.array([-1000.0, 1000.0]))
    assert out[0] == pytest.approx(0.0)
    assert out[1] == pytest.approx(1.0)


def test_beta_sub_blocks():
    beta = [10.0, 11.0, 12.0, 13.0, 14.0]
    n_param = [2, 0, 3]
    assert np.array_equal(beta_sub(beta, n_param, 0), [10.0, 11.0])
    assert np.array_equal(beta_sub(beta, n_param, 1), [0.0])
    assert np.array_equal(beta_sub(beta, n_param, 2), [12.0, 13.0, 14.0])


def test_beta_sub_out_of_range():
    with pytest.raises(IndexError):
        beta_sub([1.0, 2.0], [1, 3], 1)


def test_dmultinom_matches_scipy():
    x = np.array([2.0, 0.0, 3.0])
    prob = np.array([0.2, 0.3, 0.5])
    assert dmultinom(x, prob) == pytest.approx(multinomial.logpmf(x, 5, prob))


def test_dmultinom_sums_to_one_over_outcomes():
    prob = np.array([0.1, 0.6, 0.3])
    total = 0.0
    for a, b in itertools.product(range(4), repeat=2):
        c = 3 - a - b
        if c >= 0:
            total += np.exp(dmultinom([a, b, c], prob))
    assert total == pytest.approx(1.0)