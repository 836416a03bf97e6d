import math

import numpy as np
import pytest
from scipy.special import gammaln
from scipy.stats import multinomial, poisson

from hierlik.generalized import nll_gdistremoval, nll_gdistsamp, nll_gmultmix


def _cubes(y_blocks, K):
    k = np.arange(K + 1)
    totals = np.nansum(y_blocks, axis=2)
    kmyt = k[None, None, :] - totals[:, :, None]
    lfac_kmyt = gammaln(np.maximum(kmyt, 0) + 1)
    kmin = totals.max(axis=1).astype(int)
    return k, gammaln(k + 1), lfac_kmyt, kmyt, kmin


def _gdistsamp(y, keyfun, survey, beta, n_param, u, K=60):
    y = np.asarray(y, dtype=float)
    M, J = y.shape
    k, lfac_k, lfac_kmyt, kmyt, kmin = _cubes(y[:, None, :], K)
    ones = np.ones((M, 1))
    return nll_gdistsamp(
        beta, n_param, y.ravel(), 1, keyfun, survey,
        ones, np.zeros(M), np.full(M, 1.5), ones, np.zeros(M), ones, np.zeros(M),
        np.array([0.0, 10.0, 20.0, 30.0]), np.ones((M, J)), u,
        np.full(J, 10.0), k, lfac_k, lfac_kmyt, kmyt, kmin,
    )


def test_gdistsamp_poisson_thinning_identity():
    y = np.array([[2.0, 1.0, 0.0]])
    u = np.array([[0.3], [0.2], [0.1]])
    nll = _gdistsamp(y, "uniform", "line", [math.log(2.0)], [1, 0, 0, 0, 0], u)
    expected_rate = 2.0 * 1.5 * u[:, 0]
    expected = -(poisson.logpmf(y[0], expected_rate).sum() + gammaln(y[0] + 1).sum())
    assert nll == pytest.approx(expected, rel=1e-9)


def test_gdistsamp_all_missing_is_near_zero():
    y = np.full((1, 3), np.nan)
    u = np.array([[0.3], [0.2], [0.1]])
    nll = _gdistsamp(y, "uniform", "line", [math.log(2.0)], [1, 0, 0, 0, 0], u)
    assert nll == pytest.approx(0.0, abs=1e-10)


def test_gdistsamp_sites_add_up():
    beta = [math.log(2.0), math.log(15.0)]
    n_param = [1, 0, 1, 0, 0]
    y1 = np.array([[1.0, 2.0, 0.0]])
    y2 = np.array([[0.0, 1.0, 1.0]])
    u1 = np.full((3, 1), 0.3)
    separate = (_gdistsamp(y1, "halfnorm", "line", beta, n_param, u1)
                + _gdistsamp(y2, "halfnorm", "line", beta, n_param, u1))
    both = _gdistsamp(np.vstack([y1, y2]), "halfnorm", "line", beta, n_param,
                      np.full((3, 2), 0.3))
    assert both == pytest.approx(separate, rel=1e-9)


def _gdistremoval(yd, yr, keyfun="uniform", K=80):
    ysum = np.array([[np.nansum(yd)]])
    return nll_gdistremoval(
        [math.log(5.0), 0.0], [1, 0, 0, 0, 0, 1], yd, yr, ysum, 1, keyfun,
        np.ones((1, 1)), [1.0], np.ones((1, 1)), np.ones((2, 1)), np.ones((1, 1)),
        np.array([0.0, 1.0, 2.0]), np.ones((1, 2)), np.array([[0.4], [0.3]]),
        np.ones(2), np.array([1, 1]), K, np.array([0]),
    )


def test_gdistremoval_matches_multinomial_and_thinned_poisson():
    yd = np.array([3.0, 1.0])
    yr = np.array([2.0, 2.0])
    cpd = np.array([0.4, 0.3])
    cpr = np.array([0.5, 0.25])
    expected = (multinomial.logpmf(yd, 4, cpd / cpd.sum())
                + multinomial.logpmf(yr, 4, cpr / cpr.sum())
                + poisson.logpmf(4, 5.0 * cpd.sum() * cpr.sum()))
    assert _gdistremoval(yd, yr) == pytest.approx(-expected, rel=1e-9)


def test_gdistremoval_missing_period_is_skipped():
    nll = _gdistremoval(np.array([np.nan, 1.0]), np.array([1.0, 0.0]))
    assert nll == pytest.approx(0.0, abs=1e-10)


def test_gdistremoval_rejects_unknown_keyfun():
    with pytest.raises(ValueError):
        _gdistremoval(np.array([3.0, 1.0]), np.array([2.0, 2.0]), keyfun="bogus")


def _gmultmix(y, pi_name, n_det, K=60):
    y = np.asarray(y, dtype=float)
    k, lfac_k, lfac_kmyt, kmyt, kmin = _cubes(y[None, None, :], K)
    return nll_gmultmix(
        [math.log(4.0), 0.0], [1, 0, 1, 0], y, 1, pi_name,
        np.ones((1, 1)), [0.0], np.ones((1, 1)), [0.0],
        np.ones((n_det, 1)), np.zeros(n_det), k, lfac_k, lfac_kmyt, kmyt, kmin,
    )


@pytest.mark.parametrize(
    "pi_name, n_det, y, pi",
    [
        ("removalPiFun", 3, [3.0, 1.0, 1.0], [0.5, 0.25, 0.125]),
        ("doublePiFun", 2, [1.0, 2.0, 1.0], [0.25, 0.25, 0.25]),
    ],
)
def test_gmultmix_poisson_thinning_identity(pi_name, n_det, y, pi):
    y = np.array(y)
    expected = -(poisson.logpmf(y, 4.0 * np.array(pi)).sum() + gammaln(y + 1).sum())
    assert _gmultmix(y, pi_name, n_det) == pytest.approx(expected, rel=1e-9)


def test_gmultmix_all_missing_is_near_zero():
    assert _gmultmix([np.nan] * 3, "removalPiFun", 3) == pytest.approx(0.0, abs=1e-10)


def test_gmultmix_rejects_unknown_pi_function():
    with pytest.raises(ValueError):
        _gmultmix([1.0, 0.0, 0.0], "bogus", 3)