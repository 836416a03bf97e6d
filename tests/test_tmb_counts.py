import numpy as np
import pytest

from hierlik.multinom import nll_multinom_pois
from hierlik.pcount import nll_pcount
from hierlik.tmb_counts import lp_site_pcount, tmb_multinom_pois, tmb_pcount

Y = np.array([[2, 3, 1], [0, 1, 0], [4, 2, 3]], dtype=float)
X_STATE = np.array([[1, 0.3], [1, -0.5], [1, 0.9]])
X_DET = np.column_stack([np.ones(9), np.linspace(-1, 1, 9)])
BETA_STATE = np.array([0.8, 0.2])
BETA_DET = np.array([0.1, -0.4])
K = 30


def _pcount_data(mixture):
    return {
        "y": Y, "K": K, "Kmin": Y.max(axis=1).astype(int), "mixture": mixture,
        "X_state": X_STATE, "offset_state": np.zeros(3), "n_group_vars_state": 0,
        "X_det": X_DET, "offset_det": np.zeros(9), "n_group_vars_det": 0,
    }


def test_lp_site_all_missing_sums_abundance():
    y = np.array([np.nan, np.nan])
    assert lp_site_pcount(y, 1, 2.0, [0.5, 0.5], 0.0, 60, 0) == pytest.approx(
        0.0, abs=1e-9
    )


def test_lp_site_higher_kmin_lowers_likelihood():
    y = np.array([1.0, 2.0])
    low = lp_site_pcount(y, 1, 3.0, [0.4, 0.6], 0.0, 40, 2)
    high = lp_site_pcount(y, 1, 3.0, [0.4, 0.6], 0.0, 40, 5)
    assert high < low


@pytest.mark.parametrize("mixture,log_alpha", [(1, None), (2, 0.7), (3, -1.2)])
def test_tmb_pcount_matches_fixed_effects_model(mixture, log_alpha):
    params = {"beta_state": BETA_STATE, "beta_det": BETA_DET}
    if log_alpha is None:
        beta, n_param = np.concatenate([BETA_STATE, BETA_DET]), [2, 2, 0]
    else:
        params["beta_scale"] = [log_alpha]
        beta = np.concatenate([BETA_STATE, BETA_DET, [log_alpha]])
        n_param = [2, 2, 1]
    expected = nll_pcount(beta, n_param, Y, X_STATE, X_DET, np.zeros(3),
                          np.zeros(9), K, Y.max(axis=1).astype(int), mixture)
    assert tmb_pcount(_pcount_data(mixture), params) == pytest.approx(
        expected, rel=1e-9
    )


def _mp_data(y, x_det, pifun_type):
    return {
        "y": y, "pifun_type": pifun_type,
        "X_state": X_STATE, "offset_state": np.zeros(3), "n_group_vars_state": 0,
        "X_det": x_det, "offset_det": np.zeros(len(x_det)), "n_group_vars_det": 0,
    }


def test_tmb_multinom_pois_removal_matches_fixed_effects_model():
    y = np.array([[3, 1, np.nan], [0, 2, 1], [5, 2, 1]])
    navec = np.isnan(y)
    expected = nll_multinom_pois(np.concatenate([BETA_STATE, BETA_DET]),
                                 "removalPiFun", X_STATE, np.zeros(3), X_DET,
                                 np.zeros(9), np.nan_to_num(y).ravel(),
                                 navec.ravel(), 4, 2)
    params = {"beta_state": BETA_STATE, "beta_det": BETA_DET}
    assert tmb_multinom_pois(_mp_data(y, X_DET, 0), params) == pytest.approx(expected)


def test_tmb_multinom_pois_double_observer_matches_fixed_effects_model():
    y = np.array([[1, 2, 3], [0, 1, 1], [2, 0, 4]], dtype=float)
    x_det = X_DET[:6]
    expected = nll_multinom_pois(np.concatenate([BETA_STATE, BETA_DET]),
                                 "doublePiFun", X_STATE, np.zeros(3), x_det,
                                 np.zeros(6), y.ravel(), np.zeros(9), 4, 2)
    params = {"beta_state": BETA_STATE, "beta_det": BETA_DET}
    assert tmb_multinom_pois(_mp_data(y, x_det, 1), params) == pytest.approx(expected)


def test_tmb_multinom_pois_invalid_pifun():
    params = {"beta_state": BETA_STATE, "beta_det": BETA_DET}
    with pytest.raises(ValueError, match="invalid pifun"):
        tmb_multinom_pois(_mp_data(Y, X_DET, 7), params)