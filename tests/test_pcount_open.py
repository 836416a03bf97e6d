import math

import numpy as np
import pytest

from hierlik.pcount import nll_pcount
from hierlik.pcount_open import nll_pcount_open

M, J, LK = 2, 2, 8
BASE_Y = np.array([[1.0, 2.0], [0.0, 1.0]])


def _args(T=1, go_dims="scalar", dynamics="trend", fix="gamma", mixture="P",
          log_alpha=0.0, ym=None, ynam=None, ytna=None):
    if ym is None:
        ym = np.tile(BASE_Y, (1, T))
    if ynam is None:
        ynam = np.zeros((M, J * T), dtype=int)
    if ytna is None:
        ytna = np.zeros((M, T), dtype=int)
    n_trans = M * (T - 1)
    return dict(
        ym=ym, Xlam=np.ones((M, 1)), Xgam=np.ones((n_trans, 1)),
        Xom=np.ones((n_trans, 1)), Xp=np.ones((M * J * T, 1)),
        Xiota=np.ones((n_trans, 1)), beta_lam=[math.log(2.0)],
        beta_gam=[math.log(0.5)], beta_om=[0.0], beta_p=[0.3], beta_iota=[0.0],
        log_alpha=log_alpha, Xlam_offset=np.zeros(M),
        Xgam_offset=np.zeros(n_trans), Xom_offset=np.zeros(n_trans),
        Xp_offset=np.zeros(M * J * T), Xiota_offset=np.zeros(n_trans),
        ytna=ytna, ynam=ynam, lk=LK, mixture=mixture, first=[1, 1],
        last=[T, T], M=M, J=J, T=T, delta=np.ones((M, T), dtype=int),
        dynamics=dynamics, fix=fix, go_dims=go_dims, immigration=False,
        trans=None,
    )


def _closed_nll():
    return nll_pcount([math.log(2.0), 0.3], [1, 1, 0], BASE_Y, np.ones((M, 1)),
                      np.ones((M * J, 1)), np.zeros(M), np.zeros(M * J), LK - 1,
                      np.zeros(M, dtype=int), 1)


def test_single_occasion_matches_closed_n_mixture():
    assert nll_pcount_open(**_args()) == pytest.approx(_closed_nll(), rel=1e-9)


def test_skipped_later_occasion_reduces_to_first_occasion():
    ytna = np.array([[0, 1], [0, 1]])
    ynam = np.array([[0, 0, 1, 1], [0, 0, 1, 1]])
    result = nll_pcount_open(**_args(T=2, go_dims="matrix", fix="none",
                                     ytna=ytna, ynam=ynam))
    assert result == pytest.approx(_closed_nll(), rel=1e-9)


def test_missing_cell_value_is_ignored():
    ynam = np.array([[0, 1], [0, 0]])
    ym_a = BASE_Y.copy()
    ym_b = BASE_Y.copy()
    ym_b[0, 1] = 5.0
    first = nll_pcount_open(**_args(ym=ym_a, ynam=ynam))
    second = nll_pcount_open(**_args(ym=ym_b, ynam=ynam))
    assert first == pytest.approx(second, rel=1e-12)


def test_constant_rates_give_same_result_for_every_layout():
    results = [
        nll_pcount_open(**_args(T=3, go_dims=dims, fix="none"))
        for dims in ("scalar", "rowvec", "matrix")
    ]
    assert all(math.isfinite(r) and r > 0 for r in results)
    assert results[1] == pytest.approx(results[0], rel=1e-9)
    assert results[2] == pytest.approx(results[0], rel=1e-9)


def test_large_dispersion_negative_binomial_approaches_poisson():
    poisson_nll = nll_pcount_open(**_args(T=2, go_dims="matrix", fix="none"))
    nb_nll = nll_pcount_open(**_args(T=2, go_dims="matrix", fix="none",
                                     mixture="NB", log_alpha=15.0))
    assert nb_nll == pytest.approx(poisson_nll, rel=1e-4)


def test_negligible_zero_inflation_approaches_poisson():
    poisson_nll = nll_pcount_open(**_args())
    zip_nll = nll_pcount_open(**_args(mixture="ZIP", log_alpha=-30.0))
    assert zip_nll == pytest.approx(poisson_nll, rel=1e-9)


def test_zero_inflation_changes_likelihood():
    poisson_nll = nll_pcount_open(**_args())
    zip_nll = nll_pcount_open(**_args(mixture="ZIP", log_alpha=0.0))
    assert zip_nll > poisson_nll