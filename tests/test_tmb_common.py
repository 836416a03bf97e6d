import math

import numpy as np
import pytest
from scipy import sparse

from hierlik.detection import distprob
from hierlik.pifun import dep_double_pi, double_pi, removal_pi
from hierlik.tmb_common import (
    add_ranef,
    cloglog,
    distance_prob,
    key_exp,
    key_halfnorm,
    key_hazard,
    pifun,
)

DB = np.array([0.0, 10.0, 20.0])
W = np.array([10.0, 10.0])
AREA = np.array([math.pi * 100, math.pi * 300])


def test_cloglog_bounded_and_increasing():
    out = cloglog(np.linspace(-3, 2, 11))
    assert np.all(out > 0) and np.all(out < 1)
    assert np.all(np.diff(out) > 0)


def test_cloglog_half():
    assert cloglog(np.log(np.log(2.0))) == pytest.approx(0.5)


def test_add_ranef_without_groups_is_identity():
    par, pen = add_ranef([1.0, 2.0], [], None, [], 0, [])
    assert np.allclose(par, [1.0, 2.0])
    assert pen == 0.0


def test_add_ranef_adds_effects():
    b = np.array([0.5, -1.0])
    par, _ = add_ranef([1.0, 2.0], b, np.eye(2), [0.0], 1, [2])
    assert np.allclose(par, np.array([1.0, 2.0]) + b)


def test_add_ranef_sparse_matches_dense():
    b = np.array([0.3, -0.7, 0.1])
    dense = add_ranef(np.zeros(3), b, np.eye(3), [0.2], 1, [3])
    sp = add_ranef(np.zeros(3), b, sparse.identity(3, format="csr"), [0.2], 1, [3])
    assert np.allclose(dense[0], sp[0])
    assert dense[1] == pytest.approx(sp[1])


def test_add_ranef_penalty_scales_with_levels():
    _, one = add_ranef(np.zeros(1), [0.0], np.eye(1), [0.0], 1, [1])
    _, two = add_ranef(np.zeros(2), [0.0, 0.0], np.eye(2), [0.0], 1, [2])
    assert two == pytest.approx(2 * one)


def test_add_ranef_penalty_grows_with_effect_size():
    _, small = add_ranef(np.zeros(1), [0.1], np.eye(1), [0.0], 1, [1])
    _, large = add_ranef(np.zeros(1), [2.0], np.eye(1), [0.0], 1, [1])
    assert large > small


def test_add_ranef_groups_use_their_own_sigma():
    b = [1.0, 1.0]
    _, both = add_ranef(np.zeros(2), b, np.eye(2), [0.0, math.log(2)], 2, [1, 1])
    _, first = add_ranef(np.zeros(1), [1.0], np.eye(1), [0.0], 1, [1])
    _, second = add_ranef(np.zeros(1), [1.0], np.eye(1), [math.log(2)], 1, [1])
    assert both == pytest.approx(first + second)


def test_add_ranef_too_few_effects():
    with pytest.raises(ValueError):
        add_ranef(np.zeros(2), [0.1], np.eye(2), [0.0], 1, [2])


def test_key_halfnorm_matches_distprob_line():
    assert np.allclose(
        key_halfnorm(8.0, 0, DB, W, AREA),
        distprob("halfnorm", 8.0, 0.0, "line", DB, W, AREA),
    )


def test_key_hazard_matches_distprob_point():
    assert np.allclose(
        key_hazard(9.0, 2.0, 1, DB, W, AREA),
        distprob("hazard", 9.0, 2.0, "point", DB, W, AREA),
    )


def test_key_exp_large_rate_line_is_near_one():
    assert np.allclose(key_exp(1e8, 0, DB, W, AREA), 1.0, atol=1e-6)


def test_key_invalid_survey_type():
    with pytest.raises(ValueError):
        key_halfnorm(8.0, 2, DB, W, AREA)


def test_distance_prob_uniform_returns_u():
    u = np.array([0.5, 0.25])
    assert np.allclose(distance_prob(0, 1.0, 0.0, 0, DB, W, AREA, u), u)


def test_distance_prob_weights_key_function():
    u = np.array([0.4, 0.6])
    expected = key_exp(5.0, 1, DB, W, AREA) * u
    assert np.allclose(distance_prob(2, 5.0, 0.0, 1, DB, W, AREA, u), expected)


def test_distance_prob_invalid_keyfun():
    with pytest.raises(ValueError, match="invalid keyfun"):
        distance_prob(4, 1.0, 0.0, 0, DB, W, AREA, [1.0, 1.0])


def test_pifun_dispatch():
    p = np.array([0.3, 0.6, 0.2])
    assert np.allclose(pifun(p, 0), removal_pi(p))
    assert np.allclose(pifun(p[:2], 1), double_pi(p[:2]))
    assert np.allclose(pifun(p[:2], 2), dep_double_pi(p[:2]))


def test_pifun_invalid_type():
    with pytest.raises(ValueError, match="invalid pifun"):
        pifun([0.5, 0.5], 5)