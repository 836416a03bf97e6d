import numpy as np
import pytest

from hierlik.multinom import nll_multinom_pois


def _run(y, navec, name="removalPiFun", J=3):
    M = len(y) // J
    return nll_multinom_pois(np.zeros(2), name, np.ones((M, 1)), np.zeros(M),
                             np.ones((M * J, 1)), np.zeros(M * J), y, navec, 2, 1)


def test_zero_counts_removal():
    assert _run([0, 0, 0], [0, 0, 0]) == pytest.approx(0.875)


def test_all_missing_site_contributes_nothing():
    one = _run([0, 0, 0], [0, 0, 0])
    two = _run([0, 0, 0, 5, 1, 2], [0, 0, 0, 1, 1, 1])
    assert two == pytest.approx(one)


def test_double_observer():
    out = _run([0, 0, 0], [0, 0, 0], name="doublePiFun", J=2)
    assert out == pytest.approx(0.75)


def test_invalid_pi_function():
    with pytest.raises(ValueError):
        _run([0, 0, 0], [0, 0, 0], name="nope")