import numpy as np
import pytest

from blended_ica import InvalidConfiguration
from blended_ica.ambiguity import (fix_permutation, fix_scaling, mixing_matrices,
                                   non_gaussianity)
from blended_ica.fixed_point import symmetric_decorrelation
from blended_ica.statistics import make_bins


class TestNonGaussianity:
    def test_bin_average(self):
        G = np.array([[1.0, 3.0, 10.0, 20.0],
                      [2.0, 2.0, 0.0, 4.0]])
        EG = non_gaussianity(G, make_bins(4, 2))
        np.testing.assert_allclose(EG, [[2.0, 15.0], [2.0, 2.0]])


class TestFixPermutation:
    def test_columns_sorted_by_non_gaussianity(self):
        W = np.arange(18, dtype=float).reshape(3, 3, 2)
        original = W.copy()
        EG = np.array([[0.1, 0.9],
                       [0.7, 0.5],
                       [0.4, 0.2]])

        fix_permutation(W, EG)

        np.testing.assert_array_equal(W[:, :, 0], original[:, [1, 2, 0], 0])
        np.testing.assert_array_equal(W[:, :, 1], original[:, [0, 1, 2], 1])
        np.testing.assert_array_equal(EG[:, 0], [0.7, 0.4, 0.1])

    def test_idempotent(self):
        rng = np.random.RandomState(0)
        W = rng.randn(4, 4, 3)
        EG = rng.rand(4, 3)

        fix_permutation(W, EG)
        once_W, once_EG = W.copy(), EG.copy()
        fix_permutation(W, EG)

        np.testing.assert_array_equal(W, once_W)
        np.testing.assert_array_equal(EG, once_EG)


class TestFixScaling:
    @pytest.mark.parametrize("magic_sensor", [0, 2])
    def test_unit_gain_at_magic_sensor(self, magic_sensor):
        rng = np.random.RandomState(1)
        Q = rng.randn(4, 2, 2)
        W = symmetric_decorrelation(rng.randn(2, 2, 2))

        fix_scaling(W, Q, magic_sensor)

        A = mixing_matrices(W, Q)
        np.testing.assert_allclose(A[magic_sensor, :, :], np.ones((2, 2)), atol=1e-10)

    def test_only_rescales_sources(self):
        rng = np.random.RandomState(2)
        Q = rng.randn(3, 3, 1)
        W = symmetric_decorrelation(rng.randn(3, 3, 1))
        before = W.copy()

        fix_scaling(W, Q, 1)

        # every column of W is a multiple of the column it replaced
        ratio = W[:, :, 0] / before[:, :, 0]
        np.testing.assert_allclose(ratio, np.tile(ratio[0], (3, 1)), rtol=1e-8)

    def test_complex_scaling(self):
        rng = np.random.RandomState(3)
        Q = rng.randn(3, 2, 1) + 1j * rng.randn(3, 2, 1)
        W = symmetric_decorrelation(rng.randn(2, 2, 1) + 1j * rng.randn(2, 2, 1))

        fix_scaling(W, Q, 1)

        A = mixing_matrices(W, Q)
        np.testing.assert_allclose(A[1, :, 0], [1.0, 1.0], atol=1e-10)

    def test_magic_sensor_out_of_range(self):
        W = np.eye(2)[:, :, np.newaxis].copy()
        Q = np.eye(2)[:, :, np.newaxis].copy()
        with pytest.raises(InvalidConfiguration):
            fix_scaling(W, Q, 2)
