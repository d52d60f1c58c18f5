import numpy as np

from blended_ica.contrast import GaussianContrast, LogContrast, Mode, contrast_for


def _buffers(shape):
    return np.zeros(shape), np.zeros(shape), np.zeros(shape)


class TestMode:
    def test_mode_from_dtype(self):
        assert Mode.from_dtype(np.float64) is Mode.REAL
        assert Mode.from_dtype(np.float32) is Mode.REAL
        assert Mode.from_dtype(np.complex128) is Mode.COMPLEX

    def test_contrast_for_mode(self):
        assert isinstance(contrast_for(Mode.REAL), GaussianContrast)
        assert isinstance(contrast_for(Mode.COMPLEX), LogContrast)


class TestGaussianContrast:
    def test_values(self):
        s = np.array([[0.0, 1.0, -2.0], [0.5, -0.5, 3.0]])
        G, g, dg = GaussianContrast().evaluate(s, *_buffers(s.shape))

        np.testing.assert_allclose(G, np.exp(-s ** 2 / 2))
        np.testing.assert_allclose(g, s * np.exp(-s ** 2 / 2))
        np.testing.assert_allclose(dg, np.exp(-s ** 2 / 2) * (1 - s ** 2))

    def test_derivatives_are_consistent(self):
        # g' is the derivative of g
        s = np.linspace(-3, 3, 61)[np.newaxis, :]
        h = 1e-6
        _, g_plus, _ = GaussianContrast().evaluate(s + h, *_buffers(s.shape))
        _, g_minus, _ = GaussianContrast().evaluate(s - h, *_buffers(s.shape))
        _, _, dg = GaussianContrast().evaluate(s, *_buffers(s.shape))

        np.testing.assert_allclose((g_plus - g_minus) / (2 * h), dg, atol=1e-6)


class TestLogContrast:
    def test_values(self):
        s = np.array([[1 + 1j, 0.0, -2j], [0.3, 1j, 2 - 1j]])
        eps = 0.1
        G, g, dg = LogContrast(epsilon=eps).evaluate(s, *_buffers(s.shape))

        ss = eps + np.abs(s) ** 2
        np.testing.assert_allclose(G, np.log(ss))
        np.testing.assert_allclose(g, 1 / ss)
        np.testing.assert_allclose(dg, -1 / ss ** 2)

    def test_default_epsilon(self):
        assert LogContrast().epsilon == 0.1

    def test_stateless(self):
        rng = np.random.RandomState(0)
        s = rng.randn(2, 50) + 1j * rng.randn(2, 50)
        contrast = LogContrast()
        first = [b.copy() for b in contrast.evaluate(s, *_buffers(s.shape))]
        contrast.evaluate(10 * s, *_buffers(s.shape))
        second = contrast.evaluate(s, *_buffers(s.shape))

        for a, b in zip(first, second):
            np.testing.assert_array_equal(a, b)
