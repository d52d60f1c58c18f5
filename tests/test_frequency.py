import numpy as np
import pytest

from blended_ica import InvalidConfiguration
from blended_ica.contrast import Mode
from blended_ica.frequency import deblend_frequency_domain
from blended_ica.synthetic import tapered_random_signal


class TestFrequencyDomain:
    def test_returns_real_time_series(self):
        rng = np.random.RandomState(0)
        n_times = 1000
        sources = np.vstack([
            tapered_random_signal(n_times, dist="uniform", random_state=rng),
            tapered_random_signal(n_times, dist="normal", sparsity=0.2, random_state=rng),
        ])
        records = rng.randn(3, 2) @ sources

        time_sources, result = deblend_frequency_domain(records, 2, tolerance=1e-6,
                                                        random_state=0)

        assert time_sources.shape == (2, n_times)
        assert not np.iscomplexobj(time_sources)
        assert np.iscomplexobj(result.sources)
        assert result.sources.shape == (2, n_times // 2 + 1)
        assert result.unmixing.shape == (2, 2, 1)

    def test_bins_split_the_spectrum(self):
        records = np.random.RandomState(1).laplace(size=(2, 400))
        _, result = deblend_frequency_domain(records, 2, n_bins=3, max_iterations=50,
                                             random_state=1)
        assert len(result.bins) == 3
        assert result.bins[-1].stop == 201

    def test_complex_records_rejected(self):
        with pytest.raises(InvalidConfiguration):
            deblend_frequency_domain(np.ones((2, 10), dtype=complex), 1)

    def test_engine_runs_in_complex_mode(self):
        assert Mode.from_dtype(np.fft.rfft(np.ones((2, 8)), axis=1).dtype) is Mode.COMPLEX
