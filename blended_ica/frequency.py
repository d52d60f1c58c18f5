import numpy as np

from .engine import ICA
from .exceptions import InvalidConfiguration


def deblend_frequency_domain(records, n_sources, known_mixing=None, **engine_kwargs):
    """
    Deblend real time series in the frequency domain.

    The records are transformed along time with a real FFT, the complex
    spectra are deblended with the complex engine (each bin is then a band of
    frequencies), and the sources are transformed back to time.
    Input:
      records: real array of shape (n_sensors, n_times)
      n_sources: number of sources to extract
      known_mixing: optional mixing matrix for the error report
      engine_kwargs: passed on to ICA
    Returns:
      time_sources: real array of shape (n_sources, n_times)
      result: ICAResult of the complex run
    """
    records = np.asarray(records)
    if records.ndim != 2:
        raise InvalidConfiguration(
            f"records must be 2-D (n_sensors, n_times), got shape {records.shape}"
        )
    if np.iscomplexobj(records):
        raise InvalidConfiguration("records must be real time series")
    n_times = records.shape[1]

    spectra = np.fft.rfft(records, axis=1)
    ica = ICA(spectra, n_sources, **engine_kwargs)
    result = ica.run(known_mixing)

    time_sources = np.fft.irfft(result.sources, n=n_times, axis=1)
    return time_sources, result
