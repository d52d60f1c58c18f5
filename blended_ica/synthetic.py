"""Synthetic sources and mixtures for validating the deblending engine."""
import numpy as np
from sklearn.utils import check_random_state

# mixing matrix of the canonical two-source, four-sensor test
DEFAULT_MIXING = np.array([[1.0, 0.5],
                           [0.3, 1.0],
                           [0.8, 0.2],
                           [0.1, 0.9]])


def tapered_random_signal(n, dist="normal", sparsity=1.0, taper=0.0, random_state=None):
    """
    Random signal with optional sparsity and cosine tapering.
    Input:
      n: number of samples
      dist: 'normal' (standard normal) or 'uniform' (on [-2, 2])
      sparsity: fraction of samples kept non-zero
      taper: fraction of samples tapered at each end
    Returns:
      signal of length n
    """
    rng = check_random_state(random_state)
    if dist == "normal":
        x = rng.normal(size=n)
    elif dist == "uniform":
        x = rng.uniform(-2.0, 2.0, size=n)
    else:
        raise ValueError(f"unknown distribution {dist!r}")

    if not 0.0 < sparsity <= 1.0:
        raise ValueError(f"sparsity must lie in (0, 1], got {sparsity}")
    if sparsity < 1.0:
        x[rng.uniform(size=n) >= sparsity] = 0.0

    if not 0.0 <= taper <= 0.5:
        raise ValueError(f"taper must lie in [0, 0.5], got {taper}")
    nt = int(round(taper * n))
    if nt > 0:
        ramp = 0.5 * (1.0 - np.cos(np.pi * np.arange(nt) / nt))
        x[:nt] *= ramp
        x[n - nt:] *= ramp[::-1]
    return x


def instantaneous_mixture(sources, mixing):
    """Blend sources (n_sources, n_samples) at the sensors: X = A S."""
    sources = np.atleast_2d(sources)
    mixing = np.asarray(mixing)
    if mixing.shape[1] != sources.shape[0]:
        raise ValueError(
            f"mixing matrix {mixing.shape} does not match {sources.shape[0]} sources"
        )
    return mixing @ sources


def blended_scenario(n_samples=2000, mixing=None, random_state=None):
    """
    Two independent sources, uniform on [-2, 2] and standard normal, blended
    at the sensors.
    Returns:
      mixture: array of shape (n_sensors, n_samples)
      sources: array of shape (2, n_samples)
      mixing: array of shape (n_sensors, 2)
    """
    rng = check_random_state(random_state)
    if mixing is None:
        mixing = DEFAULT_MIXING
    mixing = np.asarray(mixing)
    sources = np.vstack([
        tapered_random_signal(n_samples, dist="uniform", random_state=rng),
        tapered_random_signal(n_samples, dist="normal", random_state=rng),
    ])
    return instantaneous_mixture(sources, mixing), sources, mixing
