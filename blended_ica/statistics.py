import numpy as np

from .exceptions import InvalidConfiguration, NumericalDegeneracy


def make_bins(n_samples, n_bins):
    """
    Split the sample axis into contiguous bins.
    Input:
      n_samples: length of the sample axis
      n_bins: number of bins
    Returns:
      bins: list of ranges, disjoint, ordered and covering 0 ... n_samples
    """
    if n_bins < 1:
        raise InvalidConfiguration(f"n_bins must be at least 1, got {n_bins}")
    edges = np.round(np.linspace(0, n_samples, n_bins + 1)).astype(int)
    bins = [range(edges[ib], edges[ib + 1]) for ib in range(n_bins)]
    shortest = min(len(b) for b in bins)
    if shortest < 2:
        raise InvalidConfiguration(
            f"every bin needs at least two samples; {n_samples} samples "
            f"in {n_bins} bins leaves a bin with {shortest}"
        )
    return bins


def _as_slice(b):
    return slice(b.start, b.stop)


def remove_mean(x, bins):
    """
    Subtract the per-bin mean of every sensor, in place.
    Input:
      x: array of shape (n_sensors, n_samples)
      bins: list of ranges over the sample axis
    Returns:
      means: array of shape (n_sensors, n_bins), needed by restore_mean
    """
    means = np.zeros((x.shape[0], len(bins)), dtype=x.dtype)
    for ib, b in enumerate(bins):
        xb = x[:, _as_slice(b)]
        means[:, ib] = xb.mean(axis=1)
        xb -= means[:, ib][:, np.newaxis]
    return means


def restore_mean(x, means, bins):
    """Add the stored means back to x and clear them."""
    if means.shape != (x.shape[0], len(bins)):
        raise InvalidConfiguration(
            f"stored means have shape {means.shape}, expected "
            f"{(x.shape[0], len(bins))}"
        )
    if bins and bins[-1].stop != x.shape[1]:
        raise InvalidConfiguration(
            f"bins cover {bins[-1].stop} samples but data has {x.shape[1]}"
        )
    for ib, b in enumerate(bins):
        x[:, _as_slice(b)] += means[:, ib][:, np.newaxis]
        means[:, ib] = 0
    return x


def covariance(x):
    """Sample covariance (1/n) X X^H of zero-mean data."""
    return (x @ x.conj().T) / x.shape[1]


def whiten(x, bins, n_sources, xhat=None, Q=None):
    """
    Whiten the observed signals bin by bin.
    Input:
      x: mean-removed data of shape (n_sensors, n_samples)
      bins: list of ranges over the sample axis
      n_sources: number of principal directions to keep
      xhat, Q: optional output buffers
    Returns:
      xhat: whitened data of shape (n_sources, n_samples)
      Q: whitening matrices of shape (n_sensors, n_sources, n_bins),
         such that xhat = Q^H x in every bin
    """
    n_sensors, n_samples = x.shape
    if not 1 <= n_sources <= n_sensors:
        raise InvalidConfiguration(
            f"n_sources must lie in [1, {n_sensors}], got {n_sources}"
        )
    if xhat is None:
        xhat = np.empty((n_sources, n_samples), dtype=x.dtype)
    if Q is None:
        Q = np.empty((n_sensors, n_sources, len(bins)), dtype=x.dtype)

    for ib, b in enumerate(bins):
        xb = x[:, _as_slice(b)]
        C = covariance(xb)
        if not np.all(np.isfinite(C)):
            raise NumericalDegeneracy(f"covariance of bin {ib} is not finite")

        dead = np.flatnonzero(np.real(np.diag(C)) == 0)
        if dead.size:
            raise NumericalDegeneracy(
                f"sensors {dead.tolist()} have zero variance in bin {ib}"
            )

        d, E = np.linalg.eigh(C)

        idx = np.argsort(d)[::-1][:n_sources]
        d = d[idx]
        E = E[:, idx]

        # eigh of a covariance can return tiny negative values for null directions
        floor = n_sensors * np.finfo(d.dtype).eps * max(d[0], 0.0)
        if d[-1] <= floor:
            raise NumericalDegeneracy(
                f"covariance of bin {ib} is singular in the retained "
                f"{n_sources} dimensions (smallest eigenvalue {d[-1]:.3e})"
            )

        with np.errstate(divide="raise", invalid="raise"):
            try:
                scale = 1.0 / np.sqrt(d)
            except FloatingPointError as exc:
                raise NumericalDegeneracy(str(exc)) from exc

        Q[:, :, ib] = E * scale[np.newaxis, :]
        xhat[:, _as_slice(b)] = Q[:, :, ib].conj().T @ xb

    return xhat, Q
