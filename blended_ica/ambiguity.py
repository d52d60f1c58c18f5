import numpy as np

from .exceptions import InvalidConfiguration, NumericalDegeneracy


def non_gaussianity(G, bins):
    """
    Bin average of the contrast G for every source.
    Input:
      G: contrast evaluated at the deblended estimate, shape (n_sources, n_samples)
      bins: list of ranges over the sample axis
    Returns:
      EG: array of shape (n_sources, n_bins)
    """
    EG = np.zeros((G.shape[0], len(bins)))
    for ib, b in enumerate(bins):
        EG[:, ib] = np.real(G[:, b.start:b.stop]).mean(axis=1)
    return EG


def fix_permutation(W, EG):
    """
    Order the columns of W in every bin by EG, largest first.
    EG is reordered the same way, so a second call leaves both unchanged.
    """
    for ib in range(W.shape[2]):
        order = np.argsort(-EG[:, ib], kind="stable")
        W[:, :, ib] = W[:, order, ib]
        EG[:, ib] = EG[order, ib]
    return W, EG


def mixing_matrices(W, Q):
    """Estimated mixing matrices pinv(W^H Q^H), shape (n_sensors, n_sources, n_bins)."""
    n_sensors, n_sources, n_bins = Q.shape
    A = np.empty((n_sensors, n_sources, n_bins), dtype=np.result_type(W, Q))
    for ib in range(n_bins):
        WQ = W[:, :, ib].conj().T @ Q[:, :, ib].conj().T
        A[:, :, ib] = _invert(WQ, ib)
    return A


def _invert(M, ib):
    try:
        if M.shape[0] == M.shape[1]:
            return np.linalg.inv(M)
        return np.linalg.pinv(M)
    except np.linalg.LinAlgError as exc:
        raise NumericalDegeneracy(f"cannot invert unmixing of bin {ib}: {exc}") from exc


def fix_scaling(W, Q, magic_sensor):
    """
    Minimum distortion principle.

    The estimated mixing matrix of every bin is normalised so that each
    source reaches the magic sensor with unit gain; W is recomputed so that
    the deblended sources carry the scale they have at that sensor.
    Input:
      W: unmixing matrices of shape (n_sources, n_sources, n_bins)
      Q: whitening matrices of shape (n_sensors, n_sources, n_bins)
      magic_sensor: index of the reference sensor
    Returns:
      W, updated in place
    """
    n_sensors = Q.shape[0]
    if not 0 <= magic_sensor < n_sensors:
        raise InvalidConfiguration(
            f"magic_sensor must lie in [0, {n_sensors}), got {magic_sensor}"
        )
    A = mixing_matrices(W, Q)
    for ib in range(W.shape[2]):
        AA = A[:, :, ib]
        gain = AA[magic_sensor, :]
        if np.any(gain == 0):
            raise NumericalDegeneracy(
                f"a source does not reach sensor {magic_sensor} in bin {ib}"
            )
        AA = AA / gain[np.newaxis, :]
        WQ = _invert(AA, ib)
        # scalings go into W only, Q stays as whitening left it
        W[:, :, ib] = (WQ @ np.linalg.pinv(Q[:, :, ib].conj().T)).conj().T
    return W
