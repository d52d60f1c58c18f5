import numpy as np

from .exceptions import InvalidConfiguration


def error_scale_perm(x, y):
    """
    Distance of x y from a scaled permutation matrix.
    Input:
      x: estimated unmixing (W^H Q^H), shape (n_sources, n_sensors)
      y: reference mixing matrix, shape (n_sensors, n_sources)
    Returns:
      err: sum over columns of |x y| of the off-peak entries, each column
           normalised by its largest entry; zero when x inverts y up to
           permutation and scaling
    """
    x = np.asarray(x)
    y = np.asarray(y)
    if x.ndim != 2 or y.ndim != 2 or x.shape[1] != y.shape[0]:
        raise InvalidConfiguration(
            f"cannot compare matrices of shapes {x.shape} and {y.shape}"
        )
    K = np.abs(x @ y)
    err = 0.0
    for ic in range(K.shape[1]):
        kk = K[:, ic]
        ii = np.argmax(kk)
        if kk[ii] == 0:
            raise InvalidConfiguration(f"column {ic} of the product is zero")
        kk = kk / kk[ii]
        err += kk.sum() - kk[ii]
    return err


def unmixing_error(W, Q, A):
    """Per-bin error_scale_perm between W^H Q^H and the known mixing matrix A."""
    n_bins = W.shape[2]
    err = np.zeros(n_bins)
    for ib in range(n_bins):
        err[ib] = error_scale_perm(W[:, :, ib].conj().T @ Q[:, :, ib].conj().T, A)
    return err


def error_after_scaling(estimate, reference):
    """
    Normalised squared misfit after the best scalar scaling of estimate.
    Returns:
      err: ||alpha estimate - reference||^2 / ||reference||^2
      alpha: the least-squares scale
    """
    estimate = np.ravel(estimate)
    reference = np.ravel(reference)
    if estimate.shape != reference.shape:
        raise InvalidConfiguration(
            f"cannot compare signals of lengths {estimate.size} and {reference.size}"
        )
    energy = np.vdot(estimate, estimate).real
    ref_energy = np.vdot(reference, reference).real
    if ref_energy == 0:
        raise InvalidConfiguration("reference signal is identically zero")
    alpha = np.vdot(estimate, reference) / energy if energy > 0 else 0.0
    residual = alpha * estimate - reference
    return np.vdot(residual, residual).real / ref_energy, alpha


def source_errors(estimated, reference):
    """
    For every reference source, the best error_after_scaling over all
    estimated sources. Both inputs have shape (n_sources, n_samples).
    """
    estimated = np.atleast_2d(estimated)
    reference = np.atleast_2d(reference)
    if estimated.shape[1] != reference.shape[1]:
        raise InvalidConfiguration(
            f"estimated sources have {estimated.shape[1]} samples, "
            f"reference has {reference.shape[1]}"
        )
    errors = np.empty(reference.shape[0])
    for i, ref in enumerate(reference):
        errors[i] = min(error_after_scaling(est, ref)[0] for est in estimated)
    return errors
