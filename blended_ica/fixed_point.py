import numpy as np

from .exceptions import NumericalDegeneracy


def update_real(W, xhat, g, dg, bins):
    """
    One fixed-point step for real signals, in place.
    Input:
      W: unmixing matrices of shape (n_sources, n_sources, n_bins)
      xhat: whitened data of shape (n_sources, n_samples)
      g, dg: derivative and second derivative of the contrast at s = W^T xhat
      bins: list of ranges over the sample axis
    Returns:
      W, with every column c replaced by E[x g(s_c)] - E[g'(s_c)] w_c
    """
    for ib, b in enumerate(bins):
        sl = slice(b.start, b.stop)
        n = b.stop - b.start
        beta = dg[:, sl].mean(axis=1)
        W[:, :, ib] = (xhat[:, sl] @ g[:, sl].T) / n - W[:, :, ib] * beta[np.newaxis, :]
    return W


def update_complex(W, xhat, s, g, dg, bins):
    """
    One fixed-point step for complex signals, in place.

    Every column c is replaced by
    E[x conj(s_c) g(|s_c|^2)] - E[g(|s_c|^2) + |s_c|^2 g'(|s_c|^2)] w_c.
    """
    for ib, b in enumerate(bins):
        sl = slice(b.start, b.stop)
        n = b.stop - b.start
        sb = s[:, sl]
        beta = (g[:, sl] + np.abs(sb) ** 2 * dg[:, sl]).mean(axis=1)
        W[:, :, ib] = (xhat[:, sl] @ (sb.conj() * g[:, sl]).T) / n - W[:, :, ib] * beta[np.newaxis, :]
    return W


def _inverse_sqrt(M, ib):
    if not np.all(np.isfinite(M)):
        raise NumericalDegeneracy(f"Gram matrix of bin {ib} is not finite")
    d, E = np.linalg.eigh(M)
    floor = M.shape[0] * np.finfo(d.dtype).eps * max(d[-1], 0.0)
    if d[0] <= floor:
        raise NumericalDegeneracy(
            f"Gram matrix of bin {ib} is singular (smallest eigenvalue {d[0]:.3e})"
        )
    return (E * (1.0 / np.sqrt(d))[np.newaxis, :]) @ E.conj().T


def symmetric_decorrelation(W):
    """
    Symmetric decorrelation, in place.
    W <- W (W^H W)^(-1/2) for every bin, so that the columns are orthonormal.
    """
    for ib in range(W.shape[2]):
        WW = W[:, :, ib]
        W[:, :, ib] = WW @ _inverse_sqrt(WW.conj().T @ WW, ib)
    return W


def align_phases(W, W_prev):
    """
    Rotate every column of W by a unit-modulus factor so that it points the
    same way as the matching column of W_prev (sign flip for real data).
    Orthonormality is preserved.
    """
    inner = np.einsum("ijk,ijk->jk", W_prev.conj(), W)
    magnitude = np.abs(inner)
    phase = np.ones_like(inner)
    np.divide(inner, magnitude, out=phase, where=magnitude > 0)
    W *= phase.conj()[np.newaxis, :, :]
    return W


def column_changes(W, W_prev):
    """Per bin, the largest over columns of the summed absolute change."""
    return np.abs(W - W_prev).sum(axis=0).max(axis=0)


def has_converged(W, W_prev, tol):
    return bool(np.all(column_changes(W, W_prev) < tol))
