"""
FastICA deblending of (piecewise stationary) linear mixtures.

The sample axis is split into bins; every bin gets its own whitening and
unmixing matrix. After the fixed-point iteration the permutation and scaling
ambiguities are resolved, so the deblended sources are ordered by their
distance from Gaussianity and scaled as they appear at the magic sensor.
"""
import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.utils import check_random_state

from . import statistics
from .ambiguity import fix_permutation, fix_scaling, mixing_matrices, non_gaussianity
from .contrast import Mode, contrast_for
from .exceptions import InvalidConfiguration
from .fixed_point import align_phases, column_changes, has_converged, symmetric_decorrelation
from .scoring import unmixing_error

logger = logging.getLogger(__name__)


class State(Enum):
    INITIALIZED = "initialized"
    WHITENED = "whitened"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITER_REACHED = "max_iter_reached"
    PERMUTATION_FIXED = "permutation_fixed"
    SCALING_FIXED = "scaling_fixed"
    DEBLENDED = "deblended"


class Status(Enum):
    CONVERGED = "converged"
    MAX_ITER_REACHED = "max_iter_reached"


@dataclass
class ICAConfig:
    n_sources: int
    max_iterations: int = 1000
    tolerance: float = 1e-10
    n_bins: int = 1
    magic_sensor: int = 0
    align_phases: bool = True
    shared_init: bool = False

    def validate(self, n_sensors, n_samples):
        if n_samples < 2:
            raise InvalidConfiguration(
                f"there must be at least two samples, got {n_samples}"
            )
        if not 1 <= self.n_sources <= n_sensors:
            raise InvalidConfiguration(
                f"n_sources must lie in [1, {n_sensors}], got {self.n_sources}"
            )
        if self.max_iterations < 1:
            raise InvalidConfiguration(
                f"max_iterations must be at least 1, got {self.max_iterations}"
            )
        if not self.tolerance >= 0:
            raise InvalidConfiguration(
                f"tolerance must be non-negative, got {self.tolerance}"
            )
        if not 0 <= self.magic_sensor < n_sensors:
            raise InvalidConfiguration(
                f"magic_sensor must lie in [0, {n_sensors}), got {self.magic_sensor}"
            )


@dataclass
class ICAResult:
    """Outcome of one deblending run."""

    sources: np.ndarray
    unmixing: np.ndarray
    whitening: np.ndarray
    non_gaussianity: np.ndarray
    status: Status
    n_iter: int
    changes: list = field(default_factory=list)
    unmixing_error: np.ndarray = None
    magic_sensor: int = 0
    bins: list = field(default_factory=list)

    @property
    def converged(self):
        return self.status is Status.CONVERGED

    def mixing(self):
        """Estimated mixing matrices, shape (n_sensors, n_sources, n_bins)."""
        return mixing_matrices(self.unmixing, self.whitening)

    def contribution(self, sensor):
        """
        Contribution of every source to one sensor.
        Returns:
          array of shape (n_sources, n_samples); summed over sources it
          reproduces the mean-removed record of a noise-free mixture
        """
        A = self.mixing()
        out = np.empty_like(self.sources)
        for ib, b in enumerate(self.bins):
            sl = slice(b.start, b.stop)
            out[:, sl] = A[sensor, :, ib][:, np.newaxis] * self.sources[:, sl]
        return out


class ICA:
    """
    FastICA engine with one whitening and unmixing matrix per time bin.

    Parameters:
        mixture : array-like, shape (n_sensors, n_samples)
            Blended data, real or complex. A working copy is kept.
        n_sources : int
            Number of independent components to extract.
        max_iterations : int, optional
            Iteration cap; reaching it is reported, not raised.
        tolerance : float, optional
            Convergence tolerance on the per-column change of W.
        n_bins : int, optional
            Number of contiguous time bins.
        initial_W : array-like, optional
            Initial unmixing matrix, (n_sources, n_sources) for all bins or
            (n_sources, n_sources, n_bins).
        magic_sensor : int, optional
            Sensor whose scale the deblended sources take.
        random_state : int, RandomState or None
            Source of the random initial unmixing matrices.
        align_phases : bool, optional
            Remove per-column sign (phase) flips between iterations before
            the convergence test.
        shared_init : bool, optional
            Draw one random initial matrix for all bins instead of one per bin.
    """

    def __init__(self, mixture, n_sources, max_iterations=1000, tolerance=1e-10,
                 n_bins=1, initial_W=None, magic_sensor=0, random_state=None,
                 align_phases=True, shared_init=False):
        mixture = np.asarray(mixture)
        if mixture.ndim != 2:
            raise InvalidConfiguration(
                f"mixture must be 2-D (n_sensors, n_samples), got shape {mixture.shape}"
            )
        if not np.issubdtype(mixture.dtype, np.number):
            raise InvalidConfiguration(f"mixture has non-numeric dtype {mixture.dtype}")
        dtype = np.result_type(mixture.dtype, np.float64)
        self.x = np.array(mixture, dtype=dtype, copy=True)
        if not np.all(np.isfinite(self.x)):
            raise InvalidConfiguration("mixture contains NaN or infinity")

        self.n_sensors, self.n_samples = self.x.shape
        self.config = ICAConfig(n_sources=n_sources, max_iterations=max_iterations,
                                tolerance=tolerance, n_bins=n_bins,
                                magic_sensor=magic_sensor, align_phases=align_phases,
                                shared_init=shared_init)
        self.config.validate(self.n_sensors, self.n_samples)
        self.bins = statistics.make_bins(self.n_samples, n_bins)

        self.mode = Mode.from_dtype(dtype)
        self.contrast = contrast_for(self.mode)
        self.random_state = check_random_state(random_state)

        ns, nt, nb = n_sources, self.n_samples, len(self.bins)
        self.xhat = np.zeros((ns, nt), dtype=dtype)
        self.s = np.zeros((ns, nt), dtype=dtype)
        self.G = np.zeros((ns, nt))
        self.g = np.zeros((ns, nt))
        self.dg = np.zeros((ns, nt))
        self.Q = np.zeros((self.n_sensors, ns, nb), dtype=dtype)
        self.W = np.zeros((ns, ns, nb), dtype=dtype)
        self.W_prev = np.zeros_like(self.W)
        self.means = np.zeros((self.n_sensors, nb), dtype=dtype)
        self.changes = []
        self.n_iter = 0

        logger.info("total samples %d", nt)
        logger.info("average samples in each bin %d",
                    int(round(np.mean([len(b) for b in self.bins]))))

        self.initialize_unmixing(initial_W)

    @property
    def n_sources(self):
        return self.config.n_sources

    @property
    def magic_sensor(self):
        return self.config.magic_sensor

    @magic_sensor.setter
    def magic_sensor(self, sensor):
        if not 0 <= sensor < self.n_sensors:
            raise InvalidConfiguration(
                f"magic_sensor must lie in [0, {self.n_sensors}), got {sensor}"
            )
        self.config.magic_sensor = sensor

    def _draw(self, shape):
        rng = self.random_state
        if self.mode is Mode.COMPLEX:
            return rng.normal(size=shape) + 1j * rng.normal(size=shape)
        return rng.normal(size=shape)

    def initialize_unmixing(self, initial_W=None):
        """Reset W (random or given) with unit-norm columns; the engine can then run again."""
        ns, nb = self.n_sources, len(self.bins)
        if initial_W is not None:
            initial_W = np.asarray(initial_W)
            if initial_W.shape == (ns, ns):
                initial_W = np.repeat(initial_W[:, :, np.newaxis], nb, axis=2)
            if initial_W.shape != (ns, ns, nb):
                raise InvalidConfiguration(
                    f"initial_W must have shape {(ns, ns)} or {(ns, ns, nb)}, "
                    f"got {initial_W.shape}"
                )
            if self.mode is Mode.REAL and np.iscomplexobj(initial_W):
                raise InvalidConfiguration("complex initial_W given for real data")
            self.W[...] = initial_W
            # later runs restart from the caller's matrix
            self._W_init = np.array(initial_W, copy=True)
        elif self.config.shared_init:
            self.W[...] = self._draw((ns, ns))[:, :, np.newaxis]
            self._W_init = None
        else:
            self.W[...] = self._draw((ns, ns, nb))
            self._W_init = None

        norms = np.sqrt((np.abs(self.W) ** 2).sum(axis=0))
        if np.any(norms == 0):
            raise InvalidConfiguration("initial_W has a zero column")
        self.W /= norms[np.newaxis, :, :]

        self.changes = []
        self.n_iter = 0
        self.state = State.INITIALIZED
        return self

    def preprocess(self):
        """Remove the mean, whiten, and put the mean back on the working copy."""
        self.means = statistics.remove_mean(self.x, self.bins)
        try:
            statistics.whiten(self.x, self.bins, self.n_sources, xhat=self.xhat, Q=self.Q)
        finally:
            statistics.restore_mean(self.x, self.means, self.bins)
        self.state = State.WHITENED
        return self.xhat

    def deblend(self):
        """Apply W to the whitened data: s = W^H xhat in every bin."""
        for ib, b in enumerate(self.bins):
            sl = slice(b.start, b.stop)
            self.s[:, sl] = self.W[:, :, ib].conj().T @ self.xhat[:, sl]
        return self.s

    def iterate(self):
        """
        One fixed-point iteration over all bins.
        Returns:
          change: per-bin largest summed absolute change of a column of W
        """
        self.W_prev[...] = self.W
        self.deblend()
        self.contrast.evaluate(self.s, self.G, self.g, self.dg)
        self.contrast.update(self.W, self.xhat, self.s, self.g, self.dg, self.bins)
        symmetric_decorrelation(self.W)
        if self.config.align_phases:
            align_phases(self.W, self.W_prev)
        change = column_changes(self.W, self.W_prev)
        self.n_iter += 1
        self.changes.append(float(change.max()))
        self.state = State.ITERATING
        return change

    def fit(self):
        """Iterate until every bin's change is below tolerance or the cap is hit."""
        tol = self.config.tolerance
        converged = False
        while not converged and self.n_iter < self.config.max_iterations:
            change = self.iterate()
            logger.debug("iteration %d, max change %.3e", self.n_iter, change.max())
            converged = has_converged(self.W, self.W_prev, tol)

        if converged:
            self.state = State.CONVERGED
            logger.info("converged after %d iterations", self.n_iter)
        else:
            self.state = State.MAX_ITER_REACHED
            warnings.warn(
                f"FastICA did not converge in {self.n_iter} iterations "
                f"(last change {self.changes[-1]:.3e}, tolerance {tol:.3e}). "
                "Consider increasing tolerance or the maximum number of iterations.",
                ConvergenceWarning,
            )
        return converged

    def run(self, known_mixing=None):
        """
        Deblend the mixture.
        Input:
          known_mixing: optional true mixing matrix (n_sensors, n_sources),
                        used only to report the unmixing error
        Returns:
          ICAResult
        """
        if known_mixing is not None:
            known_mixing = self._check_mixing(known_mixing)
        if self.state not in (State.INITIALIZED, State.WHITENED):
            self.initialize_unmixing(self._W_init)

        self.preprocess()
        converged = self.fit()

        EG = non_gaussianity(self.G, self.bins)
        fix_permutation(self.W, EG)
        self.state = State.PERMUTATION_FIXED

        fix_scaling(self.W, self.Q, self.magic_sensor)
        self.state = State.SCALING_FIXED

        err = None
        if known_mixing is not None:
            err = unmixing_error(self.W, self.Q, known_mixing)
            logger.info("unmixing error per bin: %s", np.array2string(err, precision=4))

        self.deblend()
        self.state = State.DEBLENDED

        return ICAResult(
            sources=self.s.copy(),
            unmixing=self.W.copy(),
            whitening=self.Q.copy(),
            non_gaussianity=EG,
            status=Status.CONVERGED if converged else Status.MAX_ITER_REACHED,
            n_iter=self.n_iter,
            changes=list(self.changes),
            unmixing_error=err,
            magic_sensor=self.magic_sensor,
            bins=list(self.bins),
        )

    def run_per_sensor(self, known_mixing=None):
        """Deblend once with every sensor in turn as the magic sensor."""
        results = []
        for sensor in range(self.n_sensors):
            self.magic_sensor = sensor
            self.initialize_unmixing(self._W_init)
            results.append(self.run(known_mixing))
        return results

    def unmixing_error(self, known_mixing):
        """Per-bin permutation and scale invariant error against the known mixing matrix."""
        return unmixing_error(self.W, self.Q, self._check_mixing(known_mixing))

    def _check_mixing(self, A):
        A = np.asarray(A)
        if A.shape != (self.n_sensors, self.n_sources):
            raise InvalidConfiguration(
                f"known mixing matrix must have shape {(self.n_sensors, self.n_sources)}, "
                f"got {A.shape}"
            )
        return A
