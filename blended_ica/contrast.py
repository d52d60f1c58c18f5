"""
Contrast functions for the fixed-point iteration.

Reference:
  Aapo Hyvarinen and Erkki Oja, Independent Component Analysis:
  Algorithms and Applications. Neural Networks 13(4-5), 2000.
  Ella Bingham and Aapo Hyvarinen, A fast fixed-point algorithm for
  independent component analysis of complex valued signals.
  International Journal of Neural Systems 10(1), 2000.
"""
from enum import Enum

import numpy as np

from .fixed_point import update_complex, update_real


class Mode(Enum):
    REAL = "real"
    COMPLEX = "complex"

    @classmethod
    def from_dtype(cls, dtype):
        if np.issubdtype(dtype, np.complexfloating):
            return cls.COMPLEX
        return cls.REAL


class GaussianContrast:
    """G(s) = exp(-s^2 / 2) for real-valued signals."""

    mode = Mode.REAL

    def evaluate(self, s, G, g, dg):
        """
        Fill G, g and dg with the contrast, its derivative and second derivative.
        Input:
          s: deblended estimate of shape (n_sources, n_samples)
          G, g, dg: real buffers with the shape of s
        """
        np.multiply(s, s, out=dg)
        np.exp(-0.5 * dg, out=G)
        np.multiply(s, G, out=g)
        np.subtract(1.0, dg, out=dg)
        dg *= G
        return G, g, dg

    def update(self, W, xhat, s, g, dg, bins):
        return update_real(W, xhat, g, dg, bins)


class LogContrast:
    """G(|s|^2) = log(epsilon + |s|^2) for complex-valued signals."""

    mode = Mode.COMPLEX

    def __init__(self, epsilon=0.1):
        self.epsilon = epsilon

    def evaluate(self, s, G, g, dg):
        ss = self.epsilon + np.abs(s) ** 2
        np.log(ss, out=G)
        np.reciprocal(ss, out=g)
        np.multiply(g, g, out=dg)
        np.negative(dg, out=dg)
        return G, g, dg

    def update(self, W, xhat, s, g, dg, bins):
        return update_complex(W, xhat, s, g, dg, bins)


def contrast_for(mode):
    if mode is Mode.REAL:
        return GaussianContrast()
    if mode is Mode.COMPLEX:
        return LogContrast()
    raise ValueError(f"unknown mode {mode!r}")
