import numpy as np


class ICAError(Exception):
    """Base class for errors raised by the deblending engine."""


class InvalidConfiguration(ICAError, ValueError):
    """Malformed construction parameters or mismatched array shapes."""


class NumericalDegeneracy(ICAError, np.linalg.LinAlgError):
    """Singular covariance during whitening or singular Gram matrix during decorrelation."""
