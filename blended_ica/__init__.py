from .ambiguity import fix_permutation, fix_scaling, non_gaussianity
from .contrast import GaussianContrast, LogContrast, Mode, contrast_for
from .engine import ICA, ICAConfig, ICAResult, State, Status
from .exceptions import ICAError, InvalidConfiguration, NumericalDegeneracy
from .fixed_point import (align_phases, column_changes, has_converged,
                          symmetric_decorrelation, update_complex, update_real)
from .frequency import deblend_frequency_domain
from .scoring import error_after_scaling, error_scale_perm, source_errors, unmixing_error
from .statistics import covariance, make_bins, remove_mean, restore_mean, whiten

__version__ = "0.1.0"
