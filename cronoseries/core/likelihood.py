'''
Log-likelihood components and the drawdown consistency penalty.

Models compute one log-density value per observation and hand the vector to
:class:`LogLikelihoodPenalizer`. Besides the plain sum it measures how
unevenly the fit is spread over time: the components are centred on their
mean, accumulated, and the largest drawdown of that running sum is the
penalty. A model that explains the first half of a series well and the second
half badly has a large drawdown even when its total likelihood is high.
'''

import logging
from typing import Optional

import numpy as np
from scipy import stats

from .config import get_numerical_config

logger = logging.getLogger("cronoseries.core.likelihood")

LOG_2PI = float(np.log(2.0 * np.pi))


def max_drawdown(cumulative: np.ndarray) -> float:
    """Largest fall of a sequence below its running maximum.

    Args:
        cumulative: Sequence of values

    Returns:
        ``max_t (max_{s<=t} c_s - c_t)``; 0 for an empty sequence
    """
    c = np.asarray(cumulative, dtype=np.float64)
    if c.size == 0:
        return 0.0
    return float(np.max(np.maximum.accumulate(c) - c))


class LogLikelihoodPenalizer:
    """Sum of log-likelihood components with a drawdown penalty.

    Args:
        components: Per-observation log-likelihood values

    Attributes:
        log_likelihood: Sum of the components
        penalty: Maximum drawdown of the mean-adjusted cumulative sum
    """

    def __init__(self, components: np.ndarray):
        self.components = np.asarray(components, dtype=np.float64)
        self.log_likelihood = float(np.sum(self.components))
        if self.components.size == 0:
            self.penalty = 0.0
        else:
            centred = self.components - np.mean(self.components)
            self.penalty = max_drawdown(np.cumsum(centred))

    def penalized(self, penalty_factor: float) -> float:
        """Return ``log_likelihood - penalty * penalty_factor``."""
        if penalty_factor == 0.0:
            return self.log_likelihood
        return self.log_likelihood - self.penalty * penalty_factor


def gaussian_components(errors: np.ndarray, variances: np.ndarray) -> np.ndarray:
    """Normal log-densities of prediction errors with the given variances."""
    errors = np.asarray(errors, dtype=np.float64)
    variances = np.asarray(variances, dtype=np.float64)
    with np.errstate(divide='ignore', invalid='ignore'):
        return -0.5 * (LOG_2PI + np.log(variances)) - errors ** 2 / (2.0 * variances)


def student_t_components(errors: np.ndarray, sigma: float, dof: float) -> np.ndarray:
    """Log-densities of ``errors`` under a Student-t with scale ``sigma``."""
    errors = np.asarray(errors, dtype=np.float64)
    return stats.t.logpdf(errors / sigma, dof) - np.log(sigma)


def student_t_scale(errors: np.ndarray, dof: float, iterations: Optional[int] = None) -> float:
    """Maximum likelihood scale of a centred Student-t sample.

    Runs the fixed-point iteration ``s2 <- (dof+1) mean(s2 x^2 / (s2 dof + x^2))``
    starting from the sample second moment.

    Args:
        errors: Centred observations
        dof: Degrees of freedom
        iterations: Number of fixed-point steps (default from configuration)

    Returns:
        Scale estimate, NaN for an empty sample
    """
    x2 = np.asarray(errors, dtype=np.float64) ** 2
    if x2.size == 0:
        return np.nan
    if iterations is None:
        iterations = get_numerical_config().student_t_sigma_iterations
    sd2 = float(np.mean(x2))
    if sd2 <= 0.0:
        return 0.0
    for _ in range(iterations):
        sd2 = (dof + 1.0) * float(np.mean(sd2 * x2 / (sd2 * dof + x2)))
    return float(np.sqrt(sd2))
