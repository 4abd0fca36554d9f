"""
CronoSeries Core Module

Base classes, parameter states, hypercube helpers, likelihood components,
the maximum likelihood driver, configuration and the exception hierarchy
shared by every model.
"""

import logging

logger = logging.getLogger("cronoseries.core")

from . import config

from .exceptions import (
    CronoError,
    ParameterError,
    DimensionError,
    NumericError,
    DataError,
    ModelSpecificationError,
    EstimationError,
    OptimizationError,
    ConfigurationError,
    NotFittedError,
    PredictorStateError,
    PredictorCapacityError,
    CronoWarning,
    ConvergenceWarning,
    NumericWarning,
    ModelWarning
)

from .parameters import (
    ParameterState,
    free_indices,
    count_states,
    cube_fix,
    cube_insert,
    logistic,
    logit
)

from .base import (
    DistributionSummary,
    LikelihoodOutputs,
    EstimationResult,
    ModelBase,
    TimeSeriesModelBase,
    RealTimePredictable
)

from .likelihood import (
    LogLikelihoodPenalizer,
    max_drawdown,
    gaussian_components,
    student_t_components,
    student_t_scale
)

from .config import (
    get_config,
    set_config,
    reset_config,
    save_config,
    get_estimation_config,
    get_numerical_config
)

from .estimation import fit_by_mle, penalized_log_likelihood

__all__ = [
    # Exceptions and warnings
    'CronoError',
    'ParameterError',
    'DimensionError',
    'NumericError',
    'DataError',
    'ModelSpecificationError',
    'EstimationError',
    'OptimizationError',
    'ConfigurationError',
    'NotFittedError',
    'PredictorStateError',
    'PredictorCapacityError',
    'CronoWarning',
    'ConvergenceWarning',
    'NumericWarning',
    'ModelWarning',

    # Parameters
    'ParameterState',
    'free_indices',
    'count_states',
    'cube_fix',
    'cube_insert',
    'logistic',
    'logit',

    # Base classes and results
    'DistributionSummary',
    'LikelihoodOutputs',
    'EstimationResult',
    'ModelBase',
    'TimeSeriesModelBase',
    'RealTimePredictable',

    # Likelihood
    'LogLikelihoodPenalizer',
    'max_drawdown',
    'gaussian_components',
    'student_t_components',
    'student_t_scale',

    # Configuration
    'get_config',
    'set_config',
    'reset_config',
    'save_config',
    'get_estimation_config',
    'get_numerical_config',

    # Estimation
    'fit_by_mle',
    'penalized_log_likelihood'
]

logger.debug("CronoSeries core module initialized")
