"""
CronoSeries Utilities Module

Low-discrepancy sequences, polynomial root mappings, the Nelder-Mead
optimizer, sample statistics and matplotlib diagnostics used by the models.
"""

import logging

logger = logging.getLogger("cronoseries.utils")

from .sequences import VanderCorputSequence, HaltonSequence

from .polynomial import (
    roots,
    map_from_cube,
    map_to_cube,
    min_root_modulus,
    roots_outside
)

from .optimization import NelderMead, NelderMeadResult, Evaluation

from .data import (
    as_time_series,
    sample_autocovariance,
    sample_autocovariance_matrices
)

from .plots import plot_optimization_history, plot_one_step_predictors

__all__ = [
    'VanderCorputSequence',
    'HaltonSequence',
    'roots',
    'map_from_cube',
    'map_to_cube',
    'min_root_modulus',
    'roots_outside',
    'NelderMead',
    'NelderMeadResult',
    'Evaluation',
    'as_time_series',
    'sample_autocovariance',
    'sample_autocovariance_matrices',
    'plot_optimization_history',
    'plot_one_step_predictors'
]
