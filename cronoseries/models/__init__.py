"""
CronoSeries Models Module

Time series models of the conditional mean (ARMA, ARFIMA, ARMAX, ACF, VAR)
and of the conditional variance (GARCH, EGARCH).
"""

import logging

logger = logging.getLogger("cronoseries.models")

from . import time_series
from . import univariate

from .time_series import (
    ARMAModel,
    ARMAXModel,
    ACFModel,
    VARModel,
    InnovationsPredictor,
    DurbinLevinsonPredictor
)
from .univariate import GARCHModel, GARCHType

__all__ = [
    'time_series',
    'univariate',
    'ARMAModel',
    'ARMAXModel',
    'ACFModel',
    'VARModel',
    'InnovationsPredictor',
    'DurbinLevinsonPredictor',
    'GARCHModel',
    'GARCHType'
]
