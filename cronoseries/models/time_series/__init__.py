"""
Time series models of the conditional mean and their streaming predictors.
"""

import logging

logger = logging.getLogger("cronoseries.models.time_series")

from .predictors import (
    PredictorState,
    GrowableBuffer,
    RecursionState,
    InnovationsPredictor,
    DurbinLevinsonPredictor
)
from .arma import ARMAModel
from .armax import ARMAXModel
from .acf_model import ACFModel
from .var import VARModel

__all__ = [
    'PredictorState',
    'GrowableBuffer',
    'RecursionState',
    'InnovationsPredictor',
    'DurbinLevinsonPredictor',
    'ARMAModel',
    'ARMAXModel',
    'ACFModel',
    'VARModel'
]
