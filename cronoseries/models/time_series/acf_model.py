"""
Gaussian model specified directly by its autocorrelations.

The parameter vector ``[mu, sigma, rho_1 .. rho_L]`` defines a stationary
Gaussian process with mean ``mu``, variance ``sigma^2`` and autocorrelation
``rho_h`` at lags ``h <= L`` (zero beyond). One-step predictors come from a
:class:`DurbinLevinsonPredictor` fed with the autocovariance as a callable.
"""

import logging
from typing import Any, Callable, List, Optional

import numpy as np
import pandas as pd

from ...core.base import (
    DistributionSummary, LikelihoodOutputs, RealTimePredictable, TimeSeriesModelBase, Timestamps
)
from ...core.exceptions import NumericError, ParameterError
from ...core.likelihood import LogLikelihoodPenalizer, gaussian_components
from ...core.parameters import ParameterState, logistic, logit
from ...utils.data import sample_autocovariance
from ._numba_core import durbin_levinson_simulate
from .arma import MU_SCALE, _check_order
from .predictors import DurbinLevinsonPredictor

logger = logging.getLogger("cronoseries.models.time_series.acf_model")


class ACFModel(TimeSeriesModelBase, RealTimePredictable):
    """Stationary Gaussian process with autocorrelations up to ``max_lag``.

    The mean and scale are CONSEQUENTIAL (sample mean and sample standard
    deviation); the autocorrelations are LOCKED at zero until set.

    Args:
        max_lag: Number of autocorrelation parameters
        data: Optional series to attach
        name: A descriptive name for the model
    """

    def __init__(self, max_lag: int = 1, data: Any = None, name: Optional[str] = None):
        lags = _check_order(max_lag, "max_lag")
        parameters = np.zeros(2 + lags)
        parameters[1] = 1.0
        states = [ParameterState.CONSEQUENTIAL, ParameterState.CONSEQUENTIAL] + [ParameterState.LOCKED] * lags
        super().__init__(parameters, states, name or f"ACF({lags})")
        self._max_lag = lags
        self._real_time: Optional[DurbinLevinsonPredictor] = None
        if data is not None:
            self.set_data(data)

    @property
    def max_lag(self) -> int:
        return self._max_lag

    @property
    def parameter_names(self) -> List[str]:
        return ["mu", "sigma"] + [f"rho[{i}]" for i in range(1, self._max_lag + 1)]

    def describe_constraints(self) -> str:
        return "sigma > 0 and |rho_h| < 1"

    def describe(self) -> str:
        mu, sigma = self._parameters[0], self._parameters[1]
        rhos = ", ".join(f"{r:.4f}" for r in self._parameters[2:])
        return f"X_t Gaussian, mean {mu:.4f}, std {sigma:.4f}, autocorrelations [{rhos}]"

    def check_parameter_validity(self, parameters: np.ndarray) -> bool:
        parameters = np.asarray(parameters, dtype=np.float64)
        if parameters.shape != self._parameters.shape or not np.all(np.isfinite(parameters)):
            return False
        return bool(parameters[1] > 0.0 and np.all(np.abs(parameters[2:]) < 1.0))

    def parameter_to_cube(self, parameters: np.ndarray) -> np.ndarray:
        parameters = np.asarray(parameters, dtype=np.float64)
        cube = np.empty(self.n_parameters)
        cube[0] = logistic(parameters[0], MU_SCALE)
        cube[1] = parameters[1] / (1.0 + parameters[1])
        cube[2:] = (parameters[2:] + 1.0) / 2.0
        return cube

    def cube_to_parameter(self, cube: np.ndarray) -> np.ndarray:
        cube = np.asarray(cube, dtype=np.float64)
        parameters = np.empty(self.n_parameters)
        parameters[0] = logit(cube[0], MU_SCALE)
        with np.errstate(divide='ignore'):
            parameters[1] = cube[1] / (1.0 - cube[1])
        parameters[2:] = 2.0 * cube[2:] - 1.0
        return parameters

    def _autocovariance(self, parameters: np.ndarray) -> Callable[[int], float]:
        sigma2 = float(parameters[1]) ** 2
        rhos = np.array(parameters[2:], copy=True)

        def autocovariance(lag: int) -> float:
            if lag == 0:
                return sigma2
            if lag <= len(rhos):
                return float(rhos[lag - 1]) * sigma2
            return 0.0

        return autocovariance

    def compute_acf(self, max_lag: int, normalize: bool = False) -> np.ndarray:
        if max_lag < 0:
            raise ParameterError("Maximum lag must be non-negative",
                                 param_name="max_lag", param_value=max_lag)
        source = self._autocovariance(self._parameters)
        acvf = np.array([source(h) for h in range(max_lag + 1)])
        if normalize:
            acvf = acvf / acvf[0]
        return acvf

    def log_likelihood(self,
                       parameters: Optional[np.ndarray] = None,
                       penalty_factor: float = 0.0,
                       fill_outputs: bool = False) -> float:
        parameters = self._resolve(parameters)
        x = self.values
        if x.size == 0:
            return np.nan
        sigma = float(parameters[1])
        if not np.isfinite(sigma) or sigma <= 0.0:
            return np.nan

        n = x.size
        predictor = DurbinLevinsonPredictor(float(parameters[0]), self._autocovariance(parameters))
        xhat = np.empty(n + 1)
        mspe = np.empty(n + 1)
        try:
            for t in range(n):
                xhat[t] = predictor.current_predictor
                mspe[t] = predictor.current_mspe
                predictor.register(x[t])
        except NumericError:
            logger.debug("Autocovariance candidate is not positive definite")
            return np.nan
        xhat[n] = predictor.current_predictor
        mspe[n] = predictor.current_mspe

        errors = x - xhat[:n]
        penalizer = LogLikelihoodPenalizer(gaussian_components(errors, mspe[:n]))

        if fill_outputs:
            index = self._data.index
            with np.errstate(invalid='ignore'):
                std = np.sqrt(mspe)
            self._outputs = LikelihoodOutputs(
                goodness_of_fit=penalizer.log_likelihood,
                residuals=pd.Series(errors / std[:n], index=index, name="residuals"),
                unstandardized_residuals=pd.Series(errors, index=index, name="unstandardized residuals"),
                one_step_predictors=pd.Series(xhat[:n], index=index, name="predictor"),
                one_step_predictor_std=pd.Series(std[:n], index=index, name="predictor std"),
                predictors_at_availability=pd.Series(xhat[1:], index=index, name="predictor"),
                predictive_std_at_availability=pd.Series(std[1:], index=index, name="predictor std")
            )

        value = penalizer.penalized(penalty_factor)
        return value if np.isfinite(value) else np.nan

    def compute_consequential_parameters(self, parameters: np.ndarray) -> np.ndarray:
        parameters = np.array(parameters, dtype=np.float64, copy=True)
        x = self.values
        if x.size == 0:
            return parameters
        if self._parameter_states[0] is ParameterState.CONSEQUENTIAL:
            parameters[0] = float(np.mean(x))
        if self._parameter_states[1] is ParameterState.CONSEQUENTIAL:
            parameters[1] = float(np.sqrt(sample_autocovariance(x, 0)[0]))
        return parameters

    def simulate(self, timestamps: Timestamps, seed: Optional[int] = None) -> pd.Series:
        if not self.check_parameter_validity(self._parameters):
            raise ParameterError("Cannot simulate with invalid parameters",
                                 param_name="parameters", param_value=self._parameters,
                                 constraint=self.describe_constraints())
        index = self._resolve_timestamps(timestamps)
        shocks = self._rng(seed).standard_normal(len(index))
        acvf = self.compute_acf(max(len(index), 1))
        path = durbin_levinson_simulate(acvf, shocks) + self._parameters[0]
        return pd.Series(path, index=index, name="simulated")

    def _parameters_changed(self) -> None:
        self._real_time = None

    def reset_real_time_prediction(self) -> None:
        self._real_time = DurbinLevinsonPredictor(float(self._parameters[0]),
                                                  self._autocovariance(self._parameters))

    def register(self, timestamp: Any, value: float, aux_values: Optional[np.ndarray] = None) -> float:
        if self._real_time is None:
            self.reset_real_time_prediction()
        return self._real_time.register(value)

    def get_current_predictor(self, future_time: Any = None) -> DistributionSummary:
        if self._real_time is None:
            self.reset_real_time_prediction()
        return DistributionSummary(mean=self._real_time.current_predictor,
                                   variance=self._real_time.current_mspe)
