"""
ARMA model with lagged exogenous regressors.

ARMAX extends an ARMA(p, q) model by an adjustment driven by ``k`` exogenous
inputs observed one step earlier:

    adj_t = sum_i gamma_i u_{i,t-1} + sum_j phi_j adj_{t-j},    adj_0 = 0

and the ARMA model is applied to ``X_t - adj_t``. The parameter vector is the
ARMA vector followed by ``gamma_1 .. gamma_k``. All ARMA computations are
delegated to an internal :class:`ARMAModel`.
"""

import logging
from typing import Any, List, Optional

import numpy as np
import pandas as pd

from ...core.base import (
    DistributionSummary, RealTimePredictable, TimeSeriesModelBase, Timestamps
)
from ...core.exceptions import DataError, DimensionError, ParameterError
from ...core.parameters import ParameterState, margin_logistic, margin_logit
from ._numba_core import exogenous_adjustments
from .arma import ARMAModel, _check_order

logger = logging.getLogger("cronoseries.models.time_series.armax")

CUBE_MARGIN = 5e-5


class ARMAXModel(TimeSeriesModelBase, RealTimePredictable):
    """ARMA(p, q) model with ``n_exogenous`` lagged regressors.

    Args:
        ar_order: Order of the autoregressive polynomial
        ma_order: Order of the moving average polynomial
        n_exogenous: Number of exogenous input series
        tail_dof: Student-t degrees of freedom of the innovations, 0 for
            Gaussian innovations
        data: Optional series to attach
        exogenous: Optional inputs to attach, one column per regressor
        name: A descriptive name for the model
    """

    def __init__(self,
                 ar_order: int = 0,
                 ma_order: int = 0,
                 n_exogenous: int = 1,
                 tail_dof: float = 0.0,
                 data: Any = None,
                 exogenous: Any = None,
                 name: Optional[str] = None):
        self._arma = ARMAModel(ar_order, ma_order, tail_dof)
        k = _check_order(n_exogenous, "n_exogenous")
        parameters = np.concatenate([self._arma.parameters, np.zeros(k)])
        states = self._arma.parameter_states + [ParameterState.FREE] * k
        super().__init__(parameters, states,
                         name or f"ARMAX({self._arma.ar_order},{self._arma.ma_order},{k})")
        self._n_exogenous = k
        self._exogenous: Optional[np.ndarray] = None
        self._rt_adjustments: List[float] = []
        self._rt_summary: Optional[DistributionSummary] = None

        if data is not None:
            self.set_data(data)
        if exogenous is not None:
            self.set_exogenous(exogenous)

    @property
    def arma(self) -> ARMAModel:
        """The delegate ARMA model (its parameters follow this model's on demand)."""
        self._sync()
        return self._arma

    @property
    def n_exogenous(self) -> int:
        return self._n_exogenous

    @property
    def _n_arma(self) -> int:
        return self._arma.n_parameters

    @property
    def gamma(self) -> np.ndarray:
        return self._parameters[self._n_arma:].copy()

    @property
    def parameter_names(self) -> List[str]:
        return self._arma.parameter_names + [f"gamma[{i}]" for i in range(1, self._n_exogenous + 1)]

    def describe_constraints(self) -> str:
        return self._arma.describe_constraints() + ", finite regression coefficients"

    def describe(self) -> str:
        self._sync()
        terms = " + ".join(f"{g:.4f} u{i}_(t-1)" for i, g in enumerate(self.gamma, start=1))
        return f"{self._arma.describe()}; X_t adjusted by adj_t = {terms or '0'} + AR(adj)"

    def _sync(self) -> None:
        self._arma._parameters = self._parameters[:self._n_arma].copy()
        self._arma._parameters_changed()

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    @property
    def exogenous(self) -> Optional[np.ndarray]:
        return None if self._exogenous is None else self._exogenous.copy()

    def set_exogenous(self, exogenous: Any) -> None:
        """Attach exogenous inputs, one row per observation.

        Raises:
            DimensionError: If the number of columns differs from
                ``n_exogenous`` or the number of rows from the data length
            DataError: If the inputs contain NaN or infinite values
        """
        array = np.asarray(exogenous, dtype=np.float64)
        if array.ndim == 1 and self._n_exogenous == 1:
            array = array[:, None]
        if array.ndim != 2 or array.shape[1] != self._n_exogenous:
            raise DimensionError("Exogenous inputs need one column per regressor",
                                 array_name="exogenous",
                                 expected_shape=f"(n, {self._n_exogenous})",
                                 actual_shape=array.shape)
        if self._data is not None and array.shape[0] != len(self._data):
            raise DimensionError("Exogenous inputs need one row per observation",
                                 array_name="exogenous",
                                 expected_shape=(len(self._data), self._n_exogenous),
                                 actual_shape=array.shape)
        if not np.all(np.isfinite(array)):
            raise DataError("Exogenous inputs contain NaN or infinite values",
                            data_name="exogenous", issue="non-finite values")
        self._exogenous = np.ascontiguousarray(array)
        self._fitted = False
        self._results = None
        self._outputs = None

    @property
    def has_data(self) -> bool:
        """True when data and exogenous inputs of matching length are attached."""
        if self._data is None:
            return False
        if self._n_exogenous == 0:
            return True
        return self._exogenous is not None and len(self._exogenous) == len(self._data)

    def _inputs(self) -> np.ndarray:
        if self._n_exogenous == 0:
            return np.zeros((self.n_observations, 0))
        return self._exogenous

    def adjustments(self, parameters: Optional[np.ndarray] = None) -> np.ndarray:
        """Exogenous adjustments ``adj_0 .. adj_n`` for the attached data.

        Raises:
            DataError: If data or matching exogenous inputs are missing
        """
        if not self.has_data:
            raise DataError("ARMAX adjustments need data and matching exogenous inputs",
                            data_name="exogenous", issue="missing")
        parameters = self._resolve(parameters)
        p = self._arma.ar_order
        return exogenous_adjustments(self._inputs(),
                                     np.ascontiguousarray(parameters[self._n_arma:]),
                                     np.ascontiguousarray(parameters[3:3 + p]))

    # ------------------------------------------------------------------
    # Likelihood
    # ------------------------------------------------------------------

    def check_parameter_validity(self, parameters: np.ndarray) -> bool:
        parameters = np.asarray(parameters, dtype=np.float64)
        if parameters.shape != self._parameters.shape:
            return False
        return (self._arma.check_parameter_validity(parameters[:self._n_arma])
                and bool(np.all(np.isfinite(parameters[self._n_arma:]))))

    def parameter_to_cube(self, parameters: np.ndarray) -> np.ndarray:
        parameters = np.asarray(parameters, dtype=np.float64)
        gamma = [margin_logistic(g, CUBE_MARGIN) for g in parameters[self._n_arma:]]
        return np.concatenate([self._arma.parameter_to_cube(parameters[:self._n_arma]), gamma])

    def cube_to_parameter(self, cube: np.ndarray) -> np.ndarray:
        cube = np.asarray(cube, dtype=np.float64)
        gamma = [margin_logit(c, CUBE_MARGIN) for c in cube[self._n_arma:]]
        return np.concatenate([self._arma.cube_to_parameter(cube[:self._n_arma]), gamma])

    def log_likelihood(self,
                       parameters: Optional[np.ndarray] = None,
                       penalty_factor: float = 0.0,
                       fill_outputs: bool = False) -> float:
        parameters = self._resolve(parameters)
        if not self.has_data:
            return np.nan
        adj = self.adjustments(parameters)
        x = self.values
        value, outputs = self._arma._evaluate(parameters[:self._n_arma], x - adj[:x.size],
                                              self._data.index, penalty_factor, fill_outputs,
                                              offsets=adj)
        if outputs is not None:
            self._outputs = outputs
        return value

    def compute_consequential_parameters(self, parameters: np.ndarray) -> np.ndarray:
        parameters = np.array(parameters, dtype=np.float64, copy=True)
        if not self.has_data or self.n_observations == 0:
            return parameters
        x = self.values
        adj = self.adjustments(parameters)
        parameters[:self._n_arma] = self._arma._consequential(
            parameters[:self._n_arma], x - adj[:x.size],
            self._parameter_states[:self._n_arma], float(np.mean(x))
        )
        return parameters

    def compute_acf(self, max_lag: int, normalize: bool = False) -> np.ndarray:
        """Autocovariance of the ARMA part (the exogenous inputs are not modelled)."""
        return self._arma.compute_acf(max_lag, normalize, self._parameters[:self._n_arma])

    def simulate(self, timestamps: Timestamps, seed: Optional[int] = None) -> pd.Series:
        """Simulate with all exogenous inputs held at zero."""
        self._sync()
        return self._arma.simulate(timestamps, seed)

    def _parameters_changed(self) -> None:
        self._rt_summary = None

    # ------------------------------------------------------------------
    # Real-time prediction
    # ------------------------------------------------------------------

    def reset_real_time_prediction(self) -> None:
        self._sync()
        self._arma.reset_real_time_prediction()
        self._rt_adjustments = []
        self._rt_summary = self._arma.get_current_predictor()

    def register(self, timestamp: Any, value: float, aux_values: Optional[np.ndarray] = None) -> float:
        """Add one observation and its exogenous inputs.

        Raises:
            ParameterError: If ``aux_values`` is missing for a model with
                regressors
            DimensionError: If ``aux_values`` has the wrong length
        """
        if aux_values is None and self._n_exogenous == 0:
            aux_values = np.zeros(0)
        if aux_values is None:
            raise ParameterError("ARMAX registration requires exogenous values",
                                 param_name="aux_values", constraint=f"{self._n_exogenous} values")
        aux = np.atleast_1d(np.asarray(aux_values, dtype=np.float64))
        if aux.shape != (self._n_exogenous,):
            raise DimensionError("One exogenous value per regressor is required",
                                 array_name="aux_values", expected_shape=(self._n_exogenous,),
                                 actual_shape=aux.shape)
        if self._rt_summary is None:
            self.reset_real_time_prediction()

        phi = self._parameters[3:3 + self._arma.ar_order]
        history = self._rt_adjustments
        current = history[-1] if history else 0.0
        following = float(np.dot(aux, self._parameters[self._n_arma:]))
        for j in range(1, min(len(phi), len(history)) + 1):
            following += phi[j - 1] * history[-j]

        arma_predictor = self._arma.register(timestamp, value - current)
        history.append(following)
        self._rt_summary = DistributionSummary(mean=arma_predictor + following,
                                               variance=self._arma.get_current_predictor().variance)
        return self._rt_summary.mean

    def get_current_predictor(self, future_time: Any = None) -> DistributionSummary:
        if self._rt_summary is None:
            self.reset_real_time_prediction()
        return self._rt_summary
