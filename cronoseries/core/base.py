'''
Abstract base classes for CronoSeries models.

Every model follows one capability interface, :class:`ModelBase`: a fixed-length
parameter vector with per-parameter estimation states, a log-likelihood that
can be evaluated at any candidate vector without touching the stored one, an
autocovariance function, seeded simulation, and (optionally) a mapping to the
unit hypercube that enables maximum likelihood estimation through
:func:`cronoseries.core.estimation.fit_by_mle`.

Models that can update their one-step predictor as observations arrive also
implement :class:`RealTimePredictable`.
'''

import abc
import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy import stats

from .config import get_core_config
from .exceptions import (
    DataError, DimensionError, ModelSpecificationError, NotFittedError, ParameterError,
    raise_dimension_error
)
from .parameters import ParameterState, count_states, validate_states

logger = logging.getLogger("cronoseries.core.base")

Timestamps = Union[int, Sequence[Any], pd.Index]


@dataclass
class DistributionSummary:
    """Mean and variance of a predictive distribution.

    Attributes:
        mean: Predictive mean
        variance: Predictive variance
    """
    mean: float
    variance: float

    @property
    def std(self) -> float:
        return float(np.sqrt(self.variance))

    def interval(self, level: float = 0.95) -> tuple:
        """Gaussian central interval with the given coverage."""
        if not 0.0 < level < 1.0:
            raise ParameterError("Interval level must lie strictly between 0 and 1",
                                 param_name="level", param_value=level)
        half_width = stats.norm.ppf(0.5 + level / 2.0) * self.std
        return (self.mean - half_width, self.mean + half_width)


@dataclass
class LikelihoodOutputs:
    """By-products of an output-filling likelihood evaluation.

    Series are indexed like the data. ``*_at_availability`` series are indexed
    by the time at which the predictor becomes available, i.e. one step
    before the observation they predict.

    Attributes:
        goodness_of_fit: Unpenalized log-likelihood
        residuals: Standardized one-step prediction errors
        unstandardized_residuals: Raw one-step prediction errors
        one_step_predictors: Predictors aligned with what they predict
        one_step_predictor_std: Predictive standard deviations, same alignment
        predictors_at_availability: Predictors aligned with their availability
        predictive_std_at_availability: Standard deviations, same alignment
    """
    goodness_of_fit: float
    residuals: Optional[Union[pd.Series, pd.DataFrame]] = None
    unstandardized_residuals: Optional[Union[pd.Series, pd.DataFrame]] = None
    one_step_predictors: Optional[Union[pd.Series, pd.DataFrame]] = None
    one_step_predictor_std: Optional[pd.Series] = None
    predictors_at_availability: Optional[Union[pd.Series, pd.DataFrame]] = None
    predictive_std_at_availability: Optional[pd.Series] = None


@dataclass
class EstimationResult:
    """Outcome of an estimation run.

    Attributes:
        model_name: Name of the estimated model
        method: Estimation method ("MLE" or "Yule-Walker")
        parameters: Final parameter vector
        parameter_names: Name of each parameter
        parameter_states: Estimation state of each parameter
        log_likelihood: Unpenalized log-likelihood at the final parameters
        penalized_objective: Best penalized objective seen by the optimizer
        n_observations: Number of observations used
        n_global_samples: Global search budget
        n_local_iterations: Local search budget
        history: Successive best Nelder-Mead vertices
        aic: Akaike information criterion over the FREE parameters
        bic: Bayesian information criterion over the FREE parameters
    """
    model_name: str
    method: str
    parameters: np.ndarray
    parameter_names: List[str]
    parameter_states: List[ParameterState]
    log_likelihood: float
    penalized_objective: Optional[float] = None
    n_observations: int = 0
    n_global_samples: int = 0
    n_local_iterations: int = 0
    history: List[Any] = field(default_factory=list)
    aic: Optional[float] = None
    bic: Optional[float] = None

    def __post_init__(self) -> None:
        k = count_states(self.parameter_states, ParameterState.FREE)
        if np.isfinite(self.log_likelihood):
            if self.aic is None:
                self.aic = 2.0 * k - 2.0 * self.log_likelihood
            if self.bic is None and self.n_observations > 0:
                self.bic = k * np.log(self.n_observations) - 2.0 * self.log_likelihood

    @property
    def n_free_parameters(self) -> int:
        return count_states(self.parameter_states, ParameterState.FREE)

    def summary(self) -> str:
        """Generate a text summary of the estimation result."""
        header = f"Model: {self.model_name}\n"
        header += "=" * (len(header) - 1) + "\n\n"

        info = f"Method: {self.method}\n"
        info += f"Observations: {self.n_observations}\n"
        if self.method == "MLE":
            info += f"Global samples: {self.n_global_samples}\n"
            info += f"Local iterations: {self.n_local_iterations}\n"
        info += "\n"

        width = max([len(n) for n in self.parameter_names] + [9])
        table = f"{'Parameter':<{width}}  {'Value':>14}  State\n"
        for name, value, state in zip(self.parameter_names, self.parameters, self.parameter_states):
            table += f"{name:<{width}}  {value:>14.6f}  {state.value}\n"
        table += "\n"

        fit_stats = f"Log-Likelihood: {self.log_likelihood:.6f}\n"
        if self.aic is not None:
            fit_stats += f"AIC: {self.aic:.6f}\n"
        if self.bic is not None:
            fit_stats += f"BIC: {self.bic:.6f}\n"

        return header + info + table + fit_stats

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a dictionary of plain Python values."""
        return {
            "model_name": self.model_name,
            "method": self.method,
            "parameters": dict(zip(self.parameter_names, [float(v) for v in self.parameters])),
            "parameter_states": [s.value for s in self.parameter_states],
            "log_likelihood": self.log_likelihood,
            "penalized_objective": self.penalized_objective,
            "n_observations": self.n_observations,
            "n_global_samples": self.n_global_samples,
            "n_local_iterations": self.n_local_iterations,
            "aic": self.aic,
            "bic": self.bic
        }


class ModelBase(abc.ABC):
    """Abstract base class for all models.

    Args:
        parameters: Initial parameter vector; its length is fixed for the
            lifetime of the model
        parameter_states: Initial estimation state of each parameter
        name: A descriptive name for the model
    """

    def __init__(self,
                 parameters: np.ndarray,
                 parameter_states: Sequence[ParameterState],
                 name: str = "Model"):
        self._name = name
        self._parameters = np.array(parameters, dtype=np.float64, copy=True)
        self._parameter_states = validate_states(parameter_states, len(self._parameters))
        self._data: Any = None
        self._fitted = False
        self._results: Optional[EstimationResult] = None
        self._outputs: Optional[LikelihoodOutputs] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def fitted(self) -> bool:
        return self._fitted

    @property
    def results(self) -> EstimationResult:
        """Result of the last estimation run.

        Raises:
            NotFittedError: If the model has not been estimated
        """
        if not self._fitted or self._results is None:
            raise NotFittedError("Model has not been fitted. Call fit_by_mle() first.",
                                 model_type=self._name, operation="results")
        return self._results

    @property
    def outputs(self) -> Optional[LikelihoodOutputs]:
        """Outputs of the last output-filling likelihood evaluation."""
        return self._outputs

    @property
    def n_parameters(self) -> int:
        return len(self._parameters)

    @property
    @abc.abstractmethod
    def parameter_names(self) -> List[str]:
        """Name of each position of the parameter vector."""

    @property
    def parameters(self) -> np.ndarray:
        """Copy of the current parameter vector.

        Assigning an invalid vector raises :class:`ParameterError`; use
        :meth:`set_parameters` for a non-raising variant.
        """
        return self._parameters.copy()

    @parameters.setter
    def parameters(self, values: np.ndarray) -> None:
        if not self.set_parameters(values):
            raise ParameterError("Parameter vector fails the model's validity check",
                                 param_name="parameters", param_value=np.asarray(values),
                                 constraint=self.describe_constraints())

    def set_parameters(self, values: np.ndarray) -> bool:
        """Store ``values`` if they are valid.

        Returns:
            True if the vector was accepted, False if it was rejected

        Raises:
            DimensionError: If the vector length differs from the model's
        """
        values = self._check_length(values)
        if not self.check_parameter_validity(values):
            return False
        self._parameters = values
        self._parameters_changed()
        return True

    def _check_length(self, values: np.ndarray) -> np.ndarray:
        values = np.array(values, dtype=np.float64, copy=True)
        if values.shape != self._parameters.shape:
            raise_dimension_error("Parameter vector has the wrong length",
                                  array_name="parameters",
                                  expected_shape=self._parameters.shape,
                                  actual_shape=values.shape)
        return values

    def _resolve(self, parameters: Optional[np.ndarray]) -> np.ndarray:
        if parameters is None:
            return self._parameters
        return self._check_length(parameters)

    @property
    def parameter_states(self) -> List[ParameterState]:
        return list(self._parameter_states)

    @parameter_states.setter
    def parameter_states(self, states: Sequence[ParameterState]) -> None:
        self._parameter_states = validate_states(states, self.n_parameters)

    def _parameter_index(self, index: Union[int, str]) -> int:
        if isinstance(index, str):
            names = self.parameter_names
            if index not in names:
                raise ParameterError(f"Unknown parameter name: {index}",
                                     param_name=index, constraint=f"one of {names}")
            return names.index(index)
        if not 0 <= index < self.n_parameters:
            raise ParameterError("Parameter index out of range",
                                 param_name="index", param_value=index,
                                 constraint=f"0 <= index < {self.n_parameters}")
        return int(index)

    def set_parameter_state(self, index: Union[int, str], state: ParameterState) -> None:
        """Set the estimation state of one parameter, by position or name."""
        states = list(self._parameter_states)
        states[self._parameter_index(index)] = state
        self.parameter_states = states

    def get_parameter(self, index: Union[int, str]) -> float:
        return float(self._parameters[self._parameter_index(index)])

    def describe_constraints(self) -> str:
        """Human readable validity constraints, used in error messages."""
        return "model-specific validity check"

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    @property
    def data(self) -> Any:
        return self._data

    @property
    def has_data(self) -> bool:
        return self._data is not None

    @property
    def n_observations(self) -> int:
        return 0 if self._data is None else len(self._data)

    def set_data(self, data: Any) -> None:
        """Attach data; previous results and outputs are discarded."""
        self._data = self.validate_data(data)
        self._fitted = False
        self._results = None
        self._outputs = None

    @abc.abstractmethod
    def validate_data(self, data: Any) -> Any:
        """Check the data and return it in the model's canonical container."""

    # ------------------------------------------------------------------
    # Likelihood and estimation
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def log_likelihood(self,
                       parameters: Optional[np.ndarray] = None,
                       penalty_factor: float = 0.0,
                       fill_outputs: bool = False) -> float:
        """Penalized log-likelihood at ``parameters`` (stored vector if None).

        The stored parameter vector is never modified. With
        ``fill_outputs=True`` the evaluation also stores
        :class:`LikelihoodOutputs`.

        Returns:
            The penalized log-likelihood, NaN when no data is attached
        """

    @abc.abstractmethod
    def check_parameter_validity(self, parameters: np.ndarray) -> bool:
        """True when ``parameters`` define a valid (stationary) model."""

    @abc.abstractmethod
    def compute_consequential_parameters(self, parameters: np.ndarray) -> np.ndarray:
        """Return a copy of ``parameters`` with CONSEQUENTIAL entries recomputed."""

    def parameter_to_cube(self, parameters: np.ndarray) -> np.ndarray:
        """Map natural parameters into the unit hypercube."""
        raise ModelSpecificationError(f"{self._name} does not support maximum likelihood estimation",
                                      model_type=self._name, parameter="parameter_to_cube")

    def cube_to_parameter(self, cube: np.ndarray) -> np.ndarray:
        """Map a point of the unit hypercube to natural parameters."""
        raise ModelSpecificationError(f"{self._name} does not support maximum likelihood estimation",
                                      model_type=self._name, parameter="cube_to_parameter")

    def fit_by_mle(self,
                   n_global_samples: Optional[int] = None,
                   n_local_iterations: Optional[int] = None,
                   penalty_factor: Optional[float] = None,
                   callback: Optional[Callable[[np.ndarray, float, int, bool], None]] = None
                   ) -> EstimationResult:
        """Estimate FREE parameters by two-phase maximum likelihood.

        See :func:`cronoseries.core.estimation.fit_by_mle`.
        """
        from .estimation import fit_by_mle
        return fit_by_mle(self, n_global_samples, n_local_iterations, penalty_factor, callback)

    async def fit_by_mle_async(self,
                               n_global_samples: Optional[int] = None,
                               n_local_iterations: Optional[int] = None,
                               penalty_factor: Optional[float] = None,
                               callback: Optional[Callable[[np.ndarray, float, int, bool], None]] = None
                               ) -> EstimationResult:
        """Run :meth:`fit_by_mle` in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, partial(self.fit_by_mle, n_global_samples, n_local_iterations, penalty_factor, callback)
        )

    def _record_fit(self, result: EstimationResult) -> None:
        self._results = result
        self._fitted = True
        self._parameters_changed()

    def _parameters_changed(self) -> None:
        """Hook run after the stored parameter vector is replaced."""

    # ------------------------------------------------------------------
    # Model properties
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def compute_acf(self, max_lag: int, normalize: bool = False) -> np.ndarray:
        """Autocovariance (or autocorrelation) at lags 0..max_lag."""

    @abc.abstractmethod
    def simulate(self, timestamps: Timestamps, seed: Optional[int] = None) -> Union[pd.Series, pd.DataFrame]:
        """Simulate the model at the given timestamps."""

    @staticmethod
    def _resolve_timestamps(timestamps: Timestamps) -> pd.Index:
        if isinstance(timestamps, (int, np.integer)):
            if timestamps < 0:
                raise ParameterError("Number of simulated periods must be non-negative",
                                     param_name="timestamps", param_value=timestamps)
            return pd.RangeIndex(int(timestamps))
        return pd.Index(timestamps)

    @staticmethod
    def _rng(seed: Optional[int]) -> np.random.Generator:
        if seed is None:
            seed = get_core_config().random_seed
        return np.random.default_rng(seed)

    def describe(self) -> str:
        """Model equation in text form."""
        return self._name

    def summary(self) -> str:
        """Text summary of the model and, when fitted, its estimation result."""
        if self._fitted and self._results is not None:
            return self._results.summary()
        lines = [f"Model: {self._name} (not fitted)", self.describe()]
        for name, value, state in zip(self.parameter_names, self._parameters, self._parameter_states):
            lines.append(f"  {name} = {value:.6f} [{state.value}]")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.summary()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self._name}', fitted={self._fitted})"


class TimeSeriesModelBase(ModelBase):
    """Base class for models of a single real-valued series."""

    def validate_data(self, data: Any) -> pd.Series:
        """Return ``data`` as a float Series.

        Arrays and lists get a RangeIndex. Empty series are accepted (the
        likelihood is then NaN).

        Raises:
            DataError: If the data is not one-dimensional or contains NaN or
                infinite values
        """
        if isinstance(data, pd.DataFrame):
            if data.shape[1] != 1:
                raise DataError("Univariate models need a single column",
                                data_name="data", issue=f"{data.shape[1]} columns")
            data = data.iloc[:, 0]
        if isinstance(data, pd.Series):
            series = data.astype(np.float64)
        else:
            array = np.asarray(data, dtype=np.float64)
            if array.ndim != 1:
                raise DataError(f"Data must be 1-dimensional, got {array.ndim} dimensions",
                                data_name="data", issue="dimension")
            series = pd.Series(array)

        if not np.all(np.isfinite(series.to_numpy())):
            raise DataError("Data contains NaN or infinite values",
                            data_name="data", issue="non-finite values")
        return series

    @property
    def values(self) -> np.ndarray:
        """Data as a contiguous float array (empty when no data is attached)."""
        if self._data is None:
            return np.zeros(0)
        return np.ascontiguousarray(self._data.to_numpy(), dtype=np.float64)


class RealTimePredictable(abc.ABC):
    """Capability of updating the one-step predictor observation by observation."""

    @abc.abstractmethod
    def reset_real_time_prediction(self) -> None:
        """Start a fresh streaming recursion from the current parameters."""

    @abc.abstractmethod
    def register(self, timestamp: Any, value: float, aux_values: Optional[Sequence[float]] = None) -> float:
        """Add one observation and return the predictor of the next one."""

    @abc.abstractmethod
    def get_current_predictor(self, future_time: Any = None) -> DistributionSummary:
        """Predictive distribution of the next observation."""

    def register_series(self, series: pd.Series, aux: Optional[pd.DataFrame] = None) -> pd.Series:
        """Reset, then register every observation of ``series``.

        Returns:
            The predictor available after each observation, indexed like
            ``series``
        """
        self.reset_real_time_prediction()
        predictions = np.empty(len(series))
        aux_rows = None if aux is None else np.asarray(aux, dtype=np.float64)
        if aux_rows is not None and len(aux_rows) != len(series):
            raise DimensionError("Auxiliary values must have one row per observation",
                                 array_name="aux", expected_shape=(len(series),),
                                 actual_shape=aux_rows.shape)
        for t, (stamp, value) in enumerate(series.items()):
            row = None
            if aux_rows is not None:
                row = np.atleast_1d(aux_rows[t])
            predictions[t] = self.register(stamp, value, row)
        return pd.Series(predictions, index=series.index, name="predictor")
