"""
ARMA and ARFIMA models of a single series.

The model is

    phi(B) (1 - B)^d (X_t - mu) = theta(B) Z_t

with ``Z_t`` Gaussian white noise of variance ``sigma^2`` or, when
``tail_dof > 0``, ``sigma`` times a Student-t variable with ``tail_dof``
degrees of freedom. The parameter vector is laid out as

    [mu, sigma, d, phi_1 .. phi_p, theta_1 .. theta_q]

Short-memory models (``d == 0``) compute exact Gaussian one-step predictors
with the innovations algorithm, which only needs the autocovariance up to lag
``max(p, q)``. Long-memory models use the Durbin-Levinson recursion on the full
autocovariance of the fractionally integrated process.

AR and MA blocks are mapped to the unit hypercube through their inverse roots,
so every cube point yields a causal and invertible model.
"""

import logging
import math
from typing import Any, Callable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy import special

from ...core.base import (
    DistributionSummary, EstimationResult, LikelihoodOutputs, RealTimePredictable,
    TimeSeriesModelBase, Timestamps
)
from ...core.exceptions import (
    DataError, EstimationError, ModelSpecificationError, ParameterError,
    raise_parameter_error, warn_numeric
)
from ...core.likelihood import (
    LogLikelihoodPenalizer, gaussian_components, student_t_components, student_t_scale
)
from ...core.parameters import ParameterState, logistic, logit
from ...utils.data import sample_autocovariance
from ...utils.polynomial import map_from_cube, map_to_cube, min_root_modulus, roots_outside
from ._numba_core import (
    durbin_levinson_recursion, durbin_levinson_simulate, fractional_noise_acvf,
    fractional_weights, innovations_recursion, psi_weights
)
from .predictors import DurbinLevinsonPredictor, InnovationsPredictor

logger = logging.getLogger("cronoseries.models.time_series.arma")

UNIT_ROOT_BARRIER = 1e-3
MU_SCALE = 10.0
YULE_WALKER_EPSILON = 1e-4
# Relative size below which the ARMA autocovariance is dropped in the ARFIMA convolution
ARFIMA_TRUNCATION = 1e-12
MAX_ARFIMA_TERMS = 10000


def _check_order(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 0:
        raise_parameter_error(f"{name} must be a non-negative integer, got {value}",
                              param_name=name, param_value=value,
                              constraint="Must be a non-negative integer")
    return int(value)


def _lag_polynomial(coefficients: np.ndarray, sign: float) -> str:
    terms = ["1"]
    for i, c in enumerate(coefficients, start=1):
        c = sign * c
        op = "-" if c < 0 else "+"
        power = "B" if i == 1 else f"B^{i}"
        terms.append(f"{op} {abs(c):.4f}{power}")
    return "(" + " ".join(terms) + ")"


class ARMAModel(TimeSeriesModelBase, RealTimePredictable):
    """ARMA(p, q) model with optional fractional integration.

    By default the mean and innovation scale are CONSEQUENTIAL (sample mean
    and residual scale), ``d`` is LOCKED at 0, and the AR and MA coefficients
    are FREE. Unlock ``d`` to estimate an ARFIMA model.

    Args:
        ar_order: Order of the autoregressive polynomial
        ma_order: Order of the moving average polynomial
        tail_dof: Student-t degrees of freedom of the innovations, 0 for
            Gaussian innovations
        data: Optional series to attach
        name: A descriptive name for the model

    Raises:
        ParameterError: If an order or ``tail_dof`` is negative
    """

    def __init__(self,
                 ar_order: int = 0,
                 ma_order: int = 0,
                 tail_dof: float = 0.0,
                 data: Any = None,
                 name: Optional[str] = None):
        p = _check_order(ar_order, "ar_order")
        q = _check_order(ma_order, "ma_order")
        if not np.isfinite(tail_dof) or tail_dof < 0:
            raise ParameterError("Tail degrees of freedom must be non-negative",
                                 param_name="tail_dof", param_value=tail_dof,
                                 constraint="tail_dof >= 0 (0 selects Gaussian innovations)")

        parameters = np.zeros(3 + p + q)
        parameters[1] = 1.0
        states = ([ParameterState.CONSEQUENTIAL, ParameterState.CONSEQUENTIAL, ParameterState.LOCKED]
                  + [ParameterState.FREE] * (p + q))
        super().__init__(parameters, states, name or f"ARMA({p},{q})")

        self._ar_order = p
        self._ma_order = q
        self._tail_dof = float(tail_dof)
        self._real_time: Optional[Union[InnovationsPredictor, DurbinLevinsonPredictor]] = None
        self._last_timestamp: Any = None

        if data is not None:
            self.set_data(data)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @property
    def ar_order(self) -> int:
        return self._ar_order

    @property
    def ma_order(self) -> int:
        return self._ma_order

    @property
    def tail_dof(self) -> float:
        return self._tail_dof

    @property
    def uses_student_t(self) -> bool:
        return self._tail_dof > 0.0

    @property
    def parameter_names(self) -> List[str]:
        return (["mu", "sigma", "d"]
                + [f"phi[{i}]" for i in range(1, self._ar_order + 1)]
                + [f"theta[{i}]" for i in range(1, self._ma_order + 1)])

    @property
    def mu(self) -> float:
        return float(self._parameters[0])

    @property
    def sigma(self) -> float:
        return float(self._parameters[1])

    @property
    def fractional_difference(self) -> float:
        return float(self._parameters[2])

    @property
    def ar_coefficients(self) -> np.ndarray:
        return self._parameters[3:3 + self._ar_order].copy()

    @property
    def ma_coefficients(self) -> np.ndarray:
        return self._parameters[3 + self._ar_order:].copy()

    def _split(self, parameters: np.ndarray) -> Tuple[float, float, float, np.ndarray, np.ndarray]:
        p = self._ar_order
        return (float(parameters[0]), float(parameters[1]), float(parameters[2]),
                np.ascontiguousarray(parameters[3:3 + p]),
                np.ascontiguousarray(parameters[3 + p:]))

    def describe_constraints(self) -> str:
        return ("sigma > 0, |d| < 0.5, AR and MA polynomial roots outside "
                f"the circle of radius {1 + UNIT_ROOT_BARRIER}")

    def describe(self) -> str:
        mu, sigma, d, phi, theta = self._split(self._parameters)
        lhs = ""
        if self._ar_order > 0:
            lhs += _lag_polynomial(phi, -1.0)
        if d != 0.0:
            lhs += f"(1 - B)^{d:.4f}"
        lhs += f"(X_t - {mu:.4f})"
        rhs = _lag_polynomial(theta, 1.0) + "Z_t" if self._ma_order > 0 else "Z_t"
        if self.uses_student_t:
            noise = f"Z_t ~ {sigma:.4f} t({self._tail_dof:g})"
        else:
            noise = f"Z_t ~ N(0, {sigma ** 2:.4f})"
        return f"{lhs} = {rhs}, {noise}"

    # ------------------------------------------------------------------
    # Validity and cube mapping
    # ------------------------------------------------------------------

    def check_parameter_validity(self, parameters: np.ndarray) -> bool:
        parameters = np.asarray(parameters, dtype=np.float64)
        if parameters.shape != self._parameters.shape or not np.all(np.isfinite(parameters)):
            return False
        mu, sigma, d, phi, theta = self._split(parameters)
        if sigma <= 0.0 or abs(d) >= 0.5:
            return False
        radius = 1.0 + UNIT_ROOT_BARRIER
        return (roots_outside(np.concatenate([[1.0], -phi]), radius)
                and roots_outside(np.concatenate([[1.0], theta]), radius))

    def parameter_to_cube(self, parameters: np.ndarray) -> np.ndarray:
        mu, sigma, d, phi, theta = self._split(np.asarray(parameters, dtype=np.float64))
        p, q = self._ar_order, self._ma_order
        cube = np.zeros(self.n_parameters)
        cube[0] = logistic(mu, MU_SCALE)
        cube[1] = sigma / (1.0 + sigma)
        cube[2] = d + 0.5
        cube[3:3 + p] = map_to_cube(np.concatenate([[1.0], -phi]), UNIT_ROOT_BARRIER, p)
        cube[3 + p:] = map_to_cube(np.concatenate([[1.0], theta]), UNIT_ROOT_BARRIER, q)
        return cube

    def cube_to_parameter(self, cube: np.ndarray) -> np.ndarray:
        cube = np.asarray(cube, dtype=np.float64)
        p = self._ar_order
        parameters = np.zeros(self.n_parameters)
        parameters[0] = logit(cube[0], MU_SCALE)
        with np.errstate(divide='ignore'):
            parameters[1] = cube[1] / (1.0 - cube[1])
        parameters[2] = cube[2] - 0.5
        parameters[3:3 + p] = -map_from_cube(cube[3:3 + p], UNIT_ROOT_BARRIER)[1:]
        parameters[3 + p:] = map_from_cube(cube[3 + p:], UNIT_ROOT_BARRIER)[1:]
        return parameters

    # ------------------------------------------------------------------
    # Autocovariance
    # ------------------------------------------------------------------

    def compute_acf(self, max_lag: int, normalize: bool = False,
                    parameters: Optional[np.ndarray] = None) -> np.ndarray:
        """Autocovariance (or autocorrelation) at lags 0..max_lag.

        Args:
            max_lag: Largest lag
            normalize: Divide by the lag-0 value
            parameters: Candidate vector (current parameters if None)

        Returns:
            Array of length ``max_lag + 1``; all NaN when the parameters do not
            define a stationary process
        """
        if max_lag < 0:
            raise ParameterError("Maximum lag must be non-negative",
                                 param_name="max_lag", param_value=max_lag)
        acvf = self._acvf(self._resolve(parameters), int(max_lag))
        if normalize:
            acvf = acvf / acvf[0]
        return acvf

    def _acvf(self, parameters: np.ndarray, max_lag: int) -> np.ndarray:
        mu, sigma, d, phi, theta = self._split(parameters)
        sigma2 = sigma * sigma
        if d == 0.0:
            return self._arma_acvf(phi, theta, sigma2, max_lag)

        # ARMA filter of fractional noise: convolve the unit-variance ARMA
        # autocovariance with the fractional noise autocovariance
        phi = np.trim_zeros(phi, 'b')
        gamma0 = sigma2 * math.exp(special.gammaln(1.0 - 2.0 * d) - 2.0 * special.gammaln(1.0 - d))
        terms = self._truncation(phi, theta)
        noise = fractional_noise_acvf(d, gamma0, max_lag + terms)
        if terms == 0:
            return noise[:max_lag + 1].copy()

        unit = self._arma_acvf(phi, theta, 1.0, terms)
        lags = np.arange(max_lag + 1)[:, None]
        offsets = np.arange(1, terms + 1)[None, :]
        acvf = unit[0] * noise[:max_lag + 1]
        acvf += ((noise[np.abs(lags - offsets)] + noise[lags + offsets]) * unit[1:]).sum(axis=1)
        return acvf

    @staticmethod
    def _truncation(phi: np.ndarray, theta: np.ndarray) -> int:
        q = len(np.trim_zeros(theta, 'b'))
        if len(phi) == 0:
            return q
        modulus = min_root_modulus(np.concatenate([[1.0], -phi]))
        if not np.isfinite(modulus):
            return q
        if modulus <= 1.0:
            return MAX_ARFIMA_TERMS
        decay = int(math.ceil(math.log(ARFIMA_TRUNCATION) / -math.log(modulus)))
        return min(q + decay, MAX_ARFIMA_TERMS)

    @staticmethod
    def _arma_acvf(phi: np.ndarray, theta: np.ndarray, sigma2: float, max_lag: int) -> np.ndarray:
        """Autocovariance of a short-memory ARMA process (Brockwell & Davis 3.3)."""
        phi = np.ascontiguousarray(np.trim_zeros(np.asarray(phi, dtype=np.float64), 'b'))
        theta = np.ascontiguousarray(np.trim_zeros(np.asarray(theta, dtype=np.float64), 'b'))
        p, q = len(phi), len(theta)
        psi = psi_weights(phi, theta, q + 1)
        theta_full = np.concatenate([[1.0], theta])
        phi_full = np.concatenate([[1.0], -phi])

        system = np.zeros((p + 1, p + 1))
        rhs = np.zeros(p + 1)
        for i in range(p + 1):
            for j in range(p + 1):
                system[i, abs(i - j)] += phi_full[j]
            if i <= q:
                rhs[i] = sigma2 * np.dot(theta_full[i:], psi[:q + 1 - i])

        acvf = np.zeros(max_lag + 1)
        try:
            gammas = np.linalg.solve(system, rhs)
        except np.linalg.LinAlgError:
            acvf[:] = np.nan
            return acvf
        top = min(p, max_lag)
        acvf[:top + 1] = gammas[:top + 1]

        for h in range(p + 1, max_lag + 1):
            value = np.dot(phi, acvf[h - 1::-1][:p])
            if h <= q:
                value += sigma2 * np.dot(theta_full[h:], psi[:q + 1 - h])
            acvf[h] = value
        return acvf

    # ------------------------------------------------------------------
    # Likelihood
    # ------------------------------------------------------------------

    def _one_step(self, parameters: np.ndarray, x: np.ndarray, horizon: int) -> Tuple[np.ndarray, np.ndarray]:
        """One-step predictors and MSEs scaled by ``sigma^2``, length ``len(x) + horizon + 1``."""
        mu, sigma, d, phi, theta = self._split(parameters)
        sigma2 = sigma * sigma
        if d == 0.0:
            m = max(self._ar_order, self._ma_order)
            acvf = self._arma_acvf(phi, theta, sigma2, m)
            return innovations_recursion(x, horizon, mu, phi, theta, acvf, sigma2)

        acvf = self._acvf(parameters, len(x) + horizon)
        xhat, nu = durbin_levinson_recursion(x, horizon, mu, acvf)
        return xhat, nu / sigma2

    def log_likelihood(self,
                       parameters: Optional[np.ndarray] = None,
                       penalty_factor: float = 0.0,
                       fill_outputs: bool = False) -> float:
        parameters = self._resolve(parameters)
        if self._data is None:
            return np.nan
        value, outputs = self._evaluate(parameters, self.values, self._data.index,
                                        penalty_factor, fill_outputs)
        if outputs is not None:
            self._outputs = outputs
        return value

    def _evaluate(self,
                  parameters: np.ndarray,
                  x: np.ndarray,
                  index: pd.Index,
                  penalty_factor: float,
                  fill_outputs: bool,
                  offsets: Optional[np.ndarray] = None) -> Tuple[float, Optional[LikelihoodOutputs]]:
        """Likelihood of ``x`` and, optionally, the outputs of the evaluation.

        ``offsets`` (length ``len(x) + 1``) are added back to the predictors
        in the outputs when ``x`` is an adjusted version of the observed data.
        """
        if x.size == 0:
            return np.nan, None
        sigma = float(parameters[1])
        if not np.isfinite(sigma) or sigma <= 0.0:
            return np.nan, None

        try:
            xhat, rs = self._one_step(parameters, x, 0)
        except ZeroDivisionError:
            logger.debug("Degenerate prediction variance in ARMA recursion")
            if fill_outputs:
                warn_numeric("Degenerate prediction variance in ARMA recursion",
                             operation="one-step recursion",
                             issue="zero prediction variance")
            return np.nan, None

        n = x.size
        errors = x - xhat[:n]
        if self.uses_student_t:
            with np.errstate(divide='ignore', invalid='ignore'):
                components = student_t_components(errors / np.sqrt(rs[:n]), sigma, self._tail_dof)
        else:
            components = gaussian_components(errors, sigma * sigma * rs[:n])
        penalizer = LogLikelihoodPenalizer(components)

        outputs = None
        if fill_outputs:
            predictors = xhat if offsets is None else xhat + offsets
            std = np.sqrt(rs) * sigma
            outputs = LikelihoodOutputs(
                goodness_of_fit=penalizer.log_likelihood,
                residuals=pd.Series(errors / std[:n], index=index, name="residuals"),
                unstandardized_residuals=pd.Series(errors, index=index, name="unstandardized residuals"),
                one_step_predictors=pd.Series(predictors[:n], index=index, name="predictor"),
                one_step_predictor_std=pd.Series(std[:n], index=index, name="predictor std"),
                predictors_at_availability=pd.Series(predictors[1:n + 1], index=index, name="predictor"),
                predictive_std_at_availability=pd.Series(std[1:n + 1], index=index, name="predictor std")
            )

        value = penalizer.penalized(penalty_factor)
        return (value if np.isfinite(value) else np.nan), outputs

    def compute_consequential_parameters(self, parameters: np.ndarray) -> np.ndarray:
        x = self.values
        return self._consequential(parameters, x, self._parameter_states,
                                   float(np.mean(x)) if x.size else np.nan)

    def _consequential(self,
                       parameters: np.ndarray,
                       x: np.ndarray,
                       states: List[ParameterState],
                       sample_mean: float) -> np.ndarray:
        parameters = np.array(parameters, dtype=np.float64, copy=True)
        if x.size == 0:
            return parameters

        if states[0] is ParameterState.CONSEQUENTIAL:
            parameters[0] = sample_mean

        if states[1] is ParameterState.CONSEQUENTIAL:
            unit = parameters.copy()
            unit[1] = 1.0
            try:
                xhat, rs = self._one_step(unit, x, 0)
            except ZeroDivisionError:
                parameters[1] = np.nan
                return parameters
            with np.errstate(divide='ignore', invalid='ignore'):
                residuals = (x - xhat[:x.size]) / np.sqrt(rs[:x.size])
            if self.uses_student_t:
                parameters[1] = student_t_scale(residuals, self._tail_dof)
            else:
                parameters[1] = float(np.sqrt(np.mean(residuals ** 2)))
        return parameters

    # ------------------------------------------------------------------
    # Moment estimation
    # ------------------------------------------------------------------

    def estimate_by_yule_walker(self, sample_mean: float, acvf: np.ndarray) -> None:
        """Set the parameters from a mean and autocovariances at lags 0..2.

        Supports white noise, AR(1), MA(1) and ARMA(1,1); coefficients are
        clamped to ``+/-(1 - 1e-4)``.

        Raises:
            ModelSpecificationError: For any other order
            EstimationError: If no valid MA coefficient solves the equations
        """
        acvf = np.asarray(acvf, dtype=np.float64)
        p, q = self._ar_order, self._ma_order
        bound = 1.0 - YULE_WALKER_EPSILON
        values = np.zeros(self.n_parameters)
        values[0] = sample_mean

        if (p, q) == (0, 0):
            values[1] = math.sqrt(acvf[0])
        elif (p, q) == (1, 0):
            phi = float(np.clip(acvf[1] / acvf[0], -bound, bound))
            values[1] = math.sqrt(acvf[0] * (1.0 - phi * phi))
            values[3] = phi
        elif (p, q) == (0, 1):
            if acvf[1] == 0.0:
                theta, s2 = 0.0, acvf[0]
            else:
                root = math.sqrt(max(acvf[0] ** 2 - 4.0 * acvf[1] ** 2, 0.0))
                # two solutions of the quadratic; keep the invertible one
                s2 = max((acvf[0] + root) / 2.0, (acvf[0] - root) / 2.0)
                theta = float(np.clip(acvf[1] / s2, -bound, bound))
                s2 = acvf[1] / theta
            values[1] = math.sqrt(s2)
            values[3] = theta
        elif (p, q) == (1, 1):
            phi = acvf[2] / acvf[1] if acvf[1] != 0.0 else 0.0
            phi = float(np.clip(phi, -bound, bound))
            k = acvf[1] - phi * acvf[0]
            qb = 2.0 * phi * k - acvf[0] * (1.0 - phi * phi)
            disc = qb * qb - 4.0 * k * k
            root = math.sqrt(disc) if disc >= 0.0 else 0.0
            s1 = (-qb + root) / 2.0
            s2 = (-qb - root) / 2.0
            if s1 <= 0.0:
                s1 = s2
            if s2 <= 0.0:
                s2 = s1
            with np.errstate(divide='ignore', invalid='ignore'):
                theta1 = np.divide(k, s1)
                theta2 = np.divide(k, s2)
            if abs(theta1) < abs(theta2):
                theta, s2 = theta1, s1
            else:
                theta = theta2
            if not np.isfinite(theta) or s2 <= 0.0:
                raise EstimationError("Yule-Walker equations have no valid MA solution",
                                      model_type=self._name, estimation_method="Yule-Walker",
                                      issue="invalid theta")
            values[1] = math.sqrt(s2)
            values[3] = phi
            values[4] = float(np.clip(theta, -bound, bound))
        else:
            raise ModelSpecificationError("Yule-Walker estimation supports ARMA orders up to (1, 1)",
                                          model_type=self._name, parameter="order",
                                          valid_options=["(0,0)", "(1,0)", "(0,1)", "(1,1)"])
        self._parameters = values
        self._parameters_changed()

    def fit_by_moments(self) -> EstimationResult:
        """Yule-Walker estimate from the sample mean and autocovariances.

        Raises:
            DataError: If no data is attached
        """
        x = self.values
        if x.size == 0:
            raise DataError("Cannot estimate a model without data",
                            data_name=self._name, issue="no observations")
        self.estimate_by_yule_walker(float(np.mean(x)), sample_autocovariance(x, 2))
        log_likelihood = self.log_likelihood(None, 0.0, True)
        result = EstimationResult(
            model_name=self._name,
            method="Yule-Walker",
            parameters=self.parameters,
            parameter_names=self.parameter_names,
            parameter_states=self.parameter_states,
            log_likelihood=log_likelihood,
            n_observations=x.size
        )
        self._record_fit(result)
        logger.info(f"Yule-Walker estimate for {self._name}: log-likelihood {log_likelihood:.6f}")
        return result

    # ------------------------------------------------------------------
    # Simulation and forecasting
    # ------------------------------------------------------------------

    def _require_valid(self, operation: str) -> None:
        if not self.check_parameter_validity(self._parameters):
            raise ParameterError(f"Cannot {operation} with invalid parameters",
                                 param_name="parameters", param_value=self._parameters,
                                 constraint=self.describe_constraints())

    def simulate(self, timestamps: Timestamps, seed: Optional[int] = None) -> pd.Series:
        """Simulate a path at ``timestamps`` (an int gives a RangeIndex).

        Each value is drawn from its one-step predictive distribution given
        the simulated past.
        """
        self._require_valid("simulate")
        index = self._resolve_timestamps(timestamps)
        n = len(index)
        rng = self._rng(seed)
        if self.uses_student_t:
            shocks = rng.standard_t(self._tail_dof, n)
        else:
            shocks = rng.standard_normal(n)
        acvf = self._acvf(self._parameters, max(n, 1))
        path = durbin_levinson_simulate(acvf, shocks) + self.mu
        return pd.Series(path, index=index, name="simulated")

    def psi_weights(self, length: int) -> np.ndarray:
        """Moving-average weights of the causal representation, fractional part included."""
        mu, sigma, d, phi, theta = self._split(self._parameters)
        psi = psi_weights(phi, theta, length)
        if d != 0.0:
            psi = np.convolve(psi, fractional_weights(d, length))[:length]
        return psi

    def forecast(self, future_times: Timestamps, data: Any = None) -> pd.DataFrame:
        """Multi-step forecasts following ``data`` (the attached data if None).

        Args:
            future_times: Timestamps to forecast, or a number of steps
            data: Series the forecasts start from

        Returns:
            DataFrame with columns ``forecast`` and ``std`` indexed by the
            forecast times; an integer horizon continues the integer
            positions of the data
        """
        self._require_valid("forecast")
        x = self.values if data is None else self.validate_data(data).to_numpy()
        x = np.ascontiguousarray(x, dtype=np.float64)
        if isinstance(future_times, (int, np.integer)):
            if future_times < 0:
                raise ParameterError("Forecast horizon must be non-negative",
                                     param_name="future_times", param_value=future_times)
            index = pd.RangeIndex(x.size, x.size + int(future_times))
        else:
            index = pd.Index(future_times)
        horizon = len(index)

        xhat, _ = self._one_step(self._parameters, x, horizon)
        means = xhat[x.size:x.size + horizon]
        variances = self.sigma ** 2 * np.cumsum(self.psi_weights(horizon) ** 2)
        return pd.DataFrame({"forecast": means, "std": np.sqrt(variances)}, index=index)

    # ------------------------------------------------------------------
    # Real-time prediction
    # ------------------------------------------------------------------

    def _lazy_acvf(self) -> Callable[[int], float]:
        parameters = self._parameters.copy()
        cache = {"acvf": self._acvf(parameters, 64)}

        def autocovariance(lag: int) -> float:
            if lag >= len(cache["acvf"]):
                cache["acvf"] = self._acvf(parameters, 2 * lag)
            return float(cache["acvf"][lag])

        return autocovariance

    def _parameters_changed(self) -> None:
        self._real_time = None

    def reset_real_time_prediction(self) -> None:
        self._require_valid("start real-time prediction")
        mu, sigma, d, phi, theta = self._split(self._parameters)
        if d == 0.0:
            m = max(self._ar_order, self._ma_order)
            acvf = self._arma_acvf(phi, theta, sigma * sigma, m)
            self._real_time = InnovationsPredictor(mu, sigma, phi, theta, acvf)
        else:
            self._real_time = DurbinLevinsonPredictor(mu, self._lazy_acvf())
        self._last_timestamp = None
        logger.debug(f"{self._name}: real-time prediction reset")

    def register(self, timestamp: Any, value: float, aux_values: Optional[np.ndarray] = None) -> float:
        if self._real_time is None:
            self.reset_real_time_prediction()
        self._last_timestamp = timestamp
        return self._real_time.register(value)

    def get_current_predictor(self, future_time: Any = None) -> DistributionSummary:
        if self._real_time is None:
            self.reset_real_time_prediction()
        return DistributionSummary(mean=self._real_time.current_predictor,
                                   variance=self._real_time.current_mspe)
