"""
GARCH and EGARCH models of zero-mean returns.

The standard GARCH(p, q) model is

    X_t = sigma_t Z_t,
    sigma_t^2 = alpha_0 + sum_i alpha_i X_{t-i}^2 + sum_j beta_j sigma_{t-j}^2

and the EGARCH(p, q) model (Nelson, 1991) replaces the variance equation by

    log sigma_t^2 = alpha_0 + sum_i alpha_i (|Z_{t-i}| + gamma_i Z_{t-i})
                    + sum_j beta_j log sigma_{t-j}^2

with ``Z_t`` standard normal. ``p`` is the data order and ``q`` the intrinsic
order. The parameter vector is ``[alpha_0, alpha_1..alpha_p, beta_1..beta_q]``
followed by ``gamma_1..gamma_p`` for EGARCH.

References:
    Nelson, D. B. (1991). Conditional heteroskedasticity in asset returns: A new
    approach. Econometrica, 59(2), 347-370.
"""

import logging
from enum import Enum
from typing import Any, List, Optional, Tuple

import numpy as np
import pandas as pd

from ...core.base import LikelihoodOutputs, TimeSeriesModelBase, Timestamps
from ...core.exceptions import ModelSpecificationError, ParameterError
from ...core.likelihood import LogLikelihoodPenalizer, gaussian_components
from ...core.parameters import ParameterState, logistic, logit
from ...utils.polynomial import roots_outside
from ._core import (
    ROOT_2_ON_PI, egarch_recursion, egarch_simulate, garch_recursion, garch_simulate
)

logger = logging.getLogger("cronoseries.models.univariate.garch")

UNIT_ROOT_BARRIER = 1e-6


class GARCHType(Enum):
    """Variance equation of a :class:`GARCHModel`."""
    STANDARD = "standard"
    EGARCH = "egarch"


class GARCHModel(TimeSeriesModelBase):
    """GARCH(p, q) or EGARCH(p, q) model.

    ``alpha_0`` is CONSEQUENTIAL by default: it is chosen so that the model's
    unconditional variance (for EGARCH, its expected log-variance) matches the
    sample. All other parameters are FREE.

    Args:
        garch_type: Variance equation
        data_order: Number of lagged observations ``p``
        intrinsic_order: Number of lagged variances ``q``
        data: Optional series of returns to attach
        name: A descriptive name for the model

    Raises:
        ParameterError: If an order is negative
    """

    def __init__(self,
                 garch_type: GARCHType = GARCHType.STANDARD,
                 data_order: int = 1,
                 intrinsic_order: int = 1,
                 data: Any = None,
                 name: Optional[str] = None):
        garch_type = GARCHType(garch_type)
        for value, label in ((data_order, "data_order"), (intrinsic_order, "intrinsic_order")):
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 0:
                raise ParameterError(f"{label} must be a non-negative integer, got {value}",
                                     param_name=label, param_value=value,
                                     constraint="Must be a non-negative integer")
        p, q = int(data_order), int(intrinsic_order)

        if garch_type is GARCHType.EGARCH:
            parameters = np.zeros(1 + 2 * p + q)
            parameters[0] = -0.2
        else:
            parameters = np.zeros(1 + p + q)
            parameters[0] = 1e-4
        states = [ParameterState.CONSEQUENTIAL] + [ParameterState.FREE] * (len(parameters) - 1)
        prefix = "EGARCH" if garch_type is GARCHType.EGARCH else "GARCH"
        super().__init__(parameters, states, name or f"{prefix}({p},{q})")

        self._garch_type = garch_type
        self._data_order = p
        self._intrinsic_order = q

        if data is not None:
            self.set_data(data)

    @property
    def garch_type(self) -> GARCHType:
        return self._garch_type

    @property
    def data_order(self) -> int:
        return self._data_order

    @property
    def intrinsic_order(self) -> int:
        return self._intrinsic_order

    @property
    def parameter_names(self) -> List[str]:
        p, q = self._data_order, self._intrinsic_order
        names = (["alpha[0]"] + [f"alpha[{i}]" for i in range(1, p + 1)]
                 + [f"beta[{j}]" for j in range(1, q + 1)])
        if self._garch_type is GARCHType.EGARCH:
            names += [f"gamma[{i}]" for i in range(1, p + 1)]
        return names

    def _split(self, parameters: np.ndarray) -> Tuple[float, np.ndarray, np.ndarray, np.ndarray]:
        p, q = self._data_order, self._intrinsic_order
        parameters = np.asarray(parameters, dtype=np.float64)
        return (float(parameters[0]),
                np.ascontiguousarray(parameters[1:1 + p]),
                np.ascontiguousarray(parameters[1 + p:1 + p + q]),
                np.ascontiguousarray(parameters[1 + p + q:]))

    def describe_constraints(self) -> str:
        if self._garch_type is GARCHType.EGARCH:
            return f"roots of the beta polynomial outside the circle of radius {1 + UNIT_ROOT_BARRIER}"
        return f"alpha_0 > 0, alpha_i >= 0, beta_j >= 0, sum(alpha_i) + sum(beta_j) <= {1 - UNIT_ROOT_BARRIER}"

    def describe(self) -> str:
        alpha0, alpha, beta, gamma = self._split(self._parameters)
        if self._garch_type is GARCHType.EGARCH:
            terms = [f"{a:.4f}(|Z_(t-{i})| + {g:.4f} Z_(t-{i}))"
                     for i, (a, g) in enumerate(zip(alpha, gamma), start=1)]
            terms += [f"{b:.4f} log s2_(t-{j})" for j, b in enumerate(beta, start=1)]
            return "X_t = s_t Z_t, log s2_t = " + " + ".join([f"{alpha0:.4f}"] + terms)
        terms = [f"{a:.4f} X2_(t-{i})" for i, a in enumerate(alpha, start=1)]
        terms += [f"{b:.4f} s2_(t-{j})" for j, b in enumerate(beta, start=1)]
        return "X_t = s_t Z_t, s2_t = " + " + ".join([f"{alpha0:.6f}"] + terms)

    # ------------------------------------------------------------------
    # Validity and cube mapping
    # ------------------------------------------------------------------

    def check_parameter_validity(self, parameters: np.ndarray) -> bool:
        parameters = np.asarray(parameters, dtype=np.float64)
        if parameters.shape != self._parameters.shape or not np.all(np.isfinite(parameters)):
            return False
        alpha0, alpha, beta, gamma = self._split(parameters)
        if self._garch_type is GARCHType.EGARCH:
            return roots_outside(np.concatenate([[1.0], -beta]), 1.0 + UNIT_ROOT_BARRIER)
        return bool(alpha0 > 0.0 and np.all(alpha >= 0.0) and np.all(beta >= 0.0)
                     and alpha.sum() + beta.sum() <= 1.0 - UNIT_ROOT_BARRIER)

    def _require_egarch_cube(self) -> None:
        if self._intrinsic_order > 1:
            raise ModelSpecificationError("EGARCH cube mapping supports intrinsic order at most 1",
                                          model_type=self._name, parameter="intrinsic_order",
                                          valid_options=[0, 1])

    def parameter_to_cube(self, parameters: np.ndarray) -> np.ndarray:
        alpha0, alpha, beta, gamma = self._split(parameters)
        p = self._data_order
        cube = np.zeros(self.n_parameters)
        if self._garch_type is GARCHType.EGARCH:
            self._require_egarch_cube()
            cube[0] = logistic(alpha0, 0.01)
            cube[1:1 + p] = [logistic(a, 0.1) for a in alpha]
            cube[1 + p:1 + p + len(beta)] = beta
            cube[1 + p + len(beta):] = [logistic(g, 0.1) for g in gamma]
            return cube

        # Stick-breaking over the alphas and betas with total mass 1 - barrier
        cube[0] = np.exp(-alpha0)
        remaining = 1.0 - UNIT_ROOT_BARRIER
        for i, value in enumerate(np.concatenate([alpha, beta]), start=1):
            cube[i] = min(value / remaining, 1.0) if remaining > 0.0 else 0.0
            remaining -= value
        return cube

    def cube_to_parameter(self, cube: np.ndarray) -> np.ndarray:
        cube = np.asarray(cube, dtype=np.float64)
        p, q = self._data_order, self._intrinsic_order
        parameters = np.zeros(self.n_parameters)
        if self._garch_type is GARCHType.EGARCH:
            self._require_egarch_cube()
            parameters[0] = logit(cube[0], 0.01, 10.0)
            parameters[1:1 + p] = [logit(c, 0.1, 100.0) for c in cube[1:1 + p]]
            parameters[1 + p:1 + p + q] = cube[1 + p:1 + p + q]
            parameters[1 + p + q:] = [logit(c, 0.1, 100.0) for c in cube[1 + p + q:]]
            return parameters

        with np.errstate(divide='ignore'):
            parameters[0] = -np.log(cube[0])
        remaining = 1.0 - UNIT_ROOT_BARRIER
        for i in range(1, p + q + 1):
            parameters[i] = remaining * cube[i]
            remaining -= parameters[i]
        return parameters

    # ------------------------------------------------------------------
    # Variance recursion and likelihood
    # ------------------------------------------------------------------

    def _marginal(self, parameters: np.ndarray) -> float:
        """Unconditional variance (standard) or expected log-variance (EGARCH)."""
        alpha0, alpha, beta, gamma = self._split(parameters)
        with np.errstate(divide='ignore', invalid='ignore'):
            if self._garch_type is GARCHType.EGARCH:
                return float(np.divide(alpha0 + ROOT_2_ON_PI * alpha.sum(), 1.0 - beta.sum()))
            return float(np.divide(alpha0, 1.0 - alpha.sum() - beta.sum()))

    def conditional_variances(self, parameters: Optional[np.ndarray] = None,
                              data: Optional[np.ndarray] = None) -> np.ndarray:
        """Conditional variances of ``data`` (the attached data if None).

        Returns:
            Array of length ``len(data) + 1``; the last entry is the variance
            of the next, unobserved value
        """
        parameters = self._resolve(parameters)
        x = self.values if data is None else np.ascontiguousarray(data, dtype=np.float64)
        alpha0, alpha, beta, gamma = self._split(parameters)
        marginal = self._marginal(parameters)
        if self._garch_type is GARCHType.EGARCH:
            return np.exp(egarch_recursion(x, alpha0, alpha, gamma, beta, marginal))
        return garch_recursion(x, alpha0, alpha, beta, marginal)

    def log_likelihood(self,
                       parameters: Optional[np.ndarray] = None,
                       penalty_factor: float = 0.0,
                       fill_outputs: bool = False) -> float:
        parameters = self._resolve(parameters)
        x = self.values
        if x.size == 0:
            return np.nan

        n = x.size
        sigma2 = self.conditional_variances(parameters, x)
        if not np.all(np.isfinite(sigma2)) or np.any(sigma2 <= 0.0):
            return np.nan
        penalizer = LogLikelihoodPenalizer(gaussian_components(x, sigma2[:n]))

        if fill_outputs:
            index = self._data.index
            std = np.sqrt(sigma2)
            zeros = pd.Series(np.zeros(n), index=index, name="predictor")
            self._outputs = LikelihoodOutputs(
                goodness_of_fit=penalizer.log_likelihood,
                residuals=pd.Series(x / std[:n], index=index, name="residuals"),
                unstandardized_residuals=pd.Series(x, index=index, name="unstandardized residuals"),
                one_step_predictors=zeros,
                one_step_predictor_std=pd.Series(std[:n], index=index, name="predictor std"),
                predictors_at_availability=zeros.copy(),
                predictive_std_at_availability=pd.Series(std[1:], index=index, name="predictor std")
            )

        value = penalizer.penalized(penalty_factor)
        return value if np.isfinite(value) else np.nan

    def compute_consequential_parameters(self, parameters: np.ndarray) -> np.ndarray:
        """Fill in ``alpha_0`` from the sample variance.

        Raises:
            ModelSpecificationError: If any parameter other than ``alpha_0`` is
                CONSEQUENTIAL
        """
        if any(s is ParameterState.CONSEQUENTIAL for s in self._parameter_states[1:]):
            raise ModelSpecificationError("Only alpha_0 can be a consequential parameter",
                                          model_type=self._name, parameter="parameter_states")
        parameters = np.array(parameters, dtype=np.float64, copy=True)
        x = self.values
        if self._parameter_states[0] is not ParameterState.CONSEQUENTIAL or x.size < 2:
            return parameters

        alpha0, alpha, beta, gamma = self._split(parameters)
        variance = float(np.var(x, ddof=1))
        if self._garch_type is GARCHType.EGARCH:
            with np.errstate(divide='ignore'):
                target = np.log(variance)
            parameters[0] = target * (1.0 - beta.sum()) - ROOT_2_ON_PI * alpha.sum()
        else:
            parameters[0] = variance * (1.0 - alpha.sum() - beta.sum())
        return parameters

    # ------------------------------------------------------------------
    # Model properties
    # ------------------------------------------------------------------

    def unconditional_variance(self) -> float:
        """Marginal variance; ``exp(E log sigma_t^2)`` for EGARCH."""
        marginal = self._marginal(self._parameters)
        if self._garch_type is GARCHType.EGARCH:
            return float(np.exp(marginal))
        return marginal

    def compute_acf(self, max_lag: int, normalize: bool = False) -> np.ndarray:
        """Returns are uncorrelated: the variance at lag 0 and zeros after."""
        if max_lag < 0:
            raise ParameterError("Maximum lag must be non-negative",
                                 param_name="max_lag", param_value=max_lag)
        acf = np.zeros(max_lag + 1)
        acf[0] = 1.0 if normalize else self.unconditional_variance()
        return acf

    def simulate(self, timestamps: Timestamps, seed: Optional[int] = None) -> pd.Series:
        """Simulate returns at ``timestamps`` with standard normal shocks."""
        if not self.check_parameter_validity(self._parameters):
            raise ParameterError("Cannot simulate with invalid parameters",
                                 param_name="parameters", param_value=self._parameters,
                                 constraint=self.describe_constraints())
        index = self._resolve_timestamps(timestamps)
        shocks = self._rng(seed).standard_normal(len(index))
        alpha0, alpha, beta, gamma = self._split(self._parameters)
        marginal = self._marginal(self._parameters)
        if self._garch_type is GARCHType.EGARCH:
            path = egarch_simulate(shocks, alpha0, alpha, gamma, beta, marginal)
        else:
            path = garch_simulate(shocks, alpha0, alpha, beta, marginal)
        return pd.Series(path, index=index, name="simulated")
