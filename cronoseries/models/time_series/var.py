'''
Vector autoregression of a multivariate series.

A VAR(p) model of a k-dimensional series is

    X_t - mu = sum_i Phi_i (X_{t-i} - mu) + e_t,    e_t ~ N(0, Sigma)

The parameter vector is laid out as

    [mu (k), vec(Phi_1) .. vec(Phi_p), vec(Sigma)]

with every matrix vectorized column by column. The mean is CONSEQUENTIAL
(sample mean) and the remaining parameters are FREE, but VAR models are
estimated by the block Yule-Walker equations (:meth:`VARModel.fit_by_moments`)
rather than by maximum likelihood.
'''

import logging
from typing import Any, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import linalg, stats

from ...core.base import EstimationResult, LikelihoodOutputs, ModelBase, Timestamps
from ...core.exceptions import DataError, EstimationError, ParameterError
from ...core.likelihood import LogLikelihoodPenalizer
from ...core.parameters import ParameterState
from ...utils.data import sample_autocovariance_matrices
from .arma import _check_order

logger = logging.getLogger("cronoseries.models.time_series.var")

SIMULATION_BURN_IN = 100


class VARModel(ModelBase):
    """Gaussian VAR(p) model of a k-dimensional series.

    Args:
        order: Autoregressive order ``p``
        dimension: Number of components ``k``
        data: Optional DataFrame (or 2-D array) with one column per component
        name: A descriptive name for the model
    """

    def __init__(self, order: int = 1, dimension: int = 2, data: Any = None, name: Optional[str] = None):
        p = _check_order(order, "order")
        k = _check_order(dimension, "dimension")
        if k == 0:
            raise ParameterError("VAR dimension must be positive",
                                 param_name="dimension", param_value=dimension,
                                 constraint="dimension >= 1")
        parameters = np.concatenate([np.zeros(k + k * k * p), np.eye(k).flatten(order='F')])
        states = [ParameterState.CONSEQUENTIAL] * k + [ParameterState.FREE] * (k * k * (p + 1))
        super().__init__(parameters, states, name or f"VAR({p})")
        self._order = p
        self._dimension = k
        if data is not None:
            self.set_data(data)

    @property
    def order(self) -> int:
        return self._order

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def parameter_names(self) -> List[str]:
        k = self._dimension
        names = [f"mu[{i}]" for i in range(1, k + 1)]
        for lag in range(1, self._order + 1):
            names += [f"Phi{lag}[{i},{j}]" for j in range(1, k + 1) for i in range(1, k + 1)]
        names += [f"Sigma[{i},{j}]" for j in range(1, k + 1) for i in range(1, k + 1)]
        return names

    def unpack(self, parameters: Optional[np.ndarray] = None) -> Tuple[np.ndarray, List[np.ndarray], np.ndarray]:
        """Split a parameter vector into ``(mu, [Phi_1 .. Phi_p], Sigma)``."""
        parameters = self._resolve(parameters)
        k, p = self._dimension, self._order
        mu = parameters[:k].copy()
        phis = [parameters[k + k * k * i:k + k * k * (i + 1)].reshape((k, k), order='F')
                for i in range(p)]
        sigma = parameters[k + k * k * p:].reshape((k, k), order='F')
        return mu, phis, sigma

    @staticmethod
    def pack(mu: np.ndarray, phis: List[np.ndarray], sigma: np.ndarray) -> np.ndarray:
        """Inverse of :meth:`unpack`."""
        blocks = [np.asarray(mu, dtype=np.float64)]
        blocks += [np.asarray(phi, dtype=np.float64).flatten(order='F') for phi in phis]
        blocks.append(np.asarray(sigma, dtype=np.float64).flatten(order='F'))
        return np.concatenate(blocks)

    def describe_constraints(self) -> str:
        return "Sigma symmetric positive definite, companion eigenvalues inside the unit circle"

    def describe(self) -> str:
        lags = " + ".join(f"Phi{i} (X_(t-{i}) - mu)" for i in range(1, self._order + 1)) or "0"
        return f"X_t - mu = {lags} + e_t, e_t ~ N(0, Sigma), dimension {self._dimension}"

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def validate_data(self, data: Any) -> pd.DataFrame:
        """Return ``data`` as a float DataFrame with one column per component.

        Raises:
            DataError: If the number of columns differs from the dimension or
                the data contains NaN or infinite values
        """
        if isinstance(data, pd.DataFrame):
            frame = data.astype(np.float64)
        else:
            array = np.asarray(data, dtype=np.float64)
            if array.ndim == 1 and self._dimension == 1:
                array = array[:, None]
            if array.ndim != 2:
                raise DataError(f"VAR data must be 2-dimensional, got {array.ndim} dimensions",
                                data_name="data", issue="dimension")
            frame = pd.DataFrame(array, columns=[f"x{i}" for i in range(1, array.shape[1] + 1)])
        if frame.shape[1] != self._dimension:
            raise DataError(f"VAR({self._order}) of dimension {self._dimension} got {frame.shape[1]} columns",
                            data_name="data", issue="column count")
        if not np.all(np.isfinite(frame.to_numpy())):
            raise DataError("Data contains NaN or infinite values",
                            data_name="data", issue="non-finite values")
        return frame

    @property
    def values(self) -> np.ndarray:
        if self._data is None:
            return np.zeros((0, self._dimension))
        return np.ascontiguousarray(self._data.to_numpy(), dtype=np.float64)

    def _columns(self) -> List[str]:
        if self._data is not None:
            return [str(c) for c in self._data.columns]
        return [f"x{i}" for i in range(1, self._dimension + 1)]

    # ------------------------------------------------------------------
    # Validity
    # ------------------------------------------------------------------

    def companion_matrix(self, parameters: Optional[np.ndarray] = None) -> np.ndarray:
        """Companion matrix of the VAR recursion, shape ``(k p, k p)``."""
        mu, phis, sigma = self.unpack(parameters)
        k, p = self._dimension, self._order
        companion = np.zeros((k * p, k * p))
        for i, phi in enumerate(phis):
            companion[:k, i * k:(i + 1) * k] = phi
        for i in range(1, p):
            companion[i * k:(i + 1) * k, (i - 1) * k:i * k] = np.eye(k)
        return companion

    def check_parameter_validity(self, parameters: np.ndarray) -> bool:
        parameters = np.asarray(parameters, dtype=np.float64)
        if parameters.shape != self._parameters.shape or not np.all(np.isfinite(parameters)):
            return False
        mu, phis, sigma = self.unpack(parameters)
        if not np.allclose(sigma, sigma.T):
            return False
        try:
            linalg.cholesky(sigma, lower=True)
        except linalg.LinAlgError:
            return False
        if self._order == 0:
            return True
        return bool(np.max(np.abs(np.linalg.eigvals(self.companion_matrix(parameters)))) < 1.0)

    # ------------------------------------------------------------------
    # Likelihood
    # ------------------------------------------------------------------

    def one_step_predictors(self, parameters: Optional[np.ndarray] = None) -> np.ndarray:
        """Predictors of observations ``0..n``; pre-sample values are taken at the mean.

        Returns:
            Array of shape ``(n + 1, k)``; the last row predicts the first
            value after the sample
        """
        mu, phis, sigma = self.unpack(parameters)
        x = self.values
        n = x.shape[0]
        centred = x - mu
        predictors = np.tile(mu, (n + 1, 1))
        for i, phi in enumerate(phis, start=1):
            if i > n:
                break
            predictors[i:] += centred[:n + 1 - i] @ phi.T
        return predictors

    def log_likelihood(self,
                       parameters: Optional[np.ndarray] = None,
                       penalty_factor: float = 0.0,
                       fill_outputs: bool = False) -> float:
        parameters = self._resolve(parameters)
        x = self.values
        n, k = x.shape
        if n == 0:
            return np.nan
        mu, phis, sigma = self.unpack(parameters)
        try:
            chol = linalg.cholesky(sigma, lower=True)
        except linalg.LinAlgError:
            return np.nan

        predictors = self.one_step_predictors(parameters)
        residuals = x - predictors[:n]
        components = np.atleast_1d(stats.multivariate_normal.logpdf(residuals, mean=np.zeros(k), cov=sigma))
        penalizer = LogLikelihoodPenalizer(components)

        if fill_outputs:
            index = self._data.index
            columns = self._columns()
            standardized = linalg.solve_triangular(chol, residuals.T, lower=True).T
            self._outputs = LikelihoodOutputs(
                goodness_of_fit=penalizer.log_likelihood,
                residuals=pd.DataFrame(standardized, index=index, columns=columns),
                unstandardized_residuals=pd.DataFrame(residuals, index=index, columns=columns),
                one_step_predictors=pd.DataFrame(predictors[:n], index=index, columns=columns),
                predictors_at_availability=pd.DataFrame(predictors[1:], index=index, columns=columns)
            )

        value = penalizer.penalized(penalty_factor)
        return value if np.isfinite(value) else np.nan

    def compute_consequential_parameters(self, parameters: np.ndarray) -> np.ndarray:
        parameters = np.array(parameters, dtype=np.float64, copy=True)
        x = self.values
        if x.shape[0] == 0:
            return parameters
        means = x.mean(axis=0)
        for i in range(self._dimension):
            if self._parameter_states[i] is ParameterState.CONSEQUENTIAL:
                parameters[i] = means[i]
        return parameters

    # ------------------------------------------------------------------
    # Moment estimation
    # ------------------------------------------------------------------

    def fit_by_moments(self) -> EstimationResult:
        """Solve the block Yule-Walker equations.

        LOCKED mean components keep their value; all other mean components
        are set to the sample mean.

        Raises:
            DataError: If there are no more observations than the order
            EstimationError: If the Yule-Walker system is singular
        """
        x = self.values
        n, k = x.shape
        p = self._order
        if n <= p:
            raise DataError(f"VAR({p}) needs more than {p} observations",
                            data_name=self._name, issue=f"{n} observations")

        gammas = sample_autocovariance_matrices(x, p)

        def gamma_at(lag: int) -> np.ndarray:
            return gammas[lag] if lag >= 0 else gammas[-lag].T

        mu = x.mean(axis=0)
        current_mu = self._parameters[:k]
        for i in range(k):
            if self._parameter_states[i] is ParameterState.LOCKED:
                mu[i] = current_mu[i]

        phis: List[np.ndarray] = []
        sigma = gammas[0].copy()
        if p > 0:
            big = np.block([[gamma_at(h - i) for h in range(p)] for i in range(p)])
            right = np.hstack([gammas[h] for h in range(1, p + 1)])
            try:
                stacked = linalg.solve(big.T, right.T).T
            except linalg.LinAlgError as e:
                raise EstimationError("Block Yule-Walker system is singular",
                                      model_type=self._name, estimation_method="Yule-Walker",
                                      issue=str(e)) from e
            phis = [stacked[:, i * k:(i + 1) * k] for i in range(p)]
            for i, phi in enumerate(phis, start=1):
                sigma -= phi @ gammas[i].T
        sigma = (sigma + sigma.T) / 2.0

        self._parameters = self.pack(mu, phis, sigma)
        self._parameters_changed()
        log_likelihood = self.log_likelihood(None, 0.0, True)
        result = EstimationResult(
            model_name=self._name,
            method="Yule-Walker",
            parameters=self.parameters,
            parameter_names=self.parameter_names,
            parameter_states=self.parameter_states,
            log_likelihood=log_likelihood,
            n_observations=n
        )
        self._record_fit(result)
        logger.info(f"Yule-Walker estimate for {self._name}: log-likelihood {log_likelihood:.6f}")
        return result

    # ------------------------------------------------------------------
    # Model properties
    # ------------------------------------------------------------------

    def compute_acf(self, max_lag: int, normalize: bool = False) -> np.ndarray:
        """Autocovariance matrices ``Gamma(h) = Cov(X_{t+h}, X_t)`` for h = 0..max_lag.

        Returns:
            Array of shape ``(max_lag + 1, k, k)``; with ``normalize`` the
            matrices are scaled to autocorrelations
        """
        if max_lag < 0:
            raise ParameterError("Maximum lag must be non-negative",
                                 param_name="max_lag", param_value=max_lag)
        mu, phis, sigma = self.unpack()
        k, p = self._dimension, self._order
        acf = np.zeros((max_lag + 1, k, k))
        if p == 0:
            acf[0] = sigma
        else:
            companion = self.companion_matrix()
            noise = np.zeros((k * p, k * p))
            noise[:k, :k] = sigma
            state = linalg.solve_discrete_lyapunov(companion, noise)
            for h in range(max_lag + 1):
                acf[h] = state[:k, :k]
                state = companion @ state
        if normalize:
            scale = np.sqrt(np.diag(acf[0]))
            acf = acf / np.outer(scale, scale)
        return acf

    def simulate(self, timestamps: Timestamps, seed: Optional[int] = None) -> pd.DataFrame:
        """Simulate a Gaussian path, discarding a burn-in started at the mean."""
        if not self.check_parameter_validity(self._parameters):
            raise ParameterError("Cannot simulate with invalid parameters",
                                 param_name="parameters", param_value=self._parameters,
                                 constraint=self.describe_constraints())
        index = self._resolve_timestamps(timestamps)
        mu, phis, sigma = self.unpack()
        k, p = self._dimension, self._order
        rng = self._rng(seed)

        total = len(index) + SIMULATION_BURN_IN + p
        shocks = rng.standard_normal((total, k)) @ linalg.cholesky(sigma, lower=True).T
        path = np.zeros((total, k))
        for t in range(total):
            value = shocks[t].copy()
            for i, phi in enumerate(phis, start=1):
                if t - i >= 0:
                    value += phi @ path[t - i]
            path[t] = value
        return pd.DataFrame(path[total - len(index):] + mu, index=index, columns=self._columns())
