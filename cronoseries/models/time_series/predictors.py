"""
Streaming one-step predictors for stationary series.

:class:`DurbinLevinsonPredictor` turns an autocovariance function into best
linear one-step predictors, one observation at a time. The autocovariance may
be a materialized vector, which bounds the number of observations the
predictor can accept, or a callable ``lag -> float`` evaluated on demand.

:class:`InnovationsPredictor` runs the innovations algorithm for a short-memory
ARMA model on a growable :class:`RecursionState`, which is what ARMA models use
for real-time prediction.
"""

import logging
from enum import Enum
from typing import Callable, Optional, Union

import numpy as np

from ...core.exceptions import (
    DimensionError, NumericError, ParameterError, PredictorCapacityError, PredictorStateError
)
from ._numba_core import durbin_levinson_update, innovations_step, kappa

logger = logging.getLogger("cronoseries.models.time_series.predictors")

AutocovarianceSource = Union[np.ndarray, Callable[[int], float]]


class PredictorState(Enum):
    """Lifecycle of a streaming predictor."""
    UNINITIALIZED = "uninitialized"
    STREAMING = "streaming"
    EXHAUSTED = "exhausted"


class GrowableBuffer:
    """Float64 array that doubles its storage when it runs out of room."""

    def __init__(self, initial_capacity: int = 64):
        self._data = np.zeros(max(int(initial_capacity), 1))
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def ensure(self, size: int) -> None:
        """Make indices ``0..size-1`` addressable, zero-filled when new."""
        if size > len(self._data):
            capacity = len(self._data)
            while capacity < size:
                capacity *= 2
            grown = np.zeros(capacity)
            grown[:self._size] = self._data[:self._size]
            self._data = grown
        self._size = max(self._size, size)

    def append(self, value: float) -> None:
        self.ensure(self._size + 1)
        self._data[self._size - 1] = value

    @property
    def storage(self) -> np.ndarray:
        """Underlying array; may be longer than the logical size."""
        return self._data

    def view(self) -> np.ndarray:
        return self._data[:self._size]

    def __getitem__(self, index):
        return self.view()[index]

    def __setitem__(self, index, value) -> None:
        self.view()[index] = value


class RecursionState:
    """Mutable arrays of one innovations recursion.

    Attributes:
        values: Registered observations
        xhat: One-step predictors; ``xhat[n]`` predicts observation n
        rs: Mean squared errors scaled by the innovation variance
        sub_thetas: Circular block of innovations coefficients
    """

    def __init__(self, minwidth: int, initial_capacity: int = 64):
        self.values = GrowableBuffer(initial_capacity)
        self.xhat = GrowableBuffer(initial_capacity + 1)
        self.rs = GrowableBuffer(initial_capacity + 1)
        self.sub_thetas = np.zeros((minwidth, minwidth))

    @property
    def count(self) -> int:
        return len(self.values)


class DurbinLevinsonPredictor:
    """Best linear one-step predictor built from an autocovariance function.

    Args:
        mean: Process mean
        autocovariance: Vector of autocovariances at lags 0..L, or a callable
            returning the autocovariance at a lag
        capacity: Maximum number of observations; defaults to ``L`` for a
            vector source and to unlimited for a callable

    Raises:
        DimensionError: If a vector source is empty
        ParameterError: If the lag-0 autocovariance is negative, or a capacity
            exceeds what a vector source can support
    """

    def __init__(self,
                 mean: Optional[float] = None,
                 autocovariance: Optional[AutocovarianceSource] = None,
                 capacity: Optional[int] = None):
        self._state = PredictorState.UNINITIALIZED
        self._mean = 0.0
        self._source: Optional[Callable[[int], float]] = None
        self._capacity: Optional[int] = None
        self._gamma = GrowableBuffer()
        self._a = GrowableBuffer()
        self._values = GrowableBuffer()
        self._predictor = np.nan
        self._mspe = np.nan
        if autocovariance is not None:
            self.initialize(0.0 if mean is None else mean, autocovariance, capacity)

    def initialize(self,
                   mean: float,
                   autocovariance: AutocovarianceSource,
                   capacity: Optional[int] = None) -> None:
        """(Re)start the predictor from the given mean and autocovariance."""
        self._gamma = GrowableBuffer()
        self._a = GrowableBuffer()
        self._values = GrowableBuffer()

        if callable(autocovariance):
            self._source = autocovariance
            self._capacity = capacity
            gamma0 = float(autocovariance(0))
        else:
            acvf = np.asarray(autocovariance, dtype=np.float64)
            if acvf.ndim != 1 or acvf.size == 0:
                raise DimensionError("Autocovariance vector must be non-empty and 1-dimensional",
                                     array_name="autocovariance",
                                     expected_shape="(L + 1,)",
                                     actual_shape=acvf.shape)
            max_capacity = acvf.size - 1
            if capacity is not None and capacity > max_capacity:
                raise ParameterError("Capacity exceeds the lags available in the autocovariance",
                                     param_name="capacity", param_value=capacity,
                                     constraint=f"capacity <= {max_capacity}")
            self._source = None
            self._capacity = max_capacity if capacity is None else capacity
            self._gamma.ensure(acvf.size)
            self._gamma[:] = acvf
            gamma0 = float(acvf[0])

        if gamma0 < 0 or not np.isfinite(gamma0):
            raise ParameterError("Lag-0 autocovariance must be a non-negative number",
                                 param_name="autocovariance[0]", param_value=gamma0,
                                 constraint="gamma(0) >= 0")
        if self._source is not None:
            self._gamma.append(gamma0)

        self._mean = float(mean)
        self._predictor = self._mean
        self._mspe = gamma0
        self._state = PredictorState.STREAMING
        logger.debug(f"Durbin-Levinson predictor initialized with capacity {self._capacity}")

    @property
    def state(self) -> PredictorState:
        return self._state

    @property
    def capacity(self) -> Optional[int]:
        """Maximum number of registrations, None when unlimited."""
        return self._capacity

    @property
    def count(self) -> int:
        """Number of registered observations."""
        return len(self._values)

    @property
    def coefficients(self) -> np.ndarray:
        """Current prediction coefficients, most recent lag first."""
        return self._a.view().copy()

    def _require_initialized(self, operation: str) -> None:
        if self._state is PredictorState.UNINITIALIZED:
            raise PredictorStateError(f"Cannot {operation} before the predictor is initialized",
                                      predictor="DurbinLevinsonPredictor",
                                      state=self._state.value)

    @property
    def current_predictor(self) -> float:
        """Best linear predictor of the next observation."""
        self._require_initialized("read the predictor")
        return self._predictor

    @property
    def current_mspe(self) -> float:
        """Mean squared error of :attr:`current_predictor`."""
        self._require_initialized("read the prediction error")
        return self._mspe

    def _autocovariance_to(self, lag: int) -> np.ndarray:
        while len(self._gamma) <= lag:
            self._gamma.append(float(self._source(len(self._gamma))))
        return self._gamma.storage

    def register(self, value: float) -> float:
        """Add one observation and return the predictor of the next.

        Raises:
            PredictorStateError: If the predictor is not initialized
            PredictorCapacityError: If the capacity is used up; the predictor
                stays unusable until it is initialized again
            NumericError: If the autocovariance is not positive definite up to
                the new lag; the predictor must be initialized again
        """
        self._require_initialized("register observations")
        if self._state is PredictorState.EXHAUSTED or (
                self._capacity is not None and self.count >= self._capacity):
            self._state = PredictorState.EXHAUSTED
            raise PredictorCapacityError("Durbin-Levinson predictor capacity exhausted",
                                         predictor="DurbinLevinsonPredictor",
                                         capacity=self._capacity,
                                         details="Initialize with a longer autocovariance or a callable source")

        self._values.append(float(value))
        n = self.count
        if self._source is not None:
            gamma = self._autocovariance_to(n)
        else:
            gamma = self._gamma.storage

        self._a.ensure(n)
        ann = durbin_levinson_update(self._a.storage, n, gamma, self._mspe)
        if abs(ann) > 1.0:
            self._state = PredictorState.UNINITIALIZED
            raise NumericError("Autocovariance is not positive definite",
                               operation="Durbin-Levinson update",
                               values=ann,
                               error_type="negative prediction error variance",
                               details=f"Partial autocorrelation at lag {n} has modulus above one")
        self._mspe = self._mspe * (1.0 - ann * ann)

        a = self._a.view()
        recent = self._values.view()[::-1]
        self._predictor = self._mean + float(np.dot(a, recent - self._mean))
        return self._predictor


class InnovationsPredictor:
    """Streaming innovations algorithm for a short-memory ARMA model.

    Args:
        mu: Process mean
        sigma: Innovation standard deviation
        phi: AR coefficients
        theta: MA coefficients
        acvf: Autocovariance at lags 0..max(p, q) (more lags are ignored)
    """

    def __init__(self, mu: float, sigma: float, phi: np.ndarray, theta: np.ndarray, acvf: np.ndarray):
        self.mu = float(mu)
        self.sigma2 = float(sigma) ** 2
        self.phi = np.ascontiguousarray(phi, dtype=np.float64)
        self.theta = np.ascontiguousarray(theta, dtype=np.float64)
        self.m = max(len(self.phi), len(self.theta))
        self.minwidth = max(len(self.theta), self.m - 1, 1)
        self.acvf = np.ascontiguousarray(acvf, dtype=np.float64)
        if len(self.acvf) < self.m + 1:
            raise DimensionError("Autocovariance is too short for the model order",
                                 array_name="acvf", expected_shape=(self.m + 1,),
                                 actual_shape=self.acvf.shape)
        self.state = RecursionState(self.minwidth)
        self.state.xhat.append(self.mu)
        self.state.rs.append(kappa(1, 1, self.m, self.phi, self.theta, self.acvf, self.sigma2))

    def register(self, value: float) -> float:
        """Add one observation and return the predictor of the next."""
        st = self.state
        st.values.append(float(value))
        n = st.count
        st.xhat.ensure(n + 1)
        st.rs.ensure(n + 1)
        st.xhat.storage[n] = innovations_step(
            n, st.values.storage, n, st.xhat.storage, st.rs.storage, st.sub_thetas,
            self.mu, self.phi, self.theta, self.acvf, self.sigma2, self.m, self.minwidth
        )
        return float(st.xhat.storage[n])

    @property
    def current_predictor(self) -> float:
        return float(self.state.xhat[self.state.count])

    @property
    def current_mspe(self) -> float:
        return float(self.state.rs[self.state.count]) * self.sigma2
