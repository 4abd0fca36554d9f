'''
Series containers and sample moments.

Models take their data as pandas objects: a float Series for univariate
models and a float DataFrame (one column per component) for multivariate
ones. The sample autocovariances defined here use the biased ``1/n``
normalization, which keeps the implied Toeplitz matrices non-negative
definite and is what the moment estimators expect.
'''

import logging
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd
from statsmodels.tsa.stattools import acovf

from ..core.exceptions import DataError, ParameterError

logger = logging.getLogger("cronoseries.utils.data")


def as_time_series(data: Any, index: Optional[Sequence[Any]] = None, name: Optional[str] = None) -> pd.Series:
    """Convert ``data`` to a float Series.

    Args:
        data: Array-like or Series of observations
        index: Timestamps; ignored when ``data`` is already a Series
        name: Series name

    Returns:
        A float64 Series

    Raises:
        DataError: If the data is not one-dimensional
    """
    if isinstance(data, pd.Series):
        series = data.astype(np.float64)
        if name is not None:
            series = series.rename(name)
        return series

    array = np.asarray(data, dtype=np.float64)
    if array.ndim != 1:
        raise DataError(f"Time series must be 1-dimensional, got {array.ndim} dimensions",
                        data_name=name or "data", issue="dimension")
    return pd.Series(array, index=None if index is None else pd.Index(index), name=name)


def sample_autocovariance(x: np.ndarray, max_lag: int) -> np.ndarray:
    """Biased sample autocovariance at lags 0..max_lag.

    Lags at or beyond the sample length are zero.

    Raises:
        ParameterError: If ``max_lag`` is negative
        DataError: If the sample is empty
    """
    if max_lag < 0:
        raise ParameterError("Maximum lag must be non-negative",
                             param_name="max_lag", param_value=max_lag)
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0:
        raise DataError("Cannot compute the autocovariance of an empty sample",
                        data_name="x", issue="empty")

    result = np.zeros(max_lag + 1)
    nlag = min(max_lag, x.size - 1)
    result[:nlag + 1] = acovf(x, adjusted=False, demean=True, fft=False, nlag=nlag)
    return result


def sample_autocovariance_matrices(x: np.ndarray, max_lag: int) -> np.ndarray:
    """Biased sample autocovariance matrices of a multivariate sample.

    Args:
        x: Observations, one row per time step
        max_lag: Largest lag

    Returns:
        Array of shape ``(max_lag + 1, k, k)`` whose entry h is
        ``(1/n) sum_t (x_{t+h} - m)(x_t - m)'``
    """
    x = np.asarray(x, dtype=np.float64)
    if x.ndim != 2 or x.shape[0] == 0:
        raise DataError("Multivariate sample must be a non-empty 2-D array",
                        data_name="x", issue="shape")
    n, k = x.shape
    centred = x - x.mean(axis=0)
    gammas = np.zeros((max_lag + 1, k, k))
    for h in range(min(max_lag, n - 1) + 1):
        gammas[h] = centred[h:].T @ centred[:n - h] / n
    return gammas
