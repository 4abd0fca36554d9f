import numpy as np
from numba import jit, float64, int64


"""
Numba-accelerated conditional variance recursions for GARCH-type models.

Both recursions treat pre-sample values as their unconditional expectations:
for standard GARCH a pre-sample squared observation and a pre-sample variance
both equal the marginal variance; for EGARCH a pre-sample shock contributes
its expected magnitude sqrt(2/pi) and a pre-sample log-variance equals the
expected log-variance.

Arrays of variances have one entry more than the data: the last entry is the
variance of the first observation after the sample.
"""

ROOT_2_ON_PI = np.sqrt(2.0 / np.pi)
EGARCH_SHOCK_CLIP = 5.0
EGARCH_LOG_VARIANCE_CLIP = 80.0


# Standard GARCH(p, q)
@jit(float64(int64, float64[:], float64[:], float64, float64[:], float64[:], float64),
     nopython=True, cache=True)
def garch_step(t, data, sigma2, alpha0, alpha, beta, marginal):
    """Conditional variance of observation ``t`` given ``data[:t]`` and ``sigma2[:t]``.

    sigma2_t = alpha0 + sum_i alpha_i x_{t-i}^2 + sum_j beta_j sigma2_{t-j}
    """
    value = alpha0
    for i in range(1, len(alpha) + 1):
        if t - i >= 0:
            value += alpha[i - 1] * data[t - i] * data[t - i]
        else:
            value += alpha[i - 1] * marginal
    for j in range(1, len(beta) + 1):
        if t - j >= 0:
            value += beta[j - 1] * sigma2[t - j]
        else:
            value += beta[j - 1] * marginal
    return value


@jit(float64[:](float64[:], float64, float64[:], float64[:], float64),
     nopython=True, cache=True)
def garch_recursion(data, alpha0, alpha, beta, marginal):
    """Conditional variances of a GARCH(p, q) model.

    Args:
        data: Observations (zero-mean)
        alpha0: Constant of the variance equation
        alpha: Coefficients of lagged squared observations
        beta: Coefficients of lagged variances
        marginal: Unconditional variance used before the sample

    Returns:
        np.ndarray: Variances of length ``len(data) + 1``
    """
    T = len(data)
    sigma2 = np.zeros(T + 1)
    for t in range(T + 1):
        sigma2[t] = garch_step(t, data, sigma2, alpha0, alpha, beta, marginal)
    return sigma2


@jit(float64[:](float64[:], float64, float64[:], float64[:], float64),
     nopython=True, cache=True)
def garch_simulate(shocks, alpha0, alpha, beta, marginal):
    """Simulate a GARCH(p, q) path from standardized shocks."""
    T = len(shocks)
    data = np.zeros(T)
    sigma2 = np.zeros(T)
    for t in range(T):
        sigma2[t] = garch_step(t, data, sigma2, alpha0, alpha, beta, marginal)
        data[t] = shocks[t] * np.sqrt(sigma2[t])
    return data


# EGARCH(p, q)
@jit(float64(int64, float64[:], float64[:], float64, float64[:], float64[:], float64[:], float64),
     nopython=True, cache=True)
def egarch_step(t, data, log_sigma2, alpha0, alpha, gamma, beta, mean_log_variance):
    """Conditional log-variance of observation ``t``.

    log sigma2_t = alpha0 + sum_i alpha_i (|z_{t-i}| + gamma_i z_{t-i})
                   + sum_j beta_j log sigma2_{t-j}

    Standardized shocks are clipped to +/-5 and the result to +/-80.
    """
    value = alpha0
    for i in range(1, len(alpha) + 1):
        if t - i >= 0:
            z = data[t - i] / np.exp(log_sigma2[t - i] / 2.0)
            z = min(max(z, -EGARCH_SHOCK_CLIP), EGARCH_SHOCK_CLIP)
            value += alpha[i - 1] * (abs(z) + gamma[i - 1] * z)
        else:
            value += alpha[i - 1] * ROOT_2_ON_PI
    for j in range(1, len(beta) + 1):
        if t - j >= 0:
            value += beta[j - 1] * log_sigma2[t - j]
        else:
            value += beta[j - 1] * mean_log_variance
    return min(max(value, -EGARCH_LOG_VARIANCE_CLIP), EGARCH_LOG_VARIANCE_CLIP)


@jit(float64[:](float64[:], float64, float64[:], float64[:], float64[:], float64),
     nopython=True, cache=True)
def egarch_recursion(data, alpha0, alpha, gamma, beta, mean_log_variance):
    """Conditional log-variances of an EGARCH(p, q) model, length ``len(data) + 1``."""
    T = len(data)
    log_sigma2 = np.zeros(T + 1)
    for t in range(T + 1):
        log_sigma2[t] = egarch_step(t, data, log_sigma2, alpha0, alpha, gamma, beta, mean_log_variance)
    return log_sigma2


@jit(float64[:](float64[:], float64, float64[:], float64[:], float64[:], float64),
     nopython=True, cache=True)
def egarch_simulate(shocks, alpha0, alpha, gamma, beta, mean_log_variance):
    """Simulate an EGARCH(p, q) path from standardized shocks."""
    T = len(shocks)
    data = np.zeros(T)
    log_sigma2 = np.zeros(T)
    for t in range(T):
        log_sigma2[t] = egarch_step(t, data, log_sigma2, alpha0, alpha, gamma, beta, mean_log_variance)
        data[t] = shocks[t] * np.exp(log_sigma2[t] / 2.0)
    return data
