"""
Numba-accelerated recursions for linear prediction of stationary series.

The innovations algorithm (Brockwell & Davis, section 5.3) gives exact one-step
predictors for short-memory ARMA models in O(n q) operations by working on the
transformed autocovariance kappa(i, j). The Durbin-Levinson recursion gives
exact predictors for any stationary autocovariance in O(n^2) and is used for
long-memory models, simulation and streaming prediction from an arbitrary
autocovariance function.

All kernels take and return plain float64 arrays; the model classes wrap them.
"""

import logging
from typing import Tuple

import numpy as np
from numba import jit

logger = logging.getLogger("cronoseries.models.time_series._numba_core")


# ============================================================================
# Innovations algorithm
# ============================================================================

@jit(nopython=True, cache=True)
def kappa(i: int, j: int, m: int,
          phi: np.ndarray, theta: np.ndarray,
          acvf: np.ndarray, sigma2: float) -> float:
    """
    Covariance of the transformed ARMA process W_t (Brockwell & Davis 5.3.5).

    W_t equals X_t / sigma for t <= m and phi(B) X_t / sigma afterwards, which
    makes kappa(i, j) vanish for |i - j| > q once both indices exceed m.
    Indices are 1-based as in the reference recursion.
    """
    p = len(phi)
    q = len(theta)
    m1 = min(i, j)
    m2 = max(i, j)
    h = abs(i - j)

    if m2 <= m:
        return acvf[h] / sigma2

    if m1 > m:
        total = 0.0
        for r in range(q + 1):
            t1 = 1.0 if r == 0 else theta[r - 1]
            ti = r + h
            if ti == 0:
                t2 = 1.0
            elif ti <= q:
                t2 = theta[ti - 1]
            else:
                t2 = 0.0
            total += t1 * t2
        return total

    if m2 <= 2 * m:
        total = acvf[h]
        for r in range(1, p + 1):
            total -= phi[r - 1] * acvf[abs(r - h)]
        return total / sigma2

    return 0.0


@jit(nopython=True, cache=True)
def innovations_step(n: int,
                     values: np.ndarray,
                     n_known: int,
                     xhat: np.ndarray,
                     rs: np.ndarray,
                     sub_thetas: np.ndarray,
                     mu: float,
                     phi: np.ndarray,
                     theta: np.ndarray,
                     acvf: np.ndarray,
                     sigma2: float,
                     m: int,
                     minwidth: int) -> float:
    """
    Advance the innovations recursion to index ``n``.

    Fills row ``(n - 1) % minwidth`` of the circular coefficient block and
    ``rs[n]``, and returns the predictor of observation ``n`` (0-based). Only
    ``values[:n_known]`` are treated as observed; later positions use their
    own predictors in the AR part and contribute no innovation.
    """
    p = len(phi)
    start = max(n - minwidth, 0)
    row = (n - 1) % minwidth

    for k in range(start, n):
        total = kappa(n + 1, k + 1, m, phi, theta, acvf, sigma2)
        for j in range(start, k):
            if k - j - 1 < minwidth:
                t1 = sub_thetas[(k - 1) % minwidth, k - j - 1]
            else:
                t1 = 0.0
            total -= t1 * sub_thetas[row, n - j - 1] * rs[j]
        sub_thetas[row, n - k - 1] = total / rs[k]

    r = kappa(n + 1, n + 1, m, phi, theta, acvf, sigma2)
    for j in range(start, n):
        t1 = sub_thetas[row, n - j - 1]
        r -= t1 * t1 * rs[j]
    rs[n] = r

    total = 0.0
    if n < m:
        for j in range(1, min(n, minwidth) + 1):
            if n - j < n_known:
                total += sub_thetas[row, j - 1] * (values[n - j] - xhat[n - j])
    else:
        for j in range(1, p + 1):
            if n - j < n_known:
                total += phi[j - 1] * (values[n - j] - mu)
            else:
                total += phi[j - 1] * (xhat[n - j] - mu)
        for j in range(1, minwidth + 1):
            if n - j < n_known:
                total += sub_thetas[row, j - 1] * (values[n - j] - xhat[n - j])

    return total + mu


@jit(nopython=True, cache=True)
def innovations_recursion(values: np.ndarray,
                          horizon: int,
                          mu: float,
                          phi: np.ndarray,
                          theta: np.ndarray,
                          acvf: np.ndarray,
                          sigma2: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    One-step predictors and scaled MSEs of a short-memory ARMA process.

    Args:
        values: Observed series
        horizon: Number of steps to extend past the data
        mu: Process mean
        phi: AR coefficients
        theta: MA coefficients
        acvf: Autocovariance at lags 0..max(p, q)
        sigma2: Innovation variance

    Returns:
        ``xhat`` and ``rs`` of length ``len(values) + horizon + 1``; ``xhat[t]``
        predicts observation t and ``rs[t] * sigma2`` is its mean squared error
    """
    count = len(values)
    nobs = count + horizon
    m = max(len(phi), len(theta))
    minwidth = max(max(len(theta), m - 1), 1)

    xhat = np.zeros(nobs + 1)
    rs = np.zeros(nobs + 1)
    sub_thetas = np.zeros((minwidth, minwidth))

    xhat[0] = mu
    rs[0] = kappa(1, 1, m, phi, theta, acvf, sigma2)
    for n in range(1, nobs + 1):
        xhat[n] = innovations_step(n, values, count, xhat, rs, sub_thetas,
                                   mu, phi, theta, acvf, sigma2, m, minwidth)
    return xhat, rs


# ============================================================================
# Durbin-Levinson recursion
# ============================================================================

@jit(nopython=True, cache=True)
def durbin_levinson_update(a: np.ndarray, n: int, acvf: np.ndarray, nu_prev: float) -> float:
    """
    Raise the prediction coefficients in ``a[:n-1]`` to order ``n`` in place.

    Args:
        a: Coefficient buffer of length at least ``n``
        n: New order (1-based)
        acvf: Autocovariance at lags 0..n
        nu_prev: Mean squared error at order ``n - 1``

    Returns:
        The partial autocorrelation ``a[n-1]`` of the new order
    """
    acc = acvf[n]
    for j in range(1, n):
        acc -= a[j - 1] * acvf[n - j]
    if nu_prev > 0.0:
        ann = acc / nu_prev
    else:
        ann = 0.0
    old = a[:n - 1].copy()
    for j in range(1, n):
        a[j - 1] = old[j - 1] - ann * old[n - j - 1]
    a[n - 1] = ann
    return ann


@jit(nopython=True, cache=True)
def durbin_levinson_recursion(values: np.ndarray,
                              horizon: int,
                              mean: float,
                              acvf: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Best linear one-step predictors from an arbitrary autocovariance.

    Positions past the data are filled with their own predictors, which turns
    the tail of ``xhat`` into multi-step forecasts.

    Args:
        values: Observed series
        horizon: Number of steps to extend past the data
        mean: Process mean
        acvf: Autocovariance at lags 0..len(values) + horizon

    Returns:
        ``xhat`` and ``nu`` (unscaled mean squared errors), both of length
        ``len(values) + horizon + 1``
    """
    count = len(values)
    nobs = count + horizon
    xhat = np.zeros(nobs + 1)
    nu = np.zeros(nobs + 1)
    a = np.zeros(nobs + 1)
    path = np.zeros(nobs + 1)

    xhat[0] = mean
    nu[0] = acvf[0]
    for i in range(1, nobs + 1):
        if i <= count:
            path[i - 1] = values[i - 1]
        else:
            path[i - 1] = xhat[i - 1]
        ann = durbin_levinson_update(a, i, acvf, nu[i - 1])
        nu[i] = nu[i - 1] * (1.0 - ann * ann)
        total = 0.0
        for j in range(1, i + 1):
            total += a[j - 1] * (path[i - j] - mean)
        xhat[i] = mean + total
    return xhat, nu


@jit(nopython=True, cache=True)
def durbin_levinson_simulate(acvf: np.ndarray, shocks: np.ndarray) -> np.ndarray:
    """
    Draw a zero-mean path with the given autocovariance.

    Each value is its Durbin-Levinson predictor from the path so far plus the
    corresponding shock scaled by the one-step standard deviation.

    Args:
        acvf: Autocovariance at lags 0..len(shocks) - 1
        shocks: Standardized innovations

    Returns:
        Simulated path of the same length as ``shocks``
    """
    n = len(shocks)
    sim = np.zeros(n)
    if n == 0:
        return sim
    a = np.zeros(n)
    nu = acvf[0]
    sim[0] = shocks[0] * np.sqrt(max(nu, 0.0))
    for t in range(1, n):
        ann = durbin_levinson_update(a, t, acvf, nu)
        nu = nu * (1.0 - ann * ann)
        total = 0.0
        for j in range(1, t + 1):
            total += a[j - 1] * sim[t - j]
        sim[t] = total + shocks[t] * np.sqrt(max(nu, 0.0))
    return sim


# ============================================================================
# Moving-average representation
# ============================================================================

@jit(nopython=True, cache=True)
def psi_weights(phi: np.ndarray, theta: np.ndarray, length: int) -> np.ndarray:
    """
    Coefficients of the causal representation X_t = sum psi_j Z_{t-j}.

    ``psi[0] = 1`` and ``psi[j] = theta_j + sum_k phi_k psi[j-k]``.
    """
    p = len(phi)
    q = len(theta)
    psi = np.zeros(length)
    if length == 0:
        return psi
    psi[0] = 1.0
    for j in range(1, length):
        total = theta[j - 1] if j <= q else 0.0
        for k in range(1, min(j, p) + 1):
            total += phi[k - 1] * psi[j - k]
        psi[j] = total
    return psi


@jit(nopython=True, cache=True)
def fractional_noise_acvf(d: float, gamma0: float, max_lag: int) -> np.ndarray:
    """
    Autocovariance of (1 - B)^{-d} Z_t given its variance ``gamma0``.

    Uses gamma(h) = gamma(h - 1) (h - 1 + d) / (h - d).
    """
    acvf = np.zeros(max_lag + 1)
    acvf[0] = gamma0
    for h in range(1, max_lag + 1):
        acvf[h] = acvf[h - 1] * (h - 1.0 + d) / (h - d)
    return acvf


@jit(nopython=True, cache=True)
def fractional_weights(d: float, length: int) -> np.ndarray:
    """
    Coefficients of (1 - B)^{-d} = sum pi_j B^j.
    """
    w = np.zeros(length)
    if length == 0:
        return w
    w[0] = 1.0
    for j in range(1, length):
        w[j] = w[j - 1] * (j - 1.0 + d) / j
    return w


# ============================================================================
# Exogenous regression
# ============================================================================

@jit(nopython=True, cache=True)
def exogenous_adjustments(exogenous: np.ndarray, gamma: np.ndarray, phi: np.ndarray) -> np.ndarray:
    """
    Contribution of lagged exogenous inputs passed through the AR filter.

    ``adj[0] = 0`` and ``adj[t] = sum_i gamma_i u_i[t-1] + sum_j phi_j adj[t-j]``.

    Args:
        exogenous: Inputs, one row per time step
        gamma: Regression coefficients, one per input column
        phi: AR coefficients

    Returns:
        Adjustments of length ``len(exogenous) + 1``; the last entry applies
        to the first observation after the sample
    """
    n = exogenous.shape[0]
    k = exogenous.shape[1]
    p = len(phi)
    adj = np.zeros(n + 1)
    for t in range(1, n + 1):
        total = 0.0
        for i in range(k):
            total += gamma[i] * exogenous[t - 1, i]
        for j in range(1, min(p, t) + 1):
            total += phi[j - 1] * adj[t - j]
        adj[t] = total
    return adj
