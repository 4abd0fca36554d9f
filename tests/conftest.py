'''
Pytest configuration and fixtures for the CronoSeries test suite.

Provides seeded data generators for the processes the models describe and
hypothesis strategies for stationary coefficient vectors.
'''

from typing import Iterator

import numpy as np
import pandas as pd
import pytest
from hypothesis import strategies as st

from cronoseries.core.config import reset_config


# ---- Configuration isolation ----

@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch) -> Iterator[None]:
    """Keep runtime configuration changes from leaking between tests."""
    monkeypatch.setenv("CRONO_CONFIG_DIR", str(tmp_path))
    reset_config()
    yield
    reset_config()


# ---- Basic Data Generation Fixtures ----

@pytest.fixture
def rng() -> np.random.Generator:
    """Provide a seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def sample_size() -> int:
    """Default sample size for test data."""
    return 500


@pytest.fixture
def white_noise(rng: np.random.Generator, sample_size: int) -> pd.Series:
    """Standard normal white noise with a daily index."""
    dates = pd.date_range(start='2020-01-01', periods=sample_size, freq='D')
    return pd.Series(rng.standard_normal(sample_size), index=dates, name="noise")


@pytest.fixture
def ar1_process(rng: np.random.Generator, sample_size: int) -> np.ndarray:
    """AR(1) process x_t = 0.6 x_{t-1} + e_t started from its stationary law."""
    phi = 0.6
    e = rng.standard_normal(sample_size)
    x = np.zeros(sample_size)
    x[0] = e[0] / np.sqrt(1.0 - phi ** 2)
    for t in range(1, sample_size):
        x[t] = phi * x[t - 1] + e[t]
    return x


@pytest.fixture
def ma1_process(rng: np.random.Generator, sample_size: int) -> np.ndarray:
    """MA(1) process x_t = e_t + 0.4 e_{t-1}."""
    e = rng.standard_normal(sample_size + 1)
    return e[1:] + 0.4 * e[:-1]


@pytest.fixture
def garch11_returns(rng: np.random.Generator) -> np.ndarray:
    """GARCH(1,1) returns with alpha_0 = 0.05, alpha_1 = 0.1, beta_1 = 0.85."""
    n = 1000
    alpha0, alpha1, beta1 = 0.05, 0.1, 0.85
    z = rng.standard_normal(n)
    x = np.zeros(n)
    s2 = alpha0 / (1.0 - alpha1 - beta1)
    for t in range(n):
        if t > 0:
            s2 = alpha0 + alpha1 * x[t - 1] ** 2 + beta1 * s2
        x[t] = np.sqrt(s2) * z[t]
    return x


@pytest.fixture
def var1_process(rng: np.random.Generator) -> pd.DataFrame:
    """Bivariate VAR(1) process with correlated innovations."""
    n = 2000
    phi = np.array([[0.5, 0.1],
                    [0.2, 0.3]])
    chol = np.linalg.cholesky(np.array([[1.0, 0.3],
                                        [0.3, 0.5]]))
    x = np.zeros((n, 2))
    e = rng.standard_normal((n, 2)) @ chol.T
    for t in range(1, n):
        x[t] = phi @ x[t - 1] + e[t]
    return pd.DataFrame(x + np.array([1.0, -1.0]), columns=["growth", "inflation"])


# ---- Hypothesis strategies ----

cube_coordinate = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)


def cube_points(dimension: int):
    """Points of the unit hypercube of the given dimension."""
    return st.lists(cube_coordinate, min_size=dimension, max_size=dimension).map(np.array)


def stationary_inverse_roots(max_order: int = 4, max_modulus: float = 0.95):
    """Real inverse roots well inside the unit circle."""
    return st.lists(st.floats(min_value=-max_modulus, max_value=max_modulus, allow_nan=False),
                    min_size=1, max_size=max_order)
