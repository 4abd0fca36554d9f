"""
Polynomial root mapping between the unit hypercube and stationary lag polynomials.

Lag polynomials are stored with ascending coefficients, ``p[0] + p[1] z + ...``,
and AR/MA polynomials are monic in the constant term (``p[0] == 1``). A
polynomial is stationary (or invertible) when all of its roots lie outside the
unit circle, i.e. when all of its *inverse* roots lie inside it.

:func:`map_from_cube` builds such a polynomial from a point of [0, 1]^n by
reading the coordinates as inverse roots, and :func:`map_to_cube` goes the
other way. The inverse is not unique: a polynomial with several real roots can
be packed in more than one order, and the pairing used here follows the order
in which the eigenvalue solver reports the roots. Only the polynomial, not the
cube point, survives a round trip.
"""

import logging
from typing import List, Optional

import numpy as np

from ..core.exceptions import DimensionError

logger = logging.getLogger("cronoseries.utils.polynomial")

POLYNOMIAL_EPSILON = 1e-8


def trim(coefficients: np.ndarray, epsilon: float = POLYNOMIAL_EPSILON) -> np.ndarray:
    """Drop trailing coefficients whose magnitude is below ``epsilon``."""
    p = np.asarray(coefficients, dtype=np.float64)
    last = len(p)
    while last > 0 and abs(p[last - 1]) < epsilon:
        last -= 1
    return p[:last]


def roots(coefficients: np.ndarray) -> np.ndarray:
    """Roots of a polynomial with ascending coefficients.

    Trailing near-zero coefficients are trimmed first so that degenerate
    high-order terms do not produce spurious roots at infinity. The roots are
    the eigenvalues of the companion matrix.

    Returns:
        Complex array of roots; empty for a constant polynomial
    """
    p = trim(coefficients)
    if len(p) <= 1:
        return np.zeros(0, dtype=np.complex128)
    return np.roots(p[::-1]).astype(np.complex128)


def is_real(z: complex) -> bool:
    """True when the imaginary part of ``z`` is solver noise."""
    return abs(z.imag) < POLYNOMIAL_EPSILON


def strip_conjugates(values: np.ndarray, tolerance: float = 1e-8) -> np.ndarray:
    """Remove the later member of each complex-conjugate pair.

    Real values, including those :func:`is_real` accepts, are always kept.
    """
    values = np.asarray(values, dtype=np.complex128)
    used = np.zeros(len(values), dtype=bool)
    kept: List[complex] = []
    for i, z in enumerate(values):
        if used[i]:
            continue
        kept.append(z)
        if is_real(z):
            continue
        target = np.conj(z)
        for j in range(i + 1, len(values)):
            if not used[j] and abs(values[j] - target) <= tolerance * max(1.0, abs(z)):
                used[j] = True
                break
    return np.array(kept, dtype=np.complex128)


def expand_inverse_roots(inverse_roots: np.ndarray) -> np.ndarray:
    """Expand ``prod(1 - r_i z)`` into real ascending coefficients."""
    order = len(inverse_roots)
    coefficients = np.zeros(order + 1, dtype=np.complex128)
    coefficients[0] = 1.0
    for k, r in enumerate(inverse_roots, start=1):
        for j in range(k, 0, -1):
            coefficients[j] -= r * coefficients[j - 1]
    return coefficients.real.copy()


def map_from_cube(cube: np.ndarray, barrier: float) -> np.ndarray:
    """Build a monic polynomial with all roots outside ``1 + barrier``.

    Coordinates are rescaled to [-1, 1] and consumed in pairs ``(x, y)``. A
    positive ``y`` yields the complex inverse roots ``x +/- iy``; otherwise the
    pair yields the real inverse roots ``x`` and ``2y + 1``. An odd trailing
    coordinate is a single real inverse root. Inverse roots of modulus above
    ``1 - barrier`` are reflected to modulus ``1 / (r + 2 barrier)`` with the
    same phase.

    Args:
        cube: Point of [0, 1]^n
        barrier: Minimum distance between the roots and the unit circle

    Returns:
        Ascending coefficients of length ``n + 1`` with ``p[0] == 1``
    """
    c = 2.0 * np.asarray(cube, dtype=np.float64) - 1.0
    n = len(c)
    inverse_roots: List[complex] = []

    i = 0
    while i + 1 < n:
        x, y = c[i], c[i + 1]
        if y > 0:
            inverse_roots.append(complex(x, y))
            inverse_roots.append(complex(x, -y))
        else:
            inverse_roots.append(complex(x, 0.0))
            inverse_roots.append(complex(2.0 * y + 1.0, 0.0))
        i += 2
    if i < n:
        inverse_roots.append(complex(c[i], 0.0))

    for k, z in enumerate(inverse_roots):
        r = abs(z)
        if r > 1.0 - barrier:
            inverse_roots[k] = complex(np.exp(1j * np.angle(z)) / (r + 2.0 * barrier))

    return expand_inverse_roots(np.array(inverse_roots, dtype=np.complex128))


def map_to_cube(coefficients: np.ndarray, barrier: float, order: Optional[int] = None) -> np.ndarray:
    """Inverse of :func:`map_from_cube` for stationary polynomials.

    Roots removed by trimming (zero high-order coefficients) are represented
    as zero inverse roots, so a polynomial such as ``1 - 0.5 z + 0 z^2``
    still maps to a point of the full dimension.

    Args:
        coefficients: Ascending coefficients, ``p[0] == 1``
        barrier: Barrier used by the forward mapping (kept for symmetry)
        order: Expected polynomial order; checked when given

    Returns:
        Point of [0, 1]^order

    Raises:
        DimensionError: If the polynomial order does not match ``order``
    """
    p = np.asarray(coefficients, dtype=np.float64)
    n = len(p) - 1
    if order is not None and n != order:
        raise DimensionError(
            "Polynomial order does not match the parameter block",
            array_name="coefficients",
            expected_shape=(order + 1,),
            actual_shape=p.shape
        )
    if n <= 0:
        return np.zeros(0, dtype=np.float64)

    distinct = strip_conjugates(roots(p))
    real = [is_real(z) for z in distinct]
    with np.errstate(divide='ignore', invalid='ignore'):
        inverse = 1.0 / distinct

    # classified before inversion, which rescales the imaginary parts
    complex_part = [w for w, r in zip(inverse, real) if not r]
    real_part = [w.real for w, r in zip(inverse, real) if r]

    used = 2 * len(complex_part) + len(real_part)
    if used > n:
        raise DimensionError(
            "Polynomial has more roots than its order allows",
            array_name="coefficients",
            expected_shape=(n + 1,),
            actual_shape=p.shape
        )
    real_part.extend([0.0] * (n - used))

    coords: List[float] = []
    for z in complex_part:
        coords.extend([z.real, abs(z.imag)])
    k = 0
    while k + 1 < len(real_part):
        coords.extend([real_part[k], (real_part[k + 1] - 1.0) / 2.0])
        k += 2
    if k < len(real_part):
        coords.append(real_part[k])

    return (np.array(coords, dtype=np.float64) + 1.0) / 2.0


def min_root_modulus(coefficients: np.ndarray) -> float:
    """Smallest root modulus, ``inf`` for a constant polynomial."""
    r = roots(coefficients)
    if len(r) == 0:
        return np.inf
    return float(np.min(np.abs(r)))


def roots_outside(coefficients: np.ndarray, radius: float) -> bool:
    """True when every root has modulus at least ``radius``."""
    return min_root_modulus(coefficients) >= radius
