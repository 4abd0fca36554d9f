"""
Low-discrepancy sequences for the global search phase of estimation.

The Halton sequence covers the unit hypercube more evenly than independent
uniform draws, which makes a few hundred points enough to locate the basin of
the likelihood maximum for low-order models. Both generators are
deterministic; build a fresh instance to restart a sequence.
"""

import logging
from typing import List

import numpy as np

from ..core.exceptions import ParameterError

logger = logging.getLogger("cronoseries.utils.sequences")

PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37,
          41, 43, 47, 53, 59, 61, 67, 71, 73, 79, 83, 89)

MAX_HALTON_DIMENSION = len(PRIMES)


class VanderCorputSequence:
    """Radical-inverse sequence in a single integer base.

    The n-th value reverses the base-``b`` digits of n about the radix point,
    so base 2 yields 0.5, 0.25, 0.75, 0.125, ...

    Args:
        base: Integer base, at least 2
    """

    def __init__(self, base: int):
        if base < 2:
            raise ParameterError("Van der Corput base must be at least 2",
                                 param_name="base", param_value=base,
                                 constraint="base >= 2")
        self._base = int(base)
        self._counter = 0

    @property
    def base(self) -> int:
        return self._base

    def next(self) -> float:
        self._counter += 1
        n = self._counter
        value = 0.0
        denominator = 1.0
        while n > 0:
            n, digit = divmod(n, self._base)
            denominator *= self._base
            value += digit / denominator
        return value


class HaltonSequence:
    """Halton points in [0, 1]^dimension.

    Coordinate i is a van der Corput sequence in the i-th prime base.

    Args:
        dimension: Number of coordinates, between 1 and 24

    Raises:
        ParameterError: If the dimension is outside the supported range
    """

    def __init__(self, dimension: int):
        if dimension < 1 or dimension > MAX_HALTON_DIMENSION:
            raise ParameterError(
                "Unsupported Halton dimension",
                param_name="dimension",
                param_value=dimension,
                constraint=f"1 <= dimension <= {MAX_HALTON_DIMENSION}"
            )
        self._dimension = int(dimension)
        self._generators: List[VanderCorputSequence] = [
            VanderCorputSequence(PRIMES[i]) for i in range(self._dimension)
        ]

    @property
    def dimension(self) -> int:
        return self._dimension

    def next(self) -> np.ndarray:
        """Return the next point of the sequence."""
        return np.array([g.next() for g in self._generators], dtype=np.float64)

    def take(self, n: int) -> np.ndarray:
        """Return the next ``n`` points as an ``(n, dimension)`` array."""
        points = np.empty((n, self._dimension), dtype=np.float64)
        for i in range(n):
            points[i] = self.next()
        return points
