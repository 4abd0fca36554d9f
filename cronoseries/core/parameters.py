'''
Parameter states and hypercube helpers shared by all models.

Every model exposes its parameters as a flat ``float64`` vector whose length is
fixed by the model order. Each position carries a :class:`ParameterState`:

* ``FREE`` positions are optimized by the estimator,
* ``LOCKED`` positions keep the value they currently hold,
* ``CONSEQUENTIAL`` positions are recomputed from the other parameters and
  the data after every candidate evaluation (sample mean, innovation scale).

Maximum likelihood estimation runs in the unit hypercube. The models map their
natural parameters into [0, 1]^n; the estimator moves only the coordinates of
FREE parameters and folds out-of-range optimizer steps back with
:func:`cube_fix`.
'''

import logging
from enum import Enum
from typing import List, Sequence

import numpy as np
from scipy import special

from .exceptions import DimensionError, ParameterError

logger = logging.getLogger("cronoseries.core.parameters")


class ParameterState(Enum):
    """Estimation role of a single parameter."""
    FREE = "free"
    LOCKED = "locked"
    CONSEQUENTIAL = "consequential"


def free_indices(states: Sequence[ParameterState]) -> np.ndarray:
    """Return the positions of FREE parameters."""
    return np.array([i for i, s in enumerate(states) if s is ParameterState.FREE],
                    dtype=np.int64)


def count_states(states: Sequence[ParameterState], state: ParameterState) -> int:
    """Count parameters in the given state."""
    return sum(1 for s in states if s is state)


def cube_fix(cube: np.ndarray) -> np.ndarray:
    """Fold arbitrary coordinates back into [0, 1] by reflection.

    Coordinates are reflected at 0 and 1 (a triangle wave of period 2), so the
    function is the identity on [0, 1] and ``cube_fix(cube_fix(x)) ==
    cube_fix(x)``. Non-finite coordinates map to NaN.

    Args:
        cube: Point with possibly out-of-range coordinates

    Returns:
        A new array with every finite coordinate in [0, 1]
    """
    x = np.asarray(cube, dtype=np.float64)
    with np.errstate(invalid='ignore'):
        folded = np.mod(np.abs(x), 2.0)
        folded = np.where(folded > 1.0, 2.0 - folded, folded)
    return np.where(np.isfinite(x), folded, np.nan)


def cube_insert(base_cube: np.ndarray, indices: np.ndarray, values: np.ndarray) -> np.ndarray:
    """Embed a point of the FREE subspace into a full cube point.

    Args:
        base_cube: Cube image of the current full parameter vector
        indices: Positions of the FREE parameters
        values: Coordinates for the FREE positions

    Returns:
        Copy of ``base_cube`` with ``values`` written at ``indices``

    Raises:
        DimensionError: If ``values`` does not match ``indices``
    """
    values = np.asarray(values, dtype=np.float64)
    if values.shape != (len(indices),):
        raise DimensionError(
            "Free-coordinate vector does not match the number of free parameters",
            array_name="values",
            expected_shape=(len(indices),),
            actual_shape=values.shape
        )
    full = np.array(base_cube, dtype=np.float64, copy=True)
    full[indices] = values
    return full


def logistic(x: float, scale: float = 1.0) -> float:
    """Scaled logistic map from the real line to (0, 1)."""
    return float(special.expit(x / scale))


def logit(p: float, scale: float = 1.0, bound: float = np.inf) -> float:
    """Inverse of :func:`logistic`, clipped to ``[-bound, bound]``."""
    with np.errstate(divide='ignore'):
        value = scale * special.logit(p)
    return float(np.clip(value, -bound, bound))


def margin_logistic(x: float, margin: float) -> float:
    """Logistic map squeezed away from 0 and 1 and clipped to [0, 1]."""
    value = (special.expit(x) - margin) / (1.0 - 2.0 * margin)
    return float(np.clip(value, 0.0, 1.0))


def margin_logit(c: float, margin: float) -> float:
    """Inverse of :func:`margin_logistic`; finite for every c in [0, 1]."""
    return float(special.logit(c * (1.0 - 2.0 * margin) + margin))


def validate_states(states: Sequence[ParameterState], n_parameters: int) -> List[ParameterState]:
    """Check a state vector against the parameter count and return it as a list.

    Raises:
        DimensionError: If the lengths differ
        ParameterError: If an element is not a ParameterState
    """
    states = list(states)
    if len(states) != n_parameters:
        raise DimensionError(
            "Parameter state vector has the wrong length",
            array_name="parameter_states",
            expected_shape=(n_parameters,),
            actual_shape=(len(states),)
        )
    for i, s in enumerate(states):
        if not isinstance(s, ParameterState):
            raise ParameterError(
                "Parameter states must be ParameterState members",
                param_name=f"parameter_states[{i}]",
                param_value=s
            )
    return states
