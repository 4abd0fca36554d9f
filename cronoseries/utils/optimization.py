"""
Nelder-Mead simplex minimization with NaN-aware step control.

The objective may return NaN for arguments that map to invalid models. NaN is
ranked below every real value when the simplex is sorted, and a reflection
step that lands on NaN is shortened geometrically before the optimizer gives
up on it for the current iteration.

The optimizer always runs the full iteration budget; there is no
convergence-tolerance exit.
"""

import itertools
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..core.config import get_numerical_config
from ..core.exceptions import OptimizationError, ParameterError

logger = logging.getLogger("cronoseries.utils.optimization")

# callback(argument, value, percent_complete, finished)
ProgressCallback = Callable[[np.ndarray, float, int, bool], None]


@dataclass
class Evaluation:
    """One objective evaluation.

    Attributes:
        argument: Point at which the objective was evaluated
        value: Objective value, possibly NaN
        stamp: Monotone creation counter
    """
    argument: np.ndarray
    value: float
    stamp: int


@dataclass
class NelderMeadResult:
    """Outcome of a Nelder-Mead run.

    Attributes:
        argmin: Best argument found
        minimum: Objective value at ``argmin``
        evaluations: Successive best vertices, one entry per improvement
        n_iterations: Number of iterations performed
        n_function_evaluations: Number of objective calls
    """
    argmin: np.ndarray
    minimum: float
    evaluations: List[Evaluation] = field(default_factory=list)
    n_iterations: int = 0
    n_function_evaluations: int = 0


def sort_key(value: float):
    """Sort key placing NaN after every real value."""
    return (math.isnan(value), value if not math.isnan(value) else 0.0)


def is_better(a: float, b: float) -> bool:
    """Strict comparison ``a < b`` where NaN is worse than any real value."""
    if math.isnan(a):
        return False
    if math.isnan(b):
        return True
    return a < b


class NelderMead:
    """Downhill simplex minimizer.

    Coefficients are the classic ones: reflection 1, expansion 2, contraction
    0.5 and shrink 0.5.

    Args:
        callback: Called once per iteration with the best vertex and the
            progress percentage, and once more when the run finishes
        start_iteration: Offset added to the iteration counter when computing
            progress, so that a preceding search phase can share one progress bar
        nan_step_shrink: Factor applied to the reflection step while it lands
            on NaN (default from the numerical configuration)
        max_nan_retries: Maximum number of shortened reflection attempts
            (default from the numerical configuration)
    """

    ALPHA = 1.0
    GAMMA = 2.0
    RHO = 0.5
    SIGMA = 0.5

    def __init__(self,
                 callback: Optional[ProgressCallback] = None,
                 start_iteration: int = 0,
                 nan_step_shrink: Optional[float] = None,
                 max_nan_retries: Optional[int] = None):
        numerical = get_numerical_config()
        self.callback = callback
        self.start_iteration = start_iteration
        self.nan_step_shrink = numerical.nan_step_shrink if nan_step_shrink is None else nan_step_shrink
        self.max_nan_retries = numerical.max_nan_retries if max_nan_retries is None else max_nan_retries
        self._stamps = itertools.count()
        self._n_evaluations = 0

    def _evaluate(self, objective: Callable[[np.ndarray], float], argument: np.ndarray) -> Evaluation:
        self._n_evaluations += 1
        value = float(objective(argument))
        return Evaluation(np.array(argument, dtype=np.float64), value, next(self._stamps))

    def _notify(self, best: Evaluation, percent: int, finished: bool) -> None:
        if self.callback is not None:
            self.callback(best.argument.copy(), best.value, percent, finished)

    def minimize(self,
                 objective: Callable[[np.ndarray], float],
                 initial_points: Sequence[np.ndarray],
                 max_iterations: int) -> NelderMeadResult:
        """Minimize ``objective`` starting from the given simplex.

        Args:
            objective: Function of a 1-D array returning a float (NaN allowed)
            initial_points: d + 1 starting vertices of dimension d
            max_iterations: Number of iterations to perform

        Returns:
            NelderMeadResult with the best vertex and the improvement history

        Raises:
            ParameterError: If the number of vertices is not d + 1
            OptimizationError: If every starting vertex evaluates to NaN
        """
        points = [np.asarray(p, dtype=np.float64) for p in initial_points]
        if not points:
            raise ParameterError("Nelder-Mead requires at least one starting vertex",
                                 param_name="initial_points", param_value=0)
        dim = len(points[0])
        if len(points) != dim + 1 or any(len(p) != dim for p in points):
            raise ParameterError(
                "Nelder-Mead requires d + 1 starting vertices of dimension d",
                param_name="initial_points",
                param_value=len(points),
                constraint=f"{dim + 1} vertices of length {dim}"
            )

        self._n_evaluations = 0
        simplex = [self._evaluate(objective, p) for p in points]
        if all(math.isnan(e.value) for e in simplex):
            raise OptimizationError("Every starting vertex evaluates to NaN",
                                    algorithm="Nelder-Mead",
                                    issue="no valid starting point",
                                    details="Start from at least one point inside the valid region")
        history: List[Evaluation] = []
        last_stamp = -1
        total = max_iterations + self.start_iteration

        for iteration in range(max_iterations):
            simplex.sort(key=lambda e: sort_key(e.value))
            best = simplex[0]
            if best.stamp > last_stamp:
                history.append(best)
                last_stamp = best.stamp
            self._notify(best, 100 * (iteration + self.start_iteration) // total, False)

            worst = simplex[dim]
            centroid = np.mean([e.argument for e in simplex[:dim]], axis=0)
            direction = centroid - worst.argument

            step = self.ALPHA
            reflected = self._evaluate(objective, centroid + step * direction)
            retries = 0
            while math.isnan(reflected.value) and retries < self.max_nan_retries:
                step *= self.nan_step_shrink
                reflected = self._evaluate(objective, centroid + step * direction)
                retries += 1
            if math.isnan(reflected.value) and retries > 0:
                logger.warning(f"Reflection still NaN after {retries} shortened steps")

            if is_better(reflected.value, worst.value):
                if not is_better(reflected.value, best.value):
                    simplex[dim] = reflected
                else:
                    expanded = self._evaluate(objective, centroid + self.GAMMA * direction)
                    simplex[dim] = expanded if is_better(expanded.value, reflected.value) else reflected
            else:
                contracted = self._evaluate(objective, worst.argument + self.RHO * direction)
                if is_better(contracted.value, worst.value):
                    simplex[dim] = contracted
                else:
                    for i in range(1, dim + 1):
                        shrunk = best.argument + self.SIGMA * (simplex[i].argument - best.argument)
                        simplex[i] = self._evaluate(objective, shrunk)

        simplex.sort(key=lambda e: sort_key(e.value))
        best = simplex[0]
        if best.stamp > last_stamp:
            history.append(best)
        self._notify(best, 100, True)

        return NelderMeadResult(
            argmin=best.argument.copy(),
            minimum=best.value,
            evaluations=history,
            n_iterations=max_iterations,
            n_function_evaluations=self._n_evaluations
        )
