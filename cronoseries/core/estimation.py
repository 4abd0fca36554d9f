'''
Two-phase maximum likelihood estimation in the unit hypercube.

Phase one evaluates the penalized log-likelihood at Halton points spread over
the cube coordinates of the FREE parameters; LOCKED coordinates stay at the
cube image of the current parameters and CONSEQUENTIAL parameters are
recomputed from the data for every candidate. Phase two starts a Nelder-Mead
simplex from the d + 1 best candidates and minimizes the negative penalized
log-likelihood, folding every optimizer step back into the cube.

Each likelihood evaluation receives its candidate vector explicitly and never
modifies the model, so the global phase may run in a thread pool.
'''

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Callable, List, Optional

import numpy as np

from .config import get_estimation_config
from .exceptions import DataError, EstimationError, ParameterError, warn_convergence, warn_model
from .parameters import ParameterState, count_states, cube_fix, cube_insert, free_indices
from ..utils.optimization import NelderMead, sort_key
from ..utils.sequences import HaltonSequence

if TYPE_CHECKING:
    from .base import EstimationResult, ModelBase

logger = logging.getLogger("cronoseries.core.estimation")

ProgressCallback = Callable[[np.ndarray, float, int, bool], None]


def penalized_log_likelihood(model: "ModelBase", parameters: np.ndarray, penalty_factor: float) -> float:
    """Objective of the search: NaN for invalid candidates."""
    if not np.all(np.isfinite(parameters)) or not model.check_parameter_validity(parameters):
        return np.nan
    return model.log_likelihood(parameters, penalty_factor, False)


def _candidate(model: "ModelBase", cube: np.ndarray, has_consequential: bool) -> np.ndarray:
    parameters = model.cube_to_parameter(cube)
    if has_consequential:
        parameters = model.compute_consequential_parameters(parameters)
    return parameters


def fit_by_mle(model: "ModelBase",
               n_global_samples: Optional[int] = None,
               n_local_iterations: Optional[int] = None,
               penalty_factor: Optional[float] = None,
               callback: Optional[ProgressCallback] = None,
               parallel: Optional[bool] = None,
               max_workers: Optional[int] = None) -> "EstimationResult":
    """Estimate the FREE parameters of ``model`` by maximum likelihood.

    On return the model holds the estimated parameters, its outputs have been
    filled by a final unpenalized likelihood evaluation, and the returned
    result is also available as ``model.results``.

    Args:
        model: Model with data attached
        n_global_samples: Number of Halton candidates (default from configuration)
        n_local_iterations: Nelder-Mead iterations (default from configuration)
        penalty_factor: Weight of the drawdown penalty (default from configuration)
        callback: Progress callback ``(parameters, log_likelihood, percent, finished)``
        parallel: Evaluate global candidates in a thread pool
        max_workers: Thread pool size

    Returns:
        EstimationResult describing the fit

    Raises:
        DataError: If the model has no data or empty data
        ParameterError: If there are fewer global samples than free parameters + 1
        EstimationError: If no global candidate has a finite likelihood
    """
    from .base import EstimationResult

    cfg = get_estimation_config()
    n_global = cfg.n_global_samples if n_global_samples is None else int(n_global_samples)
    n_local = cfg.n_local_iterations if n_local_iterations is None else int(n_local_iterations)
    penalty = cfg.penalty_factor if penalty_factor is None else float(penalty_factor)
    parallel = cfg.parallel_global_search if parallel is None else parallel
    max_workers = cfg.max_workers if max_workers is None else max_workers

    if not model.has_data or model.n_observations == 0:
        raise DataError("Cannot estimate a model without data",
                        data_name=model.name, issue="no observations")

    states = model.parameter_states
    free = free_indices(states)
    dim = len(free)
    has_consequential = count_states(states, ParameterState.CONSEQUENTIAL) > 0
    best_objective: Optional[float] = None
    history: List = []

    logger.info(f"Fitting {model.name}: {dim} free parameters, "
                f"{n_global} global samples, {n_local} local iterations")

    if dim > 0 and model.n_observations <= dim:
        warn_model(f"{model.name} has {dim} free parameters but only {model.n_observations} observations",
                   model_type=model.name,
                   issue="too few observations",
                   details="The likelihood surface is flat in some directions")

    if dim == 0:
        model._parameters = model.compute_consequential_parameters(model.parameters)
    else:
        if n_global < dim + 1:
            raise ParameterError("Global search needs at least one more sample than free parameters",
                                 param_name="n_global_samples", param_value=n_global,
                                 constraint=f"n_global_samples >= {dim + 1}")

        base_cube = model.parameter_to_cube(model.parameters)
        halton = HaltonSequence(dim)
        cubes = [cube_insert(base_cube, free, halton.next()) for _ in range(n_global)]
        total = n_global + n_local

        def evaluate(cube: np.ndarray):
            parameters = _candidate(model, cube, has_consequential)
            return parameters, penalized_log_likelihood(model, parameters, penalty)

        if parallel:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                evaluations = executor.map(evaluate, cubes)
                trials = []
                for i, trial in enumerate(evaluations):
                    trials.append(trial)
                    if callback is not None:
                        callback(trial[0].copy(), trial[1], i * 100 // total, False)
        else:
            trials = []
            for i, cube in enumerate(cubes):
                trial = evaluate(cube)
                trials.append(trial)
                if callback is not None:
                    callback(trial[0].copy(), trial[1], i * 100 // total, False)

        # Highest likelihood first, NaN last
        order = sorted(range(n_global), key=lambda i: sort_key(-trials[i][1]))
        if math.isnan(trials[order[0]][1]):
            raise EstimationError("Every global candidate produced an invalid likelihood",
                                  model_type=model.name, estimation_method="MLE",
                                  issue="all candidates NaN")
        n_valid = sum(1 for t in trials if not math.isnan(t[1]))
        if n_valid < dim + 1:
            warn_convergence(f"Only {n_valid} valid global candidates for a {dim + 1}-vertex simplex",
                             final_value=trials[order[0]][1])
        logger.debug(f"Global search best log-likelihood {trials[order[0]][1]:.6f} "
                     f"({n_valid}/{n_global} valid candidates)")

        # LOCKED coordinates come from the best candidate from here on
        best_params = trials[order[0]][0]
        base_cube = model.parameter_to_cube(best_params)
        simplex = [model.parameter_to_cube(trials[i][0])[free] for i in order[:dim + 1]]

        def to_parameters(point: np.ndarray) -> np.ndarray:
            return _candidate(model, cube_fix(cube_insert(base_cube, free, point)), has_consequential)

        def objective(point: np.ndarray) -> float:
            return -penalized_log_likelihood(model, to_parameters(point), penalty)

        local_callback = None
        if callback is not None:
            def local_callback(point, value, percent, finished):
                callback(to_parameters(point), -value, percent, False)

        optimizer = NelderMead(callback=local_callback, start_iteration=n_global)
        outcome = optimizer.minimize(objective, simplex, n_local)
        history = outcome.evaluations

        final = to_parameters(outcome.argmin)
        if math.isnan(outcome.minimum) or not model.check_parameter_validity(final):
            warn_convergence("Local search ended at an invalid point; keeping the best global candidate",
                             iterations=n_local)
            final = best_params
            best_objective = trials[order[0]][1]
        else:
            best_objective = -outcome.minimum
        model._parameters = np.array(final, dtype=np.float64)

    log_likelihood = model.log_likelihood(None, 0.0, True)
    if callback is not None:
        callback(model.parameters, log_likelihood, 100, True)

    result = EstimationResult(
        model_name=model.name,
        method="MLE",
        parameters=model.parameters,
        parameter_names=model.parameter_names,
        parameter_states=model.parameter_states,
        log_likelihood=log_likelihood,
        penalized_objective=best_objective,
        n_observations=model.n_observations,
        n_global_samples=n_global if dim > 0 else 0,
        n_local_iterations=n_local if dim > 0 else 0,
        history=history
    )
    model._record_fit(result)
    logger.info(f"Finished fitting {model.name}: log-likelihood {log_likelihood:.6f}")
    return result
