"""
Matplotlib figures for estimation diagnostics.

The helpers build standalone :class:`matplotlib.figure.Figure` objects, so
they work with any backend and never touch pyplot's global state.
"""

import logging
from typing import Optional

import numpy as np
from matplotlib.figure import Figure

from ..core.base import EstimationResult, ModelBase
from ..core.exceptions import DataError, NotFittedError

logger = logging.getLogger("cronoseries.utils.plots")


def plot_optimization_history(result: EstimationResult,
                              title: Optional[str] = None,
                              figure: Optional[Figure] = None) -> Figure:
    """Plot the log-likelihood of successive best simplex vertices.

    Args:
        result: Outcome of a maximum likelihood run
        title: Plot title
        figure: Figure to draw into (a new one if None)

    Returns:
        Figure: The figure holding the plot

    Raises:
        DataError: If the result carries no optimizer history
    """
    if not result.history:
        raise DataError("Estimation result has no optimizer history",
                        data_name=result.model_name, issue="empty history")
    stamps = np.array([e.stamp for e in result.history])
    values = -np.array([e.value for e in result.history], dtype=np.float64)

    figure = figure if figure is not None else Figure(figsize=(8, 4))
    ax = figure.add_subplot(111)
    ax.step(stamps, values, where='post')
    ax.set_title(title or f"{result.model_name}: optimization history")
    ax.set_xlabel("Evaluation")
    ax.set_ylabel("Penalized log-likelihood")
    ax.grid(True)
    figure.tight_layout()
    return figure


def plot_one_step_predictors(model: ModelBase,
                             title: Optional[str] = None,
                             figure: Optional[Figure] = None) -> Figure:
    """Plot the data against its one-step predictors and the residuals.

    Uses the outputs of the last output-filling likelihood evaluation;
    univariate outputs with a predictive standard deviation also get a
    95% band.

    Raises:
        NotFittedError: If the model has no likelihood outputs
    """
    outputs = model.outputs
    if outputs is None or outputs.one_step_predictors is None:
        raise NotFittedError("Model has no likelihood outputs; evaluate "
                             "log_likelihood(fill_outputs=True) or fit first",
                             model_type=model.name, operation="plot_one_step_predictors")

    figure = figure if figure is not None else Figure(figsize=(10, 6))
    top = figure.add_subplot(211)
    bottom = figure.add_subplot(212, sharex=top)

    data = model.data
    predictors = outputs.one_step_predictors
    top.plot(data.index, np.asarray(data), label="Data")
    top.plot(predictors.index, np.asarray(predictors), '--', label="One-step predictor")
    if outputs.one_step_predictor_std is not None and predictors.ndim == 1:
        half_width = 1.96 * outputs.one_step_predictor_std.to_numpy()
        top.fill_between(predictors.index, predictors.to_numpy() - half_width,
                         predictors.to_numpy() + half_width, alpha=0.2, label="95% band")
    top.set_title(title or f"{model.name}: one-step predictors")
    top.set_ylabel("Value")
    top.legend(loc='best')
    top.grid(True)

    bottom.plot(outputs.residuals.index, np.asarray(outputs.residuals))
    bottom.axhline(y=0, color='r', linestyle='-')
    bottom.set_xlabel("Time")
    bottom.set_ylabel("Standardized residual")
    bottom.grid(True)

    figure.tight_layout()
    return figure
