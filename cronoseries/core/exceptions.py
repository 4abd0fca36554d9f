'''
Custom exception and warning classes for CronoSeries.

Two separate channels exist for things going wrong during estimation. Caller
errors (wrong vector lengths, unsupported model orders, streaming buffers used
past their capacity) raise one of the exceptions defined here. Candidate
parameter vectors that merely violate stationarity or invertibility are not
errors at all: validity checks return ``False`` and likelihood evaluations
return NaN, and the optimizers rank NaN below every real value.

Every exception carries an optional ``details`` string and a ``context``
dictionary which are folded into the message together with the location of
the code that raised it.
'''

from typing import Any, Dict, List, Optional, Tuple, Union
import inspect
import numpy as np
from pathlib import Path


def _format_message(message: str,
                    details: Optional[str],
                    context: Optional[Dict[str, Any]]) -> str:
    full_message = message
    if details:
        full_message += f"\n\nDetails: {details}"

    if context:
        context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
        full_message += f"\n\nContext:\n{context_str}"

    frame = inspect.currentframe()
    if frame:
        try:
            # Report the first frame outside this module
            while frame is not None and frame.f_code.co_filename == __file__:
                frame = frame.f_back
            if frame:
                caller_info = inspect.getframeinfo(frame)
                full_message += f"\n\nLocation: {Path(caller_info.filename).name}:{caller_info.lineno}"
        finally:
            del frame  # Avoid reference cycles

    return full_message


class CronoError(Exception):
    """Base exception class for all CronoSeries errors.

    Attributes:
        message: The error message
        details: Additional details about the error
        context: Dictionary containing contextual information about the error
    """

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        """Initialize the CronoError.

        Args:
            message: The primary error message
            details: Additional details about the error
            context: Dictionary containing contextual information about the error
        """
        self.message = message
        self.details = details
        self.context = context or {}
        super().__init__(_format_message(message, details, context))


class ParameterError(CronoError):
    """Exception raised when a parameter value or parameter index is invalid.

    Attributes:
        param_name: The name of the parameter that caused the error
        param_value: The invalid parameter value
        constraint: Description of the constraint that was violated
    """

    def __init__(self,
                 message: str,
                 param_name: Optional[str] = None,
                 param_value: Optional[Any] = None,
                 constraint: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.param_name = param_name
        self.param_value = param_value
        self.constraint = constraint

        context_dict = context or {}
        if param_name:
            context_dict["Parameter"] = param_name
        if param_value is not None:
            context_dict["Value"] = param_value
        if constraint:
            context_dict["Constraint"] = constraint

        super().__init__(message, details, context_dict)


class DimensionError(CronoError):
    """Exception raised when vector or matrix dimensions do not match.

    Attributes:
        array_name: The name of the array that caused the error
        expected_shape: The expected shape of the array
        actual_shape: The actual shape of the array
    """

    def __init__(self,
                 message: str,
                 array_name: Optional[str] = None,
                 expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                 actual_shape: Optional[Tuple[int, ...]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.array_name = array_name
        self.expected_shape = expected_shape
        self.actual_shape = actual_shape

        context_dict = context or {}
        if array_name:
            context_dict["Array"] = array_name
        if expected_shape is not None:
            context_dict["Expected Shape"] = expected_shape
        if actual_shape is not None:
            context_dict["Actual Shape"] = actual_shape

        super().__init__(message, details, context_dict)


class NumericError(CronoError):
    """Exception raised when a numerical operation cannot be carried out.

    Attributes:
        operation: The operation that caused the error
        values: The values that caused the error
        error_type: The type of numerical error (e.g., "singular matrix")
    """

    def __init__(self,
                 message: str,
                 operation: Optional[str] = None,
                 values: Optional[Any] = None,
                 error_type: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.operation = operation
        self.values = values
        self.error_type = error_type

        context_dict = context or {}
        if operation:
            context_dict["Operation"] = operation
        if values is not None:
            if isinstance(values, np.ndarray) and values.size > 10:
                # Truncate large arrays for readability
                context_dict["Values"] = f"Array with shape {values.shape}"
            else:
                context_dict["Values"] = values
        if error_type:
            context_dict["Error Type"] = error_type

        super().__init__(message, details, context_dict)


class DataError(CronoError):
    """Exception raised for missing or unusable input data.

    Attributes:
        data_name: The name of the data that caused the error
        issue: Description of the issue with the data
        index: The index or location where the issue was detected
    """

    def __init__(self,
                 message: str,
                 data_name: Optional[str] = None,
                 issue: Optional[str] = None,
                 index: Optional[Union[int, Tuple[int, ...], str]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.data_name = data_name
        self.issue = issue
        self.index = index

        context_dict = context or {}
        if data_name:
            context_dict["Data"] = data_name
        if issue:
            context_dict["Issue"] = issue
        if index is not None:
            context_dict["Index"] = index

        super().__init__(message, details, context_dict)


class ModelSpecificationError(CronoError):
    """Exception raised for unsupported model orders or capabilities.

    Attributes:
        model_type: The type of model being specified
        parameter: The parameter or component that is incorrectly specified
        valid_options: List of valid options for the parameter
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 parameter: Optional[str] = None,
                 valid_options: Optional[List[Any]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.parameter = parameter
        self.valid_options = valid_options

        context_dict = context or {}
        if model_type:
            context_dict["Model Type"] = model_type
        if parameter:
            context_dict["Parameter"] = parameter
        if valid_options:
            context_dict["Valid Options"] = valid_options

        super().__init__(message, details, context_dict)


class EstimationError(CronoError):
    """Exception raised when an estimation run cannot produce a result.

    Attributes:
        model_type: The type of model being estimated
        estimation_method: The estimation method being used
        issue: Description of the issue that occurred during estimation
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 estimation_method: Optional[str] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.estimation_method = estimation_method
        self.issue = issue

        context_dict = context or {}
        if model_type:
            context_dict["Model Type"] = model_type
        if estimation_method:
            context_dict["Estimation Method"] = estimation_method
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class OptimizationError(CronoError):
    """Exception raised when an optimizer is set up incorrectly.

    Attributes:
        algorithm: The optimization algorithm being used
        issue: Description of the problem
    """

    def __init__(self,
                 message: str,
                 algorithm: Optional[str] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.algorithm = algorithm
        self.issue = issue

        context_dict = context or {}
        if algorithm:
            context_dict["Algorithm"] = algorithm
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class ConfigurationError(CronoError):
    """Exception raised for invalid configuration values.

    Attributes:
        config_key: The configuration key that caused the error
        config_value: The invalid configuration value
    """

    def __init__(self,
                 message: str,
                 config_key: Optional[str] = None,
                 config_value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.config_key = config_key
        self.config_value = config_value

        context_dict = context or {}
        if config_key:
            context_dict["Config Key"] = config_key
        if config_value is not None:
            context_dict["Config Value"] = config_value

        super().__init__(message, details, context_dict)


class NotFittedError(CronoError):
    """Exception raised when an operation requires data or a fitted model.

    Attributes:
        model_type: The type of model
        operation: The operation that requires a fitted model
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 operation: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.operation = operation

        context_dict = context or {}
        if model_type:
            context_dict["Model Type"] = model_type
        if operation:
            context_dict["Operation"] = operation

        super().__init__(message, details, context_dict)


class PredictorStateError(CronoError):
    """Exception raised when a streaming predictor is used in the wrong state.

    Attributes:
        predictor: Name of the predictor
        state: The state the predictor was in
    """

    def __init__(self,
                 message: str,
                 predictor: Optional[str] = None,
                 state: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.predictor = predictor
        self.state = state

        context_dict = context or {}
        if predictor:
            context_dict["Predictor"] = predictor
        if state is not None:
            context_dict["State"] = state

        super().__init__(message, details, context_dict)


class PredictorCapacityError(PredictorStateError):
    """Exception raised when a fixed-capacity predictor receives too many observations.

    Attributes:
        capacity: Number of observations the predictor was sized for
    """

    def __init__(self,
                 message: str,
                 predictor: Optional[str] = None,
                 capacity: Optional[int] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.capacity = capacity

        context_dict = context or {}
        if capacity is not None:
            context_dict["Capacity"] = capacity

        super().__init__(message, predictor, "EXHAUSTED", details, context_dict)


class CronoWarning(Warning):
    """Base warning class for all CronoSeries warnings.

    Attributes:
        message: The warning message
        details: Additional details about the warning
        context: Dictionary containing contextual information about the warning
    """

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details
        self.context = context or {}
        super().__init__(_format_message(message, details, context))


class ConvergenceWarning(CronoWarning):
    """Warning for an optimization run whose outcome is questionable.

    Attributes:
        iterations: The number of iterations performed
        final_value: The final objective function value
    """

    def __init__(self,
                 message: str,
                 iterations: Optional[int] = None,
                 final_value: Optional[float] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.iterations = iterations
        self.final_value = final_value

        context_dict = context or {}
        if iterations is not None:
            context_dict["Iterations"] = iterations
        if final_value is not None:
            context_dict["Final Value"] = final_value

        super().__init__(message, details, context_dict)


class NumericWarning(CronoWarning):
    """Warning for numerical issues that do not stop a computation.

    Attributes:
        operation: The operation where the issue was detected
        issue: Description of the numerical issue
        value: The value that may cause numerical issues
    """

    def __init__(self,
                 message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.operation = operation
        self.issue = issue
        self.value = value

        context_dict = context or {}
        if operation:
            context_dict["Operation"] = operation
        if issue:
            context_dict["Issue"] = issue
        if value is not None:
            context_dict["Value"] = value

        super().__init__(message, details, context_dict)


class ModelWarning(CronoWarning):
    """Warning for model behavior that may not be what the caller expects.

    Attributes:
        model_type: The type of model
        issue: Description of the issue
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.issue = issue

        context_dict = context or {}
        if model_type:
            context_dict["Model Type"] = model_type
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


def raise_parameter_error(message: str,
                          param_name: Optional[str] = None,
                          param_value: Optional[Any] = None,
                          constraint: Optional[str] = None,
                          details: Optional[str] = None,
                          context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a ParameterError with consistent formatting.

    Raises:
        ParameterError: The formatted parameter error
    """
    raise ParameterError(message, param_name, param_value, constraint, details, context)


def raise_dimension_error(message: str,
                          array_name: Optional[str] = None,
                          expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                          actual_shape: Optional[Tuple[int, ...]] = None,
                          details: Optional[str] = None,
                          context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a DimensionError with consistent formatting.

    Raises:
        DimensionError: The formatted dimension error
    """
    raise DimensionError(message, array_name, expected_shape, actual_shape, details, context)


def warn_convergence(message: str,
                     iterations: Optional[int] = None,
                     final_value: Optional[float] = None,
                     details: Optional[str] = None,
                     context: Optional[Dict[str, Any]] = None) -> None:
    """Issue a ConvergenceWarning with consistent formatting."""
    import warnings
    warnings.warn(
        ConvergenceWarning(message, iterations, final_value, details, context)
    )


def warn_numeric(message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
    """Issue a NumericWarning with consistent formatting."""
    import warnings
    warnings.warn(
        NumericWarning(message, operation, issue, value, details, context)
    )


def warn_model(message: str,
               model_type: Optional[str] = None,
               issue: Optional[str] = None,
               details: Optional[str] = None,
               context: Optional[Dict[str, Any]] = None) -> None:
    """Issue a ModelWarning with consistent formatting."""
    import warnings
    warnings.warn(
        ModelWarning(message, model_type, issue, details, context)
    )
