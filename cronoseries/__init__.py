# cronoseries/__init__.py
"""
CronoSeries - stationary time series models for Python

CronoSeries models a real-valued (or vector-valued) series through a common
model interface: a fixed-length parameter vector whose entries are FREE,
LOCKED or CONSEQUENTIAL, a log-likelihood that never mutates the model, and
a bijection onto the unit hypercube that drives a two-phase maximum
likelihood search (Halton global sampling followed by a NaN-aware
Nelder-Mead simplex).

The package provides:
- ARMA and fractionally integrated ARFIMA models with Gaussian or Student-t
  innovations
- ARMAX models with lagged exogenous regressors
- Gaussian models specified by their autocorrelations
- GARCH and EGARCH conditional variance models
- Vector autoregressions estimated by block Yule-Walker
- Innovations and Durbin-Levinson real-time predictors
"""

import importlib
import logging
from typing import Dict, List, Union
import warnings

# Set up package-wide logger; handlers and level come from the configuration
logger = logging.getLogger("cronoseries")

from .version import __version__, __title__, __description__, __license__, __dependencies__
from .version import get_version_info


def _parse_version(version: str) -> tuple:
    parts = []
    for piece in version.split(".")[:3]:
        digits = "".join(c for c in piece if c.isdigit())
        if not digits:
            break
        parts.append(int(digits))
    return tuple(parts)


def _check_dependencies() -> None:
    """
    Check for required dependencies and their versions.

    Raises ImportError if a dependency is missing and warns if one is older
    than the recommended version.
    """
    missing_required = []
    outdated_packages = []

    for package, min_version in __dependencies__.items():
        try:
            imported = importlib.import_module(package)
        except ImportError:
            missing_required.append(package)
            continue
        pkg_version = getattr(imported, "__version__", None)
        if pkg_version is None:
            logger.warning(f"Cannot determine version for {package}")
            continue
        if _parse_version(pkg_version) < _parse_version(min_version):
            outdated_packages.append((package, pkg_version, min_version))

    if missing_required:
        logger.error(f"Required packages missing: {', '.join(missing_required)}")
        raise ImportError(
            f"CronoSeries requires the following packages: "
            f"{', '.join(missing_required)}. Please install them with pip."
        )

    for package, current, required in outdated_packages:
        warnings.warn(
            f"{package} version {current} is older than the recommended "
            f"version {required}. This may cause compatibility issues.",
            UserWarning
        )


_check_dependencies()

# Import subpackages; core first, the utilities depend on it
from . import core
from . import utils
from . import models

core.config.initialize_config()

_registry = {
    "time_series": ["ARMAModel", "ARMAXModel", "ACFModel", "VARModel"],
    "univariate": ["GARCHModel"],
    "predictors": ["InnovationsPredictor", "DurbinLevinsonPredictor"]
}


def get_version() -> str:
    """
    Return the version of CronoSeries.

    Returns:
        str: Version string in format MAJOR.MINOR.PATCH
    """
    return __version__


def set_log_level(level: Union[str, int]) -> None:
    """
    Set the logging level for CronoSeries.

    Args:
        level: Logging level, either as string ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
              or as an integer constant from the logging module
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logger.setLevel(level)
    logger.info(f"Log level set to {logging.getLevelName(level)}")


def list_available_models() -> Dict[str, List[str]]:
    """
    List all available models in CronoSeries.

    Returns:
        Dict mapping model categories to lists of available models
    """
    return {category: list(names) for category, names in _registry.items()}


__all__ = [
    # Subpackages
    'core',
    'models',
    'utils',

    # Public functions
    'get_version',
    'get_version_info',
    'set_log_level',
    'list_available_models',

    # Version info
    '__version__',
    '__title__',
    '__description__',
    '__license__'
]

logger.debug(f"CronoSeries v{__version__} initialized successfully")
