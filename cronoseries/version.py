# cronoseries/version.py
"""
CronoSeries Version Information

Version metadata accessible programmatically via ``cronoseries.__version__``.
CronoSeries follows semantic versioning (MAJOR.MINOR.PATCH).
"""

from typing import Any, Dict

VERSION_MAJOR = 1
VERSION_MINOR = 0
VERSION_PATCH = 0

__version__ = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"

__title__ = "CronoSeries"
__description__ = "Stationary time series models with hypercube maximum likelihood estimation"
__license__ = "MIT"

__python_requires__ = ">=3.10"

# Minimum versions checked at import time
__dependencies__ = {
    "numpy": "1.26.0",
    "scipy": "1.11.3",
    "pandas": "2.1.1",
    "numba": "0.58.0",
    "statsmodels": "0.14.0",
    "matplotlib": "3.8.0"
}


def get_version_info() -> Dict[str, Any]:
    """
    Get version information about CronoSeries.

    Returns:
        Dict containing the version string, its components, the Python
        requirement and the minimum dependency versions.
    """
    return {
        "version": __version__,
        "major": VERSION_MAJOR,
        "minor": VERSION_MINOR,
        "patch": VERSION_PATCH,
        "python_requires": __python_requires__,
        "dependencies": dict(__dependencies__),
        "license": __license__
    }
