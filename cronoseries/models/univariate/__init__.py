"""
Conditional variance models of a zero-mean series.
"""

import logging

logger = logging.getLogger("cronoseries.models.univariate")

from .garch import GARCHModel, GARCHType

__all__ = ['GARCHModel', 'GARCHType']
