"""
CronoSeries Test Suite

Tests for the CronoSeries models, estimation driver, predictors and
utilities. Set ``SKIP_SLOW_TESTS=true`` to skip the repeated-simulation
estimation tests.
"""

import os

import pytest

# Custom pytest markers for test categorization
pytest.mark.slow = pytest.mark.slow

SKIP_SLOW_TESTS = os.environ.get("SKIP_SLOW_TESTS", "false").lower() == "true"
