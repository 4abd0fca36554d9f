#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Setuptools shim for CronoSeries.

All metadata, dependencies and the test extra live in pyproject.toml; this
file only lets legacy tooling run ``python setup.py develop``.
"""

import setuptools

if __name__ == "__main__":
    setuptools.setup()
