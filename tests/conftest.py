"""
Pytest configuration and shared fixtures for ngcmacro tests.

Provides marker registration and helpers to parse and run macro programs.
"""

import logging
import os
import sys
from collections.abc import Callable

import pytest

# Add the parent directory to Python path so we can import the package
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from ngcmacro.macro import Evaluator, parse

logger = logging.getLogger(__name__)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "macro: Tests that parse and execute complete macro programs"
    )


@pytest.fixture
def run() -> Callable[..., Evaluator]:
    """
    Parse and execute a program, returning the evaluator.

    Keyword arguments are forwarded to Evaluator.
    """

    def _run(source: str, **options) -> Evaluator:
        evaluator = Evaluator(parse(source), **options)
        evaluator.process_program()
        return evaluator

    return _run
