"""
Pytest configuration and shared fixtures for ratcc tests.

Building the LALR parser is the expensive part, so front-ends are
session-scoped; they are stateless between analyses.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
from ratcc.pipeline import RatFrontend


@pytest.fixture(scope="session")
def frontend():
    """Front-end with the bundled standard library loaded."""
    fe = RatFrontend()
    fe.load_standard_library()
    return fe


@pytest.fixture(scope="session")
def bare_frontend():
    """Front-end without any standard library entities."""
    return RatFrontend()


@pytest.fixture
def analyze(frontend):
    """Parse and analyze a source string, returning the IR program (raises on errors)."""
    return frontend.analyze_string


@pytest.fixture
def parse(frontend):
    """Parse a source string into the syntax tree without analyzing it."""
    return frontend.transform_only
