"""
Shared pytest fixtures and configuration.

conftest.py is auto-loaded by pytest — fixtures defined here are available
to all test files without explicit imports.
"""

import os
import sys

import pytest

# Add the service and simulator directories to the path so tests can import their modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "service"))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "alert_simulator_api"))


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
