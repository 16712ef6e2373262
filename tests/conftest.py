"""Shared fixtures for the battery state tests."""

import pytest

from battery_state.config import BatteryConfig
from battery_state.estimators.base import EstimatorState, Reading


@pytest.fixture
def config():
    """Reference configuration: 4.1 Ah cell, 2.5-4.0 V range."""
    return BatteryConfig()


@pytest.fixture
def make_reading():
    """Factory for readings with neutral defaults."""
    def _make(voltage=3.25, current=0.0, temperature=25.0, timestamp=0.0):
        return Reading(voltage=voltage, current=current, temperature=temperature,
                       timestamp=timestamp)
    return _make


@pytest.fixture
def make_state(config):
    """Factory for estimator states seeded at a given SOC."""
    def _make(soc=0.5, covariance=1.0, capacity_ah=None, last_timestamp=0.0):
        if capacity_ah is None:
            capacity_ah = config.nominal_capacity_ah * soc
        return EstimatorState(soc=soc, covariance=covariance, capacity_ah=capacity_ah,
                              last_timestamp=last_timestamp)
    return _make
