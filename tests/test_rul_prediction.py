"""Test SOH and RUL derivation."""

import math

import pytest

from battery_state.config import BatteryConfig
from battery_state.soh_prediction import (RUL_UNBOUNDED, RULPredictor, degradation_rate,
                                          derive_health, remaining_useful_life, state_of_health)


class TestStateOfHealth:
    """Health fraction from tracked capacity."""

    def test_reference_cell(self, config):
        """Test 3.5 Ah on a 4.1 Ah cell."""
        assert state_of_health(3.5, config) == pytest.approx(0.8537, abs=1e-4)

    def test_not_clamped(self, config):
        """Test out-of-range health is reported as is."""
        assert state_of_health(4.5, config) > 1.0
        assert state_of_health(-0.2, config) < 0.0


class TestRemainingUsefulLife:
    """Linear projection to the end-of-life threshold."""

    def test_degradation_rate(self, config):
        """Test the capacity lost so far is spread over the life horizon."""
        assert degradation_rate(3.5, config) == pytest.approx((4.1 - 3.5) / 10.0)

    def test_projection(self, config):
        """Test hours until 3.5 Ah falls to 80% of 4.1 Ah."""
        health = derive_health(3.5, config)
        expected = (3.5 - 0.8 * 4.1) / ((4.1 - 3.5) / 10.0) * 8760.0
        assert health.rul_hours == pytest.approx(expected)
        assert health.soh == pytest.approx(3.5 / 4.1)
        assert not health.is_unbounded

    def test_at_end_of_life_threshold(self, config):
        """Test capacity exactly at the threshold leaves no life."""
        health = derive_health(config.end_of_life_capacity_ah, config)
        assert health.rul_hours == 0.0

    def test_past_end_of_life_is_negative(self, config):
        """Test capacity below the threshold projects into the past."""
        assert derive_health(3.0, config).rul_hours < 0.0

    def test_zero_rate_returns_sentinel(self, config):
        """Test no degradation yields the unbounded sentinel rather than dividing by zero."""
        assert remaining_useful_life(3.5, 0.0, config) is RUL_UNBOUNDED
        health = derive_health(config.nominal_capacity_ah, config)
        assert health.degradation_rate_ah == 0.0
        assert math.isinf(health.rul_hours)
        assert health.is_unbounded

    def test_capacity_above_nominal(self, config):
        """Test a growing capacity gives a negative rate and negative projection."""
        health = derive_health(4.5, config)
        assert health.degradation_rate_ah < 0.0
        assert health.rul_hours < 0.0


class TestRULPredictor:
    """Smoothed degradation rate."""

    def test_without_smoothing_matches_pure_function(self, config, make_state):
        """Test the default weight reproduces the instantaneous projection."""
        predictor = RULPredictor(config)
        state = make_state(capacity_ah=3.5)

        assert predictor.update(state) == derive_health(3.5, config)
        assert state.degradation_rate_ah == pytest.approx(0.06)

    def test_exponential_smoothing(self, make_state):
        """Test the rate is averaged with its previous value."""
        config = BatteryConfig(rate_smoothing=0.5)
        predictor = RULPredictor(config)
        state = make_state(capacity_ah=3.5)

        first = predictor.update(state)
        assert first.degradation_rate_ah == pytest.approx(0.06)

        state.capacity_ah = 3.9
        second = predictor.update(state)
        assert second.degradation_rate_ah == pytest.approx(0.5 * 0.02 + 0.5 * 0.06)
        assert second.rul_hours == pytest.approx((3.9 - 3.28) / 0.04 * 8760.0)

    def test_smoothing_damps_noise(self, make_state):
        """Test a one-sample capacity spike moves the smoothed rate less."""
        smoothed = RULPredictor(BatteryConfig(rate_smoothing=0.1))
        raw = RULPredictor(BatteryConfig())
        a, b = make_state(capacity_ah=3.5), make_state(capacity_ah=3.5)
        smoothed.update(a)
        raw.update(b)

        a.capacity_ah = b.capacity_ah = 3.3
        spike_smoothed = smoothed.update(a).degradation_rate_ah
        spike_raw = raw.update(b).degradation_rate_ah

        assert abs(spike_smoothed - 0.06) < abs(spike_raw - 0.06)
