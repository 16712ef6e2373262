"""Test voltage-to-SOC observation models."""

import pytest

from battery_state.battery_models import LinearOCVModel, TableOCVModel, voltage_to_soc
from battery_state.config import ConfigurationError


class TestVoltageToSoc:
    """Linear open-circuit-voltage proxy."""

    def test_midpoint(self):
        """Test 3.25 V maps to half charge on a 2.5-4.0 V range."""
        assert voltage_to_soc(3.25, 2.5, 4.0) == pytest.approx(0.5)

    def test_endpoints(self):
        """Test the range bounds map to empty and full."""
        assert voltage_to_soc(2.5, 2.5, 4.0) == 0.0
        assert voltage_to_soc(4.0, 2.5, 4.0) == 1.0

    def test_clamped_outside_range(self):
        """Test readings beyond the range clamp into [0, 1]."""
        assert voltage_to_soc(1.9, 2.5, 4.0) == 0.0
        assert voltage_to_soc(4.35, 2.5, 4.0) == 1.0

    def test_degenerate_range(self):
        """Test a zero-width range is a configuration error."""
        with pytest.raises(ConfigurationError):
            voltage_to_soc(3.0, 3.0, 3.0)


class TestLinearOCVModel:
    """Linear model used by default in the Kalman filter."""

    def test_from_config(self, config):
        """Test the model picks up the configured voltage range."""
        model = LinearOCVModel.from_config(config)
        assert (model.v_min, model.v_max) == config.voltage_range
        assert model.soc_from_voltage(3.25) == pytest.approx(0.5)

    def test_ocv_inverts_mapping(self):
        """Test get_ocv is the inverse of soc_from_voltage inside the range."""
        model = LinearOCVModel(2.5, 4.0)
        assert model.get_ocv(0.5) == pytest.approx(3.25)
        assert model.soc_from_voltage(model.get_ocv(0.3)) == pytest.approx(0.3)

    def test_degenerate_range(self):
        """Test construction rejects min >= max."""
        with pytest.raises(ConfigurationError):
            LinearOCVModel(4.0, 2.5)


class TestTableOCVModel:
    """Piecewise-linear OCV lookup."""

    def test_default_table_lookup(self):
        """Test table points and interpolation between them."""
        model = TableOCVModel()
        assert model.soc_from_voltage(3.5) == pytest.approx(0.4)
        assert model.soc_from_voltage(3.575) == pytest.approx(0.5)
        assert model.get_ocv(0.8) == pytest.approx(3.8)

    def test_clamps_outside_table(self):
        """Test voltages outside the table hold the end SOC values."""
        model = TableOCVModel()
        assert model.soc_from_voltage(2.0) == 0.0
        assert model.soc_from_voltage(5.0) == 1.0

    def test_rejects_non_monotonic_table(self):
        """Test a table that cannot be inverted is rejected."""
        with pytest.raises(ConfigurationError):
            TableOCVModel([(0.0, 3.0), (0.5, 3.6), (1.0, 3.5)])

    def test_rejects_short_table(self):
        """Test a single-row table is rejected."""
        with pytest.raises(ConfigurationError):
            TableOCVModel([(0.0, 3.0)])
