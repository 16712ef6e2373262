"""Test battery configuration loading and validation."""

import dataclasses

import pytest

from battery_state.config import BatteryConfig, ConfigurationError, load_yaml


class TestBatteryConfigValidation:
    """Construction-time validation of the battery configuration."""

    def test_defaults_are_valid(self):
        """Test the reference constants construct cleanly."""
        config = BatteryConfig()
        assert config.nominal_capacity_ah == 4.1
        assert config.voltage_range == (2.5, 4.0)
        assert config.end_of_life_fraction == 0.8
        assert config.initial_covariance == 1.0

    @pytest.mark.parametrize("field, value", [
        ("process_noise", 0.0),
        ("process_noise", -1e-5),
        ("measurement_noise", 0.0),
        ("nominal_capacity_ah", 0.0),
        ("nominal_capacity_ah", -4.1),
        ("coulombic_efficiency", 0.0),
        ("coulombic_efficiency", 1.2),
        ("end_of_life_fraction", 1.0),
        ("life_horizon_years", 0.0),
        ("rate_smoothing", 0.0),
        ("initial_covariance", -1.0),
        ("nominal_capacity_ah", float("nan")),
    ])
    def test_invalid_values_fail_fast(self, field, value):
        """Test each violated constraint raises before any estimation runs."""
        with pytest.raises(ConfigurationError):
            BatteryConfig(**{field: value})

    def test_degenerate_voltage_range(self):
        """Test min >= max is rejected."""
        with pytest.raises(ConfigurationError):
            BatteryConfig(voltage_min=4.0, voltage_max=4.0)
        with pytest.raises(ConfigurationError):
            BatteryConfig(voltage_min=4.2, voltage_max=2.5)

    def test_configuration_error_is_value_error(self):
        """Test callers catching ValueError also catch configuration errors."""
        with pytest.raises(ValueError):
            BatteryConfig(process_noise=0.0)

    def test_config_is_immutable(self):
        """Test the configuration cannot be changed after construction."""
        config = BatteryConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.process_noise = 1.0

    def test_end_of_life_capacity(self):
        """Test the end-of-life threshold in Ah."""
        config = BatteryConfig(nominal_capacity_ah=5.0, end_of_life_fraction=0.7)
        assert config.end_of_life_capacity_ah == pytest.approx(3.5)


class TestBatteryConfigLoading:
    """Loading configuration from mappings and YAML files."""

    def test_from_dict(self):
        """Test building from a plain mapping."""
        config = BatteryConfig.from_dict({"nominal_capacity_ah": 2.5, "process_noise": 1e-4})
        assert config.nominal_capacity_ah == 2.5
        assert config.process_noise == 1e-4
        assert config.measurement_noise == BatteryConfig().measurement_noise

    def test_from_dict_warns_on_unknown_keys(self):
        """Test unknown keys are ignored with a warning."""
        with pytest.warns(UserWarning, match="cell_count"):
            config = BatteryConfig.from_dict({"cell_count": 4})
        assert config == BatteryConfig()

    def test_from_yaml(self, tmp_path):
        """Test the battery section of a YAML file is used."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "battery:\n"
            "  nominal_capacity_ah: 3.0\n"
            "  voltage_min: 3.0\n"
            "  voltage_max: 4.2\n"
            "sink:\n"
            "  url: http://example.invalid/log\n"
        )
        config = BatteryConfig.from_yaml(path)
        assert config.nominal_capacity_ah == 3.0
        assert config.voltage_range == (3.0, 4.2)

    def test_from_yaml_missing_file_uses_defaults(self, tmp_path):
        """Test a missing file falls back to the defaults."""
        assert BatteryConfig.from_yaml(tmp_path / "absent.yaml") == BatteryConfig()

    def test_from_yaml_invalid_values_raise(self, tmp_path):
        """Test validation also applies to file-loaded values."""
        path = tmp_path / "config.yaml"
        path.write_text("battery:\n  measurement_noise: 0\n")
        with pytest.raises(ConfigurationError):
            BatteryConfig.from_yaml(path)

    def test_load_yaml_rejects_non_mapping(self, tmp_path):
        """Test a YAML list at the top level is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError):
            load_yaml(path)

    def test_shipped_default_config(self):
        """Test the shipped YAML file matches the code defaults."""
        from pathlib import Path
        path = Path(__file__).resolve().parent.parent / "configs" / "default_config.yaml"
        assert BatteryConfig.from_yaml(path) == BatteryConfig()
