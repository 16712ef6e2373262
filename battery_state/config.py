"""
Battery configuration

Immutable tuning and rating constants for one monitored battery, with
YAML loading and construction-time validation.
"""

import logging
import math
import warnings
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple, Union

import yaml

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when a battery configuration cannot support estimation"""


@dataclass(frozen=True)
class BatteryConfig:
    """
    Battery rating and estimator tuning

    Attributes:
        nominal_capacity_ah: As-new capacity in Ah
        process_noise: Kalman process noise Q (trust in the Coulomb model)
        measurement_noise: Kalman measurement noise R (trust in the voltage)
        coulombic_efficiency: Charge efficiency applied to integrated current
        voltage_min: Voltage mapped to SOC 0
        voltage_max: Voltage mapped to SOC 1
        end_of_life_fraction: Fraction of nominal capacity defining end of life
        life_horizon_years: Horizon used to annualize capacity loss
        initial_covariance: Prior error covariance P at start-up
        rate_smoothing: EWMA weight of the newest degradation rate (1.0 = none)
        discharge_reduces_capacity: Negate current in the capacity integral
    """
    nominal_capacity_ah: float = 4.1
    process_noise: float = 1e-5
    measurement_noise: float = 1e-2
    coulombic_efficiency: float = 0.98
    voltage_min: float = 2.5
    voltage_max: float = 4.0
    end_of_life_fraction: float = 0.8
    life_horizon_years: float = 10.0
    initial_covariance: float = 1.0
    rate_smoothing: float = 1.0
    discharge_reduces_capacity: bool = False

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool):
                continue
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigurationError(f"{f.name} must be a finite number, got {value!r}")

        if self.nominal_capacity_ah <= 0:
            raise ConfigurationError(
                f"nominal_capacity_ah must be positive, got {self.nominal_capacity_ah}")
        if self.process_noise <= 0:
            raise ConfigurationError(f"process_noise must be positive, got {self.process_noise}")
        if self.measurement_noise <= 0:
            raise ConfigurationError(
                f"measurement_noise must be positive, got {self.measurement_noise}")
        if not 0 < self.coulombic_efficiency <= 1:
            raise ConfigurationError(
                f"coulombic_efficiency must be in (0, 1], got {self.coulombic_efficiency}")
        if self.voltage_min >= self.voltage_max:
            raise ConfigurationError(
                f"voltage range is degenerate: min {self.voltage_min} >= max {self.voltage_max}")
        if not 0 < self.end_of_life_fraction < 1:
            raise ConfigurationError(
                f"end_of_life_fraction must be in (0, 1), got {self.end_of_life_fraction}")
        if self.life_horizon_years <= 0:
            raise ConfigurationError(
                f"life_horizon_years must be positive, got {self.life_horizon_years}")
        if self.initial_covariance < 0:
            raise ConfigurationError(
                f"initial_covariance must be non-negative, got {self.initial_covariance}")
        if not 0 < self.rate_smoothing <= 1:
            raise ConfigurationError(
                f"rate_smoothing must be in (0, 1], got {self.rate_smoothing}")

    @property
    def voltage_range(self) -> Tuple[float, float]:
        return self.voltage_min, self.voltage_max

    @property
    def end_of_life_capacity_ah(self) -> float:
        return self.end_of_life_fraction * self.nominal_capacity_ah

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]) -> "BatteryConfig":
        """
        Build a configuration from a mapping

        Unknown keys are ignored with a warning so that a config file written
        for a newer version still loads.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(mapping) - known
        if unknown:
            warnings.warn(f"Ignoring unknown battery config keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in mapping.items() if k in known})

    @classmethod
    def from_yaml(cls, path: Union[str, Path], section: str = "battery") -> "BatteryConfig":
        """
        Load the ``battery`` section of a YAML file

        Args:
            path: Path to the YAML configuration file
            section: Top-level key holding the battery parameters

        Returns:
            Validated configuration; defaults when the file does not exist
        """
        config = load_yaml(path)
        return cls.from_dict(config.get(section) or {})


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML file into a dict, or an empty dict if it is missing"""
    path = Path(path)
    try:
        with open(path, 'r') as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("Config file not found: %s, using defaults", path)
        return {}

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return config
