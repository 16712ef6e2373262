"""
Base Battery Model

Open-circuit-voltage models used as the Kalman filter's observation of SOC.
"""

from abc import ABC, abstractmethod
import numpy as np
from typing import Any, Dict, Optional, Sequence, Tuple

from ..config import ConfigurationError


def voltage_to_soc(voltage: float, v_min: float, v_max: float) -> float:
    """
    Linear open-circuit-voltage proxy for SOC

    Args:
        voltage: Measured terminal voltage in Volts
        v_min: Voltage at SOC 0
        v_max: Voltage at SOC 1

    Returns:
        SOC clamped into [0, 1]
    """
    if v_min >= v_max:
        raise ConfigurationError(f"voltage range is degenerate: min {v_min} >= max {v_max}")
    soc = (voltage - v_min) / (v_max - v_min)
    return float(min(1.0, max(0.0, soc)))


class BaseBatteryModel(ABC):
    """
    Abstract base class for OCV/SOC models

    Defines the mapping between state of charge and open-circuit voltage.
    """

    def __init__(self, name: str = "BaseBatteryModel", **kwargs):
        self.name = name
        self.parameters = kwargs

    @abstractmethod
    def get_ocv(self, soc: float) -> float:
        """
        Get Open Circuit Voltage for given SOC

        Args:
            soc: State of Charge (0-1)

        Returns:
            Open circuit voltage in Volts
        """

    @abstractmethod
    def soc_from_voltage(self, voltage: float) -> float:
        """
        Get SOC observed from a voltage reading

        Args:
            voltage: Terminal voltage in Volts

        Returns:
            State of charge clamped into [0, 1]
        """

    def get_parameters(self) -> Dict[str, Any]:
        """Get all model parameters"""
        return self.parameters.copy()

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', parameters={self.parameters})"


class LinearOCVModel(BaseBatteryModel):
    """
    Straight line between the empty and full voltages

    Flat plateaus near full or empty give the filter exaggerated confidence
    in the observation; this is accepted for the low-rate controllers it
    targets.
    """

    def __init__(self, v_min: float = 2.5, v_max: float = 4.0):
        if v_min >= v_max:
            raise ConfigurationError(f"voltage range is degenerate: min {v_min} >= max {v_max}")
        super().__init__(name="Linear_OCV_Model", v_min=v_min, v_max=v_max)
        self.v_min = v_min
        self.v_max = v_max

    @classmethod
    def from_config(cls, config) -> "LinearOCVModel":
        return cls(config.voltage_min, config.voltage_max)

    def get_ocv(self, soc: float) -> float:
        soc = min(1.0, max(0.0, soc))
        return self.v_min + soc * (self.v_max - self.v_min)

    def soc_from_voltage(self, voltage: float) -> float:
        return voltage_to_soc(voltage, self.v_min, self.v_max)


class TableOCVModel(BaseBatteryModel):
    """
    Piecewise-linear OCV lookup table

    Rows are ``(soc, ocv)`` pairs; both columns must be strictly increasing
    so the table can be inverted with ``np.interp``.
    """

    DEFAULT_TABLE: Tuple[Tuple[float, float], ...] = (
        (0.0, 3.0),
        (0.1, 3.2),
        (0.2, 3.3),
        (0.4, 3.5),
        (0.6, 3.65),
        (0.8, 3.8),
        (1.0, 4.1),
    )

    def __init__(self, table: Optional[Sequence[Sequence[float]]] = None):
        table = np.asarray(table if table is not None else self.DEFAULT_TABLE, dtype=float)
        if table.ndim != 2 or table.shape[1] != 2 or table.shape[0] < 2:
            raise ConfigurationError("OCV table must be a sequence of at least two (soc, ocv) rows")
        if np.any(np.diff(table[:, 0]) <= 0) or np.any(np.diff(table[:, 1]) <= 0):
            raise ConfigurationError("OCV table must be strictly increasing in SOC and voltage")

        super().__init__(name="Table_OCV_Model", table=table.tolist())
        self.ocv_soc_table = table

    def get_ocv(self, soc: float) -> float:
        return float(np.interp(soc, self.ocv_soc_table[:, 0], self.ocv_soc_table[:, 1]))

    def soc_from_voltage(self, voltage: float) -> float:
        # np.interp holds the end values outside the table, which clamps SOC
        return float(np.interp(voltage, self.ocv_soc_table[:, 1], self.ocv_soc_table[:, 0]))
