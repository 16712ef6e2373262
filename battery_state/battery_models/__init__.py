"""
Battery Models Module

Open-circuit-voltage models that turn a voltage reading into an SOC
observation:
- Linear mapping between empty and full voltages
- Piecewise-linear OCV lookup tables
"""

from .base import BaseBatteryModel, LinearOCVModel, TableOCVModel, voltage_to_soc

__all__ = [
    "BaseBatteryModel",
    "LinearOCVModel",
    "TableOCVModel",
    "voltage_to_soc",
]
