"""
Data Processing Module

Loading, validation and smoothing of recorded battery logs, and their
conversion into engine readings.
"""

from .data_loader import BatteryDataLoader

__all__ = [
    "BatteryDataLoader",
]
