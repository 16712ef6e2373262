"""
Battery State Estimation Engine

This package estimates the dynamic state of a single battery from periodic
voltage and current readings:
- SOC (State of Charge) by fusing Coulomb counting with a Kalman filter
- SOH (State of Health) from the Coulomb-counted capacity
- RUL (Remaining Useful Life) projected from the capacity degradation rate
- Result sinks for logging and remote delivery

Version: 1.0.0
"""

__version__ = "1.0.0"

from . import battery_models
from . import data_processing
from . import estimators
from . import soh_prediction

from .config import BatteryConfig, ConfigurationError
from .engine import BatteryStateEngine
from .sinks import HttpResultSink, LoggingSink, MemorySink, NullSink, ResultSink

from .estimators import (
    CapacityIntegrator,
    CoulombCountingEstimator,
    EstimationResult,
    EstimatorState,
    KalmanSOCEstimator,
    Reading,
)

from .battery_models import LinearOCVModel, TableOCVModel, voltage_to_soc

from .soh_prediction import RUL_UNBOUNDED, RULPredictor, derive_health

from .data_processing import BatteryDataLoader

__all__ = [
    # Engine and configuration
    "BatteryStateEngine",
    "BatteryConfig",
    "ConfigurationError",

    # Estimators
    "CapacityIntegrator",
    "CoulombCountingEstimator",
    "KalmanSOCEstimator",
    "EstimationResult",
    "EstimatorState",
    "Reading",

    # Battery Models
    "LinearOCVModel",
    "TableOCVModel",
    "voltage_to_soc",

    # SOH / RUL
    "RULPredictor",
    "RUL_UNBOUNDED",
    "derive_health",

    # Sinks
    "ResultSink",
    "NullSink",
    "MemorySink",
    "LoggingSink",
    "HttpResultSink",

    # Data Processing
    "BatteryDataLoader",
]
