"""
SOH Prediction Module

State of Health from the Coulomb-counted capacity and Remaining Useful Life
projected from the capacity degradation rate.
"""

from .rul_prediction import (
    HealthEstimate,
    RULPredictor,
    RUL_UNBOUNDED,
    degradation_rate,
    derive_health,
    remaining_useful_life,
    state_of_health,
)

__all__ = [
    "HealthEstimate",
    "RULPredictor",
    "RUL_UNBOUNDED",
    "degradation_rate",
    "derive_health",
    "remaining_useful_life",
    "state_of_health",
]
