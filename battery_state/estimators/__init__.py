"""
SOC Estimation Module

This module contains the recursive SOC estimation algorithms:
- Coulomb counting capacity integration and an open-loop SOC baseline
- Scalar Kalman filter fusing Coulomb counting with a voltage observation
"""

from .base import (BaseSOCEstimator, EstimationResult, EstimatorState, Reading,
                   SOCEstimationResult, elapsed_seconds)
from .coulomb_counting import CapacityIntegrator, CoulombCountingEstimator
from .kalman_filters import KalmanSOCEstimator, ScalarKalmanFilter

__all__ = [
    "BaseSOCEstimator",
    "CapacityIntegrator",
    "CoulombCountingEstimator",
    "EstimationResult",
    "EstimatorState",
    "KalmanSOCEstimator",
    "Reading",
    "SOCEstimationResult",
    "ScalarKalmanFilter",
    "elapsed_seconds",
]
