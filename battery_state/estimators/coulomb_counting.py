"""
Coulomb Counting

Capacity tracking by current integration, plus an open-loop SOC estimator
used as a baseline against the Kalman filter.
"""

import logging
import math
from typing import Optional

from .base import (BaseSOCEstimator, EstimatorState, Reading,
                   advance_clock, elapsed_seconds)
from ..battery_models import BaseBatteryModel
from ..config import BatteryConfig

logger = logging.getLogger(__name__)


class CapacityIntegrator:
    """
    Coulomb-counting capacity tracker

    Integrates current over the elapsed time since the previous update,
    scaled by the coulombic efficiency. By default current is added as
    read, so a positive (discharge) reading increases the tracked
    capacity; ``discharge_reduces_capacity`` negates it instead.
    """

    def __init__(self, config: BatteryConfig):
        self.config = config
        self.sign = -1.0 if config.discharge_reduces_capacity else 1.0

    def initial_capacity(self, initial_soc: float) -> float:
        """Zero-point of the integral, tied to the first SOC estimate"""
        return self.config.nominal_capacity_ah * initial_soc

    def capacity_delta(self, current: float, dt: float) -> float:
        """Ah moved by ``current`` amps over ``dt`` seconds"""
        return self.sign * (current * dt / 3600.0) * self.config.coulombic_efficiency

    def integrate(self, state: EstimatorState, reading: Reading) -> float:
        """
        Fold one reading into the tracked capacity

        Args:
            state: Estimator state; capacity and timestamp are updated in place
            reading: Current reading

        Returns:
            New accumulated capacity in Ah
        """
        dt = elapsed_seconds(state, reading)
        if not math.isfinite(reading.current):
            logger.warning("Non-finite current %s, capacity integral held", reading.current)
        elif dt > 0:
            state.capacity_ah = state.capacity_ah + self.capacity_delta(reading.current, dt)
        advance_clock(state, reading)
        return state.capacity_ah


class CoulombCountingEstimator(BaseSOCEstimator):
    """
    Open-loop Coulomb counting SOC estimator

    SOC drifts with current integration only; the voltage is used once to
    seed the initial SOC. Uncertainty grows by the process noise every step.
    """

    def __init__(self, config: BatteryConfig, battery_model: Optional[BaseBatteryModel] = None):
        super().__init__(config, battery_model, name="Coulomb_Counting_Estimator")

    def update(self, state: EstimatorState, reading: Reading, dt: float) -> float:
        if not math.isfinite(reading.current):
            logger.warning("Non-finite current %s, SOC held", reading.current)
            return state.soc
        # Negative current = charge, positive = discharge
        delta_soc = reading.current * dt / 3600.0 / self.config.nominal_capacity_ah
        state.soc = min(1.0, max(0.0, state.soc - delta_soc))
        if dt > 0:
            state.covariance += self.config.process_noise
        return state.soc
