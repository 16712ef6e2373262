"""
SOH and Remaining Useful Life

Health fraction from the tracked capacity and a linear projection of the
hours left until capacity crosses the end-of-life threshold.
"""

from dataclasses import dataclass
import logging
import math
from typing import Optional

from ..config import BatteryConfig
from ..estimators.base import EstimatorState

logger = logging.getLogger(__name__)

HOURS_PER_YEAR = 8760.0

# Returned as RUL when no degradation is observed
RUL_UNBOUNDED = math.inf

# Rates at or below this magnitude (Ah/year) count as no degradation
RATE_EPSILON = 1e-12


@dataclass(frozen=True)
class HealthEstimate:
    soh: float
    rul_hours: float
    degradation_rate_ah: float

    @property
    def is_unbounded(self) -> bool:
        return math.isinf(self.rul_hours)


def state_of_health(capacity_ah: float, config: BatteryConfig) -> float:
    """Tracked capacity over nominal; not clamped, out-of-range values flag model drift"""
    return capacity_ah / config.nominal_capacity_ah


def degradation_rate(capacity_ah: float, config: BatteryConfig) -> float:
    """
    Annual capacity loss in Ah implied by the current SOH

    The capacity already lost is spread evenly over the configured life
    horizon.
    """
    soh = state_of_health(capacity_ah, config)
    degradation_pct = (1.0 - soh) * 100.0
    annual_rate_pct = degradation_pct / config.life_horizon_years
    return config.nominal_capacity_ah * annual_rate_pct / 100.0


def remaining_useful_life(capacity_ah: float, rate_ah: float, config: BatteryConfig) -> float:
    """
    Hours until the tracked capacity reaches the end-of-life threshold

    Args:
        capacity_ah: Tracked capacity
        rate_ah: Annual degradation rate in Ah
        config: Battery configuration

    Returns:
        Projected hours, negative once past end of life or while the
        capacity is growing, ``RUL_UNBOUNDED`` when the rate is zero
    """
    if abs(rate_ah) <= RATE_EPSILON:
        return RUL_UNBOUNDED
    return (capacity_ah - config.end_of_life_capacity_ah) / rate_ah * HOURS_PER_YEAR


def derive_health(capacity_ah: float, config: BatteryConfig) -> HealthEstimate:
    """SOH and RUL from the instantaneous degradation rate"""
    rate = degradation_rate(capacity_ah, config)
    return HealthEstimate(
        soh=state_of_health(capacity_ah, config),
        rul_hours=remaining_useful_life(capacity_ah, rate, config),
        degradation_rate_ah=rate,
    )


class RULPredictor:
    """
    Health estimator with a smoothed degradation rate

    The instantaneous rate follows every wiggle of the Coulomb integral, so
    it is averaged with an exponentially weighted moving average before
    projecting. ``rate_smoothing`` is the weight of the newest sample;
    1.0 disables smoothing.
    """

    def __init__(self, config: BatteryConfig):
        self.config = config
        self.alpha = config.rate_smoothing

    def smooth(self, previous: Optional[float], rate: float) -> float:
        if previous is None or not math.isfinite(previous):
            return rate
        return self.alpha * rate + (1.0 - self.alpha) * previous

    def update(self, state: EstimatorState) -> HealthEstimate:
        """
        Derive health from the state's capacity and fold the rate into its average

        Args:
            state: Estimator state; ``degradation_rate_ah`` is updated in place

        Returns:
            Health estimate using the smoothed rate
        """
        rate = self.smooth(state.degradation_rate_ah,
                           degradation_rate(state.capacity_ah, self.config))
        state.degradation_rate_ah = rate

        estimate = HealthEstimate(
            soh=state_of_health(state.capacity_ah, self.config),
            rul_hours=remaining_useful_life(state.capacity_ah, rate, self.config),
            degradation_rate_ah=rate,
        )
        if estimate.is_unbounded:
            logger.debug("No degradation observed, RUL unbounded")
        return estimate
