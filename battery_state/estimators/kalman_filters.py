"""
Kalman Filter-based SOC Estimator

Scalar Kalman filter fusing the Coulomb-counting process model with a
voltage-derived SOC observation. Recursive: O(1) time and memory per
update, no history beyond a short innovation window for diagnostics.
"""

from collections import deque
import logging
import math
from typing import Optional, Tuple

from .base import BaseSOCEstimator, EstimatorState, Reading
from ..battery_models import BaseBatteryModel
from ..config import BatteryConfig, ConfigurationError

logger = logging.getLogger(__name__)


class ScalarKalmanFilter:
    """
    One-state Kalman filter with identity transition and observation

    Features:
    - Additive process model input
    - Non-negative covariance enforced after every update
    - Innovation history for tuning diagnostics
    """

    def __init__(self, process_noise: float, measurement_noise: float,
                 innovation_window: int = 50):
        if process_noise <= 0 or measurement_noise <= 0:
            raise ConfigurationError(
                f"Noise terms must be positive, got Q={process_noise}, R={measurement_noise}")
        self.Q = process_noise
        self.R = measurement_noise
        self.innovation_history = deque(maxlen=innovation_window)

    def predict(self, x: float, P: float, dx: float = 0.0) -> Tuple[float, float]:
        """
        Prediction step

        Args:
            x: Previous state estimate
            P: Previous error covariance
            dx: Change applied by the process model

        Returns:
            Predicted state and covariance
        """
        return x + dx, P + self.Q

    def update(self, x_pred: float, P_pred: float, z: float) -> Tuple[float, float, float, float]:
        """
        Update step

        Args:
            x_pred: Predicted state
            P_pred: Predicted covariance
            z: Measurement of the state

        Returns:
            Corrected state, corrected covariance, Kalman gain and innovation
        """
        innovation = z - x_pred
        K = P_pred / (P_pred + self.R)
        x = x_pred + K * innovation
        P = max(P_pred * (1.0 - K), 0.0)

        self.innovation_history.append(innovation)
        return x, P, K, innovation


class KalmanSOCEstimator(BaseSOCEstimator):
    """
    Kalman Filter SOC Estimator

    Predicts SOC from the current draw over the elapsed time, then corrects
    it toward the SOC implied by the measured voltage, weighted by the
    relative uncertainty of model and measurement.
    """

    def __init__(self, config: BatteryConfig, battery_model: Optional[BaseBatteryModel] = None):
        super().__init__(config, battery_model, name="Kalman_SOC_Estimator")
        self.kf = ScalarKalmanFilter(config.process_noise, config.measurement_noise)
        self.last_gain = None
        self.last_innovation = None

    def _state_transition(self, reading: Reading, dt: float) -> float:
        """SOC change over dt seconds; discharge lowers SOC"""
        if dt <= 0:
            return 0.0
        if not math.isfinite(reading.current):
            logger.warning("Non-finite current %s, SOC prediction held", reading.current)
            return 0.0
        return -(reading.current * dt) / (self.config.nominal_capacity_ah * 3600.0)

    def correct(self, state: EstimatorState, reading: Reading, dt: float) -> float:
        """
        Run one predict/correct cycle

        Args:
            state: Estimator state; SOC and covariance are updated in place
            reading: Current reading
            dt: Elapsed seconds since the previous reading

        Returns:
            Corrected SOC in [0, 1]
        """
        soc_pred, P_pred = self.kf.predict(state.soc, state.covariance,
                                           self._state_transition(reading, dt))

        if not math.isfinite(reading.voltage):
            # No observation this period: keep the prediction and its grown covariance
            logger.warning("Non-finite voltage %s, skipping SOC correction", reading.voltage)
            state.soc = min(1.0, max(0.0, soc_pred))
            state.covariance = P_pred
            self.last_gain = 0.0
            self.last_innovation = None
            return state.soc

        soc_measured = self.battery_model.soc_from_voltage(reading.voltage)

        soc, P, K, innovation = self.kf.update(soc_pred, P_pred, soc_measured)

        state.soc = min(1.0, max(0.0, soc))
        state.covariance = P
        self.last_gain = K
        self.last_innovation = innovation

        logger.debug("SOC predicted=%.4f measured=%.4f corrected=%.4f K=%.4f P=%.3g",
                     soc_pred, soc_measured, state.soc, K, P)
        return state.soc

    def _apply_config(self, config: BatteryConfig) -> None:
        # Build the filter first so invalid noise terms leave everything as it was
        kf = ScalarKalmanFilter(config.process_noise, config.measurement_noise,
                                self.kf.innovation_history.maxlen)
        super()._apply_config(config)
        self.kf = kf

    def update(self, state: EstimatorState, reading: Reading, dt: float) -> float:
        return self.correct(state, reading, dt)
