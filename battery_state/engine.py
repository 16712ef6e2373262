"""
Battery state estimation engine

One pass per sampling period: Coulomb integration of capacity, Kalman
correction of SOC, SOH/RUL derivation, then delivery to the result sink.
"""

import logging
from typing import Dict, Iterable, Iterator, Optional

import numpy as np
import pandas as pd

from .battery_models import BaseBatteryModel, LinearOCVModel
from .config import BatteryConfig
from .estimators.base import EstimationResult, EstimatorState, Reading, elapsed_seconds
from .estimators.coulomb_counting import CapacityIntegrator
from .estimators.kalman_filters import KalmanSOCEstimator
from .sinks import NullSink, ResultSink
from .soh_prediction.rul_prediction import HealthEstimate, RULPredictor

logger = logging.getLogger(__name__)

RESULT_COLUMNS = ['time', 'voltage', 'current', 'temperature',
                  'soc', 'soh', 'rul_hours', 'capacity_ah']


def results_to_frame(results: Iterable[EstimationResult]) -> pd.DataFrame:
    """One row per result, unbounded RUL kept as inf"""
    rows = [(r.timestamp, r.voltage, r.current, r.temperature,
             r.soc, r.soh, r.rul_hours, r.capacity_ah) for r in results]
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


class BatteryStateEngine:
    """
    SOC, SOH and RUL estimator for a single battery

    The engine owns its EstimatorState exclusively; run one engine per
    battery. The state is seeded from the first reading's voltage and lives
    until ``reset``.
    """

    def __init__(self, config: BatteryConfig, sink: Optional[ResultSink] = None,
                 battery_model: Optional[BaseBatteryModel] = None):
        """
        Args:
            config: Battery rating and tuning
            sink: Result consumer, a no-op sink by default
            battery_model: Voltage-to-SOC model, linear over the config's voltage range by default
        """
        self.config = config
        self.sink = sink if sink is not None else NullSink()
        self.battery_model = (battery_model if battery_model is not None
                              else LinearOCVModel.from_config(config))

        self.integrator = CapacityIntegrator(config)
        self.soc_estimator = KalmanSOCEstimator(config, self.battery_model)
        self.health_estimator = RULPredictor(config)

        self._state = None

    @property
    def state(self) -> Optional[EstimatorState]:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is not None

    def initialize(self, reading: Reading) -> EstimationResult:
        """
        Seed the estimator state from a reading

        SOC comes from the voltage model, the capacity integral starts at
        ``nominal * soc`` and the covariance at its configured prior.
        """
        self._state = self.soc_estimator.initial_state(reading)
        logger.info("Estimator initialized: SOC=%.1f%% capacity=%.3f Ah P=%.3g",
                    self._state.soc * 100, self._state.capacity_ah, self._state.covariance)

        health = self.health_estimator.update(self._state)
        return self._emit(reading, health)

    def step(self, reading: Reading) -> EstimationResult:
        """
        Process one sampling period

        Args:
            reading: Averaged physical reading for this period

        Returns:
            Estimation result, also handed to the sink
        """
        if self._state is None:
            return self.initialize(reading)

        state = self._state
        dt = elapsed_seconds(state, reading)
        self.integrator.integrate(state, reading)
        self.soc_estimator.correct(state, reading, dt)
        health = self.health_estimator.update(state)

        return self._emit(reading, health)

    def run(self, readings: Iterable[Reading]) -> Iterator[EstimationResult]:
        for reading in readings:
            yield self.step(reading)

    def reset(self) -> None:
        """Drop the state; the next reading re-seeds it"""
        logger.info("Estimator state reset")
        self._state = None

    def replay(self, data: Dict[str, np.ndarray]) -> pd.DataFrame:
        """
        Run recorded arrays through the engine

        Args:
            data: Arrays of time, voltage, current and optionally temperature

        Returns:
            One row per reading with the estimation results
        """
        voltage = np.asarray(data['voltage'], dtype=float)
        current = np.asarray(data['current'], dtype=float)
        n_samples = len(voltage)
        timestamps = np.asarray(data['time'], dtype=float) if 'time' in data \
            else np.arange(n_samples, dtype=float)
        temperature = np.asarray(data['temperature'], dtype=float) if 'temperature' in data \
            else np.full(n_samples, np.nan)

        readings = (Reading(float(voltage[i]), float(current[i]),
                            float(temperature[i]), float(timestamps[i]))
                    for i in range(n_samples))
        return results_to_frame(self.run(readings))

    def _emit(self, reading: Reading, health: HealthEstimate) -> EstimationResult:
        result = EstimationResult(
            soc=self._state.soc,
            soh=health.soh,
            rul_hours=health.rul_hours,
            capacity_ah=self._state.capacity_ah,
            voltage=reading.voltage,
            current=reading.current,
            temperature=reading.temperature,
            timestamp=reading.timestamp,
        )
        self._deliver(result)
        return result

    def _deliver(self, result: EstimationResult) -> None:
        # A failing sink must never affect the next cycle
        try:
            self.sink.send(result)
        except Exception as e:
            logger.warning("Result sink %s failed: %s", type(self.sink).__name__, e)
