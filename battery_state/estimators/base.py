"""
Base class for SOC estimators

Provides the reading/state/result types shared by the estimation engine and
the common interface of the recursive SOC estimators.
"""

from abc import ABC, abstractmethod
import logging
import math
import numpy as np
from typing import Dict, Any, Optional, Tuple, Union
import time
import warnings
from dataclasses import dataclass, fields, replace

from ..battery_models import BaseBatteryModel, LinearOCVModel
from ..config import BatteryConfig, ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reading:
    """
    One sampling period's physical reading

    Current is signed, positive = discharge. Timestamp is in seconds.
    """
    voltage: float
    current: float
    temperature: float
    timestamp: float


@dataclass
class EstimatorState:
    """Mutable filter state, owned by exactly one engine instance"""
    soc: float
    covariance: float
    capacity_ah: float
    last_timestamp: float
    degradation_rate_ah: Optional[float] = None


@dataclass(frozen=True)
class EstimationResult:
    """Per-cycle output of the engine"""
    soc: float
    soh: float
    rul_hours: float
    capacity_ah: float
    voltage: float
    current: float
    temperature: float
    timestamp: float

    @property
    def soc_percent(self) -> float:
        return self.soc * 100.0

    @property
    def soh_percent(self) -> float:
        return self.soh * 100.0

    @property
    def rul_is_unbounded(self) -> bool:
        return math.isinf(self.rul_hours)


@dataclass
class SOCEstimationResult:
    """Container for batch SOC estimation results with uncertainty quantification"""
    soc: np.ndarray
    uncertainty: Optional[np.ndarray] = None
    computation_time: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = None


def elapsed_seconds(state: EstimatorState, reading: Reading) -> float:
    """
    Time since the previous update, never negative

    Clock steps backwards and non-finite timestamps are clamped to zero so
    the integral and the process model see a no-op step instead.
    """
    delta = reading.timestamp - state.last_timestamp
    if not math.isfinite(delta):
        logger.warning("Non-finite elapsed time between readings (%s -> %s), using 0",
                       state.last_timestamp, reading.timestamp)
        return 0.0
    if delta < 0:
        logger.warning("Clock went backwards by %.3f s, using 0 elapsed time", -delta)
        return 0.0
    return float(delta)


def advance_clock(state: EstimatorState, reading: Reading) -> None:
    """Record the reading's timestamp as the new integration origin"""
    if math.isfinite(reading.timestamp):
        state.last_timestamp = float(reading.timestamp)


class BaseSOCEstimator(ABC):
    """
    Abstract base class for recursive SOC estimators

    Estimators update a shared EstimatorState one reading at a time; the
    batch helpers replay a recorded data set through a fresh state.
    """

    def __init__(self, config: BatteryConfig, battery_model: Optional[BaseBatteryModel] = None,
                 name: str = "BaseSOCEstimator"):
        """
        Initialize the SOC estimator

        Args:
            config: Battery rating and tuning
            battery_model: Voltage-to-SOC observation model, linear by default
            name: Name of the estimator
        """
        self.name = name
        self.config = config
        self._default_model = battery_model is None
        self.battery_model = (battery_model if battery_model is not None
                              else LinearOCVModel.from_config(config))
        self.performance_metrics = {}

    @abstractmethod
    def update(self, state: EstimatorState, reading: Reading, dt: float) -> float:
        """
        Advance the SOC estimate by one reading

        Args:
            state: Estimator state, mutated in place
            reading: Current reading
            dt: Elapsed seconds since the previous reading (>= 0)

        Returns:
            New SOC estimate
        """

    def initial_state(self, reading: Reading) -> EstimatorState:
        """Seed a state from the first voltage reading"""
        soc = self.battery_model.soc_from_voltage(reading.voltage)
        return EstimatorState(
            soc=soc,
            covariance=self.config.initial_covariance,
            capacity_ah=self.config.nominal_capacity_ah * soc,
            last_timestamp=reading.timestamp,
        )

    def predict(self, data: Dict[str, np.ndarray],
                return_uncertainty: bool = False) -> Union[np.ndarray, Tuple[np.ndarray, np.ndarray]]:
        """
        Replay recorded data through a fresh state

        Args:
            data: Arrays of time, voltage, current and optionally temperature
            return_uncertainty: Whether to return sqrt(P) alongside SOC

        Returns:
            SOC estimates and optionally uncertainty estimates
        """
        voltage = np.asarray(data['voltage'], dtype=float)
        current = np.asarray(data['current'], dtype=float)
        n_samples = len(voltage)
        timestamps = np.asarray(data['time'], dtype=float) if 'time' in data \
            else np.arange(n_samples, dtype=float)
        temperature = np.asarray(data['temperature'], dtype=float) if 'temperature' in data \
            else np.full(n_samples, np.nan)

        soc_estimates = np.zeros(n_samples)
        uncertainties = np.zeros(n_samples)
        state = None

        for i in range(n_samples):
            reading = Reading(voltage[i], current[i], temperature[i], timestamps[i])
            if state is None:
                state = self.initial_state(reading)
            else:
                dt = elapsed_seconds(state, reading)
                self.update(state, reading, dt)
                advance_clock(state, reading)

            soc_estimates[i] = state.soc
            uncertainties[i] = math.sqrt(state.covariance)

        if return_uncertainty:
            return soc_estimates, uncertainties
        return soc_estimates

    def estimate_soc(self, data: Dict[str, np.ndarray],
                     return_full_result: bool = False) -> Union[np.ndarray, SOCEstimationResult]:
        """
        High-level SOC estimation method with timing and metadata

        Args:
            data: Input data containing time, voltage, current
            return_full_result: Whether to return full SOCEstimationResult object

        Returns:
            SOC estimates or full result object
        """
        start_time = time.time()
        soc, uncertainty = self.predict(data, return_uncertainty=True)
        computation_time = time.time() - start_time

        if return_full_result:
            return SOCEstimationResult(
                soc=soc,
                uncertainty=uncertainty,
                computation_time=computation_time,
                metadata={"estimator": self.name, "config": self.get_config()}
            )
        return soc

    def evaluate(self, test_data: Dict[str, np.ndarray],
                 metrics: Optional[list] = None) -> Dict[str, float]:
        """
        Evaluate the estimator performance on test data

        Args:
            test_data: Test dataset with true SOC values under 'soc_true'
            metrics: List of metrics to compute

        Returns:
            Dictionary of metric names and values
        """
        if 'soc_true' not in test_data:
            raise ValueError("Evaluation requires 'soc_true' in the test data")

        if metrics is None:
            metrics = ['rmse', 'mae', 'mape', 'max_error']

        soc_pred = self.predict(test_data, return_uncertainty=False)
        soc_true = np.asarray(test_data['soc_true'], dtype=float)

        results = {}

        if 'rmse' in metrics:
            results['rmse'] = float(np.sqrt(np.mean((soc_pred - soc_true) ** 2)))

        if 'mae' in metrics:
            results['mae'] = float(np.mean(np.abs(soc_pred - soc_true)))

        if 'mape' in metrics:
            # Samples at SOC 0 have no defined relative error
            nonzero = soc_true != 0
            if np.any(nonzero):
                results['mape'] = float(np.mean(
                    np.abs((soc_pred[nonzero] - soc_true[nonzero]) / soc_true[nonzero])) * 100)
            else:
                warnings.warn("MAPE undefined: every true SOC sample is 0")
                results['mape'] = float('nan')

        if 'max_error' in metrics:
            results['max_error'] = float(np.max(np.abs(soc_pred - soc_true)))

        if 'r2_score' in metrics:
            ss_res = np.sum((soc_true - soc_pred) ** 2)
            ss_tot = np.sum((soc_true - np.mean(soc_true)) ** 2)
            if ss_tot > 0:
                results['r2_score'] = float(1 - (ss_res / ss_tot))
            else:
                # Constant reference: only a perfect fit is meaningful
                warnings.warn("R2 undefined for a constant true SOC")
                results['r2_score'] = 1.0 if ss_res == 0 else float('nan')

        self.performance_metrics.update(results)
        return results

    def get_config(self) -> Dict[str, Any]:
        """Get the estimator configuration"""
        return self.config.to_dict()

    def set_config(self, **changes) -> BatteryConfig:
        """
        Replace configuration fields

        The new configuration is validated before anything is swapped, so a
        rejected change leaves the estimator untouched. A default linear
        voltage model follows a changed voltage range.

        Raises:
            ConfigurationError: If a field is unknown or a value is invalid
        """
        unknown = set(changes) - {f.name for f in fields(self.config)}
        if unknown:
            raise ConfigurationError(f"Unknown battery config fields: {sorted(unknown)}")
        new_config = replace(self.config, **changes)

        self._apply_config(new_config)
        logger.info("%s reconfigured: %s", self.name, changes)
        return new_config

    def _apply_config(self, config: BatteryConfig) -> None:
        if self._default_model and config.voltage_range != self.config.voltage_range:
            self.battery_model = LinearOCVModel.from_config(config)
        self.config = config

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', config={self.config})"
