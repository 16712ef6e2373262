"""
Battery Data Loader

Loading of recorded voltage/current/temperature logs and conversion into
the per-period readings consumed by the estimation engine.
"""

import numpy as np
import pandas as pd
import h5py
from pathlib import Path
from typing import Dict, Iterator, Optional, Union
import warnings
from scipy.signal import savgol_filter

from ..estimators.base import Reading


class BatteryDataLoader:
    """
    Battery log loader supporting multiple formats

    Features:
    - CSV, HDF5 and NPZ files, or a synthetic cycle
    - Data validation and cleaning
    - Optional smoothing of noisy signals
    - Block averaging of raw samples into readings
    """

    REQUIRED_FEATURES = ('time', 'voltage', 'current')

    def __init__(self, data_path: Union[str, Path],
                 data_format: str = "auto",
                 feature_mapping: Optional[Dict[str, str]] = None):
        """
        Initialize data loader

        Args:
            data_path: Path to data file, or "synthetic"
            data_format: Data format (auto, csv, hdf5, npz, synthetic)
            feature_mapping: Mapping from file columns to standard names
        """
        self.data_path = Path(data_path)
        self.data_format = data_format
        self.feature_mapping = feature_mapping or {}

        self.data = {}

    def load_data(self, **synthetic_kwargs) -> Dict[str, np.ndarray]:
        """
        Load data from file

        Args:
            **synthetic_kwargs: Passed to the generator for the synthetic format

        Returns:
            Dictionary containing loaded data arrays
        """
        if self.data_format == "auto":
            self.data_format = self._detect_format()

        if self.data_format == "csv":
            self.data = self._load_csv()
        elif self.data_format == "hdf5":
            self.data = self._load_hdf5()
        elif self.data_format == "npz":
            self.data = self._load_npz()
        elif self.data_format == "synthetic":
            self.data = self._generate_synthetic_data(**synthetic_kwargs)
        else:
            raise ValueError(f"Unsupported data format: {self.data_format}")

        self._standardize_feature_names()
        self._validate_data()
        return self.data

    def _detect_format(self) -> str:
        """Auto-detect data format from file extension"""
        if not self.data_path.exists():
            return "synthetic"

        suffix = self.data_path.suffix.lower()
        if suffix in [".h5", ".hdf5"]:
            return "hdf5"
        elif suffix == ".npz":
            return "npz"
        else:
            return "csv"

    def _load_csv(self) -> Dict[str, np.ndarray]:
        """Load data from CSV file"""
        try:
            df = pd.read_csv(self.data_path)
        except Exception as e:
            raise ValueError(f"Failed to load CSV file: {e}") from e
        return {col.lower(): df[col].to_numpy() for col in df.columns}

    def _load_hdf5(self) -> Dict[str, np.ndarray]:
        """Load data from HDF5 file"""
        try:
            with h5py.File(self.data_path, 'r') as f:
                return {key.lower(): f[key][:] for key in f.keys()}
        except Exception as e:
            raise ValueError(f"Failed to load HDF5 file: {e}") from e

    def _load_npz(self) -> Dict[str, np.ndarray]:
        """Load data from NPZ file"""
        try:
            with np.load(self.data_path) as npz_data:
                return {key.lower(): npz_data[key] for key in npz_data.files}
        except Exception as e:
            raise ValueError(f"Failed to load NPZ file: {e}") from e

    def _generate_synthetic_data(self, n_samples: int = 3600, dt: float = 1.0,
                                 capacity: float = 4.1, initial_soc: float = 0.8,
                                 v_min: float = 2.5, v_max: float = 4.0,
                                 noise_std: float = 0.005,
                                 seed: Optional[int] = 42) -> Dict[str, np.ndarray]:
        """
        Generate a synthetic battery cycle for testing

        Args:
            n_samples: Number of data points to generate
            dt: Sampling period in seconds
            capacity: Battery capacity in Ah
            initial_soc: SOC at the first sample
            v_min: Voltage at SOC 0
            v_max: Voltage at SOC 1
            noise_std: Standard deviation of the voltage noise in Volts
            seed: Random seed, None for a fresh generator

        Returns:
            Dictionary with synthetic battery data
        """
        rng = np.random.default_rng(seed)

        time = np.arange(n_samples) * dt
        current = self._generate_current_profile(n_samples, rng)

        temperature = 25 + 5 * np.sin(2 * np.pi * time / 3600) + rng.normal(0, 1, n_samples)
        temperature = np.clip(temperature, 15, 40)

        # Positive current = discharge
        soc_true = np.zeros(n_samples)
        soc_true[0] = initial_soc
        for i in range(1, n_samples):
            delta_soc = current[i] * dt / 3600 / capacity
            soc_true[i] = np.clip(soc_true[i-1] - delta_soc, 0, 1)

        voltage = v_min + soc_true * (v_max - v_min) + rng.normal(0, noise_std, n_samples)

        return {
            'time': time,
            'voltage': voltage,
            'current': current,
            'temperature': temperature,
            'soc_true': soc_true,
        }

    def _generate_current_profile(self, n_samples: int, rng: np.random.Generator) -> np.ndarray:
        """Discharge, rest, charge and variable-load segments"""
        current = np.zeros(n_samples)
        segment_length = n_samples // 4

        current[:segment_length] = 2.0 + rng.normal(0, 0.1, segment_length)
        current[segment_length:2*segment_length] = rng.normal(0, 0.05, segment_length)
        current[2*segment_length:3*segment_length] = -1.5 + rng.normal(0, 0.1, segment_length)

        tail = n_samples - 3*segment_length
        t = np.linspace(0, 4*np.pi, tail)
        current[3*segment_length:] = 1.0 * np.sin(t) + rng.normal(0, 0.1, tail)

        return current

    def _validate_data(self) -> None:
        """Validate loaded data for consistency and quality"""
        if not self.data:
            raise ValueError("No data loaded")

        missing = set(self.REQUIRED_FEATURES) - set(self.data.keys())
        if missing:
            raise ValueError(f"Missing required features: {sorted(missing)}")

        lengths = [len(arr) for arr in self.data.values()]
        if len(set(lengths)) > 1:
            raise ValueError("Inconsistent array lengths in data")

        for key, arr in self.data.items():
            if np.issubdtype(np.asarray(arr).dtype, np.number) and np.isnan(arr).any():
                warnings.warn(f"NaN values found in {key}")

        voltage = self.data['voltage']
        if np.any(voltage < 1.0) or np.any(voltage > 5.0):
            warnings.warn("Voltage values outside reasonable range (1-5V)")

        if np.any(np.abs(self.data['current']) > 20):
            warnings.warn("Current values seem unusually high (>20A)")

        if np.any(np.diff(self.data['time']) < 0):
            warnings.warn("Time stamps are not monotonic")

    def _standardize_feature_names(self) -> None:
        """Apply feature name mapping to standardize column names"""
        if not self.feature_mapping:
            return

        new_data = {}
        for key, value in self.data.items():
            new_data[self.feature_mapping.get(key, key)] = value
        self.data = new_data

    def preprocess_data(self, smooth_data: bool = True,
                        window_length: int = 5) -> Dict[str, np.ndarray]:
        """
        Preprocess the loaded data

        Args:
            smooth_data: Whether to apply a Savitzky-Golay filter
            window_length: Filter window, rounded up to an odd number

        Returns:
            Preprocessed data dictionary
        """
        if not self.data:
            raise ValueError("No data loaded. Call load_data() first.")

        processed_data = self.data.copy()
        if smooth_data:
            processed_data = self._smooth_data(processed_data, window_length)
        return processed_data

    def _smooth_data(self, data: Dict[str, np.ndarray],
                     window_length: int = 5) -> Dict[str, np.ndarray]:
        """Apply smoothing filters to noisy signals"""
        smoothed_data = data.copy()
        if window_length % 2 == 0:
            window_length += 1

        for feature in ('voltage', 'current', 'temperature'):
            if feature in data and len(data[feature]) > window_length:
                smoothed_data[feature] = savgol_filter(data[feature], window_length, polyorder=2)

        return smoothed_data

    def iter_readings(self, data: Optional[Dict[str, np.ndarray]] = None,
                      average_window: int = 1) -> Iterator[Reading]:
        """
        Yield engine readings from the loaded arrays

        Args:
            data: Arrays to convert, the loaded data by default
            average_window: Raw samples averaged into one reading

        Yields:
            Readings stamped with the last sample time of each block
        """
        if average_window < 1:
            raise ValueError(f"average_window must be at least 1, got {average_window}")

        data = self.data if data is None else data
        if not data:
            raise ValueError("No data loaded. Call load_data() first.")

        n_samples = len(data['voltage'])
        temperature = data.get('temperature')
        if temperature is None:
            temperature = np.full(n_samples, np.nan)

        for start in range(0, n_samples - average_window + 1, average_window):
            block = slice(start, start + average_window)
            yield Reading(
                voltage=float(np.mean(data['voltage'][block])),
                current=float(np.mean(data['current'][block])),
                temperature=float(np.mean(temperature[block])),
                timestamp=float(data['time'][start + average_window - 1]),
            )

    def get_metadata(self) -> Dict[str, object]:
        """Get metadata about the loaded dataset"""
        if not self.data:
            return {}

        metadata = {
            'n_samples': len(next(iter(self.data.values()))),
            'features': list(self.data.keys()),
            'data_path': str(self.data_path),
            'data_format': self.data_format
        }

        for key, arr in self.data.items():
            metadata[f'{key}_stats'] = {
                'mean': float(np.mean(arr)),
                'std': float(np.std(arr)),
                'min': float(np.min(arr)),
                'max': float(np.max(arr))
            }

        return metadata

    def save_data(self, output_path: Union[str, Path],
                  format: str = "npz") -> None:
        """
        Save data to file

        Args:
            output_path: Path for output file
            format: Output format (npz, csv, hdf5)
        """
        output_path = Path(output_path)

        if format == "npz":
            np.savez_compressed(output_path, **self.data)
        elif format == "csv":
            pd.DataFrame(self.data).to_csv(output_path, index=False)
        elif format == "hdf5":
            with h5py.File(output_path, 'w') as f:
                for key, arr in self.data.items():
                    f.create_dataset(key, data=arr)
        else:
            raise ValueError(f"Unsupported output format: {format}")
