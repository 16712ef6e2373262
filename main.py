
from __future__ import annotations
import argparse
import logging
import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path
from typing import Any, Dict

from battery_state import (BatteryConfig, BatteryDataLoader, BatteryStateEngine,
                           CoulombCountingEstimator, HttpResultSink, LoggingSink)
from battery_state.config import load_yaml
from battery_state.engine import results_to_frame
from battery_state.sinks import REJECTION_MARKERS, ResultSink


plt.style.use("seaborn-v0_8-whitegrid")

COLORS = {
    "true":   "black",
    "cc":     "tab:blue",
    "kalman": "tab:green",
    "soh":    "tab:orange",
    "rul":    "tab:red",
}

logger = logging.getLogger("battery_state.main")


def ensure_dir(path: Path):
    path.mkdir(parents=True, exist_ok=True)


def setup_logging(output_dir: Path, level: str = "INFO") -> None:
    log_dir = output_dir / 'logs'
    ensure_dir(log_dir)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_dir / 'estimation.log'),
            logging.StreamHandler()
        ]
    )


def build_sink(sink_config: Dict[str, Any]) -> ResultSink:
    url = (sink_config or {}).get('url')
    if not url:
        return LoggingSink(level=logging.DEBUG)
    return HttpResultSink(
        url,
        timeout=sink_config.get('timeout', 5.0),
        min_interval_s=sink_config.get('min_interval_s', 20.0),
        rejection_markers=sink_config.get('rejection_markers', REJECTION_MARKERS),
        accepted_body=sink_config.get('accepted_body'),
    )


def load_cycle(data_config: Dict[str, Any], battery: BatteryConfig, seed: int):
    source = data_config.get('source', 'synthetic')
    loader = BatteryDataLoader(source)
    if loader.data_path.exists():
        data = loader.load_data()
    else:
        data = loader.load_data(
            n_samples=data_config.get('n_samples', 3600),
            dt=data_config.get('dt', 1.0),
            capacity=battery.nominal_capacity_ah,
            initial_soc=data_config.get('initial_soc', 0.8),
            v_min=battery.voltage_min,
            v_max=battery.voltage_max,
            seed=seed,
        )
    return loader, data


def plot_results(time_min: np.ndarray, data: Dict[str, np.ndarray], soc_cc: np.ndarray,
                 df, output_dir: Path) -> None:
    fig, axes = plt.subplots(3, 1, figsize=(7, 8), sharex=True)

    if 'soc_true' in data:
        axes[0].plot(time_min, data['soc_true'], color=COLORS['true'], label="True")
    axes[0].plot(time_min, soc_cc, '--', color=COLORS['cc'], label="Coulomb counting")
    axes[0].plot(df['time'] / 60, df['soc'], '-', color=COLORS['kalman'], alpha=0.8, label="Kalman")
    axes[0].set_ylabel("SOC"); axes[0].legend()

    axes[1].plot(df['time'] / 60, df['soh'] * 100, color=COLORS['soh'])
    axes[1].set_ylabel("SOH / %")

    rul = df['rul_hours'].replace([np.inf, -np.inf], np.nan)
    axes[2].plot(df['time'] / 60, rul, color=COLORS['rul'])
    axes[2].set_ylabel("RUL / h"); axes[2].set_xlabel("Time / min")

    fig.suptitle("Battery State Estimation")
    fig.tight_layout()
    fig.savefig(output_dir / 'state_estimation.png', dpi=300)
    plt.close(fig)


def main(config_path: str = "configs/default_config.yaml") -> None:
    config = load_yaml(config_path)
    experiment = config.get('experiment', {})
    output_dir = Path(experiment.get('output_dir', 'results'))
    ensure_dir(output_dir)
    setup_logging(output_dir, config.get('logging', {}).get('level', 'INFO'))

    battery = BatteryConfig.from_dict(config.get('battery') or {})
    logger.info("Battery configuration: %s", battery.to_dict())

    data_config = config.get('data', {})
    loader, data = load_cycle(data_config, battery, experiment.get('seed', 42))
    logger.info("Loaded %d samples", len(data['time']))

    sink = build_sink(config.get('sink', {}))
    engine = BatteryStateEngine(battery, sink=sink)
    try:
        readings = loader.iter_readings(average_window=data_config.get('average_window', 1))
        results = list(engine.run(readings))
    finally:
        sink.close()

    if not results:
        logger.error("No readings produced a result, nothing to plot or save")
        return

    df = results_to_frame(results)
    soc_cc = CoulombCountingEstimator(battery).predict(data)

    if 'soc_true' in data and len(df) == len(data['soc_true']):
        rmse = np.sqrt(np.mean((df['soc'].to_numpy() - data['soc_true']) ** 2))
        logger.info("Kalman SOC RMSE: %.4f", rmse)

    plot_results(data['time'] / 60, data, soc_cc, df, output_dir)

    last = results[-1]
    print("--- Battery state ---")
    print(f"SOC ≈ {last.soc_percent:.2f} %")
    print(f"SOH ≈ {last.soh_percent:.2f} %")
    print("RUL = unbounded" if last.rul_is_unbounded else f"RUL ≈ {last.rul_hours:.1f} h")

    np.savez(output_dir / 'state_estimates.npz',
             time=df['time'].to_numpy(),
             soc_kalman=df['soc'].to_numpy(),
             soc_cc=soc_cc,
             soh=df['soh'].to_numpy(),
             rul_hours=df['rul_hours'].to_numpy(),
             capacity_ah=df['capacity_ah'].to_numpy())
    print(f"Results saved to {output_dir / 'state_estimates.npz'}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the battery state estimator over a cycle")
    parser.add_argument("--config", default="configs/default_config.yaml",
                        help="YAML configuration file")
    args = parser.parse_args()
    main(args.config)
