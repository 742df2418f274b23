"""Relay scenario sweep over one ScenarioConfig parameter.

Runs the scenario once per value and writes the samples to CSV.

Usage:
    python scripts/altitude_sweep.py --values 15000 20000 25000
    python scripts/altitude_sweep.py --parameter tx_power_dbm --values 10 15 20 26
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# --- Make sure Python can see the `src` folder ---
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"

if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from hapnet.simulation.sweep import (  # noqa: E402
    SweepConfig,
    generate_sweep_dataset,
    samples_to_frame,
    summarize_samples,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Sweep one scenario parameter and record link budgets and loss.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--parameter", type=str, default="altitude_m", help="ScenarioConfig field")
    parser.add_argument(
        "--values",
        type=float,
        nargs="+",
        default=[15000.0, 17500.0, 20000.0, 22500.0, 25000.0],
        help="Values to sweep",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output CSV (default: PROJECT_ROOT/data/sweep_<parameter>.csv)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.WARNING)

    cfg = SweepConfig(parameter=args.parameter, values=args.values)

    print(f"=== Sweep over {cfg.parameter} ===")
    print(f"Running {len(cfg.values)} scenarios...")

    samples = generate_sweep_dataset(cfg)
    stats = summarize_samples(samples)

    out_path = Path(args.output) if args.output else PROJECT_ROOT / "data" / f"sweep_{cfg.parameter}.csv"
    out_path.parent.mkdir(parents=True, exist_ok=True)
    samples_to_frame(samples).to_csv(out_path, index=False)

    print(f"\nRuns: {stats.num_runs}")
    print(f"Mean loss: {stats.mean_loss_ratio:.1f}%")
    print(f"Worst loss: {stats.worst_loss_ratio:.1f}%")
    print(f"Lowest t=0 received power: {stats.min_received_power_dbm:.2f} dBm")
    print(f"Written {len(samples)} rows to {out_path}")


if __name__ == "__main__":
    main()
