#!/usr/bin/env python3
"""
Run the dual-band relay scenario.

Ground A -> HAP (moving circle, steered antenna) -> Ground B.

Usage:
    python scripts/simulate.py [--altitude 20000] [--tx-power 26] [--ant-gain 32]
                               [--pointing center|nadir|ground_a|ground_b]
                               [--config scenario.json] [--csv flows.csv] [--verbose]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# --- Make sure Python can see the `src` folder ---
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"

if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from hapnet.metrics.report import (  # noqa: E402
    flow_rows_to_frame,
    format_end_to_end_table,
    format_flow_table,
)
from hapnet.simulation.engine import ScenarioEngine  # noqa: E402
from hapnet.simulation.scenario import POINTING_MODES, ScenarioConfig  # noqa: E402

# flag -> ScenarioConfig field
FLAG_FIELDS = {
    "altitude": "altitude_m",
    "radius": "orbit_radius_m",
    "period": "orbital_period_s",
    "tick": "tick_s",
    "pointing": "pointing",
    "tx_power": "tx_power_dbm",
    "ant_gain": "antenna_max_gain_dbi",
    "beamwidth": "antenna_beamwidth_deg",
    "freq_a": "frequency_a_hz",
    "freq_b": "frequency_b_hz",
    "ground_distance": "ground_distance_m",
    "rain": "rain_attenuation_db_per_km",
    "oxygen": "oxygen_absorption_db_per_km",
    "vapor": "water_vapor_absorption_db_per_km",
    "rain_height": "rain_layer_height_m",
    "num_packets": "num_packets",
    "packet_size": "packet_size_bytes",
    "interval": "packet_interval_s",
    "duration": "duration_s",
}


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Simulate a moving HAP relaying traffic between two ground terminals.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", type=str, default=None, help="JSON file with ScenarioConfig fields")
    parser.add_argument("--altitude", type=float, default=None, help="HAP altitude (m)")
    parser.add_argument("--radius", type=float, default=None, help="Orbit radius (m)")
    parser.add_argument("--period", type=float, default=None, help="Orbital period (s)")
    parser.add_argument("--tick", type=float, default=None, help="Beam-steering interval (s)")
    parser.add_argument(
        "--pointing", choices=POINTING_MODES, default=None, help="HAP antenna pointing mode"
    )
    parser.add_argument("--tx-power", type=float, default=None, help="Transmit power (dBm)")
    parser.add_argument("--ant-gain", type=float, default=None, help="HAP antenna max gain (dBi)")
    parser.add_argument("--beamwidth", type=float, default=None, help="HAP antenna beamwidth (deg)")
    parser.add_argument("--freq-a", type=float, default=None, help="Band A frequency (Hz)")
    parser.add_argument("--freq-b", type=float, default=None, help="Band B frequency (Hz)")
    parser.add_argument("--ground-distance", type=float, default=None, help="Ground A-B separation (m)")
    parser.add_argument("--rain", type=float, default=None, help="Rain attenuation (dB/km)")
    parser.add_argument("--oxygen", type=float, default=None, help="Oxygen absorption (dB/km)")
    parser.add_argument("--vapor", type=float, default=None, help="Water vapour absorption (dB/km)")
    parser.add_argument("--rain-height", type=float, default=None, help="Rain layer height (m)")
    parser.add_argument("--num-packets", type=int, default=None, help="Packets sent by ground A")
    parser.add_argument("--packet-size", type=int, default=None, help="Packet size (bytes)")
    parser.add_argument("--interval", type=float, default=None, help="Inter-packet interval (s)")
    parser.add_argument("--duration", type=float, default=None, help="Simulation stop time (s)")
    parser.add_argument("--csv", type=str, default=None, help="Write per-link rows to this CSV")
    parser.add_argument("--verbose", action="store_true", help="Per-tick debug logging")
    return parser.parse_args()


def build_config(args: argparse.Namespace) -> ScenarioConfig:
    values = {}
    if args.config:
        with open(args.config) as f:
            values.update(json.load(f))
    for flag, field_name in FLAG_FIELDS.items():
        value = getattr(args, flag)
        if value is not None:
            values[field_name] = value
    return ScenarioConfig.from_dict(values)


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    cfg = build_config(args)
    engine = ScenarioEngine(cfg)
    result = engine.run()

    print("\n--- SIMULATION RESULTS ---")
    print("Topology: Ground A <-> HAP (Moving Circle) <-> Ground B")
    print(f"  Packet size: {cfg.packet_size_bytes} bytes")
    print(f"  HAP height: {cfg.altitude_m:.0f} m")
    print(f"  Tx Power: {cfg.tx_power_dbm} dBm")
    for band, budget in result.link_budgets.items():
        print(
            f"  Band {band}: reference loss {budget.reference_loss_db:.2f} dB, "
            f"atmospheric {budget.atmospheric_loss_db:.2f} dB, "
            f"rx {budget.received_power_dbm:.2f} dBm at t=0"
        )
    print(f"  Beam-steering ticks: {result.tick_count}")

    print("\nPer-link diagnostics")
    print(format_flow_table(result.flow_rows))
    print("\nEnd-to-end flows")
    print(format_end_to_end_table(result.end_to_end))

    if args.csv:
        out_path = Path(args.csv)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        flow_rows_to_frame(result.flow_rows).to_csv(out_path, index=False)
        print(f"\nWritten {len(result.flow_rows)} flow rows to {out_path}")


if __name__ == "__main__":
    main()
