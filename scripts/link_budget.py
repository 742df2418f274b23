#!/usr/bin/env python3
"""
Ka-band link budget of the HAP - GEO - HAP scenario.

Builds the 7-node topology and prints the satellite -> platform downlink
budget of each feeder edge. With --simulate it also sends traffic from
UT_1_1 to UT_2_1 through HAP_1, the satellite and HAP_2, and prints the
per-link and end-to-end tables.

Usage:
    python scripts/link_budget.py [--altitude 20000] [--sat-distance 35786000]
                                  [--simulate] [--num-packets 1000]
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

from hapnet.metrics.report import format_end_to_end_table, format_flow_table  # noqa: E402
from hapnet.network.topology import (  # noqa: E402
    HAP_1,
    HAP_2,
    SATELLITE,
    SatelliteRelayConfig,
    build_hap_sat_hap_topology,
)
from hapnet.simulation.satellite_relay import run_satellite_relay  # noqa: E402


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Print the satellite feeder link budgets of the HAP-SAT-HAP scenario.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--altitude", type=float, default=20000.0, help="HAP altitude (m)")
    parser.add_argument("--sat-distance", type=float, default=35786000.0, help="Satellite altitude (m)")
    parser.add_argument("--sat-tx-power", type=float, default=50.0, help="Satellite TX power (dBm)")
    parser.add_argument("--sat-gain", type=float, default=50.0, help="Satellite antenna gain (dBi)")
    parser.add_argument("--hap-gain", type=float, default=45.0, help="HAP feeder antenna gain (dBi)")
    parser.add_argument("--rain", type=float, default=3.0, help="Rain attenuation (dB/km)")
    parser.add_argument("--simulate", action="store_true", help="Also run traffic through the relay")
    parser.add_argument("--num-packets", type=int, default=1000, help="Packets sent when simulating")
    parser.add_argument("--interval", type=float, default=0.265, help="Packet interval (s)")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    cfg = SatelliteRelayConfig(
        altitude_m=args.altitude,
        satellite_distance_m=args.sat_distance,
        satellite_tx_power_dbm=args.sat_tx_power,
        satellite_antenna_gain_dbi=args.sat_gain,
        platform_antenna_gain_dbi=args.hap_gain,
        rain_attenuation_db_per_km=args.rain,
        num_packets=args.num_packets,
        packet_interval_s=args.interval,
    )
    G = build_hap_sat_hap_topology(cfg)

    print("=== Ka-band Satellite Link Parameters ===")
    print(f"HAP Height: {cfg.altitude_m / 1000:.1f} km")
    print(f"Nodes: {G.number_of_nodes()}, Edges: {G.number_of_edges()}")

    for hap in (HAP_1, HAP_2):
        e = G.edges[hap, SATELLITE]
        name = G.nodes[hap]["name"]
        print(f"\nSAT -> {name} (downlink {e['downlink_hz'] / 1e9:.0f} GHz, uplink {e['uplink_hz'] / 1e9:.0f} GHz)")
        print(f"  Distance:          {e['distance_m'] / 1000:.1f} km")
        print(f"  FSPL:              {e['fspl_db']:.2f} dB")
        print(f"  Rain Loss:         {e['rain_loss_db']:.2f} dB")
        print(f"  Atmospheric Loss:  {e['atmospheric_loss_db']:.2f} dB")
        print(f"  Satellite EIRP:    {e['eirp_dbw']:.2f} dBW")
        print(
            f"  Received Power:    {e['received_power_dbw']:.2f} dBW "
            f"({e['received_power_dbm']:.2f} dBm)"
        )

    if args.simulate:
        result = run_satellite_relay(cfg)
        print(f"\n=== Traffic UT_1_1 -> UT_2_1 ({result.duration_s:.1f} s) ===")
        print(format_flow_table(result.flow_rows))
        print()
        print(format_end_to_end_table(result.end_to_end))


if __name__ == "__main__":
    main()
