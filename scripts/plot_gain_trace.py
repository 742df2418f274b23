#!/usr/bin/env python3
"""
Plot the steered antenna gain of both relay bands over time.

Runs the relay scenario with gain tracing enabled and saves a figure with
one line per band, plus the antenna pattern for reference.

Usage:
    python scripts/plot_gain_trace.py [--duration 100] [--output gain_trace.png]
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import argparse

import matplotlib.pyplot as plt
import numpy as np

from hapnet.simulation.engine import ScenarioEngine
from hapnet.simulation.scenario import ScenarioConfig


def main():
    parser = argparse.ArgumentParser(description="Plot steered gain vs time.")
    parser.add_argument("--duration", type=float, default=100.0, help="Simulated seconds")
    parser.add_argument("--output", type=str, default="gain_trace.png")
    args = parser.parse_args()

    cfg = ScenarioConfig(duration_s=args.duration, trace_gains=True)
    engine = ScenarioEngine(cfg)
    engine.run()

    fig, (ax_t, ax_p) = plt.subplots(1, 2, figsize=(14, 5), dpi=150)

    for link in engine.controller.links:
        t = [s.time_s for s in link.samples]
        g = [s.gain_db for s in link.samples]
        ax_t.plot(t, g, label=f"Band {link.name}")
    ax_t.set_xlabel("Time (s)")
    ax_t.set_ylabel("Gain (dBi)")
    ax_t.set_title("Steered HAP antenna gain")
    ax_t.grid(True, alpha=0.3)
    ax_t.legend()

    angles = np.linspace(0.0, np.pi / 2, 181)
    ax_p.plot(np.degrees(angles), engine.antenna.pattern(angles))
    ax_p.set_xlabel("Offset from boresight (deg)")
    ax_p.set_ylabel("Gain (dBi)")
    ax_p.set_title(f"Antenna pattern (n = {engine.antenna.beamwidth_exponent:.2f})")
    ax_p.grid(True, alpha=0.3)

    plt.tight_layout()
    output_path = Path(args.output)
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    print(f"Saved figure to {output_path}")


if __name__ == "__main__":
    main()
