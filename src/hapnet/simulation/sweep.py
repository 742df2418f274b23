from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields, replace
from math import fsum
from typing import List, Optional, Sequence

import pandas as pd

from hapnet.simulation.engine import run_scenario
from hapnet.simulation.scenario import ScenarioConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# One-parameter sweep over the relay scenario
# ---------------------------------------------------------------------------

_FIELD_TYPES = {f.name: getattr(f.type, "__name__", f.type) for f in fields(ScenarioConfig)}


def coerce_value(parameter: str, value):
    """Convert ``value`` to the declared type of ``ScenarioConfig.<parameter>``."""
    kind = _FIELD_TYPES[parameter]
    if kind == "int":
        if float(value) != int(value):
            raise ValueError(f"{parameter} needs an integer value, got {value!r}")
        return int(value)
    if kind == "float":
        return float(value)
    raise ValueError(f"Cannot sweep non-numeric parameter {parameter!r}")


@dataclass
class SweepConfig:
    """
    Values for one ``ScenarioConfig`` field.

    Values are converted to the field's declared type on construction, so a
    sweep over ``num_packets`` read from the command line as floats runs with
    ints (and rejects 2.5 packets).
    """

    parameter: str = "altitude_m"
    values: Sequence[float] = (17000.0, 20000.0, 22000.0)
    base: ScenarioConfig = field(default_factory=ScenarioConfig)

    def __post_init__(self) -> None:
        if self.parameter not in _FIELD_TYPES:
            raise ValueError(f"Unknown scenario parameter {self.parameter!r}")
        if _FIELD_TYPES[self.parameter] not in ("int", "float"):
            raise ValueError(f"Cannot sweep non-numeric parameter {self.parameter!r}")
        self.values = [coerce_value(self.parameter, v) for v in self.values]


@dataclass
class SweepSample:
    """
    One scenario run of a sweep: the swept value, the static budgets of both
    bands and the observed end-to-end outcome.
    """

    run_id: int
    parameter: str
    value: float
    config_hash: str

    # link budgets
    reference_loss_a_db: float
    reference_loss_b_db: float
    atmospheric_loss_db: float
    received_power_a_dbm: float
    received_power_b_dbm: float

    # beam steering
    tick_count: int
    min_gain_a_db: Optional[float]
    min_gain_b_db: Optional[float]

    # end-to-end outcome
    tx_packets: int
    rx_packets: int
    loss_ratio: float
    mean_delay_ms: Optional[float]


@dataclass
class SweepStats:
    num_runs: int
    mean_loss_ratio: float
    worst_loss_ratio: float
    min_received_power_dbm: float


def generate_sweep_dataset(cfg: SweepConfig) -> List[SweepSample]:
    """Run the relay scenario once per value of ``cfg.parameter``."""
    samples: List[SweepSample] = []

    for i, value in enumerate(cfg.values):
        scenario_cfg = replace(cfg.base, **{cfg.parameter: value, "trace_gains": True})
        result = run_scenario(scenario_cfg)

        budget_a = result.link_budgets["A"]
        budget_b = result.link_budgets["B"]
        gains = {g["link"]: g for g in result.gain_summary}
        e2e = result.end_to_end[0]

        samples.append(
            SweepSample(
                run_id=i,
                parameter=cfg.parameter,
                value=float(value),
                config_hash=result.config_hash,
                reference_loss_a_db=budget_a.reference_loss_db,
                reference_loss_b_db=budget_b.reference_loss_db,
                atmospheric_loss_db=budget_a.atmospheric_loss_db,
                received_power_a_dbm=budget_a.received_power_dbm,
                received_power_b_dbm=budget_b.received_power_dbm,
                tick_count=result.tick_count,
                min_gain_a_db=gains.get("A", {}).get("min_gain_db"),
                min_gain_b_db=gains.get("B", {}).get("min_gain_db"),
                tx_packets=e2e.tx_packets,
                rx_packets=e2e.rx_packets,
                loss_ratio=e2e.loss_ratio,
                mean_delay_ms=e2e.mean_delay_ms,
            )
        )
        logger.info("Sweep %s=%s: loss %.1f%%", cfg.parameter, value, e2e.loss_ratio)

    return samples


def summarize_samples(samples: List[SweepSample]) -> SweepStats:
    n = len(samples)
    if n == 0:
        return SweepStats(0, 0.0, 0.0, 0.0)

    return SweepStats(
        num_runs=n,
        mean_loss_ratio=fsum(s.loss_ratio for s in samples) / n,
        worst_loss_ratio=max(s.loss_ratio for s in samples),
        min_received_power_dbm=min(
            min(s.received_power_a_dbm, s.received_power_b_dbm) for s in samples
        ),
    )


def samples_to_frame(samples: List[SweepSample]) -> pd.DataFrame:
    return pd.DataFrame([asdict(s) for s in samples])
