"""Pure reporting functions for per-link and end-to-end flow statistics.

Nothing here touches the scheduler or the channel: functions take counters
already collected and turn them into rows, text tables or DataFrames.
Derived quantities guard their denominators and return 0.0 or None rather
than dividing by zero; None renders as "-" in tables.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Mapping, Optional

import pandas as pd

PLACEHOLDER = "-"


@dataclass(frozen=True)
class FlowReportRow:
    """One per-link diagnostic row.

    Attributes:
        source_id / destination_id: Endpoint ids of the flow key.
        source / destination: Display names.
        tx_packets, rx_packets, rx_dropped: Counters.
        loss_ratio: rx_dropped / tx_packets * 100 (0 when nothing was sent).
        drop_reasons: Reason label -> count.
    """

    source_id: int
    destination_id: int
    source: str
    destination: str
    tx_packets: int
    rx_packets: int
    rx_dropped: int
    loss_ratio: float
    drop_reasons: Dict[str, int]

    @property
    def label(self) -> str:
        return f"{self.source} -> {self.destination}"


def build_flow_rows(accountant, names: Optional[Mapping[int, str]] = None) -> List[FlowReportRow]:
    """Rows for every flow with a non-zero counter, sorted by (source, destination).

    Args:
        accountant: Anything with ``active_flows()`` returning (FlowKey, FlowCounters).
        names: Endpoint id -> display name; ids are used when missing.
    """
    names = names or {}
    rows = []
    for key, counters in accountant.active_flows():
        rows.append(
            FlowReportRow(
                source_id=key.source,
                destination_id=key.destination,
                source=names.get(key.source, str(key.source)),
                destination=names.get(key.destination, str(key.destination)),
                tx_packets=counters.tx_packets,
                rx_packets=counters.rx_packets,
                rx_dropped=counters.rx_dropped,
                loss_ratio=counters.loss_ratio,
                drop_reasons={
                    getattr(reason, "label", str(reason)): count
                    for reason, count in sorted(
                        counters.drop_reasons.items(), key=lambda kv: str(kv[0])
                    )
                },
            )
        )
    return rows


def format_flow_table(rows: List[FlowReportRow]) -> str:
    header = f"{'Flow (Source -> Dest)':<30}{'Tx Pkts':>10}{'Rx Pkts':>10}{'Rx Drop':>10}{'Loss %':>10}"
    lines = [header, "-" * len(header)]
    for row in rows:
        lines.append(
            f"{row.label:<30}{row.tx_packets:>10}{row.rx_packets:>10}"
            f"{row.rx_dropped:>10}{row.loss_ratio:>9.1f}%"
        )
        for reason, count in row.drop_reasons.items():
            lines.append(f"    {reason}: {count}")
    lines.append("-" * len(header))
    return "\n".join(lines)


def flow_rows_to_frame(rows: List[FlowReportRow]) -> pd.DataFrame:
    """One DataFrame row per flow; drop reasons become ``drop_<label>`` columns."""
    records = []
    for row in rows:
        record = asdict(row)
        reasons = record.pop("drop_reasons")
        for reason, count in reasons.items():
            record[f"drop_{reason.replace(' ', '_')}"] = count
        records.append(record)
    df = pd.DataFrame.from_records(records)
    drop_cols = [c for c in df.columns if c.startswith("drop_")]
    if drop_cols:
        df[drop_cols] = df[drop_cols].fillna(0).astype(int)
    return df


# ---------------------------------------------------------------------------
# End-to-end statistics
# ---------------------------------------------------------------------------

@dataclass
class EndToEndFlowStats:
    """Application-level counters of one flow, with guarded derived metrics."""

    flow_id: int
    source: str
    destination: str
    tx_packets: int = 0
    rx_packets: int = 0
    tx_bytes: int = 0
    rx_bytes: int = 0
    time_first_tx_s: Optional[float] = None
    time_last_rx_s: Optional[float] = None
    delay_sum_s: float = 0.0
    jitter_sum_s: float = 0.0

    @property
    def lost_packets(self) -> int:
        return max(self.tx_packets - self.rx_packets, 0)

    @property
    def loss_ratio(self) -> float:
        if self.tx_packets == 0:
            return 0.0
        return self.lost_packets / self.tx_packets * 100.0

    @property
    def throughput_kbps(self) -> Optional[float]:
        """Received bits over (last rx - first tx), in kbit/s."""
        if self.rx_packets == 0 or self.time_first_tx_s is None or self.time_last_rx_s is None:
            return None
        elapsed = self.time_last_rx_s - self.time_first_tx_s
        if elapsed <= 0:
            return None
        return self.rx_bytes * 8.0 / elapsed / 1000.0

    @property
    def mean_delay_ms(self) -> Optional[float]:
        if self.rx_packets == 0:
            return None
        return self.delay_sum_s / self.rx_packets * 1000.0

    @property
    def mean_jitter_ms(self) -> Optional[float]:
        if self.rx_packets == 0:
            return None
        if self.rx_packets == 1:
            return 0.0
        return self.jitter_sum_s / (self.rx_packets - 1) * 1000.0

    def to_dict(self) -> dict:
        d = asdict(self)
        d.update(
            loss_ratio=self.loss_ratio,
            throughput_kbps=self.throughput_kbps,
            mean_delay_ms=self.mean_delay_ms,
            mean_jitter_ms=self.mean_jitter_ms,
        )
        return d


def _fmt(value: Optional[float], width: int) -> str:
    if value is None:
        return f"{PLACEHOLDER:>{width}}"
    return f"{value:>{width}.1f}"


def format_end_to_end_table(stats: List[EndToEndFlowStats]) -> str:
    header = (
        f"{'Flow':<6}{'Src':<14}{'Dst':<14}{'Tx':>6}{'Rx':>6}{'Loss %':>9}"
        f"{'Thrput(Kbps)':>14}{'Del(ms)':>9}{'Jit(ms)':>9}"
    )
    lines = [header, "-" * len(header)]
    for s in stats:
        lines.append(
            f"{s.flow_id:<6}{s.source:<14}{s.destination:<14}{s.tx_packets:>6}{s.rx_packets:>6}"
            f"{s.loss_ratio:>8.1f}%{_fmt(s.throughput_kbps, 14)}"
            f"{_fmt(s.mean_delay_ms, 9)}{_fmt(s.mean_jitter_ms, 9)}"
        )
    lines.append("-" * len(header))
    return "\n".join(lines)
