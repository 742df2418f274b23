"""End-to-end (application level) flow statistics."""

from __future__ import annotations

from typing import Dict, List

from hapnet.metrics.report import EndToEndFlowStats


class EndToEndFlowMonitor:
    """Records application sends and deliveries per flow id.

    Delay is measured from ``frame.created_at``; jitter accumulates the
    absolute difference between consecutive delays.
    """

    def __init__(self) -> None:
        self._flows: Dict[int, EndToEndFlowStats] = {}
        self._last_delay: Dict[int, float] = {}

    def register_flow(self, flow_id: int, source: str, destination: str) -> EndToEndFlowStats:
        stats = EndToEndFlowStats(flow_id=flow_id, source=source, destination=destination)
        self._flows[flow_id] = stats
        return stats

    def _stats(self, flow_id: int) -> EndToEndFlowStats:
        if flow_id not in self._flows:
            raise KeyError(f"Unknown flow id {flow_id}; call register_flow() first")
        return self._flows[flow_id]

    def record_tx(self, frame, now: float) -> None:
        stats = self._stats(frame.flow_id)
        if stats.tx_packets == 0:
            stats.time_first_tx_s = now
        stats.tx_packets += 1
        stats.tx_bytes += frame.size_bytes

    def record_rx(self, frame, now: float) -> None:
        stats = self._stats(frame.flow_id)
        delay = now - frame.created_at
        if stats.rx_packets > 0:
            stats.jitter_sum_s += abs(delay - self._last_delay[frame.flow_id])
        self._last_delay[frame.flow_id] = delay
        stats.rx_packets += 1
        stats.rx_bytes += frame.size_bytes
        stats.delay_sum_s += delay
        stats.time_last_rx_s = now

    def stats(self) -> List[EndToEndFlowStats]:
        return [self._flows[k] for k in sorted(self._flows)]
