"""
Per-link diagnostic accounting.

Counts transmitted, received and dropped frames per ordered
(source endpoint, destination endpoint) pair, from three interface events:

    - tx-begin:   (this endpoint -> resolved destination) tx_packets += 1
    - rx-end:     (resolved source -> this endpoint)      rx_packets += 1
    - rx-drop:    (resolved source -> this endpoint)      rx_dropped += 1

Frames whose addresses cannot be resolved (broadcast, unknown, header not
parseable) are left out of the accounting. A lookup miss never creates a
flow entry.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, NamedTuple, Optional, Tuple

from hapnet.diagnostics.identity import EndpointRegistry
from hapnet.network.frames import FrameHeader, FrameHeaderError
from hapnet.network.rx_failure import RxDropReason

logger = logging.getLogger(__name__)


class FlowKey(NamedTuple):
    source: int
    destination: int


@dataclass
class FlowCounters:
    tx_packets: int = 0
    rx_packets: int = 0
    rx_dropped: int = 0
    drop_reasons: Counter = field(default_factory=Counter)

    @property
    def loss_ratio(self) -> float:
        """Dropped frames as a percentage of transmitted frames (0 if none sent)."""
        if self.tx_packets == 0:
            return 0.0
        return self.rx_dropped / self.tx_packets * 100.0

    def is_empty(self) -> bool:
        return self.tx_packets == 0 and self.rx_packets == 0 and self.rx_dropped == 0


class LinkAccountant:
    """
    Aggregates frame events into per-flow counters.

    Args:
        registry: Populated endpoint registry used to resolve addresses.
        strict_receive: Only count a receive when the frame was addressed to
            the receiving interface (or broadcast), not merely overheard.
        track_drop_reasons: Keep a per-reason breakdown of drops.
        code_map: Numeric drop codes -> reason, for layers reporting ints.
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        strict_receive: bool = True,
        track_drop_reasons: bool = True,
        code_map: Optional[Mapping[int, RxDropReason]] = None,
    ):
        self.registry = registry
        self.strict_receive = strict_receive
        self.track_drop_reasons = track_drop_reasons
        self.code_map = code_map
        self._flows: Dict[FlowKey, FlowCounters] = {}

    def attach(self, interface) -> None:
        """Subscribe to the three trace sources of ``interface``."""
        interface.trace_tx_begin.connect(self.on_tx_begin)
        interface.trace_rx_end.connect(self.on_rx_end)
        interface.trace_rx_drop.connect(self.on_rx_drop)

    def _counters_for(self, key: FlowKey) -> FlowCounters:
        counters = self._flows.get(key)
        if counters is None:
            counters = self._flows[key] = FlowCounters()
        return counters

    @staticmethod
    def _header(frame) -> Optional[FrameHeader]:
        try:
            return frame.peek_header()
        except FrameHeaderError:
            return None

    # -- event handlers -----------------------------------------------------

    def on_tx_begin(self, interface, frame, tx_power_dbm: float) -> None:
        header = self._header(frame)
        if header is None:
            return
        dst = self.registry.resolve(header.destination)
        if dst is None:
            return
        self._counters_for(FlowKey(interface.endpoint_id, dst)).tx_packets += 1

    def on_rx_end(self, interface, frame) -> None:
        header = self._header(frame)
        if header is None:
            return
        if self.strict_receive and not (
            header.destination == interface.address or header.destination.is_broadcast
        ):
            return
        src = self.registry.resolve(header.source)
        if src is None:
            return
        self._counters_for(FlowKey(src, interface.endpoint_id)).rx_packets += 1

    def on_rx_drop(self, interface, frame, reason) -> None:
        header = self._header(frame)
        if header is None:
            logger.debug("Drop at %s with unparseable header ignored", interface.name)
            return
        src = self.registry.resolve(header.source)
        if src is None:
            return
        counters = self._counters_for(FlowKey(src, interface.endpoint_id))
        counters.rx_dropped += 1
        if self.track_drop_reasons:
            counters.drop_reasons[RxDropReason.classify(reason, self.code_map)] += 1

    # -- queries --------------------------------------------------------------

    def counters(self, source: int, destination: int) -> Optional[FlowCounters]:
        """Counters for one flow, or None if nothing was observed for it."""
        return self._flows.get(FlowKey(source, destination))

    def active_flows(self) -> List[Tuple[FlowKey, FlowCounters]]:
        """Flows with any non-zero counter, sorted by (source, destination)."""
        return sorted(
            ((k, c) for k, c in self._flows.items() if not c.is_empty()),
            key=lambda item: item[0],
        )

    def __len__(self) -> int:
        return len(self._flows)
