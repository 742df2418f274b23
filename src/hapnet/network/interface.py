"""
Radio interfaces and their packet lifecycle trace sources.

A RadioInterface is one network device of one endpoint on one channel. It
exposes three trace sources that observers subscribe to:

    - trace_tx_begin(interface, frame, tx_power_dbm)
    - trace_rx_end(interface, frame)
    - trace_rx_drop(interface, frame, reason)

and a settable antenna gain (the beam-steering loop writes it every tick).
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

import numpy as np

from hapnet.network.frames import LinkAddress

logger = logging.getLogger(__name__)

DEFAULT_RX_SENSITIVITY_DBM = -101.0


class TraceSource:
    """Ordered list of callbacks fired with the same arguments."""

    def __init__(self, name: str):
        self.name = name
        self._callbacks: List[Callable[..., None]] = []

    def connect(self, callback: Callable[..., None]) -> None:
        self._callbacks.append(callback)

    def disconnect(self, callback: Callable[..., None]) -> None:
        self._callbacks.remove(callback)

    def __call__(self, *args) -> None:
        for callback in list(self._callbacks):
            callback(*args)

    def __len__(self) -> int:
        return len(self._callbacks)


class RadioInterface:
    """One endpoint's device on one channel.

    Args:
        endpoint_id: Stable logical identifier of the owning endpoint.
        address: Link-layer address of this device.
        position: Callable returning the current 3D position in meters.
        tx_power_dbm: Transmit power.
        gain_db: Initial antenna gain, applied to both transmit and receive.
        rx_sensitivity_dbm: Frames received below this power are dropped.
        name: Label used in logs.
    """

    def __init__(
        self,
        endpoint_id: int,
        address: LinkAddress,
        position: Callable[[], np.ndarray],
        tx_power_dbm: float = 20.0,
        gain_db: float = 0.0,
        rx_sensitivity_dbm: float = DEFAULT_RX_SENSITIVITY_DBM,
        name: Optional[str] = None,
    ):
        self.endpoint_id = endpoint_id
        self.address = address
        self._position = position
        self.tx_power_dbm = tx_power_dbm
        self.tx_gain_db = gain_db
        self.rx_gain_db = gain_db
        self.rx_sensitivity_dbm = rx_sensitivity_dbm
        self.name = name or f"if-{address}"

        self.trace_tx_begin = TraceSource("PhyTxBegin")
        self.trace_rx_end = TraceSource("PhyRxEnd")
        self.trace_rx_drop = TraceSource("PhyRxDrop")

        self.channel = None  # set by LogDistanceChannel.attach

    @property
    def position(self) -> np.ndarray:
        return self._position()

    def set_gain(self, gain_db: float) -> None:
        """Set transmit and receive antenna gain (dB)."""
        self.tx_gain_db = gain_db
        self.rx_gain_db = gain_db

    def send(self, frame) -> None:
        if self.channel is None:
            raise RuntimeError(f"Interface {self.name} is not attached to a channel")
        self.channel.transmit(self, frame)

    def __repr__(self) -> str:
        return f"RadioInterface(name={self.name!r}, endpoint={self.endpoint_id}, address={self.address})"
