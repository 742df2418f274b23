"""
Minimal log-distance radio channel.

Stands in for an external propagation model so that scenarios can run end
to end. Received power:

    P_rx = P_tx + G_tx + G_rx - (L_ref + 10 * n * log10(d / d0))

Frames below the receiver's sensitivity are dropped with
``RxDropReason.SIGNAL_TOO_WEAK``; all others fire the receiver's rx-end
trace after the propagation delay. No fading, no MAC.
"""

from __future__ import annotations

import logging
import math
from typing import List

from hapnet.network.geometry import distance_m
from hapnet.network.interface import RadioInterface
from hapnet.network.link_budget import C_M_S
from hapnet.network.rx_failure import RxDropReason

logger = logging.getLogger(__name__)


class LogDistanceChannel:
    """Shared medium between the interfaces attached to it.

    Args:
        scheduler: Scheduler used to deliver frames after the propagation delay.
        reference_loss_db: Loss at the reference distance (settable).
        exponent: Path loss exponent ``n``.
        reference_distance_m: Reference distance ``d0``.
        name: Label used in logs.
    """

    def __init__(
        self,
        scheduler,
        reference_loss_db: float = 40.0,
        exponent: float = 2.0,
        reference_distance_m: float = 1.0,
        name: str = "channel",
    ):
        if reference_distance_m <= 0:
            raise ValueError("reference_distance_m must be positive")
        self.scheduler = scheduler
        self.reference_loss_db = reference_loss_db
        self.exponent = exponent
        self.reference_distance_m = reference_distance_m
        self.name = name
        self.interfaces: List[RadioInterface] = []

    def set_reference_loss(self, loss_db: float) -> None:
        self.reference_loss_db = loss_db

    def attach(self, interface: RadioInterface) -> None:
        if interface.channel is not None:
            raise ValueError(f"{interface.name} is already attached to {interface.channel.name}")
        interface.channel = self
        self.interfaces.append(interface)

    def path_loss_db(self, distance: float) -> float:
        d = max(distance, self.reference_distance_m)
        return self.reference_loss_db + 10 * self.exponent * math.log10(d / self.reference_distance_m)

    def rx_power_dbm(self, sender: RadioInterface, receiver: RadioInterface) -> float:
        d = distance_m(sender.position, receiver.position)
        return (
            sender.tx_power_dbm
            + sender.tx_gain_db
            + receiver.rx_gain_db
            - self.path_loss_db(d)
        )

    def transmit(self, sender: RadioInterface, frame) -> None:
        """Start transmitting ``frame`` from ``sender`` to every other interface."""
        sender.trace_tx_begin(sender, frame, sender.tx_power_dbm)

        for receiver in self.interfaces:
            if receiver is sender:
                continue
            rx_power = self.rx_power_dbm(sender, receiver)
            delay = distance_m(sender.position, receiver.position) / C_M_S
            self.scheduler.schedule_at(
                self.scheduler.now + delay,
                lambda r=receiver, p=rx_power: self._deliver(r, frame, p),
            )

    def _deliver(self, receiver: RadioInterface, frame, rx_power_dbm: float) -> None:
        if rx_power_dbm < receiver.rx_sensitivity_dbm:
            logger.debug(
                "%s: drop at %s, rx power %.1f dBm < %.1f dBm",
                self.name,
                receiver.name,
                rx_power_dbm,
                receiver.rx_sensitivity_dbm,
            )
            receiver.trace_rx_drop(receiver, frame, RxDropReason.SIGNAL_TOO_WEAK)
            return
        receiver.trace_rx_end(receiver, frame)
