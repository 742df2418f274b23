"""
Scenario engine for the HAP - GEO - HAP relay.

Two stationary platforms each serve two ground terminals on their own access
band (A at HAP_1, B at HAP_2). A geostationary satellite bridges them over
four Ka-band feeder channels, one uplink and one downlink per platform:

    UT_1_1 -A-> HAP_1 -uplink H1-> SAT -downlink H2-> HAP_2 -B-> UT_2_1

Every channel is a LogDistanceChannel whose reference loss comes from that
channel's link budget. All devices report to one EndpointRegistry and
LinkAccountant, so the per-link table shows each hop under the node names.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import networkx as nx
import numpy as np

from hapnet.diagnostics import EndpointRegistry, EndToEndFlowMonitor, LinkAccountant
from hapnet.metrics.report import EndToEndFlowStats, FlowReportRow, build_flow_rows
from hapnet.network.channel import LogDistanceChannel
from hapnet.network.frames import AddressAllocator, Frame, FrameHeader
from hapnet.network.interface import RadioInterface
from hapnet.network.link_budget import (
    AtmosphericPath,
    LinkBudget,
    LinkBudgetEngine,
    LinkBudgetParameters,
)
from hapnet.network.topology import (
    HAP_1,
    HAP_2,
    HAP_SAT_NODE_NAMES,
    SATELLITE,
    UT_1_1,
    UT_1_2,
    UT_2_1,
    UT_2_2,
    SatelliteRelayConfig,
    build_hap_sat_hap_topology,
    hap_sat_positions,
)
from hapnet.simulation.scheduler import SimpyScheduler

logger = logging.getLogger(__name__)

APP_FLOW_ID = 1


@dataclass
class SatelliteRelayResult:
    duration_s: float
    flow_rows: List[FlowReportRow]
    end_to_end: List[EndToEndFlowStats]
    link_budgets: Dict[str, LinkBudget]

    def flow(self, source: str, destination: str) -> Optional[FlowReportRow]:
        for row in self.flow_rows:
            if row.source == source and row.destination == destination:
                return row
        return None


class SatelliteRelayEngine:
    """
    One HAP - GEO - HAP run.

    Channels are keyed ``access-A``, ``access-B``, ``uplink-H1``,
    ``downlink-H1``, ``uplink-H2`` and ``downlink-H2``; ``link_budgets`` uses
    the same keys.
    """

    def __init__(self, cfg: Optional[SatelliteRelayConfig] = None):
        self.cfg = cfg or SatelliteRelayConfig()
        cfg = self.cfg

        self.scheduler = SimpyScheduler()
        self.graph: nx.Graph = build_hap_sat_hap_topology(cfg)
        self.names = dict(HAP_SAT_NODE_NAMES)
        self._positions = {n: np.asarray(p, dtype=float) for n, p in hap_sat_positions(cfg).items()}

        self._addresses = AddressAllocator()
        self._budget_engine = LinkBudgetEngine()
        self.interfaces: List[RadioInterface] = []
        self.channels: Dict[str, LogDistanceChannel] = {}
        self.link_budgets: Dict[str, LinkBudget] = {}

        # Access networks: each platform shares one channel with its terminals
        self.access: Dict[int, RadioInterface] = {}
        for band, hap, terminals, freq in (
            ("A", HAP_1, (UT_1_1, UT_1_2), cfg.access_a_hz),
            ("B", HAP_2, (UT_2_1, UT_2_2), cfg.access_b_hz),
        ):
            key = f"access-{band}"
            for node in (hap,) + terminals:
                self.access[node] = self._device(
                    node, key, cfg.access_tx_power_dbm, cfg.access_antenna_gain_dbi,
                    f"{self.names[node]}/{band}",
                )
            self._apply_budget(key, self._params(
                freq,
                cfg.access_tx_power_dbm,
                cfg.access_antenna_gain_dbi,
                cfg.access_antenna_gain_dbi,
                self.graph.edges[hap, terminals[0]]["distance_m"],
                AtmosphericPath.GROUND_TO_PLATFORM,
            ))

        # Feeder links: separate uplink and downlink channel per platform
        self.uplink: Dict[int, tuple] = {}
        self.downlink: Dict[int, tuple] = {}
        for hap, tag, up_hz, down_hz in (
            (HAP_1, "H1", cfg.hap1_uplink_hz, cfg.hap1_downlink_hz),
            (HAP_2, "H2", cfg.hap2_uplink_hz, cfg.hap2_downlink_hz),
        ):
            d = self.graph.edges[hap, SATELLITE]["distance_m"]
            name = self.names[hap]

            up = f"uplink-{tag}"
            self.uplink[hap] = (
                self._device(hap, up, cfg.platform_tx_power_dbm, cfg.platform_antenna_gain_dbi, f"{name}/up"),
                self._device(SATELLITE, up, cfg.satellite_tx_power_dbm, cfg.satellite_antenna_gain_dbi, f"SAT/rx-{tag}"),
            )
            self._apply_budget(up, self._params(
                up_hz,
                cfg.platform_tx_power_dbm,
                cfg.platform_antenna_gain_dbi,
                cfg.satellite_antenna_gain_dbi,
                d,
                AtmosphericPath.PLATFORM_TO_SPACE,
            ))

            down = f"downlink-{tag}"
            self.downlink[hap] = (
                self._device(SATELLITE, down, cfg.satellite_tx_power_dbm, cfg.satellite_antenna_gain_dbi, f"SAT/tx-{tag}"),
                self._device(hap, down, cfg.platform_tx_power_dbm, cfg.platform_antenna_gain_dbi, f"{name}/down"),
            )
            self._apply_budget(down, self._params(
                down_hz,
                cfg.satellite_tx_power_dbm,
                cfg.satellite_antenna_gain_dbi,
                cfg.platform_antenna_gain_dbi,
                d,
                AtmosphericPath.PLATFORM_TO_SPACE,
            ))

        # Diagnostics
        self.registry = EndpointRegistry()
        self.registry.populate(self.interfaces, names=self.names)
        self.accountant = LinkAccountant(self.registry, strict_receive=cfg.strict_receive)
        for iface in self.interfaces:
            self.accountant.attach(iface)
        self.flow_monitor = EndToEndFlowMonitor()
        self.flow_monitor.register_flow(APP_FLOW_ID, self.names[UT_1_1], self.names[UT_2_1])

        # Static route UT_1_1 -> HAP_1 -> SAT -> HAP_2 -> UT_2_1
        hap1_up, sat_rx_h1 = self.uplink[HAP_1]
        sat_tx_h2, hap2_down = self.downlink[HAP_2]
        self._forward(self.access[HAP_1], hap1_up, sat_rx_h1)
        self._forward(sat_rx_h1, sat_tx_h2, hap2_down)
        self._forward(hap2_down, self.access[HAP_2], self.access[UT_2_1])
        self.access[UT_2_1].trace_rx_end.connect(self._app_receive)

        self._ran = False

    # -- construction helpers -------------------------------------------------

    def _device(self, node: int, channel_key: str, tx_power_dbm: float, gain_dbi: float, name: str) -> RadioInterface:
        channel = self.channels.get(channel_key)
        if channel is None:
            channel = LogDistanceChannel(
                self.scheduler, exponent=self.cfg.path_loss_exponent, name=channel_key
            )
            self.channels[channel_key] = channel
        position = self._positions[node]
        iface = RadioInterface(
            node, self._addresses.allocate(), lambda: position,
            tx_power_dbm=tx_power_dbm, gain_db=gain_dbi,
            rx_sensitivity_dbm=self.cfg.rx_sensitivity_dbm, name=name,
        )
        channel.attach(iface)
        self.interfaces.append(iface)
        return iface

    def _params(self, frequency_hz, tx_power_dbm, tx_gain_dbi, rx_gain_dbi, distance, path) -> LinkBudgetParameters:
        cfg = self.cfg
        return LinkBudgetParameters(
            frequency_hz=frequency_hz,
            tx_power_dbm=tx_power_dbm,
            tx_antenna_gain_dbi=tx_gain_dbi,
            rx_antenna_gain_dbi=rx_gain_dbi,
            distance_m=distance,
            platform_altitude_m=cfg.altitude_m,
            rain_attenuation_db_per_km=cfg.rain_attenuation_db_per_km,
            oxygen_absorption_db_per_km=cfg.oxygen_absorption_db_per_km,
            water_vapor_absorption_db_per_km=cfg.water_vapor_absorption_db_per_km,
            rain_layer_height_m=cfg.rain_layer_height_m,
            dense_atmosphere_thickness_m=cfg.dense_atmosphere_thickness_m,
            path=path,
            rx_sensitivity_dbm=cfg.rx_sensitivity_dbm,
        )

    def _apply_budget(self, key: str, params: LinkBudgetParameters) -> None:
        self.link_budgets[key] = self._budget_engine.apply_reference_loss(params, self.channels[key])

    def _forward(self, inbound: RadioInterface, outbound: RadioInterface, next_hop: RadioInterface) -> None:
        """Resend every frame addressed to ``inbound`` from ``outbound`` to ``next_hop``."""

        def relay(interface: RadioInterface, frame: Frame) -> None:
            header = frame.header
            if header is None or header.destination != interface.address:
                return
            outbound.send(Frame(
                FrameHeader(outbound.address, next_hop.address),
                size_bytes=frame.size_bytes,
                packet_id=frame.packet_id,
                flow_id=frame.flow_id,
                created_at=frame.created_at,
            ))

        inbound.trace_rx_end.connect(relay)

    # -- traffic --------------------------------------------------------------

    def _send_packet(self, packet_id: int) -> None:
        source = self.access[UT_1_1]
        frame = Frame(
            FrameHeader(source.address, self.access[HAP_1].address),
            size_bytes=self.cfg.packet_size_bytes,
            packet_id=packet_id,
            flow_id=APP_FLOW_ID,
            created_at=self.scheduler.now,
        )
        self.flow_monitor.record_tx(frame, self.scheduler.now)
        source.send(frame)

    def _app_receive(self, interface: RadioInterface, frame: Frame) -> None:
        header = frame.header
        if header is None or header.destination != interface.address:
            return
        self.flow_monitor.record_rx(frame, self.scheduler.now)

    def _schedule_traffic(self) -> int:
        cfg = self.cfg
        stop = cfg.stop_time_s
        scheduled = 0
        for i in range(cfg.num_packets):
            t = cfg.traffic_start_s + i * cfg.packet_interval_s
            if t >= stop:
                break
            self.scheduler.schedule_at(t, lambda pid=i: self._send_packet(pid))
            scheduled += 1
        return scheduled

    # -- lifecycle ------------------------------------------------------------

    def run(self) -> SatelliteRelayResult:
        if self._ran:
            raise RuntimeError("SatelliteRelayEngine.run() may only be called once")
        self._ran = True
        stop = self.cfg.stop_time_s

        scheduled = self._schedule_traffic()
        logger.info(
            "HAP-SAT-HAP: %d packets of %d bytes from %s to %s, stop at %.3f s",
            scheduled,
            self.cfg.packet_size_bytes,
            self.names[UT_1_1],
            self.names[UT_2_1],
            stop,
        )
        self.scheduler.run(until=stop)

        result = SatelliteRelayResult(
            duration_s=stop,
            flow_rows=build_flow_rows(self.accountant, self.names),
            end_to_end=self.flow_monitor.stats(),
            link_budgets=dict(self.link_budgets),
        )
        logger.info("HAP-SAT-HAP finished: %d flows", len(result.flow_rows))
        return result


def run_satellite_relay(cfg: Optional[SatelliteRelayConfig] = None) -> SatelliteRelayResult:
    """Create a SatelliteRelayEngine for ``cfg`` and run it."""
    return SatelliteRelayEngine(cfg).run()
