"""
Scenario engine for the dual-band relay.

Wires the pieces of one run together:

    - SimpyScheduler (timeline)
    - Platform on its circular trajectory + BeamSteeringController
    - two LogDistanceChannels (band A: ground A <-> platform,
      band B: platform <-> ground B) whose reference loss comes from the
      link budget of each band
    - EndpointRegistry + LinkAccountant on every interface
    - EndToEndFlowMonitor for the application flow A -> B

Ground A sends ``num_packets`` frames to the platform's band-A address; the
platform relays every frame addressed to it onto band B toward ground B.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import networkx as nx

from hapnet.diagnostics import EndpointRegistry, EndToEndFlowMonitor, LinkAccountant
from hapnet.metrics.report import EndToEndFlowStats, FlowReportRow, build_flow_rows
from hapnet.network.antenna import AntennaGainModel, IsotropicAntenna
from hapnet.network.channel import LogDistanceChannel
from hapnet.network.frames import AddressAllocator, Frame, FrameHeader
from hapnet.network.interface import RadioInterface
from hapnet.network.link_budget import LinkBudget, LinkBudgetEngine, LinkBudgetParameters
from hapnet.network.topology import build_relay_topology, relay_ground_endpoints
from hapnet.simulation.beam_steering import (
    BeamSteeringController,
    PointingPolicy,
    nadir,
    toward_center,
    toward_point,
)
from hapnet.simulation.kinematics import CircularTrajectory, Platform
from hapnet.simulation.scenario import ScenarioConfig
from hapnet.simulation.scheduler import SimpyScheduler

logger = logging.getLogger(__name__)

HAP_ID = 0
GROUND_A_ID = 1
GROUND_B_ID = 2
APP_FLOW_ID = 1


@dataclass
class ScenarioResult:
    config_hash: str
    duration_s: float
    tick_count: int
    flow_rows: List[FlowReportRow]
    end_to_end: List[EndToEndFlowStats]
    link_budgets: Dict[str, LinkBudget]
    gain_summary: List[dict] = field(default_factory=list)
    final_azimuth_deg: Optional[float] = None

    def flow(self, source: str, destination: str) -> Optional[FlowReportRow]:
        for row in self.flow_rows:
            if row.source == source and row.destination == destination:
                return row
        return None


class ScenarioEngine:
    """
    One relay scenario run.

    The engine owns every registry and counter it creates, so several
    engines can coexist (e.g. in tests) without sharing state.
    """

    def __init__(self, cfg: Optional[ScenarioConfig] = None):
        self.cfg = cfg or ScenarioConfig()
        cfg = self.cfg

        self.scheduler = SimpyScheduler()
        self.graph: nx.Graph = build_relay_topology(cfg)

        trajectory = CircularTrajectory.from_period(
            radius_m=cfg.orbit_radius_m,
            period_s=cfg.orbital_period_s,
            altitude_m=cfg.altitude_m,
        )
        self.platform = Platform.on_trajectory("HAP", trajectory)
        self.ground_a, self.ground_b = relay_ground_endpoints(cfg.ground_distance_m)
        self.names = {HAP_ID: "HAP", GROUND_A_ID: self.ground_a.name, GROUND_B_ID: self.ground_b.name}

        # Radios
        addresses = AddressAllocator()
        ground_gain = IsotropicAntenna(cfg.ground_antenna_gain_dbi).gain_db()

        def hap_position():
            return self.platform.position_at(self.scheduler.now)

        self.hap_a = RadioInterface(
            HAP_ID, addresses.allocate(), hap_position,
            tx_power_dbm=cfg.tx_power_dbm, rx_sensitivity_dbm=cfg.rx_sensitivity_dbm, name="HAP/A",
        )
        self.hap_b = RadioInterface(
            HAP_ID, addresses.allocate(), hap_position,
            tx_power_dbm=cfg.tx_power_dbm, rx_sensitivity_dbm=cfg.rx_sensitivity_dbm, name="HAP/B",
        )
        self.ground_a_if = RadioInterface(
            GROUND_A_ID, addresses.allocate(), lambda: self.ground_a.vector,
            tx_power_dbm=cfg.tx_power_dbm, gain_db=ground_gain,
            rx_sensitivity_dbm=cfg.rx_sensitivity_dbm, name="GROUND_A",
        )
        self.ground_b_if = RadioInterface(
            GROUND_B_ID, addresses.allocate(), lambda: self.ground_b.vector,
            tx_power_dbm=cfg.tx_power_dbm, gain_db=ground_gain,
            rx_sensitivity_dbm=cfg.rx_sensitivity_dbm, name="GROUND_B",
        )
        self.interfaces = [self.hap_a, self.hap_b, self.ground_a_if, self.ground_b_if]

        # Channels, with reference loss from each band's link budget
        self.channel_a = LogDistanceChannel(self.scheduler, exponent=cfg.path_loss_exponent, name="band-A")
        self.channel_b = LogDistanceChannel(self.scheduler, exponent=cfg.path_loss_exponent, name="band-B")
        self.channel_a.attach(self.hap_a)
        self.channel_a.attach(self.ground_a_if)
        self.channel_b.attach(self.hap_b)
        self.channel_b.attach(self.ground_b_if)

        budget_engine = LinkBudgetEngine()
        self.link_budgets: Dict[str, LinkBudget] = {}
        for band, channel, gs_id, freq in (
            ("A", self.channel_a, GROUND_A_ID, cfg.frequency_a_hz),
            ("B", self.channel_b, GROUND_B_ID, cfg.frequency_b_hz),
        ):
            params = LinkBudgetParameters(
                frequency_hz=freq,
                tx_power_dbm=cfg.tx_power_dbm,
                tx_antenna_gain_dbi=cfg.antenna_max_gain_dbi,
                rx_antenna_gain_dbi=ground_gain,
                distance_m=self.graph.edges[HAP_ID, gs_id]["distance_m"],
                platform_altitude_m=cfg.altitude_m,
                rain_attenuation_db_per_km=cfg.rain_attenuation_db_per_km,
                oxygen_absorption_db_per_km=cfg.oxygen_absorption_db_per_km,
                water_vapor_absorption_db_per_km=cfg.water_vapor_absorption_db_per_km,
                rain_layer_height_m=cfg.rain_layer_height_m,
                dense_atmosphere_thickness_m=cfg.dense_atmosphere_thickness_m,
                rx_sensitivity_dbm=cfg.rx_sensitivity_dbm,
            )
            self.link_budgets[band] = budget_engine.apply_reference_loss(params, channel)

        # Diagnostics
        self.registry = EndpointRegistry()
        self.registry.populate(self.interfaces, names=self.names)
        self.accountant = LinkAccountant(self.registry, strict_receive=cfg.strict_receive)
        for iface in self.interfaces:
            self.accountant.attach(iface)
        self.flow_monitor = EndToEndFlowMonitor()
        self.flow_monitor.register_flow(APP_FLOW_ID, self.ground_a.name, self.ground_b.name)

        # Beam steering: one pointing direction, one target per band
        self.antenna = AntennaGainModel.from_beamwidth(
            cfg.antenna_max_gain_dbi, cfg.antenna_beamwidth_deg, cfg.antenna_floor_gain_db
        )
        self.controller = BeamSteeringController(
            self.scheduler,
            self.platform,
            pointing=self._pointing_policy(),
            interval_s=cfg.tick_s,
            trace=cfg.trace_gains,
        )
        self.controller.track("A", self.hap_a, self.ground_a.position, self.antenna)
        self.controller.track("B", self.hap_b, self.ground_b.position, self.antenna)

        # Forwarding and application sink
        self.hap_a.trace_rx_end.connect(self._relay)
        self.ground_b_if.trace_rx_end.connect(self._app_receive)

        self._ran = False
        self._closed = False

    def _pointing_policy(self) -> PointingPolicy:
        mode = self.cfg.pointing
        if mode == "nadir":
            return nadir
        if mode == "ground_a":
            return toward_point(self.ground_a.position)
        if mode == "ground_b":
            return toward_point(self.ground_b.position)
        return toward_center

    # -- traffic --------------------------------------------------------------

    def _send_packet(self, packet_id: int) -> None:
        frame = Frame(
            FrameHeader(self.ground_a_if.address, self.hap_a.address),
            size_bytes=self.cfg.packet_size_bytes,
            packet_id=packet_id,
            flow_id=APP_FLOW_ID,
            created_at=self.scheduler.now,
        )
        self.flow_monitor.record_tx(frame, self.scheduler.now)
        self.ground_a_if.send(frame)

    def _relay(self, interface: RadioInterface, frame: Frame) -> None:
        header = frame.header
        if header is None or header.destination != interface.address:
            return
        relayed = Frame(
            FrameHeader(self.hap_b.address, self.ground_b_if.address),
            size_bytes=frame.size_bytes,
            packet_id=frame.packet_id,
            flow_id=frame.flow_id,
            created_at=frame.created_at,
        )
        self.hap_b.send(relayed)

    def _app_receive(self, interface: RadioInterface, frame: Frame) -> None:
        header = frame.header
        if header is None or header.destination != interface.address:
            return
        self.flow_monitor.record_rx(frame, self.scheduler.now)

    def _schedule_traffic(self) -> int:
        cfg = self.cfg
        scheduled = 0
        for i in range(cfg.num_packets):
            t = cfg.traffic_start_s + i * cfg.packet_interval_s
            if t >= cfg.duration_s:
                break
            self.scheduler.schedule_at(t, lambda pid=i: self._send_packet(pid))
            scheduled += 1
        return scheduled

    # -- lifecycle ------------------------------------------------------------

    def run(self) -> ScenarioResult:
        if self._ran:
            raise RuntimeError("ScenarioEngine.run() may only be called once")
        self._ran = True
        cfg = self.cfg

        logger.info(
            "Scenario %s: altitude %.0f m, radius %.0f m, period %.0f s, tick %.3f s",
            cfg.config_hash(),
            cfg.altitude_m,
            cfg.orbit_radius_m,
            cfg.orbital_period_s,
            cfg.tick_s,
        )
        self.controller.start()
        scheduled = self._schedule_traffic()
        logger.info("Scheduled %d packets from %s to %s", scheduled, self.ground_a.name, self.ground_b.name)

        try:
            self.scheduler.run(until=cfg.duration_s)
        finally:
            self.close()

        result = ScenarioResult(
            config_hash=cfg.config_hash(),
            duration_s=cfg.duration_s,
            tick_count=self.controller.tick_count,
            flow_rows=build_flow_rows(self.accountant, self.names),
            end_to_end=self.flow_monitor.stats(),
            link_budgets=dict(self.link_budgets),
            gain_summary=[link.summary() for link in self.controller.links],
            final_azimuth_deg=self.controller.azimuth_deg,
        )
        logger.info(
            "Scenario %s finished: %d ticks, %d flows",
            result.config_hash,
            result.tick_count,
            len(result.flow_rows),
        )
        return result

    def close(self) -> None:
        """Cancel the beam-steering loop; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.controller.stop()


def run_scenario(cfg: Optional[ScenarioConfig] = None) -> ScenarioResult:
    """Create a ScenarioEngine for ``cfg`` and run it."""
    return ScenarioEngine(cfg).run()
