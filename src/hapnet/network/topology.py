from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

import networkx as nx
import numpy as np

from hapnet.network.geometry import distance_m
from hapnet.network.link_budget import (
    AtmosphericPath,
    LinkBudgetEngine,
    LinkBudgetParameters,
)

if TYPE_CHECKING:
    from hapnet.simulation.scenario import ScenarioConfig

# Node ids of the two-platform GEO relay scenario.
HAP_1 = 0
UT_1_1 = 1
UT_1_2 = 2
HAP_2 = 3
UT_2_1 = 4
UT_2_2 = 5
SATELLITE = 6

HAP_SAT_NODE_NAMES = {
    HAP_1: "HAP_1",
    UT_1_1: "UT_1_1",
    UT_1_2: "UT_1_2",
    HAP_2: "HAP_2",
    UT_2_1: "UT_2_1",
    UT_2_2: "UT_2_2",
    SATELLITE: "SAT",
}


@dataclass(frozen=True)
class GroundEndpoint:
    """Stationary node (ground terminal or satellite) at a fixed position."""

    name: str
    node_id: int
    position: Tuple[float, float, float]

    @property
    def vector(self) -> np.ndarray:
        return np.array(self.position, dtype=float)


def relay_ground_endpoints(ground_distance_m: float) -> Tuple[GroundEndpoint, GroundEndpoint]:
    """Ground A and B, symmetric about the origin on the x axis."""
    half = ground_distance_m / 2.0
    return (
        GroundEndpoint("GROUND_A", 1, (-half, 0.0, 0.0)),
        GroundEndpoint("GROUND_B", 2, (half, 0.0, 0.0)),
    )


def build_relay_topology(cfg: "ScenarioConfig") -> nx.Graph:
    """
    Build the dual-band relay scenario graph:

    - Node 0: the moving platform, at its start point on the circle.
    - Node 1 / 2: ground endpoints A and B.
    - One edge per band (A on band "A", B on band "B") carrying the carrier
      frequency, the slant distance at t=0 and the channel reference loss
      (free-space loss at 1 m plus ground-to-platform atmospheric loss).
    """
    engine = LinkBudgetEngine()
    G = nx.Graph()

    hap_position = (cfg.orbit_radius_m, 0.0, cfg.altitude_m)
    G.add_node(0, name="HAP", type="platform", position=hap_position)

    ground_a, ground_b = relay_ground_endpoints(cfg.ground_distance_m)
    for gs in (ground_a, ground_b):
        G.add_node(gs.node_id, name=gs.name, type="ground", position=gs.position)

    for band, gs, freq in (
        ("A", ground_a, cfg.frequency_a_hz),
        ("B", ground_b, cfg.frequency_b_hz),
    ):
        d = distance_m(hap_position, gs.position)
        params = LinkBudgetParameters(
            frequency_hz=freq,
            tx_power_dbm=cfg.tx_power_dbm,
            tx_antenna_gain_dbi=cfg.antenna_max_gain_dbi,
            rx_antenna_gain_dbi=cfg.ground_antenna_gain_dbi,
            distance_m=d,
            platform_altitude_m=cfg.altitude_m,
            rain_attenuation_db_per_km=cfg.rain_attenuation_db_per_km,
            oxygen_absorption_db_per_km=cfg.oxygen_absorption_db_per_km,
            water_vapor_absorption_db_per_km=cfg.water_vapor_absorption_db_per_km,
            rain_layer_height_m=cfg.rain_layer_height_m,
            dense_atmosphere_thickness_m=cfg.dense_atmosphere_thickness_m,
            rx_sensitivity_dbm=cfg.rx_sensitivity_dbm,
        )
        budget = engine.compute(params)
        G.add_edge(
            0,
            gs.node_id,
            band=band,
            frequency_hz=freq,
            distance_m=d,
            reference_loss_db=budget.reference_loss_db,
            atmospheric_loss_db=budget.atmospheric_loss_db,
        )

    return G


@dataclass(frozen=True)
class SatelliteRelayConfig:
    """Two platforms bridged by a geostationary relay (Ka band).

    Each platform serves two ground terminals on its own access band; traffic
    runs from UT_1_1 to UT_2_1 through HAP_1, the satellite and HAP_2. With
    ``duration_s`` left at None the run stops 5 s after the last packet is
    sent.
    """

    altitude_m: float = 20000.0
    ground_distance_m: float = 5000.0
    group_distance_m: float = 100000.0
    satellite_distance_m: float = 35786000.0

    satellite_tx_power_dbm: float = 50.0
    satellite_antenna_gain_dbi: float = 50.0
    platform_tx_power_dbm: float = 45.0
    platform_antenna_gain_dbi: float = 45.0

    hap1_uplink_hz: float = 30.0e9
    hap1_downlink_hz: float = 28.0e9
    hap2_uplink_hz: float = 29.0e9
    hap2_downlink_hz: float = 27.0e9

    access_a_hz: float = 2.4e9
    access_b_hz: float = 5.0e9
    access_tx_power_dbm: float = 26.0
    access_antenna_gain_dbi: float = 32.0
    rx_sensitivity_dbm: float = -101.0
    path_loss_exponent: float = 2.0

    rain_attenuation_db_per_km: float = 3.0
    oxygen_absorption_db_per_km: float = 0.1
    water_vapor_absorption_db_per_km: float = 0.05
    rain_layer_height_m: float = 5000.0
    dense_atmosphere_thickness_m: float = 20000.0

    num_packets: int = 1000
    packet_size_bytes: int = 1500
    packet_interval_s: float = 0.265
    traffic_start_s: float = 1.0
    duration_s: Optional[float] = None
    strict_receive: bool = True

    def __post_init__(self) -> None:
        if self.satellite_distance_m <= self.altitude_m:
            raise ValueError("satellite_distance_m must exceed the platform altitude")
        if self.altitude_m < 0:
            raise ValueError(f"altitude_m must be non-negative, got {self.altitude_m}")
        if isinstance(self.num_packets, bool) or not isinstance(self.num_packets, int):
            raise ValueError(f"num_packets must be an int, got {self.num_packets!r}")
        if self.num_packets < 0:
            raise ValueError("num_packets must be non-negative")
        if self.packet_interval_s <= 0:
            raise ValueError("packet_interval_s must be positive")
        if self.duration_s is not None and self.duration_s <= 0:
            raise ValueError("duration_s must be positive")

    @property
    def stop_time_s(self) -> float:
        if self.duration_s is not None:
            return self.duration_s
        return self.traffic_start_s + self.num_packets * self.packet_interval_s + 5.0


def hap_sat_positions(cfg: SatelliteRelayConfig) -> dict:
    h = cfg.altitude_m
    half = cfg.ground_distance_m / 2.0
    group = cfg.group_distance_m
    return {
        HAP_1: (0.0, 0.0, h),
        UT_1_1: (-half, 0.0, 0.0),
        UT_1_2: (half, 0.0, 0.0),
        HAP_2: (group, 6000.0, h),
        UT_2_1: (group - half, 6000.0, 0.0),
        UT_2_2: (group + half, 6000.0, 0.0),
        SATELLITE: (group / 2.0, 3000.0, cfg.satellite_distance_m),
    }


def build_hap_sat_hap_topology(cfg: SatelliteRelayConfig) -> nx.Graph:
    """
    Build the HAP - GEO - HAP graph (7 nodes).

    Ground terminals attach to their platform by "access" edges. Each
    platform-satellite edge carries the downlink budget (satellite -> platform)
    flattened from ``LinkBudget.to_dict()``, computed over the atmosphere
    above the platform only, plus uplink/downlink frequencies.
    """
    engine = LinkBudgetEngine()
    positions = hap_sat_positions(cfg)

    G = nx.Graph()
    for node_id, pos in positions.items():
        name = HAP_SAT_NODE_NAMES[node_id]
        if node_id == SATELLITE:
            node_type = "satellite"
        elif name.startswith("HAP"):
            node_type = "platform"
        else:
            node_type = "ground"
        G.add_node(node_id, name=name, type=node_type, position=pos)

    for hap, terminals in ((HAP_1, (UT_1_1, UT_1_2)), (HAP_2, (UT_2_1, UT_2_2))):
        for ut in terminals:
            G.add_edge(
                hap,
                ut,
                link_type="access",
                distance_m=distance_m(positions[hap], positions[ut]),
            )

    for hap, up_hz, down_hz in (
        (HAP_1, cfg.hap1_uplink_hz, cfg.hap1_downlink_hz),
        (HAP_2, cfg.hap2_uplink_hz, cfg.hap2_downlink_hz),
    ):
        d = distance_m(positions[hap], positions[SATELLITE])
        params = LinkBudgetParameters(
            frequency_hz=down_hz,
            tx_power_dbm=cfg.satellite_tx_power_dbm,
            tx_antenna_gain_dbi=cfg.satellite_antenna_gain_dbi,
            rx_antenna_gain_dbi=cfg.platform_antenna_gain_dbi,
            distance_m=d,
            platform_altitude_m=cfg.altitude_m,
            rain_attenuation_db_per_km=cfg.rain_attenuation_db_per_km,
            oxygen_absorption_db_per_km=cfg.oxygen_absorption_db_per_km,
            water_vapor_absorption_db_per_km=cfg.water_vapor_absorption_db_per_km,
            rain_layer_height_m=cfg.rain_layer_height_m,
            dense_atmosphere_thickness_m=cfg.dense_atmosphere_thickness_m,
            path=AtmosphericPath.PLATFORM_TO_SPACE,
        )
        budget = engine.compute(params)
        G.add_edge(
            hap,
            SATELLITE,
            link_type="feeder",
            uplink_hz=up_hz,
            downlink_hz=down_hz,
            distance_m=d,
            **budget.to_dict(),
        )

    return G
