"""Unit tests for hapnet.network.topology.

Tests validate the two scenario graphs:
- Dual-band relay: 3 nodes, one edge per band with reference loss
- HAP - GEO - HAP: 7 named nodes, feeder edges carrying link budgets
"""

from __future__ import annotations

import math

import pytest

from hapnet.network.link_budget import free_space_path_loss_db
from hapnet.network.topology import (
    HAP_1,
    HAP_2,
    SATELLITE,
    UT_1_1,
    GroundEndpoint,
    SatelliteRelayConfig,
    build_hap_sat_hap_topology,
    build_relay_topology,
    relay_ground_endpoints,
)
from hapnet.simulation.scenario import ScenarioConfig


class TestRelayGroundEndpoints:
    def test_symmetric_about_origin(self) -> None:
        a, b = relay_ground_endpoints(5000.0)
        assert a.position == (-2500.0, 0.0, 0.0)
        assert b.position == (2500.0, 0.0, 0.0)
        assert (a.node_id, b.node_id) == (1, 2)

    def test_endpoint_is_immutable(self) -> None:
        gs = GroundEndpoint("X", 9, (0.0, 0.0, 0.0))
        with pytest.raises(AttributeError):
            gs.position = (1.0, 1.0, 1.0)  # type: ignore[misc]


class TestBuildRelayTopology:
    """Tests for build_relay_topology."""

    def test_nodes_and_edges(self) -> None:
        G = build_relay_topology(ScenarioConfig())
        assert G.number_of_nodes() == 3
        assert G.number_of_edges() == 2
        assert G.nodes[0]["type"] == "platform"
        assert {G.nodes[1]["name"], G.nodes[2]["name"]} == {"GROUND_A", "GROUND_B"}

    def test_band_edges(self) -> None:
        cfg = ScenarioConfig()
        G = build_relay_topology(cfg)
        edge_a = G.edges[0, 1]
        edge_b = G.edges[0, 2]
        assert edge_a["band"] == "A"
        assert edge_a["frequency_hz"] == cfg.frequency_a_hz
        assert edge_b["frequency_hz"] == cfg.frequency_b_hz

    def test_initial_slant_distance(self) -> None:
        """The platform starts at (R, 0, h)."""
        G = build_relay_topology(ScenarioConfig())
        assert G.edges[0, 1]["distance_m"] == pytest.approx(math.hypot(8500.0, 20000.0))
        assert G.edges[0, 2]["distance_m"] == pytest.approx(math.hypot(3500.0, 20000.0))

    def test_reference_loss_per_band(self) -> None:
        """Reference loss = FSPL at 1 m of the band's carrier + 18 dB atmosphere."""
        cfg = ScenarioConfig()
        G = build_relay_topology(cfg)
        for node, freq in ((1, cfg.frequency_a_hz), (2, cfg.frequency_b_hz)):
            edge = G.edges[0, node]
            assert edge["atmospheric_loss_db"] == pytest.approx(18.0)
            assert edge["reference_loss_db"] == pytest.approx(
                free_space_path_loss_db(1.0, freq) + 18.0
            )


class TestBuildHapSatHapTopology:
    """Tests for build_hap_sat_hap_topology."""

    def test_node_names(self) -> None:
        G = build_hap_sat_hap_topology(SatelliteRelayConfig())
        assert G.number_of_nodes() == 7
        assert G.nodes[HAP_1]["name"] == "HAP_1"
        assert G.nodes[UT_1_1]["name"] == "UT_1_1"
        assert G.nodes[SATELLITE]["name"] == "SAT"
        assert G.nodes[SATELLITE]["type"] == "satellite"
        assert G.nodes[HAP_2]["type"] == "platform"

    def test_edges(self) -> None:
        G = build_hap_sat_hap_topology(SatelliteRelayConfig())
        access = [e for e in G.edges(data=True) if e[2]["link_type"] == "access"]
        feeder = [e for e in G.edges(data=True) if e[2]["link_type"] == "feeder"]
        assert len(access) == 4
        assert len(feeder) == 2

    def test_feeder_budget(self) -> None:
        """Downlink budget: 70 dBW EIRP, no atmosphere above a 20 km platform."""
        cfg = SatelliteRelayConfig()
        G = build_hap_sat_hap_topology(cfg)
        e = G.edges[HAP_1, SATELLITE]
        assert e["downlink_hz"] == cfg.hap1_downlink_hz
        assert e["eirp_dbw"] == pytest.approx(70.0)
        assert e["atmospheric_loss_db"] == 0.0
        assert e["fspl_db"] == pytest.approx(
            free_space_path_loss_db(e["distance_m"], cfg.hap1_downlink_hz)
        )
        assert e["received_power_dbw"] == pytest.approx(70.0 - e["fspl_db"] + cfg.platform_antenna_gain_dbi)

    def test_low_platform_sees_atmosphere(self) -> None:
        G = build_hap_sat_hap_topology(SatelliteRelayConfig(altitude_m=15000.0))
        e = G.edges[HAP_2, SATELLITE]
        # rain layer below the platform; 5 km of gas above it
        assert e["rain_loss_db"] == 0.0
        assert e["atmospheric_loss_db"] == pytest.approx(5 * 0.1 + 5 * 0.05)

    def test_invalid_config(self) -> None:
        with pytest.raises(ValueError):
            SatelliteRelayConfig(satellite_distance_m=1000.0)
