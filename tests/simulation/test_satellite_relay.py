"""Integration tests for hapnet.simulation.satellite_relay.

Short runs of UT_1_1 -> HAP_1 -> SAT -> HAP_2 -> UT_2_1.
"""

from __future__ import annotations

import math

import pytest

from hapnet.network.rx_failure import RxDropReason
from hapnet.network.topology import HAP_1, SATELLITE, SatelliteRelayConfig
from hapnet.simulation.satellite_relay import SatelliteRelayEngine, run_satellite_relay


@pytest.fixture
def short_cfg() -> SatelliteRelayConfig:
    return SatelliteRelayConfig(num_packets=5, packet_interval_s=0.5)


def _fspl_at_1m(frequency_hz: float) -> float:
    return 20 * math.log10(frequency_hz) + 20 * math.log10(4 * math.pi / 3e8)


class TestSatelliteRelayEngine:
    """Tests for SatelliteRelayEngine.run."""

    def test_every_hop_delivers(self, short_cfg) -> None:
        result = run_satellite_relay(short_cfg)

        for source, destination in (
            ("UT_1_1", "HAP_1"),
            ("HAP_1", "SAT"),
            ("SAT", "HAP_2"),
            ("HAP_2", "UT_2_1"),
        ):
            row = result.flow(source, destination)
            assert row is not None, (source, destination)
            assert (row.tx_packets, row.rx_packets, row.rx_dropped) == (5, 5, 0)

        (e2e,) = result.end_to_end
        assert (e2e.source, e2e.destination) == ("UT_1_1", "UT_2_1")
        assert e2e.tx_packets == 5
        assert e2e.rx_packets == 5

    def test_flow_rows_follow_the_route(self, short_cfg) -> None:
        result = run_satellite_relay(short_cfg)
        keys = [(r.source_id, r.destination_id) for r in result.flow_rows]
        assert keys == [(0, 6), (1, 0), (3, 4), (6, 3)]

    def test_delay_includes_both_feeder_hops(self, short_cfg) -> None:
        """Up to GEO and back down is roughly 2 x 119 ms."""
        (e2e,) = run_satellite_relay(short_cfg).end_to_end
        assert e2e.mean_delay_ms == pytest.approx(238.5, abs=1.0)

    def test_feeder_reference_loss_is_free_space_only(self, short_cfg) -> None:
        engine = SatelliteRelayEngine(short_cfg)
        assert set(engine.channels) == {
            "access-A", "access-B", "uplink-H1", "downlink-H1", "uplink-H2", "downlink-H2",
        }
        for key, freq in (
            ("uplink-H1", 30e9),
            ("downlink-H1", 28e9),
            ("uplink-H2", 29e9),
            ("downlink-H2", 27e9),
        ):
            assert engine.link_budgets[key].atmospheric_loss_db == pytest.approx(0.0)
            assert engine.channels[key].reference_loss_db == pytest.approx(_fspl_at_1m(freq))

    def test_access_reference_loss_includes_atmosphere(self, short_cfg) -> None:
        engine = SatelliteRelayEngine(short_cfg)
        budget = engine.link_budgets["access-A"]
        assert budget.atmospheric_loss_db > 0.0
        assert engine.channels["access-A"].reference_loss_db == pytest.approx(
            _fspl_at_1m(2.4e9) + budget.atmospheric_loss_db
        )

    def test_weak_satellite_drops_on_the_downlink(self) -> None:
        cfg = SatelliteRelayConfig(num_packets=5, packet_interval_s=0.5, satellite_tx_power_dbm=-20.0)
        result = run_satellite_relay(cfg)

        assert result.flow("HAP_1", "SAT").rx_packets == 5
        downlink = result.flow("SAT", "HAP_2")
        assert (downlink.tx_packets, downlink.rx_packets, downlink.rx_dropped) == (5, 0, 5)
        assert downlink.drop_reasons == {RxDropReason.SIGNAL_TOO_WEAK.label: 5}
        assert result.flow("HAP_2", "UT_2_1") is None

        (e2e,) = result.end_to_end
        assert e2e.rx_packets == 0

    def test_default_stop_time(self) -> None:
        cfg = SatelliteRelayConfig(num_packets=4, packet_interval_s=0.5)
        assert cfg.stop_time_s == pytest.approx(1.0 + 2.0 + 5.0)
        assert SatelliteRelayConfig(duration_s=3.0).stop_time_s == 3.0

    def test_traffic_after_stop_time_not_sent(self) -> None:
        cfg = SatelliteRelayConfig(num_packets=10, packet_interval_s=0.5, duration_s=2.2)
        result = run_satellite_relay(cfg)
        assert result.flow("UT_1_1", "HAP_1").tx_packets == 3

    def test_relay_devices_share_node_ids(self, short_cfg) -> None:
        engine = SatelliteRelayEngine(short_cfg)
        hap_up, sat_rx = engine.uplink[HAP_1]
        assert hap_up.endpoint_id == HAP_1
        assert sat_rx.endpoint_id == SATELLITE
        assert len({iface.address for iface in engine.interfaces}) == len(engine.interfaces)

    def test_run_only_once(self, short_cfg) -> None:
        engine = SatelliteRelayEngine(short_cfg)
        engine.run()
        with pytest.raises(RuntimeError):
            engine.run()

    def test_num_packets_must_be_int(self) -> None:
        with pytest.raises(ValueError):
            SatelliteRelayConfig(num_packets=5.0)
