"""Unit tests for hapnet.network.link_budget.

Reference figures follow the Ka-band HAP - GEO scenario:
- FSPL at 35,786 km and 30 GHz
- Ground-path atmospheric loss with default coefficients (18 dB at 20 km)
- Above-platform loss vanishes for platforms above the dense layer
"""

from __future__ import annotations

import math

import pytest

from hapnet.network.link_budget import (
    AtmosphericPath,
    LinkBudgetEngine,
    LinkBudgetParameters,
    above_platform_atmospheric_loss,
    eirp_dbw,
    free_space_path_loss_db,
    ground_path_atmospheric_loss,
    received_power_dbw,
)


class RecordingSink:
    def __init__(self) -> None:
        self.values = []

    def set_reference_loss(self, loss_db: float) -> None:
        self.values.append(loss_db)


class TestFreeSpacePathLoss:
    """Tests for free_space_path_loss_db."""

    def test_geo_distance_30ghz(self) -> None:
        """FSPL over 35,786 km at 30 GHz matches the hand-computed value."""
        expected = (
            20 * math.log10(3.5786e7)
            + 20 * math.log10(3e10)
            + 20 * math.log10(4 * math.pi / 3e8)
        )
        fspl = free_space_path_loss_db(3.5786e7, 3e10)
        assert fspl == pytest.approx(expected, abs=0.01)
        assert fspl == pytest.approx(213.06, abs=0.01)

    def test_doubling_distance_adds_6db(self) -> None:
        a = free_space_path_loss_db(1000.0, 2.4e9)
        b = free_space_path_loss_db(2000.0, 2.4e9)
        assert b - a == pytest.approx(20 * math.log10(2))

    def test_one_meter_2_4ghz(self) -> None:
        """Nominal loss at 1 m, 2.4 GHz is about 40 dB."""
        assert free_space_path_loss_db(1.0, 2.4e9) == pytest.approx(40.05, abs=0.01)


class TestAtmosphericLoss:
    """Tests for the ground-path and above-platform variants."""

    def test_ground_path_defaults_at_20km(self) -> None:
        """Rain capped at 5 km (15 dB), gas over 20 km (2 + 1 dB)."""
        atm = ground_path_atmospheric_loss(20000.0)
        assert atm.rain_db == pytest.approx(15.0)
        assert atm.oxygen_db == pytest.approx(2.0)
        assert atm.vapor_db == pytest.approx(1.0)
        assert atm.total_db == pytest.approx(18.0)

    def test_ground_path_capped_by_layer_thickness(self) -> None:
        """Above the dense layer the loss stops growing."""
        low = ground_path_atmospheric_loss(20000.0)
        high = ground_path_atmospheric_loss(35000.0)
        assert high.total_db == pytest.approx(low.total_db)

    def test_ground_path_below_rain_layer(self) -> None:
        atm = ground_path_atmospheric_loss(2000.0)
        assert atm.rain_db == pytest.approx(6.0)
        assert atm.oxygen_db == pytest.approx(0.2)
        assert atm.rain_path_km == pytest.approx(2.0)
        assert atm.gas_path_km == pytest.approx(2.0)

    def test_above_platform_zero_above_dense_layer(self) -> None:
        """A platform at or above 20 km sees no atmosphere on its space link."""
        atm = above_platform_atmospheric_loss(20000.0)
        assert atm.total_db == 0.0
        assert above_platform_atmospheric_loss(25000.0).total_db == 0.0

    def test_above_platform_counts_remaining_layers(self) -> None:
        atm = above_platform_atmospheric_loss(4000.0)
        assert atm.rain_db == pytest.approx(3.0)  # 1 km of rain
        assert atm.rain_path_km == pytest.approx(1.0)
        assert atm.gas_path_km == pytest.approx(16.0)
        assert atm.oxygen_db == pytest.approx(1.6)
        assert atm.vapor_db == pytest.approx(0.8)


class TestLinkEquation:
    """Tests for eirp_dbw / received_power_dbw."""

    def test_eirp(self) -> None:
        """50 dBm with a 50 dBi antenna is 70 dBW EIRP."""
        assert eirp_dbw(50.0, 50.0) == pytest.approx(70.0)

    def test_received_power_decomposition(self) -> None:
        """P_rx = EIRP - FSPL - atmospheric + G_rx reproduces its inputs."""
        eirp = eirp_dbw(45.0, 45.0)
        prx = received_power_dbw(eirp, 210.0, 3.0, 50.0)
        assert prx == pytest.approx(60.0 - 210.0 - 3.0 + 50.0)
        assert prx - 50.0 + 3.0 + 210.0 == pytest.approx(eirp)


class TestLinkBudgetParameters:
    def test_non_positive_distance_rejected(self) -> None:
        with pytest.raises(ValueError):
            LinkBudgetParameters(3e10, 50.0, 50.0, 45.0, distance_m=0.0)
        with pytest.raises(ValueError):
            LinkBudgetParameters(3e10, 50.0, 50.0, 45.0, distance_m=-1.0)

    def test_non_positive_frequency_rejected(self) -> None:
        with pytest.raises(ValueError):
            LinkBudgetParameters(0.0, 50.0, 50.0, 45.0, distance_m=1000.0)


class TestLinkBudgetEngine:
    """Tests for LinkBudgetEngine.compute / apply_reference_loss."""

    def _geo_params(self, **overrides) -> LinkBudgetParameters:
        values = dict(
            frequency_hz=28e9,
            tx_power_dbm=50.0,
            tx_antenna_gain_dbi=50.0,
            rx_antenna_gain_dbi=45.0,
            distance_m=35766000.0,
            platform_altitude_m=20000.0,
            path=AtmosphericPath.PLATFORM_TO_SPACE,
        )
        values.update(overrides)
        return LinkBudgetParameters(**values)

    def test_budget_components_are_consistent(self) -> None:
        budget = LinkBudgetEngine().compute(self._geo_params())
        assert budget.eirp_dbw == pytest.approx(70.0)
        assert budget.atmospheric_loss_db == 0.0
        assert budget.received_power_dbw == pytest.approx(
            budget.eirp_dbw - budget.fspl_db - budget.atmospheric_loss_db + 45.0
        )
        assert budget.received_power_dbm == pytest.approx(budget.received_power_dbw + 30.0)
        assert budget.total_path_loss_db == pytest.approx(budget.fspl_db)

    def test_path_selects_atmosphere_model(self) -> None:
        engine = LinkBudgetEngine()
        ground = engine.compute(self._geo_params(path=AtmosphericPath.GROUND_TO_PLATFORM))
        space = engine.compute(self._geo_params())
        assert ground.atmospheric_loss_db == pytest.approx(18.0)
        assert space.received_power_dbw - ground.received_power_dbw == pytest.approx(18.0)

    def test_reference_loss_is_fspl_at_1m_plus_atmosphere(self) -> None:
        params = LinkBudgetParameters(
            frequency_hz=2.4e9,
            tx_power_dbm=20.0,
            tx_antenna_gain_dbi=20.0,
            rx_antenna_gain_dbi=0.0,
            distance_m=20000.0,
        )
        budget = LinkBudgetEngine().compute(params)
        assert budget.reference_loss_db == pytest.approx(
            free_space_path_loss_db(1.0, 2.4e9) + 18.0
        )

    def test_margin_and_viability(self) -> None:
        engine = LinkBudgetEngine()
        no_sens = engine.compute(self._geo_params())
        assert no_sens.margin_db is None
        assert no_sens.link_viable is None

        budget = engine.compute(self._geo_params(rx_sensitivity_dbm=-120.0))
        assert budget.margin_db == pytest.approx(budget.received_power_dbm + 120.0)
        assert budget.link_viable is (budget.margin_db >= 0)

    def test_apply_reference_loss_pushes_to_sink(self) -> None:
        sink = RecordingSink()
        budget = LinkBudgetEngine().apply_reference_loss(self._geo_params(), sink)
        assert sink.values == [budget.reference_loss_db]

    def test_to_dict_is_flat(self) -> None:
        d = LinkBudgetEngine().compute(self._geo_params()).to_dict()
        assert "atmospheric" not in d
        for key in ("fspl_db", "rain_loss_db", "atmospheric_loss_db", "eirp_dbw", "received_power_dbm",
                    "rain_path_km", "gas_path_km"):
            assert key in d

    def test_exact_speed_of_light_option(self) -> None:
        """A different propagation constant shifts FSPL by 20*log10(c1/c2)."""
        rounded = LinkBudgetEngine().compute_fspl_db(1000.0, 1e9)
        exact = LinkBudgetEngine(speed_of_light_m_s=299792458.0).compute_fspl_db(1000.0, 1e9)
        assert rounded - exact == pytest.approx(20 * math.log10(299792458.0 / 3e8))
