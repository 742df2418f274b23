"""Unit tests for hapnet.simulation.sweep."""

from __future__ import annotations

import pytest

from hapnet.simulation.scenario import ScenarioConfig
from hapnet.simulation.sweep import (
    SweepConfig,
    generate_sweep_dataset,
    samples_to_frame,
    summarize_samples,
)


class TestSweepConfig:
    def test_unknown_parameter_rejected(self) -> None:
        with pytest.raises(ValueError):
            SweepConfig(parameter="hight")

    def test_integer_field_values_become_ints(self) -> None:
        """Values parsed as floats are converted for int fields."""
        cfg = SweepConfig(parameter="num_packets", values=[5.0, 3])
        assert cfg.values == [5, 3]
        assert all(isinstance(v, int) for v in cfg.values)

    def test_fractional_value_for_integer_field_rejected(self) -> None:
        with pytest.raises(ValueError):
            SweepConfig(parameter="packet_size_bytes", values=[512.5])

    def test_non_numeric_parameter_rejected(self) -> None:
        with pytest.raises(ValueError):
            SweepConfig(parameter="strict_receive", values=[0.0])


class TestGenerateSweepDataset:
    """Tests for generate_sweep_dataset."""

    def test_one_sample_per_value(self) -> None:
        cfg = SweepConfig(
            parameter="tx_power_dbm",
            values=(26.0, -40.0),
            base=ScenarioConfig(duration_s=2.0, tick_s=0.5),
        )
        samples = generate_sweep_dataset(cfg)

        assert [s.value for s in samples] == [26.0, -40.0]
        assert samples[0].loss_ratio == 0.0
        assert samples[1].loss_ratio == 100.0
        assert samples[0].config_hash != samples[1].config_hash
        assert samples[0].min_gain_a_db is not None

        stats = summarize_samples(samples)
        assert stats.num_runs == 2
        assert stats.mean_loss_ratio == pytest.approx(50.0)
        assert stats.worst_loss_ratio == 100.0

        df = samples_to_frame(samples)
        assert len(df) == 2
        assert "reference_loss_a_db" in df.columns

    def test_sweep_over_packet_count(self) -> None:
        cfg = SweepConfig(
            parameter="num_packets",
            values=[5.0],
            base=ScenarioConfig(duration_s=2.0, tick_s=0.25),
        )
        (sample,) = generate_sweep_dataset(cfg)
        assert sample.tx_packets == 5
        assert sample.rx_packets == 5
        assert sample.value == 5.0

    def test_altitude_changes_atmosphere(self) -> None:
        cfg = SweepConfig(
            values=(3000.0, 20000.0),
            base=ScenarioConfig(duration_s=0.5, num_packets=0),
        )
        low, high = generate_sweep_dataset(cfg)
        assert low.atmospheric_loss_db < high.atmospheric_loss_db
        assert high.atmospheric_loss_db == pytest.approx(18.0)


def test_summarize_empty() -> None:
    assert summarize_samples([]).num_runs == 0
