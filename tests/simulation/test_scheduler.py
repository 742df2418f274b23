"""Unit tests for hapnet.simulation.scheduler.

Most intervals are powers of two so simulated times stay exact; the
decimal-interval tests check that periodic times do not drift.
"""

from __future__ import annotations

import pytest
import simpy

from hapnet.simulation.scheduler import PeriodicTask, SimpyScheduler


class TestSimpyScheduler:
    """Tests for SimpyScheduler."""

    def test_callback_runs_at_time(self) -> None:
        scheduler = SimpyScheduler()
        seen = []
        scheduler.schedule_at(1.5, lambda: seen.append(scheduler.now))
        scheduler.run()
        assert seen == [1.5]

    def test_equal_times_run_in_scheduling_order(self) -> None:
        """Ties are broken by scheduling order."""
        scheduler = SimpyScheduler()
        order = []
        for i in range(5):
            scheduler.schedule_at(2.0, lambda i=i: order.append(i))
        scheduler.run()
        assert order == [0, 1, 2, 3, 4]

    def test_non_decreasing_time_order(self) -> None:
        scheduler = SimpyScheduler()
        times = []
        for t in (3.0, 1.0, 2.0, 0.5):
            scheduler.schedule_at(t, lambda: times.append(scheduler.now))
        scheduler.run()
        assert times == sorted(times)

    def test_past_time_rejected(self) -> None:
        scheduler = SimpyScheduler()
        scheduler.run(until=5.0)
        with pytest.raises(ValueError):
            scheduler.schedule_at(4.0, lambda: None)

    def test_cancelled_event_does_not_fire(self) -> None:
        scheduler = SimpyScheduler()
        seen = []
        event = scheduler.schedule_at(1.0, lambda: seen.append(1))
        event.cancel()
        scheduler.run()
        assert seen == []
        assert event.cancelled
        assert not event.fired

    def test_nothing_runs_beyond_until(self) -> None:
        scheduler = SimpyScheduler()
        seen = []
        scheduler.schedule_at(1.0, lambda: seen.append(1.0))
        scheduler.schedule_at(10.0, lambda: seen.append(10.0))
        scheduler.run(until=5.0)
        assert seen == [1.0]

    def test_shared_environment(self) -> None:
        env = simpy.Environment()
        scheduler = SimpyScheduler(env)
        scheduler.schedule_in(2.0, lambda: None)
        env.run()
        assert scheduler.now == 2.0


class TestPeriodicTask:
    """Tests for PeriodicTask."""

    def test_tick_count_is_floor_t_over_dt(self) -> None:
        """Started one interval out, the task runs floor(T/dt) times before T."""
        scheduler = SimpyScheduler()
        task = PeriodicTask(scheduler, 0.25, lambda: None)
        task.start()
        scheduler.run(until=2.1)
        assert task.invocations == 8

    def test_decimal_interval_does_not_drift(self) -> None:
        """With dt = 0.1 the task runs exactly 10 times in [0, 1)."""
        scheduler = SimpyScheduler()
        times = []
        task = PeriodicTask(scheduler, 0.1, lambda: times.append(scheduler.now))
        task.start(immediately=True)
        scheduler.run(until=1.0)
        assert task.invocations == 10
        assert times == pytest.approx([k * 0.1 for k in range(10)], abs=1e-9)
        assert times[3] == 0.3
        assert max(times) < 1.0

    def test_long_decimal_run_keeps_tick_count(self) -> None:
        scheduler = SimpyScheduler()
        task = PeriodicTask(scheduler, 0.1, lambda: None)
        task.start(immediately=True)
        scheduler.run(until=100.0)
        assert task.invocations == 1000

    def test_late_start_is_anchored(self) -> None:
        """Ticks are anchored to the start time, not to the previous tick."""
        scheduler = SimpyScheduler()
        times = []
        task = PeriodicTask(scheduler, 0.1, lambda: times.append(scheduler.now))
        scheduler.schedule_at(1.0, lambda: task.start(immediately=True))
        scheduler.run(until=2.0)
        assert len(times) == 10
        assert times[-1] == pytest.approx(1.9)

    def test_immediate_start(self) -> None:
        scheduler = SimpyScheduler()
        times = []
        task = PeriodicTask(scheduler, 0.5, lambda: times.append(scheduler.now))
        task.start(immediately=True)
        scheduler.run(until=1.75)
        assert times == [0.0, 0.5, 1.0, 1.5]

    def test_no_invocation_after_cancel(self) -> None:
        scheduler = SimpyScheduler()
        times = []
        task = PeriodicTask(scheduler, 0.25, lambda: times.append(scheduler.now))
        task.start()
        scheduler.schedule_at(1.1, task.cancel)
        scheduler.run(until=5.0)
        assert times == [0.25, 0.5, 0.75, 1.0]
        assert not task.active

    def test_cancel_from_inside_callback(self) -> None:
        scheduler = SimpyScheduler()
        task = None

        def callback() -> None:
            if task.invocations == 3:
                task.cancel()

        task = PeriodicTask(scheduler, 1.0, callback)
        task.start()
        scheduler.run(until=100.0)
        assert task.invocations == 3

    def test_double_start_rejected(self) -> None:
        task = PeriodicTask(SimpyScheduler(), 1.0, lambda: None)
        task.start()
        with pytest.raises(RuntimeError):
            task.start()

    def test_invalid_interval(self) -> None:
        with pytest.raises(ValueError):
            PeriodicTask(SimpyScheduler(), 0.0, lambda: None)
