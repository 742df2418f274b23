"""
Discrete-event scheduling on top of simpy.

The beam-steering loop and the channel only need two things from a
simulator: the current simulated time and ``schedule_at(time, callback)``.
``SimpyScheduler`` provides both over a ``simpy.Environment``; callbacks at
equal simulated time run in the order they were scheduled.

``PeriodicTask`` is a self-rescheduling callback that keeps a handle to its
pending invocation so it can be cancelled on teardown.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

import simpy

logger = logging.getLogger(__name__)

# Periodic invocation times are rounded to 1 ns, the resolution of the
# integer-nanosecond clocks these scenarios are usually compared against.
TIME_RESOLUTION_DIGITS = 9


class ScheduledEvent:
    """Handle to one scheduled callback."""

    def __init__(self, time: float, callback: Callable[[], None]):
        self.time = time
        self._callback = callback
        self.cancelled = False
        self.fired = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        """Prevent the callback from running. No-op once fired."""
        if not self.fired:
            self.cancelled = True

    def _fire(self) -> None:
        if self.cancelled:
            return
        self.fired = True
        self._callback()


class Scheduler(Protocol):
    @property
    def now(self) -> float: ...

    def schedule_at(self, time: float, callback: Callable[[], None]) -> ScheduledEvent: ...


class SimpyScheduler:
    """Scheduler backed by a ``simpy.Environment``.

    Args:
        env: Existing environment to share; a new one is created if omitted.
    """

    def __init__(self, env: Optional[simpy.Environment] = None):
        self.env = env if env is not None else simpy.Environment()

    @property
    def now(self) -> float:
        return float(self.env.now)

    def schedule_at(self, time: float, callback: Callable[[], None]) -> ScheduledEvent:
        """Run ``callback`` at simulated ``time`` (must not be in the past)."""
        delay = time - self.env.now
        if delay < 0:
            raise ValueError(
                f"Cannot schedule at t={time}: simulated time is already {self.env.now}"
            )
        event = ScheduledEvent(time, callback)
        self.env.process(self._wait_and_fire(delay, event))
        return event

    def schedule_in(self, delay: float, callback: Callable[[], None]) -> ScheduledEvent:
        return self.schedule_at(self.env.now + delay, callback)

    def _wait_and_fire(self, delay: float, event: ScheduledEvent):
        yield self.env.timeout(delay)
        event._fire()

    def run(self, until: Optional[float] = None) -> None:
        """Advance the simulation; callbacks beyond ``until`` never execute."""
        self.env.run(until=until)


class PeriodicTask:
    """
    Callback re-entered every ``interval_s`` until cancelled.

    Each invocation ends by scheduling the next one, and the handle of the
    pending invocation is kept so ``cancel()`` leaves nothing behind.
    Invocation k runs at ``start + k * interval_s`` (rounded to 1 ns), not at
    the previous time plus the interval, so rounding error does not pile up.

    Args:
        scheduler: Scheduler providing ``now`` and ``schedule_at``.
        interval_s: Period in simulated seconds.
        callback: Function called with no arguments.
        name: Label used in logs.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        interval_s: float,
        callback: Callable[[], None],
        name: str = "periodic",
    ):
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        self.scheduler = scheduler
        self.interval_s = interval_s
        self._callback = callback
        self.name = name
        self.invocations = 0
        self._pending: Optional[ScheduledEvent] = None
        self._cancelled = False
        self._start = 0.0
        self._k = 0

    @property
    def active(self) -> bool:
        return self._pending is not None and self._pending.pending

    def start(self, immediately: bool = False) -> None:
        """Schedule the first invocation (now, or one interval from now)."""
        if self.active:
            raise RuntimeError(f"Periodic task {self.name!r} already started")
        self._cancelled = False
        self._start = self.scheduler.now
        self._k = 0 if immediately else 1
        self._pending = self.scheduler.schedule_at(self._time_of(self._k), self._run)
        logger.debug("Periodic task %s started (every %.3f s)", self.name, self.interval_s)

    def _run(self) -> None:
        self._pending = None
        self.invocations += 1
        self._callback()
        if not self._cancelled:
            self._k += 1
            self._pending = self.scheduler.schedule_at(self._time_of(self._k), self._run)

    def _time_of(self, k: int) -> float:
        t = round(self._start + k * self.interval_s, TIME_RESOLUTION_DIGITS)
        return max(t, self.scheduler.now)

    def cancel(self) -> None:
        self._cancelled = True
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        logger.debug("Periodic task %s cancelled after %d runs", self.name, self.invocations)
