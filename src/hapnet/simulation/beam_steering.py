"""
Periodic beam steering for a moving relay platform.

Every tick the controller:

    1. re-aims the platform velocity along its circular trajectory,
    2. derives the pointing direction from the platform position,
    3. for each tracked link, computes the angle between the pointing
       direction and the platform->target vector,
    4. maps that angle through the link's antenna gain model and writes the
       gain into the link's sink (tx and rx gain of the channel device).

All links share the tick's pointing direction; each has its own target.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

import numpy as np

from hapnet.network.antenna import AntennaGainModel
from hapnet.network.geometry import VectorLike, angle_between, as_vector, azimuth_deg
from hapnet.simulation.kinematics import CircularTrajectory, Platform
from hapnet.simulation.scheduler import PeriodicTask, Scheduler

logger = logging.getLogger(__name__)

DEFAULT_TICK_S = 0.1

PointingPolicy = Callable[[np.ndarray, CircularTrajectory], np.ndarray]


class GainSink(Protocol):
    def set_gain(self, gain_db: float) -> None: ...


# ---------------------------------------------------------------------------
# Pointing policies
# ---------------------------------------------------------------------------

def toward_center(position: np.ndarray, trajectory: CircularTrajectory) -> np.ndarray:
    """Boresight at the ground point below the trajectory center."""
    return trajectory.center_point - position


def nadir(position: np.ndarray, trajectory: CircularTrajectory) -> np.ndarray:
    return np.array([0.0, 0.0, -1.0])


def toward_point(point: VectorLike) -> PointingPolicy:
    """Boresight at a fixed point (e.g. one ground terminal)."""
    target = as_vector(point)

    def _policy(position: np.ndarray, trajectory: CircularTrajectory) -> np.ndarray:
        return target - position

    return _policy


# ---------------------------------------------------------------------------
# Tracked links
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GainSample:
    time_s: float
    angle_rad: float
    gain_db: float


@dataclass
class TrackedLink:
    """One platform->endpoint link whose gain is steered every tick."""

    name: str
    sink: GainSink
    target: np.ndarray
    antenna: AntennaGainModel
    last_angle_rad: Optional[float] = None
    last_gain_db: Optional[float] = None
    samples: List[GainSample] = field(default_factory=list)

    def summary(self) -> dict:
        gains = [s.gain_db for s in self.samples]
        if not gains:
            return {"link": self.name, "samples": 0}
        return {
            "link": self.name,
            "samples": len(gains),
            "min_gain_db": float(np.min(gains)),
            "max_gain_db": float(np.max(gains)),
            "mean_gain_db": float(np.mean(gains)),
        }


class BeamSteeringController:
    """
    Self-rescheduling beam-steering loop.

    Args:
        scheduler: Provides ``now`` and ``schedule_at``.
        platform: The moving platform; its velocity is re-aimed every tick.
        pointing: Pointing policy (default: toward the trajectory center).
        interval_s: Tick interval.
        trace: Keep a ``GainSample`` per link per tick.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        platform: Platform,
        pointing: PointingPolicy = toward_center,
        interval_s: float = DEFAULT_TICK_S,
        trace: bool = False,
    ):
        self.scheduler = scheduler
        self.platform = platform
        self.pointing = pointing
        self.trace = trace
        self.links: List[TrackedLink] = []
        self.last_pointing: Optional[np.ndarray] = None
        self._task = PeriodicTask(scheduler, interval_s, self.tick, name=f"beam-steering:{platform.name}")

    @property
    def interval_s(self) -> float:
        return self._task.interval_s

    @property
    def tick_count(self) -> int:
        return self._task.invocations

    @property
    def running(self) -> bool:
        return self._task.active

    @property
    def azimuth_deg(self) -> Optional[float]:
        """Azimuth of the last pointing direction, or None before the first tick."""
        if self.last_pointing is None:
            return None
        return azimuth_deg(self.last_pointing)

    def track(
        self,
        name: str,
        sink: GainSink,
        target: VectorLike,
        antenna: AntennaGainModel,
    ) -> TrackedLink:
        link = TrackedLink(name=name, sink=sink, target=as_vector(target), antenna=antenna)
        self.links.append(link)
        return link

    def start(self) -> None:
        """Run one tick now, then every ``interval_s``."""
        if not self.links:
            logger.warning("Beam steering for %s started with no tracked links", self.platform.name)
        self._task.start(immediately=True)

    def stop(self) -> None:
        self._task.cancel()

    def tick(self) -> None:
        now = self.scheduler.now
        self.platform.update_velocity(now)
        position = self.platform.position_at(now)
        boresight = self.pointing(position, self.platform.trajectory)
        self.last_pointing = boresight

        for link in self.links:
            angle = angle_between(boresight, link.target - position)
            gain = link.antenna.gain_db(angle)
            link.sink.set_gain(gain)
            link.last_angle_rad = angle
            link.last_gain_db = gain
            if self.trace:
                link.samples.append(GainSample(now, angle, gain))

        logger.debug(
            "t=%.2f %s pos=(%.0f, %.0f) azimuth=%.1f deg gains=%s",
            now,
            self.platform.name,
            position[0],
            position[1],
            azimuth_deg(boresight),
            ", ".join(f"{l.name}={l.last_gain_db:.2f}" for l in self.links),
        )
