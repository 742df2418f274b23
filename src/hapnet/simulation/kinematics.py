"""
Circular kinematics of the relay platform.

The platform flies a horizontal circle of fixed radius at constant altitude
and angular velocity. Between updates it moves at the last velocity set
(constant-velocity mobility); each update re-aims the velocity along the
tangent so the platform keeps circling.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

from hapnet.network.geometry import VectorLike, as_vector


@dataclass(frozen=True)
class CircularTrajectory:
    """Circle flown by the platform.

    Attributes:
        center: (x, y) of the circle center in meters.
        radius_m: Circle radius.
        angular_velocity_rad_s: Positive = counter-clockwise seen from above.
        altitude_m: Flight altitude (z).
    """

    center: Tuple[float, float] = (0.0, 0.0)
    radius_m: float = 6000.0
    angular_velocity_rad_s: float = 2 * math.pi / 100.0
    altitude_m: float = 20000.0

    def __post_init__(self) -> None:
        if self.radius_m < 0:
            raise ValueError(f"radius_m must be non-negative, got {self.radius_m}")

    @classmethod
    def from_period(
        cls,
        radius_m: float,
        period_s: float,
        altitude_m: float,
        center: Tuple[float, float] = (0.0, 0.0),
    ) -> "CircularTrajectory":
        if period_s <= 0:
            raise ValueError(f"period_s must be positive, got {period_s}")
        return cls(
            center=center,
            radius_m=radius_m,
            angular_velocity_rad_s=2 * math.pi / period_s,
            altitude_m=altitude_m,
        )

    @property
    def speed_m_s(self) -> float:
        return abs(self.radius_m * self.angular_velocity_rad_s)

    @property
    def center_point(self) -> np.ndarray:
        """The circle center projected to the ground (z = 0)."""
        return np.array([self.center[0], self.center[1], 0.0])

    def initial_position(self) -> np.ndarray:
        return np.array([self.center[0] + self.radius_m, self.center[1], self.altitude_m])


def tangential_velocity(position: VectorLike, trajectory: CircularTrajectory) -> np.ndarray:
    """
    Velocity that keeps the platform on its circle.

    For a position (x, y) relative to the center, counter-clockwise motion
    gives v = (-w*y, w*x, 0). The radial vector is normalised to the
    configured radius so |v| == radius * w even after the platform has
    drifted slightly off the circle between updates.
    """
    p = as_vector(position)
    rx = p[0] - trajectory.center[0]
    ry = p[1] - trajectory.center[1]
    r = math.hypot(rx, ry)
    w = trajectory.angular_velocity_rad_s

    if r == 0.0:
        # At the center the tangent is undefined; pick the phi = 0 tangent.
        return np.array([0.0, w * trajectory.radius_m, 0.0])

    scale = trajectory.radius_m / r
    return np.array([-w * ry * scale, w * rx * scale, 0.0])


@dataclass
class Platform:
    """Moving relay platform with constant-velocity mobility between updates.

    Position at time t is ``anchor_position + velocity * (t - anchor_time)``.
    """

    name: str
    trajectory: CircularTrajectory
    anchor_position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    anchor_time: float = 0.0

    @classmethod
    def on_trajectory(cls, name: str, trajectory: CircularTrajectory) -> "Platform":
        """Create a platform at the trajectory's start point, already moving."""
        start = trajectory.initial_position()
        return cls(
            name=name,
            trajectory=trajectory,
            anchor_position=start,
            velocity=tangential_velocity(start, trajectory),
        )

    def position_at(self, time_s: float) -> np.ndarray:
        return self.anchor_position + self.velocity * (time_s - self.anchor_time)

    def set_velocity(self, velocity: VectorLike, time_s: float) -> None:
        """Re-anchor at the current position and continue with ``velocity``."""
        self.anchor_position = self.position_at(time_s)
        self.anchor_time = time_s
        self.velocity = as_vector(velocity)

    def update_velocity(self, time_s: float) -> np.ndarray:
        """Apply the tangential velocity for the position at ``time_s``."""
        v = tangential_velocity(self.position_at(time_s), self.trajectory)
        self.set_velocity(v, time_s)
        return v
