"""
Directional antenna gain model for the relay platform.

Cosine-power approximation of a main lobe:

    G(theta) = G_max + 10 * log10(cos(theta) ** n)

where ``n`` is the beamwidth exponent. Outside the main lobe (cos(theta)
at or below a small threshold) the gain drops to a fixed floor, which
also keeps log10 away from zero.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from hapnet.network.geometry import VectorLike, angle_between

DEFAULT_MAX_GAIN_DBI = 20.0
DEFAULT_BEAMWIDTH_EXPONENT = 2.0
DEFAULT_FLOOR_GAIN_DB = -20.0
DEFAULT_COS_THRESHOLD = 0.01


def beamwidth_exponent_for(half_power_beamwidth_deg: float) -> float:
    """
    Exponent ``n`` such that cos(bw/2) ** n == 0.5.

    Lets the model be configured with a 3 dB beamwidth in degrees, the way
    cosine antenna models are usually parameterised.
    """
    if not 0.0 < half_power_beamwidth_deg < 180.0:
        raise ValueError(
            f"half_power_beamwidth_deg must be in (0, 180), got {half_power_beamwidth_deg}"
        )
    half_angle = math.radians(half_power_beamwidth_deg / 2.0)
    return math.log(0.5) / math.log(math.cos(half_angle))


@dataclass(frozen=True)
class AntennaGainModel:
    """Cosine-power main lobe with a constant floor.

    Attributes:
        max_gain_db: Boresight gain in dBi.
        beamwidth_exponent: Shape parameter ``n`` (larger = narrower beam).
        floor_gain_db: Gain used outside the main lobe.
        cos_threshold: cos(theta) at or below this value yields the floor.
    """

    max_gain_db: float = DEFAULT_MAX_GAIN_DBI
    beamwidth_exponent: float = DEFAULT_BEAMWIDTH_EXPONENT
    floor_gain_db: float = DEFAULT_FLOOR_GAIN_DB
    cos_threshold: float = DEFAULT_COS_THRESHOLD

    def __post_init__(self) -> None:
        if self.beamwidth_exponent <= 0:
            raise ValueError(
                f"beamwidth_exponent must be positive, got {self.beamwidth_exponent}"
            )
        if not 0.0 < self.cos_threshold < 1.0:
            raise ValueError(
                f"cos_threshold must be in (0, 1), got {self.cos_threshold}"
            )
        if self.floor_gain_db > self.max_gain_db:
            raise ValueError(
                f"floor_gain_db ({self.floor_gain_db}) exceeds max_gain_db ({self.max_gain_db})"
            )

    @classmethod
    def from_beamwidth(
        cls,
        max_gain_db: float,
        half_power_beamwidth_deg: float,
        floor_gain_db: float = DEFAULT_FLOOR_GAIN_DB,
    ) -> "AntennaGainModel":
        return cls(
            max_gain_db=max_gain_db,
            beamwidth_exponent=beamwidth_exponent_for(half_power_beamwidth_deg),
            floor_gain_db=floor_gain_db,
        )

    def gain_db(self, angle_rad: float) -> float:
        """
        Gain in dB at an angular offset from boresight.

        Args:
            angle_rad: Offset angle in radians (any sign; angles beyond 90
                degrees contribute no main-lobe gain).

        Returns:
            Gain in dB, never below ``floor_gain_db``.
        """
        cos_angle = max(0.0, math.cos(angle_rad))
        if cos_angle <= self.cos_threshold:
            return self.floor_gain_db

        gain = self.max_gain_db + 10.0 * self.beamwidth_exponent * math.log10(cos_angle)
        return max(self.floor_gain_db, gain)

    def gain_toward(self, boresight: VectorLike, target: VectorLike) -> float:
        """Gain toward ``target`` (a direction vector) given the boresight direction."""
        return self.gain_db(angle_between(boresight, target))

    def pattern(self, angles_rad: np.ndarray) -> np.ndarray:
        """Vectorised gain over an array of angles, for plotting."""
        return np.array([self.gain_db(float(a)) for a in np.ravel(angles_rad)])


@dataclass(frozen=True)
class IsotropicAntenna:
    """Constant-gain antenna, used for ground terminals."""

    gain: float = 0.0

    def gain_db(self, angle_rad: float = 0.0) -> float:
        return self.gain
