"""Dual-band relay scenario configuration.

A single parameterised configuration covers the relay variants: a platform
circling at stratospheric altitude relays traffic from ground terminal A
(band A) to ground terminal B (band B), steering a cosine-pattern antenna
(by default toward the circle center).

Frozen dataclass, validated on construction; ``config_hash()`` identifies a
configuration for result bookkeeping.
"""

from __future__ import annotations

import hashlib
import json
import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping

# Where the platform antenna points: circle center, straight down, or one
# of the two ground terminals.
POINTING_MODES = ("center", "nadir", "ground_a", "ground_b")


@dataclass(frozen=True)
class ScenarioConfig:
    """Configuration for one relay scenario run.

    Attributes:
        altitude_m: Platform altitude.
        orbit_radius_m: Radius of the platform's circle.
        orbital_period_s: Time for one full circle.
        tick_s: Beam-steering / kinematics update interval.
        pointing: Antenna pointing mode, one of ``POINTING_MODES``.
        antenna_max_gain_dbi: Platform antenna boresight gain.
        antenna_beamwidth_deg: Platform antenna half-power beamwidth.
        antenna_floor_gain_db: Gain outside the main lobe.
        ground_antenna_gain_dbi: Gain of the (isotropic) ground antennas.
        tx_power_dbm: Transmit power of every radio.
        frequency_a_hz / frequency_b_hz: Carrier of band A / band B.
        ground_distance_m: Separation of ground A and B (symmetric about 0).
        rain_attenuation_db_per_km, oxygen_absorption_db_per_km,
        water_vapor_absorption_db_per_km: Atmospheric coefficients.
        rain_layer_height_m: Top of the rain layer.
        dense_atmosphere_thickness_m: Absorbing gas layer thickness.
        path_loss_exponent: Exponent of the log-distance channel.
        rx_sensitivity_dbm: Receiver sensitivity of every radio.
        num_packets, packet_size_bytes, packet_interval_s,
        traffic_start_s: Application traffic from A to B.
        duration_s: Simulation stop time.
        strict_receive: Count receives only when addressed to the receiver.
        trace_gains: Keep per-tick gain samples.
    """

    # Platform
    altitude_m: float = 20000.0
    orbit_radius_m: float = 6000.0
    orbital_period_s: float = 100.0
    tick_s: float = 0.1
    pointing: str = "center"

    # Antennas
    antenna_max_gain_dbi: float = 32.0
    antenna_beamwidth_deg: float = 60.0
    antenna_floor_gain_db: float = -20.0
    ground_antenna_gain_dbi: float = 0.0

    # Radio
    tx_power_dbm: float = 26.0
    frequency_a_hz: float = 2.4e9
    frequency_b_hz: float = 5.0e9
    ground_distance_m: float = 5000.0
    path_loss_exponent: float = 2.0
    rx_sensitivity_dbm: float = -101.0

    # Atmosphere
    rain_attenuation_db_per_km: float = 3.0
    oxygen_absorption_db_per_km: float = 0.1
    water_vapor_absorption_db_per_km: float = 0.05
    rain_layer_height_m: float = 5000.0
    dense_atmosphere_thickness_m: float = 20000.0

    # Traffic
    num_packets: int = 10
    packet_size_bytes: int = 1000
    packet_interval_s: float = 0.04
    traffic_start_s: float = 1.0
    duration_s: float = 120.0

    # Diagnostics
    strict_receive: bool = True
    trace_gains: bool = False

    def __post_init__(self) -> None:
        positive = (
            "orbital_period_s",
            "tick_s",
            "frequency_a_hz",
            "frequency_b_hz",
            "antenna_beamwidth_deg",
            "packet_interval_s",
            "duration_s",
        )
        for name in positive:
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.altitude_m < 0:
            raise ValueError(f"altitude_m must be non-negative, got {self.altitude_m}")
        if self.orbit_radius_m < 0:
            raise ValueError(f"orbit_radius_m must be non-negative, got {self.orbit_radius_m}")
        if self.pointing not in POINTING_MODES:
            raise ValueError(
                f"pointing must be one of {', '.join(POINTING_MODES)}, got {self.pointing!r}"
            )
        if self.antenna_beamwidth_deg >= 180:
            raise ValueError("antenna_beamwidth_deg must be below 180")
        for name in ("num_packets", "packet_size_bytes"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an int, got {value!r}")
        if self.num_packets < 0 or self.packet_size_bytes < 0:
            raise ValueError("num_packets and packet_size_bytes must be non-negative")
        if self.traffic_start_s < 0:
            raise ValueError("traffic_start_s must be non-negative")

    def config_hash(self) -> str:
        """Compute a deterministic hash of this configuration.

        Returns:
            A hex string hash suitable for result identification.
        """
        config_json = json.dumps(asdict(self), sort_keys=True)
        return hashlib.sha256(config_json.encode()).hexdigest()[:16]

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScenarioConfig":
        """Build from a mapping (e.g. a parsed JSON file); unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown scenario config keys: {', '.join(unknown)}")
        return cls(**dict(data))

    @property
    def angular_velocity_rad_s(self) -> float:
        return 2 * math.pi / self.orbital_period_s
