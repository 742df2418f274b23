"""
Link Budget Engine for HAP relay links.

Computes the static, per-configuration quantities that parameterise a long
fixed-geometry radio link (ground <-> stratospheric platform, platform <->
geostationary relay):

    - Free Space Path Loss (FSPL)
    - Atmospheric loss (rain + oxygen + water vapour) along the layer crossed
    - EIRP and received power
    - The "reference loss" handed to a log-distance channel model

The geometry these links model is quasi-static within a run, so the budget
is computed once per configuration, not per tick.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Physical Constants
# ---------------------------------------------------------------------------
SPEED_OF_LIGHT_M_S = 3.0e8  # rounded value used for budget figures
C_M_S = 299792458.0  # exact, for callers that want it

# ---------------------------------------------------------------------------
# Atmospheric defaults
# ---------------------------------------------------------------------------
RAIN_ATTENUATION_DB_PER_KM = 3.0
OXYGEN_ABSORPTION_DB_PER_KM = 0.1
WATER_VAPOR_ABSORPTION_DB_PER_KM = 0.05
RAIN_LAYER_HEIGHT_M = 5000.0
DENSE_ATMOSPHERE_THICKNESS_M = 20000.0

REFERENCE_DISTANCE_M = 1.0


class AtmosphericPath(str, Enum):
    """Which part of the atmosphere a link crosses."""

    # From the ground up to the platform: the whole column below it.
    GROUND_TO_PLATFORM = "ground_to_platform"
    # From the platform up to orbit: only the column above it.
    PLATFORM_TO_SPACE = "platform_to_space"


class ReferenceLossSink(Protocol):
    """Anything with a settable reference loss (a channel model)."""

    def set_reference_loss(self, loss_db: float) -> None: ...


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AtmosphericLoss:
    """Decomposed atmospheric loss in dB."""

    rain_db: float = 0.0
    oxygen_db: float = 0.0
    vapor_db: float = 0.0
    rain_path_km: float = 0.0
    gas_path_km: float = 0.0

    @property
    def total_db(self) -> float:
        return self.rain_db + self.oxygen_db + self.vapor_db


@dataclass(frozen=True)
class LinkBudgetParameters:
    """Static configuration of one radio link.

    Attributes:
        frequency_hz: Carrier frequency.
        tx_power_dbm: Transmitter output power.
        tx_antenna_gain_dbi: Transmit antenna gain.
        rx_antenna_gain_dbi: Receive antenna gain.
        distance_m: Link length.
        platform_altitude_m: Altitude of the stratospheric platform on this link.
        rain_attenuation_db_per_km: Specific rain attenuation.
        oxygen_absorption_db_per_km: Specific oxygen absorption.
        water_vapor_absorption_db_per_km: Specific water vapour absorption.
        rain_layer_height_m: Top of the rain layer.
        dense_atmosphere_thickness_m: Thickness of the absorbing gas layer.
        path: Which part of the atmosphere is crossed.
        rx_sensitivity_dbm: Receiver sensitivity for margin computation (optional).
    """

    frequency_hz: float
    tx_power_dbm: float
    tx_antenna_gain_dbi: float
    rx_antenna_gain_dbi: float
    distance_m: float
    platform_altitude_m: float = 20000.0
    rain_attenuation_db_per_km: float = RAIN_ATTENUATION_DB_PER_KM
    oxygen_absorption_db_per_km: float = OXYGEN_ABSORPTION_DB_PER_KM
    water_vapor_absorption_db_per_km: float = WATER_VAPOR_ABSORPTION_DB_PER_KM
    rain_layer_height_m: float = RAIN_LAYER_HEIGHT_M
    dense_atmosphere_thickness_m: float = DENSE_ATMOSPHERE_THICKNESS_M
    path: AtmosphericPath = AtmosphericPath.GROUND_TO_PLATFORM
    rx_sensitivity_dbm: Optional[float] = None

    def __post_init__(self) -> None:
        if self.distance_m <= 0:
            raise ValueError(f"distance_m must be positive, got {self.distance_m}")
        if self.frequency_hz <= 0:
            raise ValueError(f"frequency_hz must be positive, got {self.frequency_hz}")
        if self.platform_altitude_m < 0:
            raise ValueError(
                f"platform_altitude_m must be non-negative, got {self.platform_altitude_m}"
            )


@dataclass(frozen=True)
class LinkBudget:
    """Result of a link budget computation (all values in dB / dBW)."""

    fspl_db: float
    atmospheric: AtmosphericLoss
    eirp_dbw: float
    rx_antenna_gain_dbi: float
    received_power_dbw: float
    reference_loss_db: float
    margin_db: Optional[float] = None

    @property
    def atmospheric_loss_db(self) -> float:
        return self.atmospheric.total_db

    @property
    def total_path_loss_db(self) -> float:
        return self.fspl_db + self.atmospheric.total_db

    @property
    def received_power_dbm(self) -> float:
        return self.received_power_dbw + 30.0

    @property
    def link_viable(self) -> Optional[bool]:
        if self.margin_db is None:
            return None
        return self.margin_db >= 0

    def to_dict(self) -> dict:
        """Flatten into a dict suitable for graph edge attributes or CSV rows."""
        d = asdict(self)
        atm = d.pop("atmospheric")
        d.update(
            rain_loss_db=atm["rain_db"],
            oxygen_loss_db=atm["oxygen_db"],
            vapor_loss_db=atm["vapor_db"],
            rain_path_km=atm["rain_path_km"],
            gas_path_km=atm["gas_path_km"],
            atmospheric_loss_db=self.atmospheric.total_db,
            received_power_dbm=self.received_power_dbm,
        )
        return d


# ---------------------------------------------------------------------------
# Pure calculations
# ---------------------------------------------------------------------------

def free_space_path_loss_db(
    distance_m: float,
    frequency_hz: float,
    speed_of_light_m_s: float = SPEED_OF_LIGHT_M_S,
) -> float:
    """
    Free Space Path Loss in dB.

    FSPL = 20*log10(d) + 20*log10(f) + 20*log10(4*pi/c)
    """
    return (
        20 * math.log10(distance_m)
        + 20 * math.log10(frequency_hz)
        + 20 * math.log10(4 * math.pi / speed_of_light_m_s)
    )


def ground_path_atmospheric_loss(
    altitude_m: float,
    rain_attenuation_db_per_km: float = RAIN_ATTENUATION_DB_PER_KM,
    oxygen_absorption_db_per_km: float = OXYGEN_ABSORPTION_DB_PER_KM,
    water_vapor_absorption_db_per_km: float = WATER_VAPOR_ABSORPTION_DB_PER_KM,
    rain_layer_height_m: float = RAIN_LAYER_HEIGHT_M,
    dense_atmosphere_thickness_m: float = DENSE_ATMOSPHERE_THICKNESS_M,
) -> AtmosphericLoss:
    """
    Atmospheric loss between the ground and a platform at ``altitude_m``.

    Each term is proportional to the path length through its layer, capped
    at the layer thickness.
    """
    rain_path_km = min(altitude_m, rain_layer_height_m) / 1000.0
    gas_path_km = min(altitude_m, dense_atmosphere_thickness_m) / 1000.0
    return AtmosphericLoss(
        rain_db=rain_attenuation_db_per_km * rain_path_km,
        oxygen_db=oxygen_absorption_db_per_km * gas_path_km,
        vapor_db=water_vapor_absorption_db_per_km * gas_path_km,
        rain_path_km=rain_path_km,
        gas_path_km=gas_path_km,
    )


def above_platform_atmospheric_loss(
    altitude_m: float,
    rain_attenuation_db_per_km: float = RAIN_ATTENUATION_DB_PER_KM,
    oxygen_absorption_db_per_km: float = OXYGEN_ABSORPTION_DB_PER_KM,
    water_vapor_absorption_db_per_km: float = WATER_VAPOR_ABSORPTION_DB_PER_KM,
    rain_layer_height_m: float = RAIN_LAYER_HEIGHT_M,
    dense_atmosphere_thickness_m: float = DENSE_ATMOSPHERE_THICKNESS_M,
) -> AtmosphericLoss:
    """
    Atmospheric loss between a platform at ``altitude_m`` and space.

    Only the part of each layer above the platform counts; a platform above
    the dense atmosphere sees no atmospheric loss on its space link.
    """
    rain_path_km = max(0.0, rain_layer_height_m - altitude_m) / 1000.0
    gas_path_km = max(0.0, dense_atmosphere_thickness_m - altitude_m) / 1000.0
    return AtmosphericLoss(
        rain_db=rain_attenuation_db_per_km * rain_path_km,
        oxygen_db=oxygen_absorption_db_per_km * gas_path_km,
        vapor_db=water_vapor_absorption_db_per_km * gas_path_km,
        rain_path_km=rain_path_km,
        gas_path_km=gas_path_km,
    )


def eirp_dbw(tx_power_dbm: float, tx_antenna_gain_dbi: float) -> float:
    """EIRP (dBW) = P_tx(dBm) - 30 + G_tx(dBi)."""
    return tx_power_dbm - 30.0 + tx_antenna_gain_dbi


def received_power_dbw(
    eirp: float,
    fspl_db: float,
    atmospheric_loss_db: float,
    rx_antenna_gain_dbi: float,
) -> float:
    """P_rx (dBW) = EIRP - FSPL - L_atm + G_rx."""
    return eirp - fspl_db - atmospheric_loss_db + rx_antenna_gain_dbi


# ---------------------------------------------------------------------------
# Link Budget Engine
# ---------------------------------------------------------------------------

class LinkBudgetEngine:
    """
    Link budget calculator for fixed-geometry HAP links.

    Wraps the pure functions above with a configurable propagation speed
    and a reference distance for the channel model's reference loss.
    """

    def __init__(
        self,
        speed_of_light_m_s: float = SPEED_OF_LIGHT_M_S,
        reference_distance_m: float = REFERENCE_DISTANCE_M,
    ):
        if speed_of_light_m_s <= 0:
            raise ValueError("speed_of_light_m_s must be positive")
        if reference_distance_m <= 0:
            raise ValueError("reference_distance_m must be positive")
        self.speed_of_light_m_s = speed_of_light_m_s
        self.reference_distance_m = reference_distance_m

    def compute_fspl_db(self, distance_m: float, frequency_hz: float) -> float:
        return free_space_path_loss_db(distance_m, frequency_hz, self.speed_of_light_m_s)

    def compute_atmospheric_loss(self, params: LinkBudgetParameters) -> AtmosphericLoss:
        if params.path is AtmosphericPath.PLATFORM_TO_SPACE:
            loss_fn = above_platform_atmospheric_loss
        else:
            loss_fn = ground_path_atmospheric_loss
        return loss_fn(
            params.platform_altitude_m,
            rain_attenuation_db_per_km=params.rain_attenuation_db_per_km,
            oxygen_absorption_db_per_km=params.oxygen_absorption_db_per_km,
            water_vapor_absorption_db_per_km=params.water_vapor_absorption_db_per_km,
            rain_layer_height_m=params.rain_layer_height_m,
            dense_atmosphere_thickness_m=params.dense_atmosphere_thickness_m,
        )

    def compute_reference_loss_db(
        self, frequency_hz: float, atmospheric_loss_db: float = 0.0
    ) -> float:
        """
        Reference loss for a log-distance channel model.

        Nominal free-space loss at the reference distance plus the total
        atmospheric loss, so the whole distance-loss curve is shifted.
        """
        return self.compute_fspl_db(self.reference_distance_m, frequency_hz) + atmospheric_loss_db

    def compute(self, params: LinkBudgetParameters) -> LinkBudget:
        """
        Compute the full link budget for ``params``.

        Link equation: P_rx = P_tx - 30 + G_tx - FSPL - L_atm + G_rx (dBW)
        """
        fspl = self.compute_fspl_db(params.distance_m, params.frequency_hz)
        atmospheric = self.compute_atmospheric_loss(params)
        eirp = eirp_dbw(params.tx_power_dbm, params.tx_antenna_gain_dbi)
        rx_power = received_power_dbw(
            eirp, fspl, atmospheric.total_db, params.rx_antenna_gain_dbi
        )

        margin = None
        if params.rx_sensitivity_dbm is not None:
            margin = (rx_power + 30.0) - params.rx_sensitivity_dbm

        return LinkBudget(
            fspl_db=fspl,
            atmospheric=atmospheric,
            eirp_dbw=eirp,
            rx_antenna_gain_dbi=params.rx_antenna_gain_dbi,
            received_power_dbw=rx_power,
            reference_loss_db=self.compute_reference_loss_db(
                params.frequency_hz, atmospheric.total_db
            ),
            margin_db=margin,
        )

    def apply_reference_loss(
        self, params: LinkBudgetParameters, sink: ReferenceLossSink
    ) -> LinkBudget:
        """Compute the budget and push its reference loss into ``sink``."""
        budget = self.compute(params)
        sink.set_reference_loss(budget.reference_loss_db)
        logger.info(
            "Reference loss %.2f dB applied (%.2f GHz, atmospheric %.2f dB)",
            budget.reference_loss_db,
            params.frequency_hz / 1e9,
            budget.atmospheric_loss_db,
        )
        return budget
