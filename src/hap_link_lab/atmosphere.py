"""Altitude-dependent atmospheric attenuation for platform links.

The loss is the sum of two independent layer terms, each a specific
attenuation (dB/km) times the vertical path length spent inside the layer:

- rain: below the rain-cloud ceiling
- gas (oxygen + water vapour): inside the dense lower atmosphere

Two accumulation modes are provided and must be chosen explicitly:

- ``"upward"``: a ground-to-platform path. The layer extent is measured from
  the ground up to ``min(altitude, ceiling)``.
- ``"downward"``: a peer above the platform (satellite-to-platform). The layer
  extent is what remains between the platform altitude and the ceiling,
  ``max(ceiling - altitude, 0)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .helpers import validate_float, validate_positive

PathDirection = Literal["upward", "downward"]


@dataclass(frozen=True)
class AtmosphericProfile:
    """
    Specific attenuations and layer thicknesses.

    Attributes
    ----------
    rain_rate_db_km : float
        Rain attenuation in dB/km.
    oxygen_rate_db_km : float
        Oxygen absorption in dB/km.
    water_vapor_rate_db_km : float
        Water-vapour absorption in dB/km.
    rain_cloud_height_m : float
        Height of the rain-cloud ceiling in meters.
    dense_atmosphere_m : float
        Thickness of the dense lower atmosphere in meters.
    """
    rain_rate_db_km: float = 3.0
    oxygen_rate_db_km: float = 0.1
    water_vapor_rate_db_km: float = 0.05
    rain_cloud_height_m: float = 5000.0
    dense_atmosphere_m: float = 20000.0

    def __post_init__(self):
        validate_float("rain_rate_db_km", self.rain_rate_db_km, min_value=0.0)
        validate_float("oxygen_rate_db_km", self.oxygen_rate_db_km, min_value=0.0)
        validate_float("water_vapor_rate_db_km", self.water_vapor_rate_db_km, min_value=0.0)
        validate_float("rain_cloud_height_m", self.rain_cloud_height_m, min_value=0.0)
        validate_float("dense_atmosphere_m", self.dense_atmosphere_m, min_value=0.0)


@dataclass(frozen=True)
class AtmosphericLoss:
    rain_path_km: float
    gas_path_km: float
    rain_loss_db: float
    oxygen_loss_db: float
    water_vapor_loss_db: float

    @property
    def gas_loss_db(self) -> float:
        return self.oxygen_loss_db + self.water_vapor_loss_db

    @property
    def total_db(self) -> float:
        return self.rain_loss_db + self.gas_loss_db


def layer_path_km(altitude_m: float, ceiling_m: float, direction: PathDirection) -> float:
    """Vertical path length (km) spent inside a layer of the given ceiling.

    Parameters
    ----------
    altitude_m : float
        Platform altitude in meters.
    ceiling_m : float
        Layer top in meters.
    direction : {"upward", "downward"}
        Accumulation mode, see module docstring.
    """
    if direction == "upward":
        return min(altitude_m, ceiling_m) / 1000.0
    if direction == "downward":
        return max(ceiling_m - altitude_m, 0.0) / 1000.0
    raise ValueError(f"Unknown path direction: {direction}")


def select_path_direction(platform_altitude_m: float, peer_altitude_m: float) -> PathDirection:
    """Pick the accumulation mode from which endpoint is closer to the ground.

    A peer below (or level with) the platform is a ground link and
    accumulates upward; a peer above the platform accumulates downward.
    """
    if peer_altitude_m > platform_altitude_m:
        return "downward"
    return "upward"


def compute_atmospheric_loss(
    altitude_m: float,
    profile: AtmosphericProfile,
    direction: PathDirection = "upward",
) -> AtmosphericLoss:
    """Compute rain and gas loss for a platform at ``altitude_m``.

    Raises
    ------
    ValueError
        If altitude is not a finite positive number or the mode is unknown.
    """
    altitude_m = validate_positive("altitude_m", altitude_m)

    rain_km = layer_path_km(altitude_m, profile.rain_cloud_height_m, direction)
    gas_km = layer_path_km(altitude_m, profile.dense_atmosphere_m, direction)
    return AtmosphericLoss(
        rain_path_km=rain_km,
        gas_path_km=gas_km,
        rain_loss_db=profile.rain_rate_db_km * rain_km,
        oxygen_loss_db=profile.oxygen_rate_db_km * gas_km,
        water_vapor_loss_db=profile.water_vapor_rate_db_km * gas_km,
    )


def rain_loss_db(altitude_m: float, profile: AtmosphericProfile, direction: PathDirection = "upward") -> float:
    return compute_atmospheric_loss(altitude_m, profile, direction).rain_loss_db


def gas_loss_db(altitude_m: float, profile: AtmosphericProfile, direction: PathDirection = "upward") -> float:
    return compute_atmospheric_loss(altitude_m, profile, direction).gas_loss_db
