"""
Directional antenna gain law (cosine-power approximation).

The main lobe is modelled as G(theta) = G_max + 10*log10(cos(theta)^n),
with a fixed -20 dBi floor once cos(theta) drops below 0.01 (theta beyond
about 89.4 degrees). The floor is returned directly rather than evaluated
through the logarithm so the law has no singularity at cos(theta) -> 0.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
import math

from .helpers import validate_float

GAIN_FLOOR_DBI = -20.0
COS_FLOOR = 0.01


@dataclass(frozen=True)
class AntennaDescriptor:
    """
    Per-link antenna description.

    Attributes
    ----------
    max_gain_dbi : float
        Boresight gain in dBi.
    beamwidth_exponent : float
        Cosine-power exponent n. Larger values give a narrower beam.
    orientation : tuple of float, optional
        Fixed boresight direction (x, y, z). When set, the pointing tracker
        uses it instead of the tracked view vector.
    """
    max_gain_dbi: float = 20.0
    beamwidth_exponent: float = 2.0
    orientation: Optional[Tuple[float, float, float]] = None

    def __post_init__(self):
        validate_float("max_gain_dbi", self.max_gain_dbi)
        validate_float("beamwidth_exponent", self.beamwidth_exponent, min_value=0.0)
        if self.orientation is not None:
            if len(self.orientation) != 3:
                raise ValueError(f"orientation must have 3 components, got {self.orientation!r}")
            if all(c == 0 for c in self.orientation):
                raise ValueError("orientation must be a non-zero vector")

    def gain_dbi(self, angle_rad: float) -> float:
        """Gain at the given angle off boresight."""
        return directional_gain_dbi(angle_rad, self.beamwidth_exponent, self.max_gain_dbi)


def directional_gain_dbi(angle_rad: float, exponent: float, max_gain_dbi: float) -> float:
    """
    Cosine-power directional gain.

    Parameters
    ----------
    angle_rad : float
        Angle off boresight in radians.
    exponent : float
        Beamwidth exponent n.
    max_gain_dbi : float
        Boresight gain in dBi.

    Returns
    -------
    float
        Gain in dBi; exactly ``max_gain_dbi`` at boresight and exactly
        ``GAIN_FLOOR_DBI`` once cos(angle) < 0.01.
    """
    cos_theta = max(math.cos(angle_rad), 0.0)
    if cos_theta < COS_FLOOR:
        return GAIN_FLOOR_DBI
    return max_gain_dbi + 10.0 * exponent * math.log10(cos_theta)
