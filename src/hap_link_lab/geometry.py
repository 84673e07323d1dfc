"""
Platform kinematics and link geometry.

Positions are Cartesian (x, y, z) in meters with z as altitude above a flat
ground plane.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple
import math

import numpy as np

from .helpers import validate_float


def as_vec3(v: Sequence[float]) -> np.ndarray:
    arr = np.asarray(v, dtype=float)
    if arr.shape != (3,):
        raise ValueError(f"expected a 3-vector, got shape {arr.shape}")
    return arr


def angle_between(u: np.ndarray, v: np.ndarray) -> Optional[float]:
    """
    Angle (radians) between two vectors.

    The cosine is clamped to [-1, 1] before ``arccos`` so rounding never
    leaves the domain. Returns ``None`` when either vector has zero length.
    """
    nu = float(np.linalg.norm(u))
    nv = float(np.linalg.norm(v))
    if nu == 0.0 or nv == 0.0:
        return None
    cos_theta = float(np.dot(np.asarray(u) / nu, np.asarray(v) / nv))
    return math.acos(max(-1.0, min(1.0, cos_theta)))


@dataclass
class PlatformState:
    """
    Kinematic state of a platform in uniform circular motion.

    Attributes
    ----------
    position : np.ndarray
        Current position (m).
    velocity : np.ndarray
        Current velocity (m/s). Re-derived from the position each tick.
    orbit_radius_m : float
        Configured circle radius (m).
    angular_velocity_rad_s : float
        Angular velocity (rad/s); positive is counter-clockwise.
    altitude_m : float
        Nominal altitude (m).
    center : tuple of float
        Circle center (x, y) in the horizontal plane.
    """
    position: np.ndarray
    orbit_radius_m: float
    angular_velocity_rad_s: float
    altitude_m: float
    center: Tuple[float, float] = (0.0, 0.0)
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.position = as_vec3(self.position)
        self.velocity = as_vec3(self.velocity)
        validate_float("orbit_radius_m", self.orbit_radius_m, min_value=0.0)
        validate_float("angular_velocity_rad_s", self.angular_velocity_rad_s)
        validate_float("altitude_m", self.altitude_m, min_value=0.0)

    @classmethod
    def on_circle(
        cls,
        radius_m: float,
        altitude_m: float,
        angular_velocity_rad_s: float,
        center: Tuple[float, float] = (0.0, 0.0),
        phase_rad: float = 0.0,
    ) -> "PlatformState":
        """Place a platform on its circle at the given phase angle."""
        cx, cy = center
        pos = (cx + radius_m * math.cos(phase_rad), cy + radius_m * math.sin(phase_rad), altitude_m)
        state = cls(
            position=np.array(pos, dtype=float),
            orbit_radius_m=radius_m,
            angular_velocity_rad_s=angular_velocity_rad_s,
            altitude_m=altitude_m,
            center=center,
        )
        state.velocity = state.tangential_velocity()
        return state

    def current_position(self) -> np.ndarray:
        return self.position

    def tangential_velocity(self) -> np.ndarray:
        """Velocity for circular motion about ``center``: (-w*dy, w*dx, 0)."""
        w = self.angular_velocity_rad_s
        dx = self.position[0] - self.center[0]
        dy = self.position[1] - self.center[1]
        return np.array([-w * dy, w * dx, 0.0])

    def radius_from_center(self) -> float:
        return math.hypot(self.position[0] - self.center[0], self.position[1] - self.center[1])

    def advance_on_circle(self, dt_s: float) -> None:
        """Rotate the position about ``center`` by ``angular_velocity_rad_s * dt_s``.

        The horizontal radius (up to rounding) and the altitude are preserved,
        so repeated ticks stay on the configured circle.
        """
        phi = self.angular_velocity_rad_s * dt_s
        c, s = math.cos(phi), math.sin(phi)
        dx = self.position[0] - self.center[0]
        dy = self.position[1] - self.center[1]
        self.position = np.array(
            [self.center[0] + c * dx - s * dy, self.center[1] + s * dx + c * dy, self.position[2]],
            dtype=float,
        )


@dataclass(frozen=True)
class StaticPosition:
    """Fixed position provider (ground terminals, geostationary relays)."""
    x: float
    y: float
    z: float = 0.0

    def current_position(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)


@dataclass(frozen=True)
class LinkGeometrySample:
    """Distance and angle off boresight, valid only for the tick it was taken."""
    distance_m: float
    angle_off_boresight_rad: Optional[float]

    @property
    def angle_off_boresight_deg(self) -> Optional[float]:
        if self.angle_off_boresight_rad is None:
            return None
        return math.degrees(self.angle_off_boresight_rad)


def sample_link_geometry(
    platform_pos: np.ndarray,
    peer_pos: np.ndarray,
    view_vector: np.ndarray,
) -> LinkGeometrySample:
    """Pure function of the two positions and the platform's view vector."""
    link_vec = peer_pos - platform_pos
    return LinkGeometrySample(
        distance_m=float(np.linalg.norm(link_vec)),
        angle_off_boresight_rad=angle_between(view_vector, link_vec),
    )
