"""
Pointing tracker for a moving platform with directional antennas.

On each tick the tracker re-derives the circular-motion velocity from the
current position, points the boresight at the tracking target and applies
the resulting directional gain to every configured link's radio front end.
It is a pure state transition: re-arming is the host timer's job.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence
import logging
import math

import numpy as np

from .antenna import AntennaDescriptor
from .geometry import LinkGeometrySample, PlatformState, as_vec3, sample_link_geometry

logger = logging.getLogger(__name__)


class PositionProvider(Protocol):
    def current_position(self) -> np.ndarray: ...


class RadioFrontEnd(Protocol):
    """Anything that accepts per-link transmit/receive gains in dBi."""

    def set_tx_gain_dbi(self, gain_dbi: float) -> None: ...

    def set_rx_gain_dbi(self, gain_dbi: float) -> None: ...


@dataclass
class GainRecorder:
    """In-memory front end that keeps the applied gain history."""
    tx_gain_dbi: Optional[float] = None
    rx_gain_dbi: Optional[float] = None
    history: List[float] = field(default_factory=list)

    def set_tx_gain_dbi(self, gain_dbi: float) -> None:
        self.tx_gain_dbi = gain_dbi
        self.history.append(gain_dbi)

    def set_rx_gain_dbi(self, gain_dbi: float) -> None:
        self.rx_gain_dbi = gain_dbi


@dataclass
class LinkEndpoint:
    """A logical peer of the platform, with the platform-side antenna for that link."""
    name: str
    position: PositionProvider
    antenna: AntennaDescriptor
    front_end: Optional[RadioFrontEnd] = None


@dataclass(frozen=True)
class TickRecord:
    """What a single tick computed; returned by ``PointingTracker.on_tick``."""
    tick: int
    position: np.ndarray
    velocity: np.ndarray
    heading_deg: float
    gains_dbi: Dict[str, float]
    samples: Dict[str, LinkGeometrySample]


class PointingTracker:
    """
    Steers a platform's directional antennas towards a boresight target.

    Parameters
    ----------
    platform : PlatformState
        Owned kinematic state, mutated once per tick.
    links : sequence of LinkEndpoint
        Configured peers (referenced, not owned).
    tick_period_s : float
        Simulated time between ticks. At the end of every tick the platform
        is rotated about the orbit center by omega times this period.
    boresight_target : sequence of float, optional
        Point the view vector aims at. Defaults to the ground point below
        the circle's center (nadir tracking).
    """

    def __init__(
        self,
        platform: PlatformState,
        links: Sequence[LinkEndpoint],
        tick_period_s: float = 0.1,
        boresight_target: Optional[Sequence[float]] = None,
    ) -> None:
        if tick_period_s <= 0:
            raise ValueError(f"tick_period_s must be > 0, got {tick_period_s}")
        names = [link.name for link in links]
        if len(set(names)) != len(names):
            raise ValueError(f"link names must be unique, got {names}")
        self.platform = platform
        self.links = list(links)
        self.tick_period_s = float(tick_period_s)
        if boresight_target is None:
            boresight_target = (platform.center[0], platform.center[1], 0.0)
        self.boresight_target = as_vec3(boresight_target)
        self.ticks = 0
        self.last_samples: Dict[str, LinkGeometrySample] = {}
        self.last_gains: Dict[str, float] = {}

    def view_vector(self) -> np.ndarray:
        return self.boresight_target - self.platform.current_position()

    def _sample(self, link: LinkEndpoint, view: np.ndarray) -> LinkGeometrySample:
        if link.antenna.orientation is not None:
            view = np.asarray(link.antenna.orientation, dtype=float)
        return sample_link_geometry(self.platform.current_position(), link.position.current_position(), view)

    @staticmethod
    def _gain_for(link: LinkEndpoint, sample: LinkGeometrySample) -> float:
        # Degenerate geometry (zero-length view or link vector) gets 0 dBi.
        if sample.angle_off_boresight_rad is None:
            return 0.0
        return link.antenna.gain_dbi(sample.angle_off_boresight_rad)

    def on_tick(self) -> TickRecord:
        """Advance the tracker by one tick."""
        state = self.platform
        pos = state.current_position().copy()
        state.velocity = state.tangential_velocity()

        view = self.view_vector()
        heading_deg = math.degrees(math.atan2(view[1], view[0]))

        gains: Dict[str, float] = {}
        samples: Dict[str, LinkGeometrySample] = {}
        for link in self.links:
            sample = self._sample(link, view)
            gain = self._gain_for(link, sample)
            if link.front_end is not None:
                link.front_end.set_tx_gain_dbi(gain)
                link.front_end.set_rx_gain_dbi(gain)
            gains[link.name] = gain
            samples[link.name] = sample

        logger.debug(
            "tick %d pos=(%.1f, %.1f, %.1f) heading=%.2f deg gains=%s",
            self.ticks, pos[0], pos[1], pos[2], heading_deg, gains,
        )
        record = TickRecord(
            tick=self.ticks,
            position=pos,
            velocity=state.velocity.copy(),
            heading_deg=heading_deg,
            gains_dbi=gains,
            samples=samples,
        )
        self.last_samples = samples
        self.last_gains = gains
        self.ticks += 1
        state.advance_on_circle(self.tick_period_s)
        return record

    advance = on_tick
