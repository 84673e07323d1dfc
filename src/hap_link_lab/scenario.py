"""
Scenario wiring: a loitering platform tracking ground terminals.

Builds the platform state, links and pointing tracker from a
``ScenarioConfig``, drives the tracker from a repeating timer on a simulated
scheduler and evaluates the link budget for every link at every tick.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import math

import numpy as np

from .atmosphere import select_path_direction
from .config import ScenarioConfig
from .geometry import PlatformState, StaticPosition
from .helpers import validate_int
from .link_budget import LinkBudgetResult, compute_link_budget
from .pointing import GainRecorder, LinkEndpoint, PointingTracker, TickRecord
from .timer import RepeatingTimer, SimScheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackRun:
    time_s: np.ndarray
    radius_m: np.ndarray
    heading_deg: np.ndarray
    gains_dbi: Dict[str, np.ndarray]
    distance_m: Dict[str, np.ndarray]
    received_power_dbm: Dict[str, np.ndarray]

    @property
    def n_ticks(self) -> int:
        return int(self.time_s.size)

    def summary(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "ticks": self.n_ticks,
            "radius_min_m": float(np.min(self.radius_m)) if self.n_ticks else None,
            "radius_max_m": float(np.max(self.radius_m)) if self.n_ticks else None,
            "links": {},
        }
        for name, gains in self.gains_dbi.items():
            prx = self.received_power_dbm[name]
            out["links"][name] = {
                "gain_min_dbi": float(np.min(gains)),
                "gain_max_dbi": float(np.max(gains)),
                "gain_mean_dbi": float(np.mean(gains)),
                "prx_min_dbm": _finite_min(prx),
                "prx_max_dbm": _finite_max(prx),
            }
        return out


def _finite_min(values: np.ndarray) -> Optional[float]:
    finite = values[np.isfinite(values)]
    return float(np.min(finite)) if finite.size else None


def _finite_max(values: np.ndarray) -> Optional[float]:
    finite = values[np.isfinite(values)]
    return float(np.max(finite)) if finite.size else None


def tick_count(duration_s: float, tick_period_s: float) -> int:
    """Number of ticks at t = 0, T, 2T, ... strictly before ``duration_s``."""
    return validate_int("ticks", max(1, math.ceil(duration_s / tick_period_s - 1e-9)), min_value=1)


def build_platform(cfg: ScenarioConfig) -> PlatformState:
    orbit = cfg.orbit
    return PlatformState.on_circle(
        radius_m=orbit.radius_m,
        altitude_m=orbit.altitude_m,
        angular_velocity_rad_s=orbit.omega_rad_s,
        center=orbit.center,
    )


def build_tracker(cfg: ScenarioConfig) -> Tuple[PointingTracker, Dict[str, GainRecorder]]:
    """Tracker with one directional link (and recorder front end) per ground terminal."""
    recorders: Dict[str, GainRecorder] = {}
    links: List[LinkEndpoint] = []
    for terminal in cfg.ground_terminals:
        recorder = GainRecorder()
        recorders[terminal.name] = recorder
        links.append(
            LinkEndpoint(
                name=terminal.name,
                position=StaticPosition(terminal.x, terminal.y, terminal.z),
                antenna=cfg.antenna,
                front_end=recorder,
            )
        )
    tracker = PointingTracker(build_platform(cfg), links, tick_period_s=cfg.tick_period_s)
    return tracker, recorders


def link_budget_for_tick(
    cfg: ScenarioConfig, record: TickRecord, link: LinkEndpoint
) -> Optional[LinkBudgetResult]:
    """Platform-to-terminal budget using the gain the tracker just applied.

    Returns ``None`` when the peer coincides with the platform (no path).
    """
    distance_m = record.samples[link.name].distance_m
    if distance_m <= 0.0:
        logger.debug("tick %d: %s co-located with platform, no budget", record.tick, link.name)
        return None
    peer_z = float(link.position.current_position()[2])
    direction = select_path_direction(cfg.orbit.altitude_m, peer_z)
    return compute_link_budget(
        distance_m=distance_m,
        frequency_hz=cfg.radio.frequency_hz,
        tx_power_dbm=cfg.radio.tx_power_dbm,
        tx_gain_dbi=record.gains_dbi[link.name],
        rx_gain_dbi=cfg.radio.rx_gain_dbi,
        altitude_m=cfg.orbit.altitude_m,
        profile=cfg.atmosphere,
        direction=direction,
    )


def run_tracking(cfg: ScenarioConfig, duration_s: Optional[float] = None) -> TrackRun:
    """
    Drive the tracker for ``duration_s`` of simulated time.

    Ticks fire at t = 0, T, 2T, ... strictly before ``duration_s`` (see
    ``tick_count``). A link whose peer coincides with the platform gets NaN
    received power for that tick.
    """
    duration_s = cfg.duration_s if duration_s is None else duration_s
    tracker, _ = build_tracker(cfg)
    scheduler = SimScheduler()
    records: List[Tuple[float, TickRecord]] = []
    budgets: Dict[str, List[Optional[LinkBudgetResult]]] = {link.name: [] for link in tracker.links}

    n_ticks = tick_count(duration_s, cfg.tick_period_s)

    def tick() -> None:
        record = tracker.on_tick()
        records.append((scheduler.now_s, record))
        for link in tracker.links:
            budgets[link.name].append(link_budget_for_tick(cfg, record, link))
        if len(records) >= n_ticks:
            timer.cancel()

    timer = RepeatingTimer(scheduler, cfg.tick_period_s, tick)
    timer.start()
    scheduler.run()
    scheduler.stop()
    logger.info("tracking run finished: %d ticks over %.1f s", len(records), duration_s)

    center = np.asarray(cfg.orbit.center, dtype=float)
    names = [link.name for link in tracker.links]
    return TrackRun(
        time_s=np.array([t for t, _ in records], dtype=float),
        radius_m=np.array([float(np.hypot(*(r.position[:2] - center))) for _, r in records], dtype=float),
        heading_deg=np.array([r.heading_deg for _, r in records], dtype=float),
        gains_dbi={n: np.array([r.gains_dbi[n] for _, r in records], dtype=float) for n in names},
        distance_m={n: np.array([r.samples[n].distance_m for _, r in records], dtype=float) for n in names},
        received_power_dbm={
            n: np.array(
                [b.received_power_dbm if b is not None else np.nan for b in budgets[n]], dtype=float
            )
            for n in names
        },
    )


def altitude_sweep(
    cfg: ScenarioConfig,
    altitudes_m: Sequence[float],
    direction: str = "upward",
) -> Dict[str, np.ndarray]:
    """Nadir link budget (boresight gain, distance = altitude) across altitudes."""
    alt = np.asarray(altitudes_m, dtype=float)
    atm = np.zeros(alt.size)
    prx = np.zeros(alt.size)
    for i, h in enumerate(alt):
        result = compute_link_budget(
            distance_m=float(h),
            frequency_hz=cfg.radio.frequency_hz,
            tx_power_dbm=cfg.radio.tx_power_dbm,
            tx_gain_dbi=cfg.antenna.max_gain_dbi,
            rx_gain_dbi=cfg.radio.rx_gain_dbi,
            altitude_m=float(h),
            profile=cfg.atmosphere,
            direction=direction,
        )
        atm[i] = result.atmospheric_loss_db
        prx[i] = result.received_power_dbm
    return {"altitude_m": alt, "atmospheric_loss_db": atm, "received_power_dbm": prx}
