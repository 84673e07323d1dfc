"""
Scenario configuration consumed as plain data by the engine.

Loaded from JSON (all sections optional) and overridable from the CLI:

    {
      "orbit": {"radius_m": 6000, "altitude_m": 20000, "loop_period_s": 100},
      "antenna": {"max_gain_dbi": 20, "beamwidth_exponent": 2},
      "radio": {"frequency_hz": 2.4e9, "tx_power_dbm": 20, "rx_gain_dbi": 0},
      "atmosphere": {"rain_rate_db_km": 3.0, ...},
      "ground_terminals": [{"name": "A", "x": -2500, "y": 0}],
      "tick_period_s": 0.1,
      "duration_s": 100
    }
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple
import json
import math
from pathlib import Path

from .antenna import AntennaDescriptor
from .atmosphere import AtmosphericProfile
from .helpers import validate_float, validate_positive


class ConfigError(ValueError):
    """Invalid or unreadable scenario configuration."""


@dataclass(frozen=True)
class OrbitConfig:
    """Circular loiter of the platform.

    Either ``angular_velocity_rad_s`` or ``loop_period_s`` sets the rate;
    the explicit angular velocity wins when both are given.
    """
    radius_m: float = 6000.0
    altitude_m: float = 20000.0
    loop_period_s: float = 100.0
    angular_velocity_rad_s: Optional[float] = None
    center: Tuple[float, float] = (0.0, 0.0)

    def __post_init__(self):
        validate_float("radius_m", self.radius_m, min_value=0.0)
        validate_positive("altitude_m", self.altitude_m)
        validate_positive("loop_period_s", self.loop_period_s)
        if self.angular_velocity_rad_s is not None:
            validate_float("angular_velocity_rad_s", self.angular_velocity_rad_s)
        if len(self.center) != 2:
            raise ValueError(f"center must be (x, y), got {self.center!r}")

    @property
    def omega_rad_s(self) -> float:
        if self.angular_velocity_rad_s is not None:
            return self.angular_velocity_rad_s
        return 2.0 * math.pi / self.loop_period_s


@dataclass(frozen=True)
class RadioConfig:
    frequency_hz: float = 2.4e9
    tx_power_dbm: float = 20.0
    rx_gain_dbi: float = 0.0

    def __post_init__(self):
        validate_positive("frequency_hz", self.frequency_hz)
        validate_float("tx_power_dbm", self.tx_power_dbm)
        validate_float("rx_gain_dbi", self.rx_gain_dbi)


@dataclass(frozen=True)
class GroundTerminal:
    name: str
    x: float
    y: float
    z: float = 0.0


def _default_terminals() -> Tuple[GroundTerminal, ...]:
    return (GroundTerminal("ground-a", -2500.0, 0.0), GroundTerminal("ground-b", 2500.0, 0.0))


@dataclass(frozen=True)
class ScenarioConfig:
    orbit: OrbitConfig = field(default_factory=OrbitConfig)
    antenna: AntennaDescriptor = field(default_factory=AntennaDescriptor)
    radio: RadioConfig = field(default_factory=RadioConfig)
    atmosphere: AtmosphericProfile = field(default_factory=AtmosphericProfile)
    ground_terminals: Tuple[GroundTerminal, ...] = field(default_factory=_default_terminals)
    tick_period_s: float = 0.1
    duration_s: float = 100.0

    def __post_init__(self):
        validate_positive("tick_period_s", self.tick_period_s)
        validate_positive("duration_s", self.duration_s)
        names = [t.name for t in self.ground_terminals]
        if len(set(names)) != len(names):
            raise ValueError(f"ground terminal names must be unique, got {names}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def config_from_dict(data: Dict[str, Any]) -> ScenarioConfig:
    """Build a validated ``ScenarioConfig`` from nested plain data."""
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a JSON object")
    known = {"orbit", "antenna", "radio", "atmosphere", "ground_terminals", "tick_period_s", "duration_s"}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"unknown configuration keys: {sorted(unknown)}")
    try:
        kwargs: Dict[str, Any] = {}
        if "orbit" in data:
            orbit = dict(data["orbit"])
            if "center" in orbit:
                orbit["center"] = tuple(orbit["center"])
            kwargs["orbit"] = OrbitConfig(**orbit)
        if "antenna" in data:
            antenna = dict(data["antenna"])
            if antenna.get("orientation") is not None:
                antenna["orientation"] = tuple(antenna["orientation"])
            kwargs["antenna"] = AntennaDescriptor(**antenna)
        if "radio" in data:
            kwargs["radio"] = RadioConfig(**data["radio"])
        if "atmosphere" in data:
            kwargs["atmosphere"] = AtmosphericProfile(**data["atmosphere"])
        if "ground_terminals" in data:
            kwargs["ground_terminals"] = tuple(GroundTerminal(**t) for t in data["ground_terminals"])
        for key in ("tick_period_s", "duration_s"):
            if key in data:
                kwargs[key] = data[key]
        return ScenarioConfig(**kwargs)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc


def load_config(path: str) -> ScenarioConfig:
    """Load a scenario configuration from a JSON file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    try:
        with open(config_path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
    return config_from_dict(data)
