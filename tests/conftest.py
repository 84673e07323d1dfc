"""Pytest configuration and shared fixtures for hap-link-lab tests."""
import math

import matplotlib
import pytest

matplotlib.use("Agg")

from hap_link_lab.antenna import AntennaDescriptor
from hap_link_lab.atmosphere import AtmosphericProfile
from hap_link_lab.config import ScenarioConfig
from hap_link_lab.geometry import PlatformState, StaticPosition
from hap_link_lab.pointing import GainRecorder, LinkEndpoint, PointingTracker
from hap_link_lab.telemetry import MacAddress, TelemetryContext, TraceDevice


# ============================================================================
# LINK BUDGET FIXTURES
# ============================================================================

@pytest.fixture
def default_profile():
    """Default atmosphere (3 dB/km rain below 5 km, 0.15 dB/km gas below 20 km)."""
    return AtmosphericProfile()


@pytest.fixture
def dry_profile():
    """Atmosphere with no rain."""
    return AtmosphericProfile(rain_rate_db_km=0.0)


@pytest.fixture
def directional_antenna():
    """20 dBi cosine-squared antenna."""
    return AntennaDescriptor(max_gain_dbi=20.0, beamwidth_exponent=2.0)


# ============================================================================
# POINTING FIXTURES
# ============================================================================

@pytest.fixture
def loiter_platform():
    """Platform on a 6 km circle at 20 km altitude, one loop per 100 s."""
    return PlatformState.on_circle(radius_m=6000.0, altitude_m=20000.0,
                                   angular_velocity_rad_s=2.0 * math.pi / 100.0)


@pytest.fixture
def two_terminal_tracker(loiter_platform, directional_antenna):
    """Tracker with recorders on two ground terminals at +/-2.5 km."""
    rec_a, rec_b = GainRecorder(), GainRecorder()
    links = [
        LinkEndpoint("ground-a", StaticPosition(-2500.0, 0.0), directional_antenna, rec_a),
        LinkEndpoint("ground-b", StaticPosition(2500.0, 0.0), directional_antenna, rec_b),
    ]
    tracker = PointingTracker(loiter_platform, links, tick_period_s=0.1)
    return tracker, rec_a, rec_b


# ============================================================================
# SCENARIO FIXTURES
# ============================================================================

@pytest.fixture
def default_scenario():
    """Default loiter scenario (100 s, 0.1 s ticks)."""
    return ScenarioConfig()


@pytest.fixture
def short_scenario():
    """Ten seconds of the default loiter."""
    return ScenarioConfig(duration_s=10.0)


# ============================================================================
# TELEMETRY FIXTURES
# ============================================================================

@pytest.fixture
def addr_a():
    return MacAddress.allocate(1)


@pytest.fixture
def addr_b():
    return MacAddress.allocate(2)


@pytest.fixture
def addr_c():
    return MacAddress.allocate(3)


@pytest.fixture
def ctx(addr_a, addr_b, addr_c):
    """Context with nodes 0, 1, 2 registered under addresses ...:01, ...:02, ...:03."""
    context = TelemetryContext()
    context.register_address(addr_a, 0)
    context.register_address(addr_b, 1)
    context.register_address(addr_c, 2)
    return context


@pytest.fixture
def hap_and_ground(addr_a, addr_b):
    """Two trace devices attached to a fresh context."""
    context = TelemetryContext()
    hap = TraceDevice(node_id=0, address=addr_a, label="hap")
    ground = TraceDevice(node_id=1, address=addr_b, label="ground")
    context.attach(hap)
    context.attach(ground)
    return context, hap, ground
