"""Property-based tests using hypothesis for automated edge case discovery.

These check that the gain law, path loss, atmospheric model and telemetry
counters keep their invariants across wide parameter ranges.
"""
import math

import numpy as np
from hypothesis import given, settings, strategies as st

from hap_link_lab.antenna import GAIN_FLOOR_DBI, directional_gain_dbi
from hap_link_lab.atmosphere import AtmosphericProfile, compute_atmospheric_loss
from hap_link_lab.geometry import PlatformState, angle_between
from hap_link_lab.link_budget import compute_link_budget, fspl_db
from hap_link_lab.telemetry import MacAddress, TelemetryContext


# ============================================================================
# STRATEGY DEFINITIONS
# ============================================================================

@st.composite
def atmospheric_profile_strategy(draw):
    """Strategy for generating valid AtmosphericProfile."""
    return AtmosphericProfile(
        rain_rate_db_km=draw(st.floats(min_value=0.0, max_value=20.0)),
        oxygen_rate_db_km=draw(st.floats(min_value=0.0, max_value=1.0)),
        water_vapor_rate_db_km=draw(st.floats(min_value=0.0, max_value=1.0)),
        rain_cloud_height_m=draw(st.floats(min_value=0.0, max_value=10000.0)),
        dense_atmosphere_m=draw(st.floats(min_value=0.0, max_value=40000.0)),
    )


vectors = st.lists(st.floats(min_value=-1e6, max_value=1e6), min_size=3, max_size=3)


@st.composite
def telemetry_events_strategy(draw):
    """Random (kind, node, peer index) events over three registered nodes and one stranger."""
    kinds = st.sampled_from(["tx", "rx", "drop"])
    return draw(st.lists(
        st.tuples(kinds, st.integers(0, 2), st.integers(1, 4)),
        min_size=0, max_size=60,
    ))


# ============================================================================
# ANTENNA / LINK BUDGET PROPERTIES
# ============================================================================

@given(
    angle=st.floats(min_value=0.0, max_value=math.pi),
    exponent=st.floats(min_value=0.0, max_value=20.0),
    max_gain=st.floats(min_value=-10.0, max_value=60.0),
)
def test_gain_bounded(angle, exponent, max_gain):
    """Gain never exceeds boresight and is either the floor or on the log law."""
    gain = directional_gain_dbi(angle, exponent, max_gain)
    assert gain <= max_gain
    if math.cos(angle) < 0.01:
        assert gain == GAIN_FLOOR_DBI


@given(
    d=st.floats(min_value=1.0, max_value=1e9),
    f=st.floats(min_value=1e6, max_value=1e12),
)
def test_fspl_monotone_in_distance(d, f):
    assert fspl_db(2.0 * d, f) > fspl_db(d, f)


@given(
    d=st.floats(min_value=1.0, max_value=1e8),
    p=st.floats(min_value=-30.0, max_value=60.0),
    g_tx=st.floats(min_value=-20.0, max_value=60.0),
    g_rx=st.floats(min_value=-20.0, max_value=60.0),
    alt=st.floats(min_value=1.0, max_value=50000.0),
    profile=atmospheric_profile_strategy(),
)
def test_budget_identity(d, p, g_tx, g_rx, alt, profile):
    """P_rx = EIRP - (FSPL + L_atm) + G_rx with non-negative atmospheric loss."""
    r = compute_link_budget(d, 2.4e9, p, g_tx, g_rx, altitude_m=alt, profile=profile)
    assert r.atmospheric_loss_db >= 0.0
    expected = (p - 30.0 + g_tx) - (r.fspl_db + r.atmospheric_loss_db) + g_rx
    assert math.isclose(r.received_power_dbw, expected, rel_tol=1e-12, abs_tol=1e-9)


@given(
    h1=st.floats(min_value=1.0, max_value=50000.0),
    h2=st.floats(min_value=1.0, max_value=50000.0),
    profile=atmospheric_profile_strategy(),
)
def test_atmosphere_monotone(h1, h2, profile):
    """Upward loss never decreases with altitude; downward loss never increases."""
    lo, hi = min(h1, h2), max(h1, h2)
    up_lo = compute_atmospheric_loss(lo, profile, "upward").total_db
    up_hi = compute_atmospheric_loss(hi, profile, "upward").total_db
    down_lo = compute_atmospheric_loss(lo, profile, "downward").total_db
    down_hi = compute_atmospheric_loss(hi, profile, "downward").total_db
    assert up_hi >= up_lo - 1e-9
    assert down_hi <= down_lo + 1e-9


# ============================================================================
# GEOMETRY PROPERTIES
# ============================================================================

@given(u=vectors, v=vectors)
def test_angle_in_range_or_none(u, v):
    angle = angle_between(np.array(u), np.array(v))
    if angle is not None:
        assert 0.0 <= angle <= math.pi


@settings(max_examples=25)
@given(
    radius=st.floats(min_value=10.0, max_value=1e5),
    omega=st.floats(min_value=-0.5, max_value=0.5),
    phase=st.floats(min_value=0.0, max_value=2 * math.pi),
)
def test_tangential_velocity_is_perpendicular(radius, omega, phase):
    state = PlatformState.on_circle(radius, 20000.0, omega, phase_rad=phase)
    radial = state.position[:2] - np.array(state.center)
    v = state.tangential_velocity()
    assert abs(float(np.dot(radial, v[:2]))) <= 1e-6 * radius * radius * max(abs(omega), 1e-12)
    assert v[2] == 0.0


# ============================================================================
# TELEMETRY PROPERTIES
# ============================================================================

@given(events=telemetry_events_strategy())
def test_flow_counters_match_resolved_events(events):
    """Every event is either counted in exactly one flow or tallied as discarded."""
    ctx = TelemetryContext()
    for node in range(3):
        ctx.register_address(MacAddress.allocate(node + 1), node)

    for kind, node, peer in events:
        addr = MacAddress.allocate(peer)
        if kind == "tx":
            ctx.on_transmit_begin(node, addr)
        elif kind == "rx":
            ctx.on_receive_success(node, addr)
        else:
            ctx.on_receive_drop(node, addr, "rxing")

    counted = sum(s.tx_packets + s.rx_packets + s.rx_dropped for _, s in ctx.snapshot_flows())
    assert counted + sum(ctx.discarded.values()) == len(events)
    for _, stats in ctx.snapshot_flows():
        assert stats.rx_dropped == sum(stats.drop_reasons.values())
