"""Tests for the per-tick pointing tracker."""
import math

import numpy as np
import pytest

from hap_link_lab.antenna import AntennaDescriptor
from hap_link_lab.geometry import PlatformState, StaticPosition
from hap_link_lab.pointing import GainRecorder, LinkEndpoint, PointingTracker


def test_first_tick_geometry(two_terminal_tracker):
    tracker, rec_a, rec_b = two_terminal_tracker
    record = tracker.on_tick()

    assert record.tick == 0
    np.testing.assert_allclose(record.position, [6000.0, 0.0, 20000.0])
    # boresight aims at the ground point below the circle center
    assert record.heading_deg == pytest.approx(180.0)
    assert record.samples["ground-a"].distance_m == pytest.approx(math.hypot(8500.0, 20000.0))
    assert record.samples["ground-b"].distance_m == pytest.approx(math.hypot(3500.0, 20000.0))
    for name in ("ground-a", "ground-b"):
        assert 19.0 < record.gains_dbi[name] < 20.0


def test_gains_applied_to_front_ends(two_terminal_tracker):
    tracker, rec_a, rec_b = two_terminal_tracker
    for _ in range(5):
        record = tracker.on_tick()
    assert rec_a.tx_gain_dbi == record.gains_dbi["ground-a"]
    assert rec_a.rx_gain_dbi == record.gains_dbi["ground-a"]
    assert rec_b.tx_gain_dbi == record.gains_dbi["ground-b"]
    assert len(rec_a.history) == 5
    assert tracker.last_gains == record.gains_dbi
    assert tracker.ticks == 5


def test_velocity_rederived_each_tick(two_terminal_tracker):
    tracker, _, _ = two_terminal_tracker
    w = tracker.platform.angular_velocity_rad_s
    for _ in range(20):
        record = tracker.on_tick()
        x, y = record.position[0], record.position[1]
        np.testing.assert_allclose(record.velocity, [-w * y, w * x, 0.0])


def test_position_advances_by_one_tick(two_terminal_tracker):
    tracker, _, _ = two_terminal_tracker
    record = tracker.advance()
    phi = tracker.platform.angular_velocity_rad_s * 0.1
    x, y = record.position[0], record.position[1]
    np.testing.assert_allclose(
        tracker.platform.position,
        [x * math.cos(phi) - y * math.sin(phi), x * math.sin(phi) + y * math.cos(phi), 20000.0],
    )


def test_radius_held_over_many_loops(two_terminal_tracker):
    tracker, _, _ = two_terminal_tracker
    for _ in range(10000):
        tracker.on_tick()
    assert tracker.platform.radius_from_center() == pytest.approx(6000.0, rel=1e-6)
    assert tracker.platform.position[2] == 20000.0


def test_one_loop_returns_to_start(two_terminal_tracker):
    tracker, _, _ = two_terminal_tracker
    period_ticks = round(2.0 * math.pi / tracker.platform.angular_velocity_rad_s / 0.1)
    for _ in range(period_ticks):
        tracker.on_tick()
    np.testing.assert_allclose(tracker.platform.position, [6000.0, 0.0, 20000.0], atol=1e-3)


def test_zero_length_view_gives_zero_gain(directional_antenna):
    platform = PlatformState.on_circle(6000.0, 20000.0, 0.05)
    link = LinkEndpoint("peer", StaticPosition(0.0, 0.0), directional_antenna)
    tracker = PointingTracker(platform, [link], boresight_target=tuple(platform.position))
    record = tracker.on_tick()
    assert record.samples["peer"].angle_off_boresight_rad is None
    assert record.gains_dbi["peer"] == 0.0


def test_zero_length_link_gives_zero_gain(directional_antenna):
    platform = PlatformState.on_circle(6000.0, 20000.0, 0.05)
    link = LinkEndpoint("self", StaticPosition(6000.0, 0.0, 20000.0), directional_antenna)
    tracker = PointingTracker(platform, [link])
    assert tracker.on_tick().gains_dbi["self"] == 0.0


def test_fixed_orientation_overrides_tracking():
    platform = PlatformState.on_circle(6000.0, 20000.0, 0.05)
    down = AntennaDescriptor(max_gain_dbi=20.0, orientation=(0.0, 0.0, -1.0))
    link = LinkEndpoint("below", StaticPosition(6000.0, 0.0, 0.0), down)
    record = PointingTracker(platform, [link]).on_tick()
    assert record.gains_dbi["below"] == pytest.approx(20.0)


def test_link_without_front_end(directional_antenna, loiter_platform):
    link = LinkEndpoint("plain", StaticPosition(0.0, 0.0), directional_antenna)
    record = PointingTracker(loiter_platform, [link]).on_tick()
    assert "plain" in record.gains_dbi


def test_tracker_validation(loiter_platform, directional_antenna):
    link = LinkEndpoint("x", StaticPosition(0.0, 0.0), directional_antenna)
    with pytest.raises(ValueError, match="unique"):
        PointingTracker(loiter_platform, [link, link])
    with pytest.raises(ValueError):
        PointingTracker(loiter_platform, [link], tick_period_s=0.0)


def test_gain_recorder_history():
    rec = GainRecorder()
    rec.set_tx_gain_dbi(3.0)
    rec.set_rx_gain_dbi(4.0)
    assert rec.history == [3.0]
    assert rec.rx_gain_dbi == 4.0
