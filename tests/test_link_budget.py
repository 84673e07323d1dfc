"""Tests for free-space path loss and the full link budget."""
import math

import pytest

from hap_link_lab.atmosphere import AtmosphericProfile
from hap_link_lab.link_budget import (
    LinkInputError,
    compute_link_budget,
    eirp_dbw,
    fspl_db,
    link_budget_lines,
    margin_db,
    reference_loss_db,
)


def test_fspl_reference_value():
    """1 km at 2.4 GHz is about 100.05 dB."""
    assert fspl_db(1000.0, 2.4e9) == pytest.approx(100.05, abs=0.1)


def test_fspl_doubling_distance_adds_six_db():
    delta = fspl_db(2000.0, 2.4e9) - fspl_db(1000.0, 2.4e9)
    assert delta == pytest.approx(20.0 * math.log10(2.0))


def test_reference_loss_is_fspl_at_one_meter():
    assert reference_loss_db(28e9) == pytest.approx(fspl_db(1.0, 28e9))
    assert fspl_db(500.0, 28e9) == pytest.approx(20.0 * math.log10(500.0) + reference_loss_db(28e9))


@pytest.mark.parametrize("distance, frequency", [
    (0.0, 2.4e9),
    (-1.0, 2.4e9),
    (1000.0, 0.0),
    (1000.0, -2.4e9),
    (math.nan, 2.4e9),
    (1000.0, math.inf),
])
def test_fspl_rejects_bad_inputs(distance, frequency):
    with pytest.raises(LinkInputError):
        fspl_db(distance, frequency)


def test_link_input_error_is_value_error():
    assert issubclass(LinkInputError, ValueError)


def test_eirp():
    assert eirp_dbw(20.0, 20.0) == pytest.approx(10.0)
    assert eirp_dbw(50.0, 45.0) == pytest.approx(65.0)


def test_free_space_budget():
    result = compute_link_budget(1000.0, 2.4e9, tx_power_dbm=20.0, tx_gain_dbi=20.0, rx_gain_dbi=3.0)
    assert result.atmospheric is None
    assert result.atmospheric_loss_db == 0.0
    assert result.eirp_dbw == pytest.approx(10.0)
    assert result.received_power_dbw == pytest.approx(10.0 - result.fspl_db + 3.0)
    assert result.received_power_dbm == pytest.approx(result.received_power_dbw + 30.0)
    assert result.total_path_loss_db == result.fspl_db


def test_budget_with_upward_atmosphere(default_profile):
    result = compute_link_budget(
        20000.0, 2.4e9, tx_power_dbm=20.0, tx_gain_dbi=20.0, rx_gain_dbi=0.0,
        altitude_m=20000.0, profile=default_profile, direction="upward",
    )
    # 5 km of rain at 3 dB/km plus 20 km of gas at 0.15 dB/km
    assert result.atmospheric_loss_db == pytest.approx(18.0)
    assert result.total_path_loss_db == pytest.approx(result.fspl_db + 18.0)
    assert result.received_power_dbw == pytest.approx(10.0 - result.fspl_db - 18.0)


def test_budget_with_downward_atmosphere(default_profile):
    above = compute_link_budget(
        35786e3, 28e9, 50.0, 50.0, 45.0,
        altitude_m=20000.0, profile=default_profile, direction="downward",
    )
    assert above.atmospheric_loss_db == pytest.approx(0.0)

    low = compute_link_budget(
        35786e3, 28e9, 50.0, 50.0, 45.0,
        altitude_m=3000.0, profile=default_profile, direction="downward",
    )
    assert low.atmospheric_loss_db == pytest.approx(2.0 * 3.0 + 17.0 * 0.15)


def test_profile_requires_altitude(default_profile):
    with pytest.raises(LinkInputError, match="altitude_m"):
        compute_link_budget(1000.0, 2.4e9, 20.0, 0.0, 0.0, profile=default_profile)


def test_non_positive_altitude_rejected(default_profile):
    with pytest.raises(LinkInputError):
        compute_link_budget(1000.0, 2.4e9, 20.0, 0.0, 0.0, altitude_m=0.0, profile=default_profile)


def test_non_finite_power_rejected():
    with pytest.raises(LinkInputError):
        compute_link_budget(1000.0, 2.4e9, math.nan, 0.0, 0.0)


def test_received_power_is_not_clamped():
    result = compute_link_budget(4e8, 28e9, -30.0, -20.0, -20.0)
    assert result.received_power_dbm < -250.0


def test_margin():
    result = compute_link_budget(1000.0, 2.4e9, 20.0, 0.0, 0.0)
    assert margin_db(result, -90.0) == pytest.approx(result.received_power_dbm + 90.0)
    assert margin_db(result, 0.0) < 0.0


def test_budget_lines(default_profile):
    free = link_budget_lines(compute_link_budget(1000.0, 2.4e9, 20.0, 0.0, 0.0))
    assert free[0] == "=== Link Budget ==="
    assert any(line.startswith("FSPL:") for line in free)
    assert not any("Rain Loss" in line for line in free)

    with_atm = link_budget_lines(
        compute_link_budget(20000.0, 2.4e9, 20.0, 0.0, 0.0, altitude_m=20000.0, profile=default_profile),
        title="Uplink",
    )
    assert with_atm[0] == "=== Uplink ==="
    assert "Rain Loss: 15.00 dB (5.00 km)" in with_atm
    assert "Total Atmospheric Loss: 18.00 dB" in with_atm


def test_custom_profile_scales_loss():
    heavy = AtmosphericProfile(rain_rate_db_km=10.0)
    result = compute_link_budget(1000.0, 2.4e9, 20.0, 0.0, 0.0, altitude_m=1000.0, profile=heavy)
    assert result.atmospheric.rain_loss_db == pytest.approx(10.0)
