"""
RF link budget for platform links (HAP <-> ground, satellite <-> HAP).

Pure functions of link geometry, antenna gains, transmit power, carrier
frequency and the altitude-dependent atmospheric model in ``atmosphere.py``.

    FSPL (dB)        = 20 log10(d) + 20 log10(f) + 20 log10(4 pi / c)
    EIRP (dBW)       = P_tx(dBm) - 30 + G_tx
    P_rx (dBW)       = EIRP - (FSPL + L_atm) + G_rx

No clamping is applied to the received power. Margin against a receiver
sensitivity is left to the caller (see ``margin_db``).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional
import logging
import math

from .atmosphere import AtmosphericLoss, AtmosphericProfile, PathDirection, compute_atmospheric_loss
from .helpers import dbm_to_dbw, dbw_to_dbm, validate_float

logger = logging.getLogger(__name__)

SPEED_OF_LIGHT_M_S = 2.998e8


class LinkInputError(ValueError):
    """Rejected link-budget computation (non-positive or non-finite input)."""


def _require_positive(name: str, value: float) -> float:
    try:
        value = validate_float(name, value)
    except ValueError as exc:
        raise LinkInputError(str(exc)) from exc
    if value <= 0.0:
        raise LinkInputError(f"{name} must be > 0, got {value}")
    return value


def reference_loss_db(frequency_hz: float) -> float:
    """FSPL at 1 m, i.e. 20 log10(f) + 20 log10(4 pi / c).

    This is the reference loss a log-distance channel (exponent 2,
    reference distance 1 m) needs to reproduce free-space loss.
    """
    f = _require_positive("frequency_hz", frequency_hz)
    return 20.0 * math.log10(f) + 20.0 * math.log10(4.0 * math.pi / SPEED_OF_LIGHT_M_S)


def fspl_db(distance_m: float, frequency_hz: float) -> float:
    """
    Free-space path loss in dB.

    Parameters
    ----------
    distance_m : float
        Link distance in meters (> 0).
    frequency_hz : float
        Carrier frequency in Hz (> 0).

    Returns
    -------
    float
        Path loss in dB.

    Raises
    ------
    LinkInputError
        If either input is non-positive or not finite.
    """
    d = _require_positive("distance_m", distance_m)
    return 20.0 * math.log10(d) + reference_loss_db(frequency_hz)


def eirp_dbw(tx_power_dbm: float, tx_gain_dbi: float) -> float:
    return dbm_to_dbw(tx_power_dbm) + tx_gain_dbi


@dataclass(frozen=True)
class LinkBudgetResult:
    """Immutable link-budget value.

    ``atmospheric`` is ``None`` when no atmospheric profile was applied.
    """
    distance_m: float
    frequency_hz: float
    fspl_db: float
    atmospheric_loss_db: float
    eirp_dbw: float
    tx_gain_dbi: float
    rx_gain_dbi: float
    received_power_dbw: float
    atmospheric: Optional[AtmosphericLoss] = None

    @property
    def total_path_loss_db(self) -> float:
        return self.fspl_db + self.atmospheric_loss_db

    @property
    def received_power_dbm(self) -> float:
        return dbw_to_dbm(self.received_power_dbw)


def compute_link_budget(
    distance_m: float,
    frequency_hz: float,
    tx_power_dbm: float,
    tx_gain_dbi: float,
    rx_gain_dbi: float,
    altitude_m: Optional[float] = None,
    profile: Optional[AtmosphericProfile] = None,
    direction: PathDirection = "upward",
) -> LinkBudgetResult:
    """
    Compute a full link budget.

    Parameters
    ----------
    distance_m : float
        Straight-line link distance in meters.
    frequency_hz : float
        Carrier frequency in Hz.
    tx_power_dbm : float
        Transmit power in dBm.
    tx_gain_dbi, rx_gain_dbi : float
        Transmit and receive antenna gains in dBi.
    altitude_m : float, optional
        Platform altitude in meters; required when ``profile`` is given.
    profile : AtmosphericProfile, optional
        Atmospheric coefficients. ``None`` means free space only.
    direction : {"upward", "downward"}
        Atmospheric accumulation mode.

    Returns
    -------
    LinkBudgetResult

    Raises
    ------
    LinkInputError
        On non-positive distance, frequency or altitude.
    """
    fspl = fspl_db(distance_m, frequency_hz)
    try:
        tx_power_dbm = validate_float("tx_power_dbm", tx_power_dbm)
        tx_gain_dbi = validate_float("tx_gain_dbi", tx_gain_dbi)
        rx_gain_dbi = validate_float("rx_gain_dbi", rx_gain_dbi)
    except ValueError as exc:
        raise LinkInputError(str(exc)) from exc

    atmospheric = None
    if profile is not None:
        if altitude_m is None:
            raise LinkInputError("altitude_m is required when an atmospheric profile is given")
        _require_positive("altitude_m", altitude_m)
        atmospheric = compute_atmospheric_loss(altitude_m, profile, direction)
    atm_db = atmospheric.total_db if atmospheric is not None else 0.0

    eirp = eirp_dbw(tx_power_dbm, tx_gain_dbi)
    rx_dbw = eirp - (fspl + atm_db) + rx_gain_dbi
    logger.debug(
        "link budget d=%.1f m f=%.3e Hz fspl=%.2f dB atm=%.2f dB prx=%.2f dBW",
        distance_m, frequency_hz, fspl, atm_db, rx_dbw,
    )
    return LinkBudgetResult(
        distance_m=float(distance_m),
        frequency_hz=float(frequency_hz),
        fspl_db=fspl,
        atmospheric_loss_db=atm_db,
        eirp_dbw=eirp,
        tx_gain_dbi=tx_gain_dbi,
        rx_gain_dbi=rx_gain_dbi,
        received_power_dbw=rx_dbw,
        atmospheric=atmospheric,
    )


def margin_db(result: LinkBudgetResult, sensitivity_dbm: float) -> float:
    """Received power above a receiver sensitivity threshold (may be negative)."""
    return result.received_power_dbm - sensitivity_dbm


def link_budget_lines(result: LinkBudgetResult, title: str = "Link Budget") -> List[str]:
    """Human-readable diagnostic lines for a startup printout."""
    lines = [
        f"=== {title} ===",
        f"Frequency: {result.frequency_hz / 1e9:.3f} GHz",
        f"Distance: {result.distance_m / 1000.0:.3f} km",
        f"FSPL: {result.fspl_db:.2f} dB",
    ]
    if result.atmospheric is not None:
        atm = result.atmospheric
        lines += [
            f"Rain Loss: {atm.rain_loss_db:.2f} dB ({atm.rain_path_km:.2f} km)",
            f"Gas Loss: {atm.gas_loss_db:.2f} dB ({atm.gas_path_km:.2f} km)",
        ]
    lines += [
        f"Total Atmospheric Loss: {result.atmospheric_loss_db:.2f} dB",
        f"Total Path Loss: {result.total_path_loss_db:.2f} dB",
        f"EIRP: {result.eirp_dbw:.2f} dBW",
        f"TX Antenna Gain: {result.tx_gain_dbi:.2f} dBi",
        f"RX Antenna Gain: {result.rx_gain_dbi:.2f} dBi",
        f"Received Power: {result.received_power_dbw:.2f} dBW ({result.received_power_dbm:.2f} dBm)",
    ]
    return lines
