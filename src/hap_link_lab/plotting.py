from __future__ import annotations
from typing import Dict, Tuple
import numpy as np
import matplotlib.pyplot as plt

from .scenario import TrackRun


def plot_gain_vs_time(run: TrackRun, out_prefix: str) -> Tuple[str, str]:
    """
    Plot per-link directional gain and received power over a tracking run.

    Parameters
    ----------
    run : TrackRun
        Result of ``scenario.run_tracking``.
    out_prefix : str
        Output path prefix for plots.

    Returns
    -------
    Tuple[str, str]
        Paths to the gain plot and the received-power plot.
    """
    plt.figure()
    for name, gains in run.gains_dbi.items():
        plt.plot(run.time_s, gains, label=name)
    plt.xlabel("Time (s)")
    plt.ylabel("Platform antenna gain (dBi)")
    plt.title("Directional gain vs time")
    plt.legend()
    gain_path = f"{out_prefix}_gain_vs_time.png"
    plt.savefig(gain_path, dpi=200, bbox_inches="tight")
    plt.close()

    plt.figure()
    for name, prx in run.received_power_dbm.items():
        plt.plot(run.time_s, prx, label=name)
    plt.xlabel("Time (s)")
    plt.ylabel("Received power (dBm)")
    plt.title("Received power vs time")
    plt.legend()
    prx_path = f"{out_prefix}_prx_vs_time.png"
    plt.savefig(prx_path, dpi=200, bbox_inches="tight")
    plt.close()
    return gain_path, prx_path


def plot_power_vs_altitude(sweep: Dict[str, np.ndarray], out_prefix: str) -> str:
    """Plot nadir received power and atmospheric loss against platform altitude."""
    alt_km = np.asarray(sweep["altitude_m"], dtype=float) / 1000.0

    fig, ax1 = plt.subplots()
    ax1.plot(alt_km, sweep["received_power_dbm"], label="Received power")
    ax1.set_xlabel("Platform altitude (km)")
    ax1.set_ylabel("Received power (dBm)")
    ax2 = ax1.twinx()
    ax2.plot(alt_km, sweep["atmospheric_loss_db"], linestyle="--", color="tab:orange",
             label="Atmospheric loss")
    ax2.set_ylabel("Atmospheric loss (dB)")
    ax1.set_title("Nadir link vs altitude")
    path = f"{out_prefix}_prx_vs_altitude.png"
    fig.savefig(path, dpi=200, bbox_inches="tight")
    plt.close(fig)
    return path
