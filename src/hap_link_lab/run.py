from __future__ import annotations
import argparse
from dataclasses import replace
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

SCHEMA_VERSION = "0.1"

from .atmosphere import AtmosphericProfile
from .config import ConfigError, ScenarioConfig, load_config
from .link_budget import compute_link_budget, link_budget_lines
from .scenario import altitude_sweep, run_tracking
from .telemetry import TelemetryContext, load_devices, load_trace_events, replay_trace_events

logger = logging.getLogger(__name__)

_DEFAULT_ATM = AtmosphericProfile()


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="hap-link-lab")
    p.add_argument("-v", "--verbose", action="count", default=0,
                   help="Increase log verbosity (-v info, -vv debug)")
    sub = p.add_subparsers(dest="cmd", required=True)

    # --- link-budget command ---
    lb = sub.add_parser(
        "link-budget",
        help="Print a single link budget (startup diagnostic).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  python -m hap_link_lab.run link-budget --distance 35766000 --frequency 28e9 "
               "--tx-power 50 --tx-gain 50 --rx-gain 45 --altitude 20000 --direction downward\n",
    )
    lb.add_argument("--distance", type=float, required=True,
                    help="Link distance in meters")
    lb.add_argument("--frequency", type=float, default=2.4e9,
                    help="Carrier frequency in Hz (default: 2.4e9)")
    lb.add_argument("--tx-power", type=float, default=20.0,
                    help="Transmit power in dBm (default: 20)")
    lb.add_argument("--tx-gain", type=float, default=20.0,
                    help="Transmit antenna gain in dBi (default: 20)")
    lb.add_argument("--rx-gain", type=float, default=0.0,
                    help="Receive antenna gain in dBi (default: 0)")
    lb.add_argument("--altitude", type=float, default=None,
                    help="Platform altitude in meters; enables atmospheric loss")
    lb.add_argument("--direction", choices=["upward", "downward"], default="upward",
                    help="Atmospheric accumulation mode (default: upward)")
    lb.add_argument("--rain-rate", type=float, default=_DEFAULT_ATM.rain_rate_db_km,
                    help="Rain attenuation in dB/km (default: 3.0)")
    lb.add_argument("--oxygen-rate", type=float, default=_DEFAULT_ATM.oxygen_rate_db_km,
                    help="Oxygen absorption in dB/km (default: 0.1)")
    lb.add_argument("--vapor-rate", type=float, default=_DEFAULT_ATM.water_vapor_rate_db_km,
                    help="Water vapour absorption in dB/km (default: 0.05)")
    lb.add_argument("--rain-height", type=float, default=_DEFAULT_ATM.rain_cloud_height_m,
                    help="Rain-cloud height in meters (default: 5000)")
    lb.add_argument("--dense-atmosphere", type=float, default=_DEFAULT_ATM.dense_atmosphere_m,
                    help="Dense atmosphere thickness in meters (default: 20000)")

    # --- track command ---
    tr = sub.add_parser(
        "track",
        help="Run the pointing tracker over a circular loiter.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  python -m hap_link_lab.run track --duration 100 --plot --outdir out\n",
    )
    tr.add_argument("--config", type=str, default=None,
                    help="Scenario JSON file (CLI flags override it)")
    tr.add_argument("--radius", type=float, default=None,
                    help="Orbit radius in meters (default: 6000)")
    tr.add_argument("--altitude", type=float, default=None,
                    help="Platform altitude in meters (default: 20000)")
    tr.add_argument("--loop-period", type=float, default=None,
                    help="Seconds per loop (default: 100)")
    tr.add_argument("--max-gain", type=float, default=None,
                    help="Directional antenna max gain in dBi (default: 20)")
    tr.add_argument("--exponent", type=float, default=None,
                    help="Beamwidth exponent (default: 2)")
    tr.add_argument("--tick", type=float, default=None,
                    help="Tick period in seconds (default: 0.1)")
    tr.add_argument("--duration", type=float, default=None,
                    help="Simulated duration in seconds (default: 100)")
    tr.add_argument("--plot", action="store_true",
                    help="Write gain/power plots to --outdir")
    tr.add_argument("--outdir", type=str, default=None,
                    help="Output directory for figures/reports")
    tr.add_argument("--dump-config", action="store_true",
                    help="Print the effective configuration as JSON and exit")

    # --- replay command ---
    rp = sub.add_parser(
        "replay",
        help="Replay PHY trace events and print per-flow loss statistics.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  python -m hap_link_lab.run replay --devices devices.json --events events.csv\n",
    )
    rp.add_argument("--devices", type=str, required=True,
                    help="Device table JSON (name, node_id, address, label)")
    rp.add_argument("--events", type=str, required=True,
                    help="Trace events JSON or CSV")
    rp.add_argument("--per-device", action="store_true",
                    help="Also print per-device statistics")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    p = _build_parser()
    args = p.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.cmd == "link-budget":
            _run_link_budget(args)
        elif args.cmd == "track":
            _run_track(args)
        elif args.cmd == "replay":
            _run_replay(args)
    except (ValueError, KeyError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


def _run_link_budget(args: argparse.Namespace) -> None:
    profile = None
    if args.altitude is not None:
        profile = AtmosphericProfile(
            rain_rate_db_km=args.rain_rate,
            oxygen_rate_db_km=args.oxygen_rate,
            water_vapor_rate_db_km=args.vapor_rate,
            rain_cloud_height_m=args.rain_height,
            dense_atmosphere_m=args.dense_atmosphere,
        )
    result = compute_link_budget(
        distance_m=args.distance,
        frequency_hz=args.frequency,
        tx_power_dbm=args.tx_power,
        tx_gain_dbi=args.tx_gain,
        rx_gain_dbi=args.rx_gain,
        altitude_m=args.altitude,
        profile=profile,
        direction=args.direction,
    )
    title = f"Link Budget ({args.direction})" if profile is not None else "Link Budget (free space)"
    for line in link_budget_lines(result, title=title):
        print(line)


def _effective_config(args: argparse.Namespace) -> ScenarioConfig:
    cfg = load_config(args.config) if args.config else ScenarioConfig()
    try:
        orbit_kw = {}
        if args.radius is not None:
            orbit_kw["radius_m"] = args.radius
        if args.altitude is not None:
            orbit_kw["altitude_m"] = args.altitude
        if args.loop_period is not None:
            orbit_kw["loop_period_s"] = args.loop_period
            orbit_kw["angular_velocity_rad_s"] = None
        antenna_kw = {}
        if args.max_gain is not None:
            antenna_kw["max_gain_dbi"] = args.max_gain
        if args.exponent is not None:
            antenna_kw["beamwidth_exponent"] = args.exponent
        top_kw = {}
        if args.tick is not None:
            top_kw["tick_period_s"] = args.tick
        if args.duration is not None:
            top_kw["duration_s"] = args.duration
        return replace(
            cfg,
            orbit=replace(cfg.orbit, **orbit_kw),
            antenna=replace(cfg.antenna, **antenna_kw),
            **top_kw,
        )
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def _fmt_dbm(value: Optional[float]) -> str:
    return f"{'n/a':>10}" if value is None else f"{value:>10.2f}"


def _run_track(args: argparse.Namespace) -> None:
    cfg = _effective_config(args)
    if args.dump_config:
        print(json.dumps(cfg.to_dict(), indent=2))
        return
    print(f"Tracking {len(cfg.ground_terminals)} terminals for {cfg.duration_s:g} s "
          f"(tick {cfg.tick_period_s:g} s, radius {cfg.orbit.radius_m:g} m, "
          f"altitude {cfg.orbit.altitude_m / 1000.0:g} km)")
    run = run_tracking(cfg)
    summary = run.summary()
    print(f"{'Link':<16}{'Gain min':>10}{'Gain max':>10}{'Gain avg':>10}{'Prx min':>10}{'Prx max':>10}")
    print("-" * 66)
    for name, s in summary["links"].items():
        print(f"{name:<16}{s['gain_min_dbi']:>10.2f}{s['gain_max_dbi']:>10.2f}{s['gain_mean_dbi']:>10.2f}"
              f"{_fmt_dbm(s['prx_min_dbm'])}{_fmt_dbm(s['prx_max_dbm'])}")
    print("-" * 66)
    print(f"Orbit radius: {summary['radius_min_m']:.1f} .. {summary['radius_max_m']:.1f} m")

    if args.outdir is None:
        return
    outdir = Path(args.outdir)
    (outdir / "figures").mkdir(parents=True, exist_ok=True)
    (outdir / "reports").mkdir(parents=True, exist_ok=True)

    artifacts = {}
    if args.plot:
        from .plotting import plot_gain_vs_time, plot_power_vs_altitude

        gain_path, prx_path = plot_gain_vs_time(run, str(outdir / "figures" / "track"))
        sweep = altitude_sweep(cfg, np.linspace(1000.0, 30000.0, 59))
        alt_path = plot_power_vs_altitude(sweep, str(outdir / "figures" / "nadir"))
        print("Plots:", gain_path, prx_path, alt_path)
        artifacts = {
            "gain_plot": Path(gain_path).name,
            "prx_plot": Path(prx_path).name,
            "altitude_plot": Path(alt_path).name,
        }

    report = {
        "schema_version": SCHEMA_VERSION,
        "mode": "track",
        "config": cfg.to_dict(),
        "summary": summary,
        "artifacts": artifacts,
    }
    report_path = outdir / "reports" / "latest.json"
    with open(report_path, "w") as f:
        json.dump(report, f, indent=2)
        f.write("\n")
    print("Wrote:", report_path)


def _run_replay(args: argparse.Namespace) -> None:
    devices = load_devices(args.devices)
    events = load_trace_events(args.events)

    ctx = TelemetryContext()
    for name, device in devices.items():
        ctx.attach(device)
        ctx.name_node(device.node_id, device.label or name)
    n = replay_trace_events(devices, events)
    print(f"Replayed {n} events from {args.events}")

    print("\n=== Per-Flow Link Loss Statistics (Node-to-Node) ===")
    print(f"{'Flow (Source -> Dest)':<30}{'Tx Pkts':>10}{'Rx Pkts':>10}{'Rx Drop':>10}{'Loss %':>10}")
    print("-" * 70)
    for key, stats in ctx.snapshot_flows():
        flow_name = f"{ctx.node_name(key.source)} -> {ctx.node_name(key.destination)}"
        print(f"{flow_name:<30}{stats.tx_packets:>10}{stats.rx_packets:>10}{stats.rx_dropped:>10}"
              f"{stats.loss_ratio * 100.0:>9.1f}%")
        for reason, count in sorted(stats.drop_reasons.items()):
            print(f"    {reason}: {count}")
    print("-" * 70)

    if args.per_device:
        print("\n=== Per-Device Statistics ===")
        print(f"{'Device':<30}{'Tx Pkts':>10}{'Rx Pkts':>10}{'Rx Drop':>10}")
        print("-" * 60)
        for _, stats in ctx.snapshot_devices():
            print(f"{stats.label:<30}{stats.tx_packets:>10}{stats.rx_packets:>10}{stats.rx_dropped:>10}")
        print("-" * 60)

    if ctx.discarded:
        print("Discarded:", ", ".join(f"{k}={v}" for k, v in sorted(ctx.discarded.items())))


if __name__ == "__main__":
    sys.exit(main())
