"""
Trace-source capability interfaces and trace-event file ingestion.

A device that "emits transmit/receive/drop events" only has to satisfy
``RadioDevice``; the telemetry context subscribes itself as a
``PhyEventListener`` and never depends on concrete device types.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Optional, Protocol
import csv
import json
import logging
from pathlib import Path

from .addresses import MacAddress

logger = logging.getLogger(__name__)

EVENT_KINDS = ("tx", "rx", "drop")


class PhyEventListener(Protocol):
    def phy_tx_begin(self, device: "RadioDevice", destination: MacAddress) -> None: ...

    def phy_rx_end(
        self,
        device: "RadioDevice",
        source: MacAddress,
        destination: Optional[MacAddress] = None,
    ) -> None: ...

    def phy_rx_drop(self, device: "RadioDevice", source: MacAddress, reason: str) -> None: ...


class RadioDevice(Protocol):
    node_id: int
    address: MacAddress
    label: str

    def add_phy_listener(self, listener: PhyEventListener) -> None: ...


@dataclass(eq=False)
class TraceDevice:
    """Plain device that forwards explicitly fired events to its listeners.

    Used for trace replay and tests; a real radio model only needs to expose
    the same attributes and ``add_phy_listener``.
    """
    node_id: int
    address: MacAddress
    label: str = ""
    listeners: List[PhyEventListener] = field(default_factory=list)

    def add_phy_listener(self, listener: PhyEventListener) -> None:
        self.listeners.append(listener)

    def fire_tx_begin(self, destination: Any) -> None:
        dst = MacAddress.parse(destination)
        for listener in self.listeners:
            listener.phy_tx_begin(self, dst)

    def fire_rx_end(self, source: Any, destination: Any = None) -> None:
        src = MacAddress.parse(source)
        dst = MacAddress.parse(destination) if destination is not None else None
        for listener in self.listeners:
            listener.phy_rx_end(self, src, dst)

    def fire_rx_drop(self, source: Any, reason: str) -> None:
        src = MacAddress.parse(source)
        for listener in self.listeners:
            listener.phy_rx_drop(self, src, reason)


@dataclass(frozen=True)
class TraceEvent:
    """One hardware-level trace event as read from a file."""
    kind: str
    device: Hashable
    peer: MacAddress
    destination: Optional[MacAddress] = None
    reason: Optional[str] = None
    time_s: Optional[float] = None


def _parse_event(row: Any) -> TraceEvent:
    if not isinstance(row, dict):
        raise ValueError(f"Trace event must be an object, got {type(row).__name__}")
    kind = str(row.get("event") or row.get("kind") or "").strip().lower()
    if kind not in EVENT_KINDS:
        raise ValueError(f"Unknown trace event kind: {kind!r}")
    device = row.get("device")
    if device is None or device == "":
        raise ValueError("Trace event is missing 'device'.")
    peer = row.get("peer") or row.get("address")
    if not peer:
        raise ValueError("Trace event is missing 'peer'.")
    destination = row.get("destination") or None
    reason = row.get("reason") or None
    time_val = row.get("time_s")
    if time_val is None or time_val == "":
        time_val = row.get("time")
    return TraceEvent(
        kind=kind,
        device=str(device),
        peer=MacAddress.parse(peer),
        destination=MacAddress.parse(destination) if destination else None,
        reason=str(reason) if reason is not None else None,
        time_s=float(time_val) if time_val not in (None, "") else None,
    )


def load_trace_events(path: str) -> List[TraceEvent]:
    """
    Load trace events from JSON or CSV.

    JSON expects a list or ``{"events": [...]}``; CSV expects an ``event``
    column (tx, rx or drop) plus ``device`` and ``peer`` columns, with
    optional ``destination``, ``reason`` and ``time_s``.
    """
    trace_path = Path(path)
    if not trace_path.exists():
        raise FileNotFoundError(f"Trace file not found: {path}")

    if trace_path.suffix.lower() == ".csv":
        with open(trace_path, "r", newline="") as f:
            reader = csv.DictReader(f)
            return [_parse_event(row) for row in reader]

    with open(trace_path, "r") as f:
        data = json.load(f)

    if isinstance(data, dict):
        rows = data.get("events")
        if rows is None:
            raise ValueError("JSON trace file must be a list or contain 'events'.")
    else:
        rows = data

    if not isinstance(rows, list):
        raise ValueError("JSON trace file must contain a list of events.")

    return [_parse_event(row) for row in rows]


def load_devices(path: str) -> Dict[str, TraceDevice]:
    """
    Load a device table from JSON: a list (or ``{"devices": [...]}``) of
    objects with ``name``, ``node_id``, ``address`` and optional ``label``.
    """
    device_path = Path(path)
    if not device_path.exists():
        raise FileNotFoundError(f"Device file not found: {path}")
    with open(device_path, "r") as f:
        data = json.load(f)
    rows = data.get("devices") if isinstance(data, dict) else data
    if not isinstance(rows, list):
        raise ValueError("Device file must contain a list of devices.")

    devices: Dict[str, TraceDevice] = {}
    for row in rows:
        if not isinstance(row, dict):
            raise ValueError(f"Device entry must be an object, got {type(row).__name__}")
        name = str(row["name"])
        if name in devices:
            raise ValueError(f"Duplicate device name: {name}")
        devices[name] = TraceDevice(
            node_id=int(row["node_id"]),
            address=MacAddress.parse(row["address"]),
            label=str(row.get("label") or name),
        )
    return devices


def order_trace_events(events: Iterable[TraceEvent]) -> List[TraceEvent]:
    """
    Replay order for a batch of events.

    When every event carries ``time_s`` the batch is sorted by time (stable,
    so simultaneous events keep file order); otherwise file order is kept.
    """
    ordered = list(events)
    if ordered and all(event.time_s is not None for event in ordered):
        ordered.sort(key=lambda event: event.time_s)
    return ordered


def replay_trace_events(devices: Dict[Hashable, TraceDevice], events: Iterable[TraceEvent]) -> int:
    """Fire each event on its device in ``order_trace_events`` order. Returns the number replayed."""
    count = 0
    for event in order_trace_events(events):
        device = devices.get(event.device)
        if device is None:
            raise KeyError(f"Trace event references unknown device {event.device!r}")
        if event.kind == "tx":
            device.fire_tx_begin(event.peer)
        elif event.kind == "rx":
            device.fire_rx_end(event.peer, event.destination)
        else:
            device.fire_rx_drop(event.peer, event.reason or "unknown")
        count += 1
    logger.debug("replayed %d trace events", count)
    return count
