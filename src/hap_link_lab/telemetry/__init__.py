"""Flow and device telemetry: address resolution and PHY event accounting."""

from .addresses import BROADCAST, AddressConflictError, AddressToNodeIndex, MacAddress
from .context import TelemetryContext
from .stats import DeviceStats, DropReason, FlowKey, FlowStats
from .traces import (
    PhyEventListener,
    RadioDevice,
    TraceDevice,
    TraceEvent,
    load_devices,
    load_trace_events,
    order_trace_events,
    replay_trace_events,
)

__all__ = [
    "BROADCAST",
    "AddressConflictError",
    "AddressToNodeIndex",
    "MacAddress",
    "TelemetryContext",
    "DeviceStats",
    "DropReason",
    "FlowKey",
    "FlowStats",
    "PhyEventListener",
    "RadioDevice",
    "TraceDevice",
    "TraceEvent",
    "load_devices",
    "load_trace_events",
    "order_trace_events",
    "replay_trace_events",
]
