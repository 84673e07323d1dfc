"""
Flow and device telemetry aggregation.

All state lives on a ``TelemetryContext`` instance: the address index, the
flow table, the device table and the tally of discarded events. One context
per simulation run.

Policy for events that cannot be attributed to a flow:

- group (broadcast/multicast) destinations on transmit are discarded;
- unresolved unicast addresses are discarded from flow accounting and
  tallied in ``discarded`` under ``"unresolved-destination"`` or
  ``"unresolved-source"``; they never raise;
- a received unicast frame addressed to some other node is tallied as
  ``"overheard"`` and not counted.

Device counters count every event a registered device reports, since the
device identity needs no address resolution.
"""
from __future__ import annotations

from collections import Counter
from contextlib import nullcontext
from typing import Dict, Hashable, List, Optional, Tuple
import logging
import threading

from .addresses import AddressLike, AddressToNodeIndex, MacAddress
from .stats import DeviceStats, FlowKey, FlowStats, ReasonLike, reason_code
from .traces import RadioDevice

logger = logging.getLogger(__name__)


class TelemetryContext:
    """
    Per-run telemetry state and event handlers.

    Parameters
    ----------
    thread_safe : bool
        Guard counter updates with sharded locks for multi-threaded hosts.
        Single-threaded hosts leave this off.
    lock_shards : int
        Number of lock shards when ``thread_safe`` is set.
    """

    def __init__(self, thread_safe: bool = False, lock_shards: int = 16) -> None:
        if lock_shards < 1:
            raise ValueError(f"lock_shards must be >= 1, got {lock_shards}")
        self.addresses = AddressToNodeIndex()
        self.flows: Dict[FlowKey, FlowStats] = {}
        self.devices: Dict[Hashable, DeviceStats] = {}
        self.discarded: Counter = Counter()
        self.node_names: Dict[int, str] = {}
        self._device_nodes: Dict[Hashable, int] = {}
        self._locks: Optional[List[threading.Lock]] = (
            [threading.Lock() for _ in range(lock_shards)] if thread_safe else None
        )

    # --- setup ---

    def register_address(self, address: AddressLike, node_id: int) -> None:
        """Map a hardware address to a logical node (idempotent)."""
        self.addresses.register(address, node_id)

    def register_device(
        self,
        device: Hashable,
        node_id: int,
        address: Optional[AddressLike] = None,
        label: str = "",
    ) -> DeviceStats:
        """Register a device handle for per-device counters (and its address)."""
        if address is not None:
            self.register_address(address, node_id)
        existing = self.devices.get(device)
        if existing is not None:
            if self._device_nodes[device] != node_id:
                raise ValueError(
                    f"device {label or device!r} already registered to node {self._device_nodes[device]}"
                )
            return existing
        stats = DeviceStats(label=label or f"node-{node_id}")
        self.devices[device] = stats
        self._device_nodes[device] = node_id
        return stats

    def attach(self, device: RadioDevice) -> None:
        """Register a trace-emitting device and subscribe to its PHY events."""
        self.register_device(device, device.node_id, device.address, device.label)
        device.add_phy_listener(self)

    def name_node(self, node_id: int, name: str) -> None:
        self.node_names[node_id] = name

    def node_name(self, node_id: int) -> str:
        return self.node_names.get(node_id, f"node-{node_id}")

    # --- event handlers (node-id level) ---

    def on_transmit_begin(
        self,
        sender_node_id: int,
        destination_address: AddressLike,
        device: Optional[Hashable] = None,
    ) -> None:
        """Count a transmission towards the resolved destination node."""
        dst = MacAddress.parse(destination_address)
        if device is not None:
            self._bump_device(device, "tx")
        if dst.is_group:
            self._discard("group-destination", dst)
            return
        dst_id = self.addresses.resolve(dst)
        if dst_id is None:
            self._discard("unresolved-destination", dst)
            return
        self._bump_flow(FlowKey(sender_node_id, dst_id), "tx")

    def on_receive_success(
        self,
        receiver_node_id: int,
        source_address: AddressLike,
        destination_address: Optional[AddressLike] = None,
        device: Optional[Hashable] = None,
    ) -> None:
        """Count a successful reception from the resolved source node.

        When ``destination_address`` is given, a unicast frame addressed to
        another node is treated as overheard and not counted.
        """
        src = MacAddress.parse(source_address)
        if device is not None:
            self._bump_device(device, "rx")
        if destination_address is not None:
            dst = MacAddress.parse(destination_address)
            if not dst.is_group and self.addresses.resolve(dst) != receiver_node_id:
                self._discard("overheard", dst)
                return
        src_id = self.addresses.resolve(src)
        if src_id is None:
            self._discard("unresolved-source", src)
            return
        self._bump_flow(FlowKey(src_id, receiver_node_id), "rx")

    def on_receive_drop(
        self,
        receiver_node_id: int,
        source_address: AddressLike,
        reason: ReasonLike,
        device: Optional[Hashable] = None,
    ) -> None:
        """Count a failed reception and its reason."""
        src = MacAddress.parse(source_address)
        code = reason_code(reason)
        if device is not None:
            self._bump_device(device, "drop", code)
        src_id = self.addresses.resolve(src)
        if src_id is None:
            self._discard("unresolved-source", src)
            return
        self._bump_flow(FlowKey(src_id, receiver_node_id), "drop", code)

    # --- PhyEventListener ---

    def phy_tx_begin(self, device: RadioDevice, destination: MacAddress) -> None:
        self.on_transmit_begin(device.node_id, destination, device=device)

    def phy_rx_end(
        self,
        device: RadioDevice,
        source: MacAddress,
        destination: Optional[MacAddress] = None,
    ) -> None:
        self.on_receive_success(device.node_id, source, destination, device=device)

    def phy_rx_drop(self, device: RadioDevice, source: MacAddress, reason: str) -> None:
        self.on_receive_drop(device.node_id, source, reason, device=device)

    # --- read side ---

    def flow(self, source: int, destination: int) -> Optional[FlowStats]:
        """Copy of one flow's counters, or ``None`` if never observed."""
        key = FlowKey(source, destination)
        with self._lock_for(key):
            stats = self.flows.get(key)
            return stats.copy() if stats is not None else None

    def snapshot_flows(self) -> List[Tuple[FlowKey, FlowStats]]:
        """Copies of all flows ordered by (source, destination)."""
        out = []
        for key in sorted(list(self.flows)):
            with self._lock_for(key):
                out.append((key, self.flows[key].copy()))
        return out

    def snapshot_devices(self) -> List[Tuple[Hashable, DeviceStats]]:
        """Copies of all device counters in registration order."""
        out = []
        for device in list(self.devices):
            with self._lock_for(device):
                out.append((device, self.devices[device].copy()))
        return out

    # --- internals ---

    def _lock_for(self, key: Hashable):
        if self._locks is None:
            return nullcontext()
        return self._locks[hash(key) % len(self._locks)]

    def _discard(self, why: str, address: MacAddress) -> None:
        with self._lock_for(why):
            self.discarded[why] += 1
        logger.debug("discarded event (%s): %s", why, address)

    def _bump_flow(self, key: FlowKey, kind: str, reason: Optional[str] = None) -> None:
        with self._lock_for(key):
            stats = self.flows.get(key)
            if stats is None:
                stats = self.flows.setdefault(key, FlowStats())
            _bump(stats, kind, reason)

    def _bump_device(self, device: Hashable, kind: str, reason: Optional[str] = None) -> None:
        stats = self.devices.get(device)
        if stats is None:
            logger.debug("event from unregistered device %r ignored for device stats", device)
            return
        with self._lock_for(device):
            _bump(stats, kind, reason)


def _bump(stats: FlowStats, kind: str, reason: Optional[str]) -> None:
    if kind == "tx":
        stats.tx_packets += 1
    elif kind == "rx":
        stats.rx_packets += 1
    else:
        stats.rx_dropped += 1
        stats.drop_reasons[reason or "unknown"] += 1
