"""
Hardware (MAC-48) addresses and the address -> logical node index.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)

_MAX_MAC = (1 << 48) - 1


@dataclass(frozen=True, order=True)
class MacAddress:
    """48-bit hardware address stored as an integer."""
    value: int

    def __post_init__(self):
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise ValueError(f"MAC address value must be int, got {type(self.value).__name__}")
        if not 0 <= self.value <= _MAX_MAC:
            raise ValueError(f"MAC address out of range: {self.value:#x}")

    @classmethod
    def parse(cls, text: Union[str, int, "MacAddress"]) -> "MacAddress":
        """Parse ``aa:bb:cc:dd:ee:ff`` (``-`` also accepted) or an integer."""
        if isinstance(text, MacAddress):
            return text
        if isinstance(text, int) and not isinstance(text, bool):
            return cls(text)
        if not isinstance(text, str):
            raise ValueError(f"cannot parse MAC address from {text!r}")
        parts = text.strip().replace("-", ":").split(":")
        if len(parts) != 6 or not all(len(p) == 2 for p in parts):
            raise ValueError(f"malformed MAC address: {text!r}")
        try:
            octets = [int(p, 16) for p in parts]
        except ValueError as exc:
            raise ValueError(f"malformed MAC address: {text!r}") from exc
        value = 0
        for octet in octets:
            value = (value << 8) | octet
        return cls(value)

    @classmethod
    def allocate(cls, index: int) -> "MacAddress":
        """Sequential locally-administered unicast address (00:00:00:00:00:01, ...)."""
        return cls(index)

    @property
    def is_group(self) -> bool:
        """I/G bit set: multicast or broadcast."""
        return bool((self.value >> 40) & 0x01)

    @property
    def is_broadcast(self) -> bool:
        return self.value == _MAX_MAC

    def __str__(self) -> str:
        return ":".join(f"{(self.value >> shift) & 0xFF:02x}" for shift in range(40, -8, -8))


BROADCAST = MacAddress(_MAX_MAC)

AddressLike = Union[str, int, MacAddress]


class AddressConflictError(ValueError):
    """One hardware address registered to two different logical nodes."""


class AddressToNodeIndex:
    """
    Mapping from unicast hardware address to logical node id.

    Built once during setup. Group (multicast/broadcast) addresses are never
    inserted and never resolve.
    """

    def __init__(self) -> None:
        self._index: Dict[MacAddress, int] = {}

    def register(self, address: AddressLike, node_id: int) -> None:
        """
        Register ``address`` as belonging to ``node_id``.

        Re-registering the same pair is a no-op.

        Raises
        ------
        AddressConflictError
            If the address is already registered to a different node.
        ValueError
            If the address is a group address.
        """
        mac = MacAddress.parse(address)
        if mac.is_group:
            raise ValueError(f"group address {mac} cannot be registered to a node")
        existing = self._index.get(mac)
        if existing is not None:
            if existing != node_id:
                raise AddressConflictError(
                    f"address {mac} already registered to node {existing}, not {node_id}"
                )
            return
        self._index[mac] = node_id
        logger.debug("registered %s -> node %d", mac, node_id)

    def resolve(self, address: AddressLike) -> Optional[int]:
        """Node id for a unicast address, ``None`` if group or unknown."""
        mac = MacAddress.parse(address)
        if mac.is_group:
            return None
        return self._index.get(mac)

    def __contains__(self, address: AddressLike) -> bool:
        return self.resolve(address) is not None

    def __len__(self) -> int:
        return len(self._index)

    def items(self) -> Iterator[Tuple[MacAddress, int]]:
        return iter(self._index.items())
