"""
Counter records for flow- and device-level PHY statistics.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, NamedTuple, Union


class DropReason(str, Enum):
    """PHY receive-failure reasons reported by the radio layer."""
    UNSUPPORTED_SETTINGS = "unsupported-settings"
    CHANNEL_SWITCHING = "channel-switching"
    RXING = "rxing"
    TXING = "txing"
    SLEEPING = "sleeping"
    POWERED_OFF = "powered-off"
    BUSY_DECODING_PREAMBLE = "busy-decoding-preamble"
    PREAMBLE_DETECT_FAILURE = "preamble-detect-failure"
    RECEPTION_ABORTED_BY_TX = "reception-aborted-by-tx"
    L_SIG_FAILURE = "l-sig-failure"
    HT_SIG_FAILURE = "ht-sig-failure"
    SIG_A_FAILURE = "sig-a-failure"
    SIG_B_FAILURE = "sig-b-failure"
    PREAMBLE_DETECTION_PACKET_SWITCH = "preamble-detection-packet-switch"
    FRAME_CAPTURE_PACKET_SWITCH = "frame-capture-packet-switch"
    OBSS_PD_CCA_RESET = "obss-pd-cca-reset"
    PPDU_TOO_LATE = "ppdu-too-late"
    FILTERED = "filtered"
    UNKNOWN = "unknown"


ReasonLike = Union[str, DropReason]


def reason_code(reason: ReasonLike) -> str:
    """Normalize a drop reason to its string code."""
    if isinstance(reason, DropReason):
        return reason.value
    return str(reason)


class FlowKey(NamedTuple):
    """Directed (source, destination) logical node pair."""
    source: int
    destination: int


@dataclass
class FlowStats:
    """Monotonic counters for one directed flow."""
    tx_packets: int = 0
    rx_packets: int = 0
    rx_dropped: int = 0
    drop_reasons: Counter = field(default_factory=Counter)

    @property
    def loss_ratio(self) -> float:
        """Dropped receptions over transmissions (0 when nothing was sent)."""
        if self.tx_packets == 0:
            return 0.0
        return self.rx_dropped / self.tx_packets

    def copy(self) -> "FlowStats":
        return FlowStats(
            tx_packets=self.tx_packets,
            rx_packets=self.rx_packets,
            rx_dropped=self.rx_dropped,
            drop_reasons=Counter(self.drop_reasons),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tx_packets": self.tx_packets,
            "rx_packets": self.rx_packets,
            "rx_dropped": self.rx_dropped,
            "loss_ratio": self.loss_ratio,
            "drop_reasons": dict(sorted(self.drop_reasons.items())),
        }


@dataclass
class DeviceStats(FlowStats):
    """Same counters keyed by a device handle, with a human-readable label."""
    label: str = ""

    def copy(self) -> "DeviceStats":
        return DeviceStats(
            tx_packets=self.tx_packets,
            rx_packets=self.rx_packets,
            rx_dropped=self.rx_dropped,
            drop_reasons=Counter(self.drop_reasons),
            label=self.label,
        )

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["label"] = self.label
        return out
