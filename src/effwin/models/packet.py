# Packet data model
"""
Packet data models for effwin.

THESE MODELS ARE IMMUTABLE - the engine keys per-flow state on values
derived from them, so a packet object must never change after creation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .flow import FlowKey


class PassKind(Enum):
    """Which pass over the capture a packet is being processed in."""
    PRIMARY = "primary"
    REPLAY = "replay"


@dataclass(frozen=True)  # IMMUTABLE: Ensures deterministic processing
class RawPacket:
    """
    Frame as read directly from a capture file.

    All timestamps are normalized to microseconds for consistency.

    IMPORTANT: packet_id must be monotonic starting at 1 for each session.
    This is enforced by the PcapFileSource implementation.
    """
    packet_id: int
    """Monotonic integer starting at 1 for this packet source"""

    timestamp_us: int
    """Microseconds since Unix epoch (1970-01-01)."""

    captured_length: int
    """Bytes actually captured (may be less than original due to snaplen)"""

    original_length: int
    """Bytes on the wire (original packet size)"""

    frame: Any = field(compare=False, repr=False)
    """Dissected scapy frame. DO NOT modify this - create new objects instead."""

    @property
    def timestamp_seconds(self) -> float:
        """Convert microseconds to seconds with fractional part."""
        return self.timestamp_us / 1_000_000.0

    @property
    def is_truncated(self) -> bool:
        """True if captured length < original length (snaplen limited)."""
        return self.captured_length < self.original_length


@dataclass(frozen=True)
class PacketObservation:
    """
    Per-packet input to the effective window engine.

    Every numeric field is optional: a dissector that cannot supply a
    value leaves it as None and the engine narrows its calculation.
    scale_hint is only meaningful when is_syn is set.
    """
    packet_id: int
    flow_key: FlowKey
    raw_window: Optional[int] = None
    scale_hint: Optional[int] = None
    bytes_in_flight: Optional[int] = None
    is_syn: bool = False
    timestamp: float = 0.0
