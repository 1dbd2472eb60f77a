"""
Capture file reader (pcap and pcapng).

scapy detects the file format from its magic number; this class only
numbers the frames, normalizes timestamps and wraps errors.
"""

import logging
import os
from typing import Iterator, Optional

from scapy.error import Scapy_Exception
from scapy.utils import PcapReader

from ..exceptions import CaptureReadError
from ..models.packet import RawPacket

logger = logging.getLogger(__name__)


class PcapFileSource:
    """
    Iterates the frames of a capture file as RawPackets.

    Usage:
        with PcapFileSource("trace.pcapng") as source:
            for packet in source:
                ...
    """

    def __init__(self, filepath: str):
        self.filepath = filepath
        self._reader: Optional[PcapReader] = None
        self._packet_count = 0

    def open(self) -> "PcapFileSource":
        if not os.path.exists(self.filepath):
            raise CaptureReadError(f"Capture file not found: {self.filepath}")
        try:
            self._reader = PcapReader(self.filepath)
        except (OSError, Scapy_Exception) as e:
            raise CaptureReadError(f"Failed to open capture {self.filepath}: {e}") from e
        self._packet_count = 0
        logger.debug("Opened capture %s", self.filepath)
        return self

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None

    def __enter__(self) -> "PcapFileSource":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[RawPacket]:
        if self._reader is None:
            raise RuntimeError("Capture file not opened")

        # packet_id MUST start at 1
        packet_id = 0
        try:
            for frame in self._reader:
                packet_id += 1
                self._packet_count = packet_id
                captured = len(frame)
                yield RawPacket(
                    packet_id=packet_id,
                    timestamp_us=int(round(frame.time * 1_000_000)),
                    captured_length=captured,
                    original_length=frame.wirelen or captured,
                    frame=frame,
                )
        except Scapy_Exception as e:
            raise CaptureReadError(f"Failed to parse {self.filepath} after packet {packet_id}: {e}") from e

    @property
    def packet_count(self) -> int:
        """Frames read so far, non-TCP included."""
        return self._packet_count
