"""Directional flow identity."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

UNKNOWN_STREAM = "unknown"


@dataclass(frozen=True)
class FlowKey:
    """
    One direction of a TCP connection.

    The request and response directions of a connection produce two
    different keys. Hashable so it can key the engine's per-flow maps.
    """
    stream_id: Union[int, str]
    src_addr: str
    src_port: int
    dst_addr: str
    dst_port: int

    def __str__(self) -> str:
        return f"{self.stream_id}:{self.src_addr}:{self.src_port}>{self.dst_addr}:{self.dst_port}"

    def reversed(self) -> "FlowKey":
        return FlowKey(self.stream_id, self.dst_addr, self.dst_port, self.src_addr, self.src_port)
