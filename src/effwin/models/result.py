"""Computed per-packet values and the records they are attached to."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import math
from typing import Any, Dict, Optional

from ..exceptions import ReadOnlyFieldError


class CalcType(str, Enum):
    """Which inputs an effective window value was derived from."""
    FULL = "min(Rwnd,Cwnd_est)-BytesInFlight"
    RWND_ONLY = "Rwnd Only"
    BIF_ONLY = "BytesInFlight Only"


@dataclass(frozen=True)
class EffectiveWindowResult:
    value: int
    calc_type: CalcType
    detail: str
    cwnd_estimate: float
    scaled_rwnd: Optional[int] = None
    bytes_in_flight: Optional[int] = None


@dataclass(frozen=True)
class Annotation:
    """
    Fields attached to a packet record.

    The first four are the public display fields. flow, rwnd and
    bytes_in_flight are the private values read back by the exporter;
    absent inputs are recorded as 0.
    """
    packet_id: int
    timestamp: float
    value: int
    calc_type: CalcType
    details: str
    cwnd_est: int
    flow: str
    rwnd: int = 0
    bytes_in_flight: int = 0
    cwnd_estimate: float = 0.0

    @classmethod
    def from_result(cls, packet_id: int, timestamp: float, flow: str,
                    result: EffectiveWindowResult) -> "Annotation":
        return cls(
            packet_id=packet_id,
            timestamp=timestamp,
            value=result.value,
            calc_type=result.calc_type,
            details=result.detail,
            cwnd_est=math.floor(result.cwnd_estimate + 0.5),
            flow=flow,
            rwnd=result.scaled_rwnd or 0,
            bytes_in_flight=result.bytes_in_flight or 0,
            cwnd_estimate=result.cwnd_estimate,
        )

    @property
    def info_text(self) -> str:
        return f" [EffWin:{self.value}]"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "packet_id": self.packet_id,
            "time": self.timestamp,
            "flow": self.flow,
            "effwin.value": self.value,
            "effwin.type": self.calc_type.value,
            "effwin.details": self.details,
            "effwin.cwnd_est": self.cwnd_est,
            "rwnd": self.rwnd,
            "bytes_in_flight": self.bytes_in_flight,
        }


@dataclass
class PacketSummary:
    """User-visible one-line summary of a packet (the "Info" column)."""
    info: str = ""
    read_only: bool = False

    def append(self, text: str) -> None:
        if self.read_only:
            raise ReadOnlyFieldError("packet summary is read-only")
        self.info += text
