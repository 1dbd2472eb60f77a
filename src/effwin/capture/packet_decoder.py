"""
TCP header decoding on top of scapy's dissection.

This module is deterministic and best-effort:
- It never throws on malformed/truncated frames
- It returns quality flags to describe decode issues
- It only reads headers (payload bytes are only counted)
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag
from typing import Optional, Tuple

from scapy.layers.inet import IP, TCP
from scapy.layers.inet6 import IPv6
from scapy.packet import Padding

from ..models.packet import RawPacket

# TCP flag bits
TCP_FIN = 0x01
TCP_SYN = 0x02
TCP_RST = 0x04
TCP_ACK = 0x10

WSCALE_OPTION = "WScale"


class DecodeQuality(IntFlag):
    OK = 0
    TRUNCATED = 1 << 0
    NOT_IP = 1 << 1
    NOT_TCP = 1 << 2
    MALFORMED_L4 = 1 << 3


def quality_flag_names(flags: int) -> Tuple[str, ...]:
    """Return decode quality flag names for display."""
    if flags == 0:
        return ("OK",)
    names = []
    for flag in DecodeQuality:
        if flag != DecodeQuality.OK and (flags & flag):
            names.append(flag.name)
    return tuple(names)


@dataclass(frozen=True)
class TcpSegment:
    """TCP header fields of one frame. Fields are None when not decodable."""
    src_ip: Optional[str] = None
    dst_ip: Optional[str] = None
    src_port: Optional[int] = None
    dst_port: Optional[int] = None
    seq: Optional[int] = None
    ack: Optional[int] = None
    flags: int = 0
    window: Optional[int] = None
    window_scale: Optional[int] = None
    """Shift count from the window scale option, if present"""
    payload_len: int = 0
    quality_flags: int = 0

    @property
    def is_tcp(self) -> bool:
        return not (self.quality_flags & (DecodeQuality.NOT_IP | DecodeQuality.NOT_TCP))

    @property
    def is_syn(self) -> bool:
        return bool(self.flags & TCP_SYN)

    @property
    def is_ack(self) -> bool:
        return bool(self.flags & TCP_ACK)

    @property
    def is_fin(self) -> bool:
        return bool(self.flags & TCP_FIN)

    @property
    def is_rst(self) -> bool:
        return bool(self.flags & TCP_RST)

    @property
    def seg_len(self) -> int:
        """Sequence space consumed: payload plus one for each of SYN and FIN."""
        return self.payload_len + (1 if self.is_syn else 0) + (1 if self.is_fin else 0)


def decode_tcp(raw: RawPacket) -> TcpSegment:
    """Decode the first IPv4/IPv6 TCP header in a frame (best-effort)."""
    quality = DecodeQuality.OK
    if raw.is_truncated:
        quality |= DecodeQuality.TRUNCATED

    frame = raw.frame
    ip = frame.getlayer(IP) if frame is not None else None
    if ip is None and frame is not None:
        ip = frame.getlayer(IPv6)
    if ip is None:
        return TcpSegment(quality_flags=int(quality | DecodeQuality.NOT_IP))

    tcp = ip.getlayer(TCP)
    if tcp is None:
        return TcpSegment(src_ip=ip.src, dst_ip=ip.dst,
                          quality_flags=int(quality | DecodeQuality.NOT_TCP))

    try:
        src_port = int(tcp.sport)
        dst_port = int(tcp.dport)
        seq = int(tcp.seq)
        ack = int(tcp.ack)
        flags = int(tcp.flags)
        window = int(tcp.window)
    except (TypeError, ValueError):
        return TcpSegment(src_ip=ip.src, dst_ip=ip.dst,
                          quality_flags=int(quality | DecodeQuality.MALFORMED_L4))

    window_scale, options_ok = _parse_window_scale(tcp)
    if not options_ok:
        quality |= DecodeQuality.MALFORMED_L4

    return TcpSegment(
        src_ip=ip.src,
        dst_ip=ip.dst,
        src_port=src_port,
        dst_port=dst_port,
        seq=seq,
        ack=ack,
        flags=flags,
        window=window,
        window_scale=window_scale,
        payload_len=_payload_length(tcp),
        quality_flags=int(quality),
    )


def _parse_window_scale(tcp) -> Tuple[Optional[int], bool]:
    for option in tcp.options or []:
        if not isinstance(option, tuple) or len(option) != 2:
            continue
        name, value = option
        if name == WSCALE_OPTION:
            try:
                return int(value), True
            except (TypeError, ValueError):
                return None, False
    return None, True


def _payload_length(tcp) -> int:
    # Link-layer padding (short Ethernet frames) is not TCP payload.
    length = len(bytes(tcp.payload))
    padding = tcp.getlayer(Padding)
    if padding is not None:
        length -= len(padding.load)
    return max(0, length)
