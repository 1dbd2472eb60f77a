"""
Turns decoded frames into engine observations.

Supplies what a protocol analyser would normally provide alongside the
raw TCP header: a conversation (stream) index, a time relative to the
first frame, and an estimate of the bytes in flight.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, Optional, Tuple

from ..analysis.flow_key import derive_flow_key
from ..models.flow import FlowKey
from ..models.packet import PacketObservation, RawPacket
from .packet_decoder import TcpSegment, decode_tcp, quality_flag_names

logger = logging.getLogger(__name__)

_SEQ_MOD = 1 << 32
_SEQ_HALF = 1 << 31


def seq_delta(a: int, b: int) -> int:
    """Signed distance a - b in 32-bit sequence space."""
    d = (a - b) % _SEQ_MOD
    return d - _SEQ_MOD if d >= _SEQ_HALF else d


@dataclass
class _DirectionState:
    first_seq: Optional[int] = None
    next_seq: Optional[int] = None
    """Highest sequence end sent in this direction"""
    last_ack: Optional[int] = None
    """Highest ACK sent in this direction (acknowledges the reverse one)"""


@dataclass
class _Conversation:
    stream_id: int
    syn_seq: Optional[int] = None
    """Sequence number of the SYN that opened it, if seen"""
    closed: bool = False
    """A FIN or RST was seen in either direction"""


class TcpDissector:
    """
    Stateful dissector for one capture.

    Stream ids are assigned in order of first appearance of each
    unordered endpoint pair, so both directions of a connection share
    one id. A SYN (without ACK) on a pair that was closed, or that opened
    with a different initial sequence number, starts a new connection:
    it gets the next stream id and the old sequence tracking is dropped.
    With track_streams off every segment gets the "unknown" stream.
    """

    def __init__(self, track_streams: bool = True):
        self.track_streams = track_streams
        self._conversations: Dict[Tuple, _Conversation] = {}
        self._directions: Dict[FlowKey, _DirectionState] = {}
        self._next_stream = 0
        self._first_ts_us: Optional[int] = None
        self.skipped = 0

    def reset(self) -> None:
        self._conversations.clear()
        self._directions.clear()
        self._next_stream = 0
        self._first_ts_us = None
        self.skipped = 0

    def dissect(self, raw: RawPacket) -> Optional[PacketObservation]:
        """Observation for a TCP frame, None for anything else."""
        segment = decode_tcp(raw)
        if not segment.is_tcp or segment.src_port is None:
            self.skipped += 1
            logger.debug("Packet %d skipped (%s)", raw.packet_id,
                         ",".join(quality_flag_names(segment.quality_flags)))
            return None

        if self._first_ts_us is None:
            self._first_ts_us = raw.timestamp_us

        conversation = self._conversation(segment)
        stream_id = conversation.stream_id if self.track_streams else None
        key = derive_flow_key(stream_id, segment.src_ip, segment.src_port,
                              segment.dst_ip, segment.dst_port)

        observation = PacketObservation(
            packet_id=raw.packet_id,
            flow_key=key,
            raw_window=segment.window,
            scale_hint=segment.window_scale,
            bytes_in_flight=self._bytes_in_flight(key, segment),
            is_syn=segment.is_syn,
            timestamp=(raw.timestamp_us - self._first_ts_us) / 1_000_000.0,
        )
        if segment.is_fin or segment.is_rst:
            conversation.closed = True
        return observation

    def _conversation(self, segment: TcpSegment) -> _Conversation:
        a = (segment.src_ip, segment.src_port)
        b = (segment.dst_ip, segment.dst_port)
        pair = (a, b) if a <= b else (b, a)
        conversation = self._conversations.get(pair)
        opening = segment.is_syn and not segment.is_ack

        if conversation is not None and opening and (
                conversation.closed
                or (conversation.syn_seq is not None and conversation.syn_seq != segment.seq)):
            logger.debug("Port reuse on %s:%s > %s:%s, stream %d closed",
                         segment.src_ip, segment.src_port, segment.dst_ip, segment.dst_port,
                         conversation.stream_id)
            old_key = derive_flow_key(conversation.stream_id if self.track_streams else None,
                                      segment.src_ip, segment.src_port,
                                      segment.dst_ip, segment.dst_port)
            self._directions.pop(old_key, None)
            self._directions.pop(old_key.reversed(), None)
            conversation = None

        if conversation is None:
            conversation = _Conversation(stream_id=self._next_stream)
            self._next_stream += 1
            self._conversations[pair] = conversation
        if opening and conversation.syn_seq is None:
            conversation.syn_seq = segment.seq
        return conversation

    def _bytes_in_flight(self, key: FlowKey, segment: TcpSegment) -> Optional[int]:
        fwd = self._directions.setdefault(key, _DirectionState())
        rev = self._directions.setdefault(key.reversed(), _DirectionState())

        if segment.is_ack and (fwd.last_ack is None or seq_delta(segment.ack, fwd.last_ack) > 0):
            fwd.last_ack = segment.ack

        if fwd.first_seq is None:
            fwd.first_seq = segment.seq
        end = (segment.seq + segment.seg_len) % _SEQ_MOD
        if fwd.next_seq is None or seq_delta(end, fwd.next_seq) > 0:
            fwd.next_seq = end

        # Only data-carrying segments have a meaningful value.
        if segment.payload_len == 0:
            return None

        base = rev.last_ack if rev.last_ack is not None else fwd.first_seq
        return max(0, seq_delta(fwd.next_seq, base))
