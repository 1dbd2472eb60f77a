"""
Tests for TCP decoding and dissection of scapy frames.
Run with: python -m pytest tests/test_dissector.py
"""
import logging
import os
import sys

# Add src to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
src_path = os.path.join(project_root, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from scapy.layers.inet import IP, TCP, UDP
from scapy.layers.inet6 import IPv6
from scapy.layers.l2 import Ether

from effwin.analysis.engine import EffectiveWindowEngine
from effwin.capture.dissector import TcpDissector, seq_delta
from effwin.capture.packet_decoder import DecodeQuality, decode_tcp, quality_flag_names
from effwin.models import RawPacket

CLIENT = ("10.0.0.1", 52234)
SERVER = ("10.0.0.2", 443)


def _frame(layers, padding=b""):
    base = Ether(src="00:11:22:33:44:55", dst="66:77:88:99:aa:bb") / layers
    return Ether(bytes(base) + padding)


def _tcp(src, dst, flags="A", seq=0, ack=0, window=64, options=None, payload=b""):
    layers = IP(src=src[0], dst=dst[0]) / TCP(
        sport=src[1], dport=dst[1], flags=flags, seq=seq, ack=ack,
        window=window, options=options or [],
    )
    if payload:
        layers = layers / payload
    return layers


def _raw(packet_id, frame, ts_us=None):
    data = bytes(frame)
    return RawPacket(
        packet_id=packet_id,
        timestamp_us=1_700_000_000_000_000 + packet_id * 1000 if ts_us is None else ts_us,
        captured_length=len(data),
        original_length=len(data),
        frame=frame,
    )


def _conversation():
    return [
        _tcp(CLIENT, SERVER, "S", seq=1000, window=64, options=[("MSS", 1460), ("WScale", 7)]),
        _tcp(SERVER, CLIENT, "SA", seq=5000, ack=1001, window=8192, options=[("WScale", 2)]),
        _tcp(CLIENT, SERVER, "A", seq=1001, ack=5001, payload=b"x" * 100),
        _tcp(CLIENT, SERVER, "PA", seq=1101, ack=5001, payload=b"y" * 200),
        _tcp(SERVER, CLIENT, "A", seq=5001, ack=1201, window=8192),
        _tcp(CLIENT, SERVER, "PA", seq=1301, ack=5001, payload=b"z" * 100),
    ]


def test_decode_syn_with_window_scale():
    segment = decode_tcp(_raw(1, _frame(_conversation()[0])))
    assert segment.is_tcp
    assert segment.is_syn and not segment.is_ack
    assert segment.src_ip == "10.0.0.1"
    assert segment.dst_port == 443
    assert segment.window == 64
    assert segment.window_scale == 7
    assert segment.payload_len == 0
    assert segment.seg_len == 1
    assert quality_flag_names(segment.quality_flags) == ("OK",)


def test_decode_ignores_link_padding():
    frame = _frame(_tcp(SERVER, CLIENT, "A", seq=1, ack=1), padding=b"\x00" * 6)
    segment = decode_tcp(_raw(1, frame))
    assert segment.payload_len == 0
    assert segment.window_scale is None


def test_decode_ipv6():
    layers = IPv6(src="2001:db8::1", dst="2001:db8::2") / TCP(sport=1, dport=2, flags="A", window=300) / (b"a" * 10)
    segment = decode_tcp(_raw(1, _frame(layers)))
    assert segment.src_ip == "2001:db8::1"
    assert segment.window == 300
    assert segment.payload_len == 10


def test_decode_non_tcp():
    udp = decode_tcp(_raw(1, _frame(IP(src="10.0.0.1", dst="10.0.0.2") / UDP(sport=53, dport=53))))
    assert not udp.is_tcp
    assert udp.quality_flags & DecodeQuality.NOT_TCP
    assert quality_flag_names(udp.quality_flags) == ("NOT_TCP",)


def test_seq_delta_wraps():
    assert seq_delta(10, 0xFFFFFFF0) == 26
    assert seq_delta(0xFFFFFFF0, 10) == -26
    assert seq_delta(500, 100) == 400


def test_dissect_conversation():
    dissector = TcpDissector()
    observations = [dissector.dissect(_raw(i + 1, _frame(p))) for i, p in enumerate(_conversation())]

    syn, synack, data1, data2, ack, data3 = observations
    assert str(syn.flow_key) == "0:10.0.0.1:52234>10.0.0.2:443"
    assert str(synack.flow_key) == "0:10.0.0.2:443>10.0.0.1:52234"
    assert syn.is_syn and syn.scale_hint == 7
    assert synack.is_syn and synack.scale_hint == 2
    assert not data1.is_syn

    assert syn.bytes_in_flight is None
    assert data1.bytes_in_flight == 100
    assert data2.bytes_in_flight == 300
    assert ack.bytes_in_flight is None
    assert data3.bytes_in_flight == 200

    assert syn.timestamp == 0.0
    assert data3.timestamp == 0.005


def test_bytes_in_flight_without_handshake():
    dissector = TcpDissector()
    obs = dissector.dissect(_raw(1, _frame(_tcp(CLIENT, SERVER, "PA", seq=77, payload=b"q" * 40))))
    assert obs.bytes_in_flight == 40


def test_stream_ids_per_connection():
    dissector = TcpDissector()
    other = ("10.0.0.3", 40000)
    a = dissector.dissect(_raw(1, _frame(_tcp(CLIENT, SERVER, "S"))))
    b = dissector.dissect(_raw(2, _frame(_tcp(other, SERVER, "S"))))
    c = dissector.dissect(_raw(3, _frame(_tcp(SERVER, CLIENT, "SA"))))
    assert a.flow_key.stream_id == 0
    assert b.flow_key.stream_id == 1
    assert c.flow_key.stream_id == 0


def test_streams_disabled():
    dissector = TcpDissector(track_streams=False)
    obs = dissector.dissect(_raw(1, _frame(_tcp(CLIENT, SERVER, "S"))))
    assert obs.flow_key.stream_id == "unknown"


def test_non_tcp_skipped():
    dissector = TcpDissector()
    frame = _frame(IP(src="10.0.0.1", dst="10.0.0.2") / UDP(sport=5353, dport=5353))
    assert dissector.dissect(_raw(1, frame)) is None
    assert dissector.skipped == 1


def test_reset_restarts_numbering():
    dissector = TcpDissector()
    dissector.dissect(_raw(1, _frame(_tcp(CLIENT, SERVER, "S"))))
    dissector.dissect(_raw(2, _frame(_tcp(("10.0.0.3", 1), SERVER, "S"))))
    dissector.reset()
    obs = dissector.dissect(_raw(1, _frame(_tcp(("10.0.0.3", 1), SERVER, "S"))))
    assert obs.flow_key.stream_id == 0
    assert obs.timestamp == 0.0


def test_port_reuse_after_fin_starts_new_stream():
    dissector = TcpDissector()
    frames = [
        _tcp(CLIENT, SERVER, "S", seq=100, window=64, options=[("WScale", 7)]),
        _tcp(CLIENT, SERVER, "FA", seq=101, ack=1),
        _tcp(CLIENT, SERVER, "S", seq=900000, window=64, options=[("WScale", 2)]),
        _tcp(SERVER, CLIENT, "SA", seq=7000, ack=900001, window=64, options=[("WScale", 2)]),
        _tcp(CLIENT, SERVER, "A", seq=900001, ack=7001, window=64, payload=b"d" * 10),
    ]
    observations = [dissector.dissect(_raw(i + 1, _frame(p))) for i, p in enumerate(frames)]

    assert [o.flow_key.stream_id for o in observations] == [0, 0, 1, 1, 1]
    assert str(observations[4].flow_key) == "1:10.0.0.1:52234>10.0.0.2:443"
    assert observations[4].bytes_in_flight == 10

    engine = EffectiveWindowEngine()
    engine.start_session()
    annotations = [engine.process(o) for o in observations]
    assert annotations[0].rwnd == 64 << 7
    assert annotations[4].rwnd == 64 << 2


def test_new_initial_sequence_starts_new_stream():
    dissector = TcpDissector()
    first = dissector.dissect(_raw(1, _frame(_tcp(CLIENT, SERVER, "S", seq=100))))
    retransmit = dissector.dissect(_raw(2, _frame(_tcp(CLIENT, SERVER, "S", seq=100))))
    reused = dissector.dissect(_raw(3, _frame(_tcp(CLIENT, SERVER, "S", seq=555555))))
    assert first.flow_key.stream_id == 0
    assert retransmit.flow_key.stream_id == 0
    assert reused.flow_key.stream_id == 1


def test_port_reuse_without_streams_drops_sequence_state():
    dissector = TcpDissector(track_streams=False)
    dissector.dissect(_raw(1, _frame(_tcp(CLIENT, SERVER, "S", seq=100))))
    dissector.dissect(_raw(2, _frame(_tcp(CLIENT, SERVER, "RA", seq=101, ack=1))))
    dissector.dissect(_raw(3, _frame(_tcp(CLIENT, SERVER, "S", seq=900000))))
    data = dissector.dissect(_raw(4, _frame(_tcp(CLIENT, SERVER, "PA", seq=900001, payload=b"d" * 10))))
    assert data.flow_key.stream_id == "unknown"
    assert data.bytes_in_flight == 11


def test_skipped_packet_logs_flag_names(caplog):
    dissector = TcpDissector()
    frame = _frame(IP(src="10.0.0.1", dst="10.0.0.2") / UDP(sport=5353, dport=5353))
    with caplog.at_level(logging.DEBUG, logger="effwin.capture.dissector"):
        dissector.dissect(_raw(7, frame))
    assert "Packet 7 skipped (NOT_TCP)" in caplog.text
