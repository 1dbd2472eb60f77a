"""
TCP decoding and dissection of captured frames.
"""

from .packet_decoder import DecodeQuality, TcpSegment, decode_tcp, quality_flag_names
from .dissector import TcpDissector

__all__ = [
    'DecodeQuality',
    'TcpSegment',
    'decode_tcp',
    'quality_flag_names',
    'TcpDissector',
]
