"""
Capture file loading.
"""

from .pcap_reader import PcapFileSource

__all__ = [
    'PcapFileSource',
]
