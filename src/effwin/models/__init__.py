"""
Data models shared by the dissector, the engine and the exporter.
"""

from .flow import FlowKey, UNKNOWN_STREAM
from .packet import RawPacket, PacketObservation, PassKind
from .result import CalcType, EffectiveWindowResult, Annotation, PacketSummary

__all__ = [
    'FlowKey',
    'UNKNOWN_STREAM',
    'RawPacket',
    'PacketObservation',
    'PassKind',
    'CalcType',
    'EffectiveWindowResult',
    'Annotation',
    'PacketSummary',
]
