"""Flow key derivation."""
from typing import Optional

from ..models.flow import FlowKey, UNKNOWN_STREAM


def derive_flow_key(stream_id: Optional[int],
                    src_addr: str, src_port: int,
                    dst_addr: str, dst_port: int) -> FlowKey:
    """
    Build the directional key for a segment.

    Without a stream id every connection shares the "unknown" stream, so
    unrelated connections with the same address tuple collide.
    """
    stream = UNKNOWN_STREAM if stream_id is None else int(stream_id)
    return FlowKey(stream, str(src_addr), int(src_port), str(dst_addr), int(dst_port))
