"""
Window scale learning and scaled receive window arithmetic.

The window scale option (RFC 7323) is negotiated once, in the SYN and
SYN-ACK segments, and applies to every later window advertised in that
direction. Segments outside the handshake never change the learned
factor.
"""
from __future__ import annotations

from typing import Dict, Optional

from ..models.flow import FlowKey

MAX_WINDOW_SCALE = 14
UINT32_MAX = 0xFFFFFFFF


def clamp_scale(scale_hint: Optional[int]) -> int:
    if scale_hint is None:
        return 0
    return max(0, min(MAX_WINDOW_SCALE, int(scale_hint)))


class WindowScaleLearner:
    """Per-flow window scale cache, filled only from SYN segments."""

    def __init__(self):
        self._scales: Dict[FlowKey, int] = {}

    def learn_or_get(self, key: FlowKey, is_syn: bool, scale_hint: Optional[int]) -> int:
        scale = self._scales.get(key)
        if scale is not None:
            return scale

        # Nothing stored yet, so a later SYN-ACK can still set it.
        if not is_syn:
            return 0

        scale = clamp_scale(scale_hint)
        self._scales[key] = scale
        return scale

    def get(self, key: FlowKey) -> int:
        return self._scales.get(key, 0)

    def reset(self) -> None:
        self._scales.clear()

    def __contains__(self, key: FlowKey) -> bool:
        return key in self._scales

    def __len__(self) -> int:
        return len(self._scales)


def scale_window(raw_window: Optional[int], scale: int) -> Optional[int]:
    """Shift raw_window left by scale bits, saturating at 0xFFFFFFFF."""
    if raw_window is None:
        return None
    if scale == 0:
        return raw_window
    return min(raw_window << scale, UINT32_MAX)


def scale_window_iterative(raw_window: Optional[int], scale: int) -> Optional[int]:
    """Same as scale_window, by repeated doubling with per-step saturation."""
    if raw_window is None:
        return None
    scaled = raw_window
    for _ in range(scale):
        scaled *= 2
        if scaled > UINT32_MAX:
            scaled = UINT32_MAX
            break
    return scaled
