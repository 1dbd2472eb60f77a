"""Effective window calculation."""
from __future__ import annotations

from typing import Optional

from ..models.result import CalcType, EffectiveWindowResult
from .window_scale import UINT32_MAX


def _clamp_uint32(value) -> int:
    return max(0, min(UINT32_MAX, int(value)))


def compute(scaled_rwnd: Optional[int],
            cwnd_estimate: float,
            bytes_in_flight: Optional[int]) -> Optional[EffectiveWindowResult]:
    """
    Combine the scaled receive window, the estimated congestion window and
    bytes in flight.

    Returns None when neither the window nor bytes in flight is known;
    such packets get no annotation and are not exported.
    """
    if scaled_rwnd is not None and bytes_in_flight is not None:
        value = max(0, min(scaled_rwnd, cwnd_estimate) - bytes_in_flight)
        return EffectiveWindowResult(
            value=_clamp_uint32(value),
            calc_type=CalcType.FULL,
            detail="Rwnd=%d, Cwnd_est=%.0f, BytesInFlight=%d" % (scaled_rwnd, cwnd_estimate, bytes_in_flight),
            cwnd_estimate=cwnd_estimate,
            scaled_rwnd=scaled_rwnd,
            bytes_in_flight=bytes_in_flight,
        )

    if scaled_rwnd is not None:
        return EffectiveWindowResult(
            value=_clamp_uint32(scaled_rwnd),
            calc_type=CalcType.RWND_ONLY,
            detail="BytesInFlight unavailable",
            cwnd_estimate=cwnd_estimate,
            scaled_rwnd=scaled_rwnd,
        )

    if bytes_in_flight is not None:
        return EffectiveWindowResult(
            value=0,
            calc_type=CalcType.BIF_ONLY,
            detail="BytesInFlight=%d (Rwnd unknown)" % bytes_in_flight,
            cwnd_estimate=cwnd_estimate,
            bytes_in_flight=bytes_in_flight,
        )

    return None
