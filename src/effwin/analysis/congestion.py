"""Heuristic congestion window estimator."""
from __future__ import annotations

from typing import Dict, Optional

from ..models.flow import FlowKey

# Weight kept from the previous estimate when bytes in flight shrinks.
DECAY = 0.75


class CongestionEstimator:
    """
    Per-flow congestion window estimate derived from bytes in flight.

    This is NOT a congestion control algorithm: there is no RTT
    measurement, no slow start or AIMD state and no loss detection. It
    is a responsiveness heuristic. Growth in bytes in flight is tracked
    immediately; a drop decays the estimate with an exponential moving
    average (alpha = 0.25) toward the lower value.
    """

    def __init__(self):
        self._estimates: Dict[FlowKey, float] = {}

    def update(self, key: FlowKey, bytes_in_flight: Optional[int]) -> float:
        prev = self._estimates.get(key)

        if prev is None:
            estimate = float(bytes_in_flight or 0)
            self._estimates[key] = estimate
            return estimate

        if bytes_in_flight is None:
            return prev

        if bytes_in_flight > prev:
            estimate = float(bytes_in_flight)
        else:
            estimate = prev * DECAY + bytes_in_flight * (1.0 - DECAY)

        self._estimates[key] = estimate
        return estimate

    def peek(self, key: FlowKey) -> Optional[float]:
        """Stored estimate for key, without creating or changing state."""
        return self._estimates.get(key)

    def reset(self) -> None:
        self._estimates.clear()

    def __len__(self) -> int:
        return len(self._estimates)
